"""
Synthèse d'un plan à partir de la réponse texte du LLM planificateur.

Deux stratégies :
  1. JSON (après retrait des balises ``` et d'un éventuel préambule <think>) ;
  2. repli ligne par ligne, une étape par ligne utile.

La synthèse n'échoue que si aucune étape n'est exploitable.
"""
from __future__ import annotations
import json
import re
from typing import Any, List, Optional, Tuple

from .errors import SynthesisError
from .types import Plan, Step, Ok, Err, Result, PENDING

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
FILLER_PREFIXES = ("```", "Here", "I will")


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text)


def _drop_think(text: str) -> str:
    # modèles "thinking" : <think>...</think> avant la réponse
    if "</think>" in text:
        return text.split("</think>")[-1]
    return text


def _parse_json_object(text: str) -> Optional[dict]:
    """Renvoie l'objet JSON contenant un tableau "steps", sinon None."""
    candidates = [text.strip()]
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start:end + 1])
    for candidate in candidates:
        if not candidate:
            continue
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and isinstance(data.get("steps"), list):
            return data
    return None


def is_filler(line: str) -> bool:
    return line.startswith(FILLER_PREFIXES)


def fallback_steps(raw: str) -> List[dict]:
    """Découpe ligne par ligne : chaque ligne non vide et non narrative devient une étape."""
    out: List[dict] = []
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or is_filler(stripped):
            continue
        out.append({"description": stripped, "dependencies": []})
    return out


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def normalize_dependencies(raw_deps: Any, index: int, total: int) -> List[int]:
    """
    Numéros 1-based du texte source -> indices 0-based.

    Ne garde que 0 <= dep < index : ni hors plan, ni l'étape elle-même, ni une
    étape ultérieure (l'exécution est séquentielle).
    """
    if not isinstance(raw_deps, list):
        return []
    out: List[int] = []
    for raw in raw_deps:
        n = _as_int(raw)
        if n is None:
            continue
        dep = n - 1
        if 0 <= dep < total and dep < index and dep not in out:
            out.append(dep)
    return out


def _description_of(entry: Any) -> Optional[str]:
    if isinstance(entry, str):
        desc = entry
    elif isinstance(entry, dict) and isinstance(entry.get("description"), str):
        desc = entry["description"]
    else:
        return None
    desc = desc.strip()
    return desc or None


def normalize_steps(raw_steps: List[Any]) -> List[Step]:
    # les entrées invalides sont ignorées ; les numéros de dépendance se réfèrent
    # aux positions d'origine, on les remappe donc sur les étapes conservées
    kept: List[Tuple[int, Any, str]] = []
    for pos, entry in enumerate(raw_steps):
        desc = _description_of(entry)
        if desc is not None:
            kept.append((pos, entry, desc))

    remap = {pos: new for new, (pos, _, _) in enumerate(kept)}
    total = len(raw_steps)
    steps: List[Step] = []
    for new_index, (pos, entry, desc) in enumerate(kept):
        deps: List[int] = []
        code = command = None
        if isinstance(entry, dict):
            for dep in normalize_dependencies(entry.get("dependencies"), pos, total):
                if dep in remap:
                    deps.append(remap[dep])
            code = entry.get("code") if isinstance(entry.get("code"), str) and entry.get("code") else None
            command = entry.get("command") if isinstance(entry.get("command"), str) and entry.get("command") else None
        steps.append(Step(
            id=new_index + 1,
            description=desc,
            status=PENDING,
            dependencies=deps,
            files=[],
            code=code,
            command=command,
        ))
    return steps


def synthesize(raw_response: str, original_request: str) -> Plan:
    """Réponse brute du planificateur -> Plan validé (SynthesisError si aucune étape)."""
    raw = _drop_think(raw_response or "")
    data = _parse_json_object(strip_fences(raw))

    if data is not None:
        steps = normalize_steps(data["steps"])
    else:
        steps = normalize_steps(fallback_steps(raw))
    if not steps:
        raise SynthesisError("no valid steps")

    description = ""
    estimated = ""
    if data is not None:
        if isinstance(data.get("description"), str):
            description = data["description"].strip()
        if isinstance(data.get("estimatedTime"), str):
            estimated = data["estimatedTime"].strip()

    return Plan(
        steps=steps,
        request=original_request,
        original_request=original_request,
        description=description,
        estimated_time=estimated,
    )


def try_synthesize(raw_response: str, original_request: str) -> Result[Plan, SynthesisError]:
    try:
        return Ok(synthesize(raw_response, original_request))
    except SynthesisError as e:
        return Err(e)
