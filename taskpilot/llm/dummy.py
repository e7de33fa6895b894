from __future__ import annotations
import json, re
from .base import LLM, LLMRequest

_REQUEST_RE = re.compile(r"break it down into steps:\s*(.+)", re.DOTALL)
_STEP_RE = re.compile(r"Current Step \((\d+)/(\d+)\):\s*(.+)")

class DummyLLM(LLM):
    """
    LLM déterministe pour tests/démo.
    - prompt de planification -> plan JSON de 3 étapes chaînées ;
    - prompt d'étape -> une commande echo et un fichier de notes par étape.
    """
    def generate(self, req: LLMRequest) -> str:
        m = _REQUEST_RE.search(req.prompt)
        if m:
            request = m.group(1).strip().splitlines()[0][:200]
            return "```json\n" + json.dumps({"steps": [
                {"description": f"Analyser la demande: {request}", "dependencies": []},
                {"description": "Créer la structure du projet", "dependencies": [1]},
                {"description": "Documenter le résultat", "dependencies": [2]},
            ]}, ensure_ascii=False, indent=2) + "\n```"

        s = _STEP_RE.search(req.prompt)
        if not s:
            goal = req.prompt.strip().splitlines()[0][:200] if req.prompt.strip() else ""
            return f"1. {goal}\n"
        num, desc = s.group(1), s.group(3).strip()
        return (
            f"Étape {num} : {desc}\n\n"
            "$$$ COMMAND\n"
            f"echo step {num}\n"
            "$$$ END\n\n"
            "```markdown\n"
            f"File: notes/step-{num}.md\n"
            f"# Étape {num}\n\n{desc}\n"
            "```\n"
        )
