from __future__ import annotations
from fnmatch import fnmatch
from pathlib import Path
from typing import List
from ..config import Settings

EMPTY_CONTEXT = "No files in context."

def _excluded(rel: Path, patterns: List[str]) -> bool:
    # un motif exclut le fichier s'il correspond au nom ou à un dossier parent
    return any(fnmatch(part, pat) for part in rel.parts for pat in patterns)

def list_workspace_files(settings: Settings) -> List[str]:
    root = Path(settings.general.workspace_path)
    if not root.is_dir():
        return []
    out: List[str] = []
    for f in sorted(root.rglob("*")):
        if not f.is_file():
            continue
        rel = f.relative_to(root)
        if _excluded(rel, settings.workspace.exclude):
            continue
        out.append(rel.as_posix())
        if len(out) >= settings.workspace.max_files:
            break
    return out

def workspace_summary(settings: Settings) -> str:
    """Résumé du workspace injecté dans le contexte de chaque étape."""
    files = list_workspace_files(settings)
    if not files:
        return EMPTY_CONTEXT
    return "\n".join(files)
