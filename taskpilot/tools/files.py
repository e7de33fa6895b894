from __future__ import annotations
from pathlib import Path
from typing import Iterable, List
from ..config import Settings
from ..core.types import FileOperation
from .errors import FileOpError, FileSecurityError
from .logs import log_event
from ..security.kill import check_kill

def _resolve_in_workspace(settings: Settings, rel_path: str) -> Path:
    base = Path(settings.general.workspace_path).resolve()
    p = Path(rel_path)
    full = (base / p).resolve() if not p.is_absolute() else p.resolve()
    # prevent escape
    try:
        full.relative_to(base)
    except ValueError:
        raise FileSecurityError(f"Chemin hors workspace: {rel_path}")
    if full == base:
        raise FileSecurityError(f"Chemin de fichier invalide: {rel_path!r}")
    return full

def safe_write_text(settings: Settings, rel_path: str, content: str, *, encoding: str = "utf-8") -> Path:
    check_kill(settings.general.kill_switch_path)  # raise if engaged
    dest = _resolve_in_workspace(settings, rel_path)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content, encoding=encoding)
    except OSError as e:
        raise FileOpError(f"Écriture impossible: {rel_path} ({e})") from e
    return dest

def apply_file_operations(settings: Settings, operations: Iterable[FileOperation], *, journal=None) -> List[str]:
    """
    Écrit chaque fichier dans le workspace, dans l'ordre ; renvoie les chemins
    relatifs touchés. Tous les chemins sont validés avant la première écriture.
    """
    ops = list(operations)
    for op in ops:
        _resolve_in_workspace(settings, op.path)

    touched: List[str] = []
    for op in ops:
        if settings.general.dry_run:
            log_event(settings, f"[dry-run] fichier non écrit: {op.path} ({len(op.content)} car.)")
        else:
            try:
                safe_write_text(settings, op.path, op.content)
            except FileOpError as e:
                log_event(settings, f"échec écriture {op.path}: {e}", level="error")
                if journal is not None:
                    journal.log("file", "error", op.path, {"error": str(e)})
                raise
            log_event(settings, f"Created file: {op.path}")
        if journal is not None:
            journal.log("file", "info", op.path, {"bytes": len(op.content.encode("utf-8")), "dry_run": settings.general.dry_run})
        touched.append(op.path)
    return touched

class FileApplier:
    """Collaborateur 'file applier' de la boucle."""
    def __init__(self, settings: Settings, *, journal=None) -> None:
        self.settings = settings
        self.journal = journal

    def __call__(self, operations: List[FileOperation]) -> List[str]:
        return apply_file_operations(self.settings, operations, journal=self.journal)
