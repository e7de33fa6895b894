from __future__ import annotations
from pathlib import Path

class KillSwitchEngaged(Exception):
    """Raised when kill-switch is engaged."""

def kill_engaged(kill_switch_path: str | Path | None) -> bool:
    return bool(kill_switch_path) and Path(kill_switch_path).exists()

def check_kill(kill_switch_path: str | Path | None) -> None:
    """Raise if the kill-switch file exists."""
    if kill_engaged(kill_switch_path):
        raise KillSwitchEngaged(f"Kill-switch engaged: {kill_switch_path}")

def engage_kill(kill_switch_path: str | Path) -> Path:
    p = Path(kill_switch_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text("KILLED", encoding="utf-8")
    return p

def clear_kill(kill_switch_path: str | Path) -> bool:
    """Retire le kill-switch ; True s'il était présent."""
    p = Path(kill_switch_path)
    if p.exists():
        p.unlink()
        return True
    return False
