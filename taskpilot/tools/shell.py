from __future__ import annotations
import subprocess, platform, shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from ..config import Settings
from .errors import CommandError, ShellSecurityError
from .logs import log_event
from ..security.kill import check_kill

__all__ = ["CommandResult", "CommandRunner", "run_command", "ShellSecurityError", "CommandError"]

SHELL_OPERATORS = ("&&", "||", "|", ";", ">", "<", "`", "$(")

@dataclass
class CommandResult:
    command: str
    returncode: int
    stdout: str
    stderr: str
    dry_run: bool = False

def _allowed_from_settings(settings: Settings) -> set[str]:
    # récupère l'allowlist depuis la config (profil safe/balanced/danger)
    return {c.lower() for c in settings.security.shell_allowlist}

def _uses_shell_operators(line: str) -> bool:
    return any(op in line for op in SHELL_OPERATORS)

def _command_lines(command: str) -> List[str]:
    return [l.strip() for l in command.splitlines() if l.strip() and not l.strip().startswith("#")]

def _check_program(settings: Settings, program: str, line: str) -> None:
    allowed = _allowed_from_settings(settings)
    if "*" not in allowed and Path(program).name.lower() not in allowed:
        raise ShellSecurityError(f"Commande non autorisée: {program}", command=line)

def _check_line(settings: Settings, line: str) -> List[str]:
    """Mode restreint : vérifie une ligne contre l'allowlist et renvoie ses arguments."""
    if _uses_shell_operators(line):
        raise ShellSecurityError(f"Opérateurs shell non autorisés: {line}", command=line)
    try:
        argv = shlex.split(line)
    except ValueError as e:
        raise CommandError(f"Commande illisible: {line} ({e})", command=line) from e
    if argv:
        _check_program(settings, argv[0], line)
    return argv

def _check_script(settings: Settings, command: str) -> None:
    """Mode shell : le premier mot de chaque ligne doit être dans l'allowlist."""
    if "*" in _allowed_from_settings(settings):
        return
    for line in _command_lines(command):
        _check_program(settings, line.split()[0], line)

def _workspace_dir(settings: Settings, cwd: Optional[str]) -> Path:
    base = Path(settings.general.workspace_path)
    target = (base / cwd) if cwd else base
    target.mkdir(parents=True, exist_ok=True)
    return target

def _execute(settings: Settings, args, *, label: str, shell: bool, cwd: Path, timeout: int) -> subprocess.CompletedProcess:
    check_kill(settings.general.kill_switch_path)
    try:
        p = subprocess.run(args, shell=shell, cwd=cwd, text=True, capture_output=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as e:
        raise CommandError(f"Commande expirée après {timeout}s: {label}", command=label) from e
    except OSError as e:
        raise CommandError(f"Commande impossible à lancer: {label} ({e})", command=label) from e
    if p.stderr.strip():
        log_event(settings, f"stderr [{label}]: {p.stderr.strip()}")
    if p.returncode != 0:
        raise CommandError(
            f"Command failed ({p.returncode}): {label}\n{p.stderr.strip()}",
            command=label, returncode=p.returncode, stderr=p.stderr.strip(),
        )
    return p

def run_command(
    settings: Settings,
    command: str,
    *,
    cwd: Optional[str] = None,
    description: str = "",
    timeout: Optional[int] = None,
) -> CommandResult:
    """
    Exécute le texte d'un bloc de commande dans le workspace.

    Avec allow_shell_operators, le bloc entier part au shell comme un seul
    script (cd, variables et guillemets multi-lignes tiennent d'une ligne à
    l'autre). Sinon, mode restreint : une commande par ligne, sans shell.
    Tout est validé avant la première exécution ; CommandError au premier
    code retour non nul ou timeout.
    """
    check_kill(settings.general.kill_switch_path)  # interrompt si kill-switch présent
    script_mode = settings.security.allow_shell_operators
    if script_mode:
        _check_script(settings, command)
        checked = []
    else:
        checked = [(line, _check_line(settings, line)) for line in _command_lines(command)]
    log_event(settings, f"{description or 'Commande'}: {command}")

    if settings.general.dry_run:
        return CommandResult(command, 0, "", "", dry_run=True)

    workdir = _workspace_dir(settings, cwd)
    timeout = timeout or settings.security.command_timeout_sec
    if script_mode:
        p = _execute(settings, command, label=command.strip(), shell=True, cwd=workdir, timeout=timeout)
        return CommandResult(command, 0, p.stdout.strip(), p.stderr.strip())

    outputs: list[str] = []
    errors: list[str] = []
    for line, argv in checked:
        if not argv:
            continue
        # Windows: 'echo' via cmd /c pour un comportement cohérent
        if platform.system().lower().startswith("win") and argv[0].lower() == "echo":
            argv = ["cmd", "/c"] + argv
        p = _execute(settings, argv, label=line, shell=False, cwd=workdir, timeout=timeout)
        if p.stderr.strip():
            errors.append(p.stderr.strip())
        outputs.append(p.stdout.strip())
    return CommandResult(command, 0, "\n".join(o for o in outputs if o), "\n".join(errors))

class CommandRunner:
    """Collaborateur 'command runner' de la boucle : texte de commande -> sortie."""
    def __init__(self, settings: Settings, *, journal=None) -> None:
        self.settings = settings
        self.journal = journal
        self.history: list[CommandResult] = []

    def __call__(self, command: str, *, cwd: Optional[str] = None, description: str = "") -> str:
        try:
            res = run_command(self.settings, command, cwd=cwd, description=description)
        except CommandError as e:
            if self.journal is not None:
                self.journal.log("command", "error", command, {"error": str(e), "returncode": e.returncode})
            raise
        self.history.append(res)
        if self.journal is not None:
            self.journal.log("command", "info", command, {"dry_run": res.dry_run, "stdout": res.stdout[:2000]})
        return res.stdout
