from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
import tomllib, os

PROFILES = ["safe", "balanced", "danger"]

# Exclusions par défaut du résumé de workspace (répertoires de build, caches, secrets...)
DEFAULT_EXCLUDES = [
    "node_modules", "package-lock.json", "yarn.lock",
    "dist", "build", "out", ".next",
    ".cache", ".npm", ".yarn",
    "__pycache__", "*.pyc", "venv", ".venv", "env", ".env",
    ".vscode", ".idea", ".vs", "*.swp", "*.swo",
    ".git", ".svn", ".hg",
    "logs", "*.log", "tmp", "temp",
    "coverage", ".nyc_output",
    "*.jpg", "*.jpeg", "*.png", "*.gif", "*.ico", "*.pdf", "*.zip", "*.tar", "*.gz",
    "*.sqlite", "*.db",
    ".env*", "*.pem", "*.key", "secrets.*",
    ".DS_Store", "Thumbs.db",
]

@dataclass
class General:
    profile: str = "safe"
    dry_run: bool = False
    workspace_path: str = "data/workspace"
    log_dir: str = "data/logs"
    kill_switch_path: str = "data/kill.switch"
    step_delay_sec: float = 1.0
    # fichier remplaçant le prompt système de l'exécutant ("" = prompt intégré)
    system_prompt_path: str = ""

@dataclass
class Security:
    chain_secret: str = ""
    shell_allowlist: list[str] = field(default_factory=lambda: ["echo"])
    # autorise &&, |, ;, redirections -> exécution via le shell
    allow_shell_operators: bool = False
    command_timeout_sec: int = 60

@dataclass
class LLM:
    model: str = "dummy"
    max_tokens: int = 2048
    temperature: float = 0.2

@dataclass
class Memory:
    db_path: str = "data/memory.db"
    persist_runs: bool = False

@dataclass
class Workspace:
    max_files: int = 200
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))

@dataclass
class Settings:
    general: General
    security: Security
    llm: LLM
    memory: Memory
    workspace: Workspace = field(default_factory=Workspace)

def _first_toml(cfg_dir: Path, name: str) -> dict:
    # config/<name>.toml, sinon config/profiles/<name>.toml
    for candidate in (cfg_dir / f"{name}.toml", cfg_dir / "profiles" / f"{name}.toml"):
        if candidate.exists():
            with candidate.open("rb") as f:
                data = tomllib.load(f)
            if data:
                return data
    return {}

def _merge_sections(base: dict, over: dict) -> dict:
    """Sections TOML du profil fusionnées clé par clé dans celles des défauts."""
    merged = {k: dict(v) if isinstance(v, dict) else v for k, v in base.items()}
    for section, values in over.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged

def _read_profile_toml(config_path: Path, profile: str) -> dict:
    cfg_dir = config_path if config_path.is_dir() else config_path.parent
    return _merge_sections(_first_toml(cfg_dir, "defaults"), _first_toml(cfg_dir, profile))

def _known_fields(cls, data: dict | None) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}

def load_settings(config: str | None, profile: str, overrides: dict | None = None) -> Settings:
    if profile not in PROFILES:
        raise ValueError(f"Profil inconnu: {profile!r} (attendu: {', '.join(PROFILES)})")
    config_path = Path(config) if config else Path("config")
    raw = _read_profile_toml(config_path, profile)

    # Secret HMAC via env prioritaire
    raw.setdefault("security", {})
    env_secret = os.environ.get("TASKPILOT_CHAIN_SECRET")
    if env_secret:
        raw["security"]["chain_secret"] = env_secret

    g = General(**_known_fields(General, raw.get("general")))
    s = Security(**_known_fields(Security, raw.get("security")))
    l = LLM(**_known_fields(LLM, raw.get("llm")))
    mem = Memory(**_known_fields(Memory, raw.get("memory")))
    ws = Workspace(**_known_fields(Workspace, raw.get("workspace")))

    # Overrides (General, puis LLM pour la clé "model")
    if overrides:
        for k, v in overrides.items():
            if v is None:
                continue
            if hasattr(g, k):
                setattr(g, k, v)
            elif k == "llm_model":
                l.model = v

    return Settings(general=g, security=s, llm=l, memory=mem, workspace=ws)
