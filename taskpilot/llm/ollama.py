from __future__ import annotations
import shutil, subprocess
from .base import LLM, LLMRequest
from ..security.kill import check_kill

def has_ollama() -> bool:
    return bool(shutil.which("ollama"))

class OllamaCLI(LLM):
    """
    Backend local : 'ollama run <model>', prompt passé sur stdin.

    Le contexte d'une étape (plan JSON + fichiers du workspace) peut dépasser
    la taille d'une ligne de commande, d'où stdin plutôt qu'un argument.
    """
    def __init__(self, model: str, *, extra: list[str] | None = None, timeout: int = 600,
                 kill_switch_path: str | None = None):
        self.model = model
        self.extra = list(extra or [])
        self.timeout = timeout
        self.kill_switch_path = kill_switch_path

    def generate(self, req: LLMRequest) -> str:
        check_kill(self.kill_switch_path)
        if not has_ollama():
            raise RuntimeError("Ollama introuvable sur PATH (ou utiliser --llm-model dummy).")
        proc = subprocess.run(
            ["ollama", "run", self.model, *self.extra],
            input=req.prompt,
            text=True,
            encoding="utf-8",  # sortie UTF-8 forcée (Windows)
            errors="replace",
            capture_output=True,
            timeout=self.timeout,
            check=False,
        )
        if proc.returncode != 0:
            detail = proc.stderr.strip() or proc.stdout.strip()
            raise RuntimeError(f"ollama {self.model} (code {proc.returncode}): {detail}")
        # une réponse vide est renvoyée telle quelle ; l'exécutant la refuse
        return proc.stdout.strip()
