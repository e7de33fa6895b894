from __future__ import annotations
import subprocess
from typing import Callable
from .base import LLM, LLMRequest
from ..core.errors import ExecutorError
from ..security.kill import KillSwitchEngaged

StepExecutor = Callable[[str], str]

class LLMStepExecutor:
    """
    Adapte un LLM au contrat 'step executor' : contexte -> texte non vide.

    Toute erreur de transport devient ExecutorError ; le kill-switch passe tel quel.
    """
    def __init__(self, llm: LLM, *, max_tokens: int = 2048, temperature: float = 0.2) -> None:
        self.llm = llm
        self.max_tokens = max_tokens
        self.temperature = temperature

    def __call__(self, context: str) -> str:
        req = LLMRequest(prompt=context, max_tokens=self.max_tokens, temperature=self.temperature)
        try:
            text = self.llm.generate(req)
        except KillSwitchEngaged:
            raise
        except (RuntimeError, OSError, subprocess.SubprocessError) as e:
            raise ExecutorError(f"LLM error: {e}") from e
        if not isinstance(text, str) or not text.strip():
            raise ExecutorError("empty response")
        return text
