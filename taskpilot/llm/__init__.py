from .base import LLM, LLMRequest
from .dummy import DummyLLM
from .ollama import OllamaCLI, has_ollama
from .executor import LLMStepExecutor, StepExecutor

__all__ = ["LLM", "LLMRequest", "DummyLLM", "OllamaCLI", "has_ollama", "LLMStepExecutor", "StepExecutor"]
