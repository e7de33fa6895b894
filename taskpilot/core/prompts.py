from __future__ import annotations
import json
from pathlib import Path
from .types import Plan, Step

PLANNING_PROMPT = """You are an expert task planner for coding projects. Break down user requests into clear, actionable steps.
Each step should be specific and self-contained. Format your response as a JSON object with this structure:
{
    "steps": [
        {
            "description": "Clear description of what needs to be done",
            "dependencies": [array of step numbers (1-based) that must be completed first]
        }
    ]
}

Guidelines for creating steps:
1. Make each step focused and atomic
2. Include all necessary setup steps
3. Order steps logically
4. Reference file paths relative to workspace root
5. Consider testing and validation steps

Example response:
{
    "steps": [
        {"description": "Create directory structure for the new feature", "dependencies": []},
        {"description": "Create interface definitions in types.py", "dependencies": [1]}
    ]
}"""

SYSTEM_PROMPT = """You are an AI coding assistant. You carry out ONE step of a larger plan.

When creating files, you MUST use this exact syntax:
```
File: path/to/file.ext
[file contents here]
```

When executing commands, use this syntax:
$$$ COMMAND
[command to execute]
$$$ END

Guidelines:
1. Always use relative paths from the workspace root
2. Only do what the current step asks
3. Keep commands non-interactive"""


def load_system_prompt(override_path: str | Path | None = None) -> str:
    """Prompt système de l'exécutant, remplaçable par un fichier (facultatif)."""
    if override_path:
        p = Path(override_path)
        if p.exists():
            return p.read_text(encoding="utf-8")[:20000]
    return SYSTEM_PROMPT


def build_planning_prompt(request: str) -> str:
    return f"{PLANNING_PROMPT}\n\nPlease analyze this request and break it down into steps: {request}"


def build_step_context(plan: Plan, step: Step, workspace_summary: str, *, system_prompt: str = SYSTEM_PROMPT) -> str:
    """Contexte complet envoyé à l'exécutant pour l'étape au curseur."""
    position = f"{plan.current_step + 1}/{plan.total_steps}"
    return (
        f"{system_prompt}\n\n"
        f"Original Request:\n{plan.original_request}\n\n"
        f"Workspace Context:\n{workspace_summary}\n\n"
        f"Current Task Plan:\n{json.dumps(plan.to_dict(), indent=2, ensure_ascii=False)}\n\n"
        f"Current Step ({position}): {step.description}\n\n"
        f"Execute this step: {step.description}\n"
        "Provide the necessary code, file operations, or commands to complete this specific step."
    )
