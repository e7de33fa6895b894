from __future__ import annotations
import copy
import math
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar, Union

# Statuts d'une étape (valeurs du format JSON échangé avec le LLM)
PENDING = "pending"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
FAILED = "failed"

STEP_STATUSES = (PENDING, IN_PROGRESS, COMPLETED, FAILED)

MINUTES_PER_STEP = 5


def estimate_time(total_steps: int) -> str:
    return f"{math.ceil(total_steps * MINUTES_PER_STEP)} minutes"


@dataclass
class Step:
    id: int
    description: str
    status: str = PENDING
    # indices 0-based dans Plan.steps
    dependencies: List[int] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    code: Optional[str] = None
    command: Optional[str] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "status": self.status,
            "files": list(self.files),
            "dependencies": list(self.dependencies),
        }
        if self.code is not None:
            d["code"] = self.code
        if self.command is not None:
            d["command"] = self.command
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Step":
        status = data.get("status", PENDING)
        if status not in STEP_STATUSES:
            raise ValueError(f"Statut d'étape inconnu: {status!r}")
        return cls(
            id=int(data["id"]),
            description=str(data["description"]),
            status=status,
            dependencies=[int(d) for d in data.get("dependencies") or []],
            files=[str(f) for f in data.get("files") or []],
            code=data.get("code"),
            command=data.get("command"),
        )


@dataclass
class Plan:
    """
    Plan d'exécution : étapes ordonnées + curseur.

    Un plan appartient à une seule boucle d'exécution ; il est muté en place
    (statuts, curseur, fichiers). Les observateurs ne reçoivent que des copies
    via snapshot().
    """
    steps: List[Step]
    request: str
    current_step: int = 0
    total_steps: int = -1
    original_request: str = ""
    description: str = ""
    estimated_time: str = ""

    def __post_init__(self) -> None:
        if self.total_steps < 0:
            self.total_steps = len(self.steps)
        if not self.original_request:
            self.original_request = self.request
        if not self.description:
            self.description = f"Task plan for: {self.original_request}"
        if not self.estimated_time:
            self.estimated_time = estimate_time(self.total_steps)

    @property
    def finished(self) -> bool:
        return self.current_step >= self.total_steps

    def to_dict(self) -> dict:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "currentStep": self.current_step,
            "totalSteps": self.total_steps,
            "request": self.request,
            "originalRequest": self.original_request,
            "description": self.description,
            "estimatedTime": self.estimated_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        steps = [Step.from_dict(s) for s in data.get("steps") or []]
        request = data.get("request") or data.get("originalRequest") or ""
        return cls(
            steps=steps,
            request=request,
            current_step=int(data.get("currentStep", 0)),
            total_steps=int(data.get("totalSteps", len(steps))),
            original_request=data.get("originalRequest") or request,
            description=data.get("description") or "",
            estimated_time=data.get("estimatedTime") or "",
        )

    def snapshot(self) -> dict:
        """Copie indépendante de l'état de progression (format du progress sink)."""
        return copy.deepcopy({
            "currentStepIndex": self.current_step,
            "totalSteps": self.total_steps,
            "steps": [s.to_dict() for s in self.steps],
        })


@dataclass
class FileOperation:
    path: str
    content: str


# ---------------- Résultats étiquetés ----------------
T = TypeVar("T")
E = TypeVar("E", bound=Exception)

@dataclass
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)

@dataclass
class Err(Generic[E]):
    error: E
    ok: bool = field(default=False, init=False)

Result = Union[Ok[T], Err[E]]


# Issues terminales d'une exécution
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"
RUN_CANCELLED = "cancelled"
RUN_BLOCKED = "blocked"
RUN_PLANNED = "planned"

@dataclass
class RunResult:
    status: str  # completed | failed | cancelled | blocked | planned
    plan: Optional[Plan]
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == RUN_COMPLETED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "plan": self.plan.to_dict() if self.plan else None,
            "error": self.error,
            "logs": list(self.logs),
        }
