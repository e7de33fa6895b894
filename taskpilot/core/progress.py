from __future__ import annotations
from typing import Callable, Iterable
from .errors import StepIndexError
from .types import Plan, STEP_STATUSES, COMPLETED

ProgressSink = Callable[[dict], None]


def apply_status(plan: Plan, step_index: int, status: str) -> None:
    """
    Applique un statut à une étape.

    completed fait avancer le curseur (plafonné à total_steps) ; failed,
    pending et in-progress ne touchent pas au curseur.
    """
    if status not in STEP_STATUSES:
        raise ValueError(f"Statut inconnu: {status!r}")
    if not 0 <= step_index < plan.total_steps:
        raise StepIndexError(f"Indice d'étape invalide: {step_index} (plan de {plan.total_steps} étapes)")
    plan.steps[step_index].status = status
    if status == COMPLETED:
        plan.current_step = min(plan.current_step + 1, plan.total_steps)


def is_plan_complete(plan: Plan) -> bool:
    return all(s.status == COMPLETED for s in plan.steps)


def emit(sink: ProgressSink | None, plan: Plan) -> None:
    if sink is not None:
        sink(plan.snapshot())


def fan_out(*sinks: ProgressSink | None) -> ProgressSink:
    """Combine plusieurs sinks en un seul (les None sont ignorés)."""
    active: Iterable[ProgressSink] = [s for s in sinks if s is not None]

    def _sink(snapshot: dict) -> None:
        for s in active:
            s(snapshot)
    return _sink
