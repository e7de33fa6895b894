from __future__ import annotations
from typing import List, Optional
from .types import Plan, Step, COMPLETED


def unmet_dependencies(plan: Plan, step: Step) -> List[int]:
    """Indices (0-based) des dépendances de `step` pas encore terminées."""
    return [
        d for d in step.dependencies
        if 0 <= d < len(plan.steps) and plan.steps[d].status != COMPLETED
    ]


def next_eligible_step(plan: Plan) -> Optional[Step]:
    """
    Étape au curseur si toutes ses dépendances sont terminées, sinon None.

    Le plan s'exécute toujours dans l'ordre : la vérification des dépendances
    bloque, elle ne réordonne pas.
    """
    if plan.current_step >= plan.total_steps:
        return None
    candidate = plan.steps[plan.current_step]
    if unmet_dependencies(plan, candidate):
        return None
    return candidate
