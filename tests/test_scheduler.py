from taskpilot.core.scheduler import next_eligible_step, unmet_dependencies
from taskpilot.core.types import Plan, Step

def _plan() -> Plan:
    return Plan(steps=[
        Step(id=1, description="A"),
        Step(id=2, description="B", dependencies=[0]),
        Step(id=3, description="C"),
    ], request="r")

def test_first_step_eligible():
    p = _plan()
    assert next_eligible_step(p) is p.steps[0]

def test_blocked_until_dependency_completed():
    p = _plan()
    p.current_step = 1
    assert next_eligible_step(p) is None
    assert unmet_dependencies(p, p.steps[1]) == [0]
    p.steps[0].status = "completed"
    assert next_eligible_step(p) is p.steps[1]

def test_never_reorders():
    # l'étape 3 n'a pas de dépendance mais n'est jamais choisie avant l'étape 2
    p = _plan()
    p.current_step = 1
    assert next_eligible_step(p) is None

def test_finished_plan():
    p = _plan()
    p.current_step = 3
    assert next_eligible_step(p) is None
