import json
import pytest
from taskpilot.core.types import Plan, Step, Ok, Err, RunResult, estimate_time

def _plan() -> Plan:
    return Plan(
        steps=[
            Step(id=1, description="Créer le dossier"),
            Step(id=2, description="Écrire le module", dependencies=[0], command="echo hi"),
        ],
        request="Faire un module",
    )

def test_plan_defaults():
    p = _plan()
    assert p.total_steps == 2
    assert p.current_step == 0
    assert p.original_request == "Faire un module"
    assert p.description == "Task plan for: Faire un module"
    assert p.estimated_time == "10 minutes"
    assert not p.finished

def test_estimate_time():
    assert estimate_time(1) == "5 minutes"
    assert estimate_time(0) == "0 minutes"

def test_wire_format_round_trip():
    p = _plan()
    wire = json.dumps(p.to_dict())
    data = json.loads(wire)
    assert data["currentStep"] == 0
    assert data["totalSteps"] == 2
    assert data["originalRequest"] == "Faire un module"
    assert "code" not in data["steps"][0]
    assert data["steps"][1]["command"] == "echo hi"

    back = Plan.from_dict(data)
    for a, b in zip(p.steps, back.steps):
        assert (a.id, a.description, a.dependencies, a.status) == (b.id, b.description, b.dependencies, b.status)
    assert back.description == p.description

def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        Step.from_dict({"id": 1, "description": "x", "status": "done"})

def test_snapshot_is_independent():
    p = _plan()
    snap = p.snapshot()
    snap["steps"][0]["status"] = "failed"
    snap["steps"][1]["dependencies"].append(9)
    assert p.steps[0].status == "pending"
    assert p.steps[1].dependencies == [0]
    assert snap["currentStepIndex"] == 0 and snap["totalSteps"] == 2

def test_tagged_results_and_run_result():
    assert Ok(1).ok is True
    assert Err(ValueError("x")).ok is False
    r = RunResult(status="completed", plan=_plan(), logs=["a"])
    assert r.ok
    d = r.to_dict()
    assert d["status"] == "completed" and d["plan"]["totalSteps"] == 2
    assert RunResult(status="failed", plan=None, error="boom").to_dict()["plan"] is None
