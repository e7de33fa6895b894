import pytest
from taskpilot.core.errors import StepIndexError
from taskpilot.core.progress import apply_status, is_plan_complete, emit, fan_out
from taskpilot.core.types import Plan, Step

def _plan(n: int = 3) -> Plan:
    return Plan(steps=[Step(id=i + 1, description=f"s{i}") for i in range(n)], request="r")

def test_completed_advances_cursor():
    p = _plan()
    apply_status(p, 0, "completed")
    assert p.current_step == 1
    assert p.steps[0].status == "completed"

def test_cursor_capped():
    p = _plan(1)
    apply_status(p, 0, "completed")
    apply_status(p, 0, "completed")
    assert p.current_step == 1

def test_other_statuses_keep_cursor():
    p = _plan()
    apply_status(p, 0, "in-progress")
    apply_status(p, 0, "failed")
    assert p.current_step == 0
    assert p.steps[0].status == "failed"

def test_out_of_range_index():
    p = _plan()
    with pytest.raises(StepIndexError):
        apply_status(p, 3, "completed")
    with pytest.raises(IndexError):
        apply_status(p, -1, "pending")

def test_unknown_status():
    with pytest.raises(ValueError):
        apply_status(_plan(), 0, "done")

def test_is_plan_complete():
    p = _plan(2)
    assert not is_plan_complete(p)
    apply_status(p, 0, "completed")
    apply_status(p, 1, "completed")
    assert is_plan_complete(p)

def test_emit_and_fan_out():
    seen_a, seen_b = [], []
    sink = fan_out(seen_a.append, None, seen_b.append)
    p = _plan()
    emit(sink, p)
    emit(None, p)
    assert len(seen_a) == len(seen_b) == 1
    assert seen_a[0]["totalSteps"] == 3
