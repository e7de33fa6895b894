import json
from pathlib import Path
from taskpilot.tools.journal import RunJournal

def test_journal_hmac_verify(tmp_path: Path):
    p = tmp_path / "journal.jsonl"
    j = RunJournal(p, run_id="r1", secret="testsecret")
    j.log("unit", "info", "hello", {"i": 1})
    j.log("unit", "warn", "world", {"i": 2})
    assert RunJournal.verify(p, secret="testsecret") is True
    assert RunJournal.verify(p, secret="bad") is False

def test_journal_chain_survives_reopen(tmp_path: Path):
    p = tmp_path / "journal.jsonl"
    RunJournal(p, run_id="a").log("run", "info", "un")
    RunJournal(p, run_id="b").log("run", "info", "deux")
    assert RunJournal.verify(p) is True

def test_tampering_detected(tmp_path: Path):
    p = tmp_path / "journal.jsonl"
    j = RunJournal(p)
    j.log("command", "info", "echo a")
    j.log("command", "info", "echo b")
    lines = p.read_text(encoding="utf-8").splitlines()
    first = json.loads(lines[0])
    first["message"] = "rm -rf /"
    lines[0] = json.dumps(first)
    p.write_text("\n".join(lines) + "\n", encoding="utf-8")
    assert RunJournal.verify(p) is False

def test_step_sink(tmp_path: Path):
    p = tmp_path / "journal.jsonl"
    j = RunJournal(p)
    j.step_sink({"currentStepIndex": 0, "totalSteps": 1, "steps": [{"description": "A", "status": "in-progress"}]})
    j.step_sink({"currentStepIndex": 1, "totalSteps": 1, "steps": [{"description": "A", "status": "completed"}]})
    rows = [json.loads(l) for l in p.read_text(encoding="utf-8").splitlines()]
    assert rows[0]["message"] == "A"
    assert rows[1]["message"] == "plan terminé"
    assert rows[1]["data"]["statuses"] == ["completed"]
