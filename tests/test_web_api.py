from pathlib import Path
from starlette.testclient import TestClient
from taskpilot.config import Settings, General, Security, LLM, Memory
from taskpilot.memory.db import MemoryDB
from taskpilot.web.app import create_app

def _settings(tmp_path: Path) -> Settings:
    return Settings(
        general=General(profile="safe", dry_run=False, workspace_path=str(tmp_path/"ws"),
                        log_dir=str(tmp_path/"logs"), kill_switch_path=str(tmp_path/"kill"), step_delay_sec=0),
        security=Security(),
        llm=LLM(model="dummy"),
        memory=Memory(db_path=str(tmp_path/"ui.db")),
    )

def test_api_health_and_home(tmp_path: Path):
    client = TestClient(create_app(_settings(tmp_path)))
    r = client.get("/api/health")
    assert r.status_code == 200 and r.json()["status"] == "ok"
    assert r.json()["kill_switch"] is False

    r = client.get("/")
    assert r.status_code == 200
    assert "TaskPilot" in r.text

def test_plan_endpoint(tmp_path: Path):
    client = TestClient(create_app(_settings(tmp_path)))
    r = client.post("/api/plan", json={"request": "Créer un site"})
    assert r.status_code == 200
    js = r.json()
    assert js["totalSteps"] == 3 and js["currentStep"] == 0
    assert js["steps"][1]["dependencies"] == [0]

    r = client.post("/api/plan", json={"request": "  "})
    assert r.status_code == 422

def test_run_in_background(tmp_path: Path):
    s = _settings(tmp_path)
    client = TestClient(create_app(s))
    r = client.post("/api/runs", json={"request": "Créer un site"})
    assert r.status_code == 202

    runs = client.get("/api/runs").json()
    assert runs and runs[0]["status"] == "completed"
    progress = client.get("/api/progress", params={"limit": 1}).json()
    assert progress[0]["data"]["currentStepIndex"] == 3

    db = MemoryDB(s.memory.db_path)
    try:
        assert db.list_events(kind="progress")
    finally:
        db.close()

def test_kill_http_endpoint(tmp_path: Path):
    s = _settings(tmp_path)
    client = TestClient(create_app(s))
    r = client.post("/api/kill")
    assert r.status_code == 200
    assert Path(s.general.kill_switch_path).exists()
    assert client.post("/api/runs", json={"request": "X"}).status_code == 409
    r = client.delete("/api/kill")
    assert r.json()["was_engaged"] is True
    assert not Path(s.general.kill_switch_path).exists()
