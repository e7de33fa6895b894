from pathlib import Path
from starlette.testclient import TestClient
from taskpilot.config import Settings, General, Security, LLM, Memory
from taskpilot.memory.db import MemoryDB, DBProgressSink
from taskpilot.web.app import create_app

def test_sse_once_snapshot(tmp_path: Path):
    db_path = tmp_path / "ui.db"
    db = MemoryDB(db_path)
    try:
        sink = DBProgressSink(db, run_label="r1")
        for i in range(3):
            sink({"currentStepIndex": i, "totalSteps": 3, "steps": []})
    finally:
        db.close()

    s = Settings(general=General(workspace_path=str(tmp_path/"ws"), log_dir=str(tmp_path/"logs"),
                                 kill_switch_path=str(tmp_path/"kill")),
                 security=Security(), llm=LLM(), memory=Memory(db_path=str(db_path)))
    client = TestClient(create_app(s))

    with client.stream("GET", "/api/progress/stream", params={"once": "true"}) as st:
        text = "".join(st.iter_text())
    assert text.count("data:") == 3
    assert "id: 3" in text

    with client.stream("GET", "/api/progress/stream", params={"once": "true", "last_id": 2}) as st:
        text = "".join(st.iter_text())
    assert text.count("data:") == 1
