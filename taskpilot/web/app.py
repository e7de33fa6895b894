from __future__ import annotations
import json, asyncio
from pathlib import Path
from typing import Optional
from fastapi import FastAPI, Request, Query, Body, HTTPException, BackgroundTasks
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from ..config import Settings
from ..core.errors import ExecutorError, SynthesisError
from ..core.orchestrator import build_llm, plan_request, run_request
from ..llm.base import LLM
from ..memory.db import MemoryDB
from ..security.kill import engage_kill, clear_kill, kill_engaged

def create_app(settings: Settings, *, llm: Optional[LLM] = None) -> FastAPI:
    app = FastAPI(title="TaskPilot", docs_url=None, redoc_url=None)

    tmpl_dir = Path(__file__).parent / "templates"
    templates = Jinja2Templates(directory=str(tmpl_dir))

    app.state.settings = settings
    app.state.llm = llm

    def _with_db() -> MemoryDB:
        return MemoryDB(app.state.settings.memory.db_path)

    def _llm() -> LLM:
        return app.state.llm or build_llm(app.state.settings)

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "kill_switch": kill_engaged(app.state.settings.general.kill_switch_path)}

    @app.post("/api/kill")
    def kill() -> dict:
        p = engage_kill(app.state.settings.general.kill_switch_path)
        return {"status": "engaged", "path": str(p)}

    @app.delete("/api/kill")
    def unkill() -> dict:
        was = clear_kill(app.state.settings.general.kill_switch_path)
        return {"status": "cleared", "was_engaged": was}

    @app.post("/api/plan")
    def make_plan(request: str = Body(..., embed=True)) -> dict:
        try:
            plan = plan_request(app.state.settings, request, _llm())
        except SynthesisError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except ExecutorError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return plan.to_dict()

    def _run_in_background(request: str) -> None:
        db = _with_db()
        try:
            run_request(app.state.settings, request, llm=_llm(), persist=True, db=db)
        finally:
            db.close()

    @app.post("/api/runs", status_code=202)
    def start_run(background: BackgroundTasks, request: str = Body(..., embed=True)) -> dict:
        if not request.strip():
            raise HTTPException(status_code=422, detail="Invalid request: Request cannot be empty")
        if kill_engaged(app.state.settings.general.kill_switch_path):
            raise HTTPException(status_code=409, detail="Kill-switch engagé")
        background.add_task(_run_in_background, request)
        return {"status": "accepted", "request": request}

    @app.get("/api/runs")
    def list_runs(limit: int = 20) -> list[dict]:
        db = _with_db()
        try:
            return db.list_runs(limit=max(1, min(200, limit)))
        finally:
            db.close()

    @app.get("/api/progress")
    def progress(limit: int = 20) -> list[dict]:
        db = _with_db()
        try:
            return db.list_events(kind="progress", limit=max(1, min(500, limit)))
        finally:
            db.close()

    async def _sse_generator(last_id: int | None, once: bool = False):
        poll_interval = 1.0
        _last = last_id or 0
        while True:
            db = _with_db()
            try:
                rows = db.events_after(_last, kind="progress")
            finally:
                db.close()
            for ev in rows:
                _last = int(ev["id"])
                yield f"id: {_last}\ndata: {json.dumps(ev, ensure_ascii=False)}\n\n".encode("utf-8")
            if once:
                break
            if not rows:
                await asyncio.sleep(poll_interval)

    @app.get("/api/progress/stream")
    async def progress_stream(last_id: int | None = Query(default=None), once: bool = Query(default=False)) -> StreamingResponse:
        gen = _sse_generator(last_id=last_id, once=once)
        return StreamingResponse(gen, media_type="text/event-stream", headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"})

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        db = _with_db()
        try:
            runs = db.list_runs(limit=10)
            latest = db.list_events(kind="progress", limit=1)
        finally:
            db.close()
        snapshot = latest[0]["data"] if latest else None
        return templates.TemplateResponse(
            request,
            "index.html",
            {"title": "TaskPilot", "profile": app.state.settings.general.profile, "runs": runs, "snapshot": snapshot},
        )

    return app
