from __future__ import annotations
import sqlite3, json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List

def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

SCHEMA = (
    "CREATE TABLE IF NOT EXISTS events ("
    " id INTEGER PRIMARY KEY AUTOINCREMENT, ts TEXT NOT NULL, kind TEXT NOT NULL,"
    " level TEXT NOT NULL, message TEXT NOT NULL, data TEXT)",
    "CREATE TABLE IF NOT EXISTS runs ("
    " id INTEGER PRIMARY KEY AUTOINCREMENT, ts TEXT NOT NULL, request TEXT NOT NULL,"
    " status TEXT NOT NULL, error TEXT, plan TEXT)",
)

EVENT_COLUMNS = ("id", "ts", "kind", "level", "message", "data")
RUN_COLUMNS = ("id", "ts", "request", "status", "error", "plan")

def _loads(raw: Optional[str]):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None

class MemoryDB:
    """
    Mémoire SQLite des exécutions.

    events : journal générique (dont les snapshots 'progress' relus par le flux SSE) ;
    runs   : une ligne par requête exécutée, plan final en JSON.
    """
    def __init__(self, path: str | Path):
        self.path = str(path)
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        # check_same_thread=False : la web app écrit depuis une tâche de fond
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL;")
        with self.conn:
            for stmt in SCHEMA:
                self.conn.execute(stmt)

    def close(self) -> None:
        self.conn.close()

    def _insert(self, table: str, values: dict) -> int:
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        with self.conn:
            cur = self.conn.execute(f"INSERT INTO {table}({cols}) VALUES ({marks})", tuple(values.values()))
        return int(cur.lastrowid)

    # ---------------- Events ----------------
    def add_event(self, kind: str, level: str, message: str, data: Optional[dict] = None) -> int:
        return self._insert("events", {
            "ts": _now(), "kind": kind, "level": level, "message": message,
            "data": json.dumps(data or {}, ensure_ascii=False),
        })

    def _select_events(self, where: List[str], params: list, order: str, limit: int) -> List[dict]:
        sql = f"SELECT {', '.join(EVENT_COLUMNS)} FROM events"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY id {order} LIMIT ?"
        rows = self.conn.execute(sql, (*params, limit)).fetchall()
        out = []
        for r in rows:
            d = dict(zip(EVENT_COLUMNS, r))
            d["data"] = _loads(d["data"])
            out.append(d)
        return out

    def list_events(self, kind: Optional[str] = None, limit: int = 100) -> List[dict]:
        """Derniers événements, du plus récent au plus ancien."""
        where, params = (["kind=?"], [kind]) if kind else ([], [])
        return self._select_events(where, params, "DESC", limit)

    def events_after(self, last_id: int, *, kind: Optional[str] = None, limit: int = 100) -> List[dict]:
        """Événements d'id > last_id, ordre croissant (flux SSE)."""
        where, params = ["id>?"], [last_id]
        if kind:
            where.append("kind=?")
            params.append(kind)
        return self._select_events(where, params, "ASC", limit)

    # ---------------- Runs ----------------
    def add_run(self, request: str, status: str, *, error: Optional[str] = None, plan: Optional[dict] = None) -> int:
        return self._insert("runs", {
            "ts": _now(), "request": request, "status": status, "error": error,
            "plan": json.dumps(plan, ensure_ascii=False) if plan is not None else None,
        })

    def list_runs(self, limit: int = 50) -> List[dict]:
        rows = self.conn.execute(
            f"SELECT {', '.join(RUN_COLUMNS)} FROM runs ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
        out = []
        for r in rows:
            d = dict(zip(RUN_COLUMNS, r))
            d["plan"] = _loads(d["plan"])
            out.append(d)
        return out

class DBProgressSink:
    """Progress sink : chaque snapshot devient un événement 'progress'."""
    def __init__(self, db: MemoryDB, *, run_label: str = "") -> None:
        self.db = db
        self.run_label = run_label

    def __call__(self, snapshot: dict) -> None:
        idx = snapshot["currentStepIndex"]
        total = snapshot["totalSteps"]
        self.db.add_event("progress", "info", f"{self.run_label} {idx}/{total}".strip(), snapshot)

def persist_run(db: MemoryDB, request: str, status: str, *, error: Optional[str] = None, plan: Optional[dict] = None) -> int:
    db.add_event(kind="run", level="info" if status == "completed" else "warn",
                 message=f"request={request}", data={"status": status, "error": error})
    return db.add_run(request, status, error=error, plan=plan)
