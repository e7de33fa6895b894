from __future__ import annotations
from dataclasses import dataclass, asdict
from hashlib import sha256
import hmac, json, time
from pathlib import Path
from typing import Optional

GENESIS = "0" * 64

@dataclass
class JournalEntry:
    ts: str
    run_id: str
    kind: str      # step | command | file | run
    level: str
    message: str
    data: dict
    prev_hash: str
    hash: str
    sig: Optional[str] = None  # HMAC hex

def _digest_base(ts: str, run_id: str, kind: str, level: str, message: str, data: dict, prev: str) -> str:
    return json.dumps({
        "ts": ts, "run_id": run_id, "kind": kind, "level": level,
        "message": message, "data": data, "prev_hash": prev,
    }, separators=(",", ":"), ensure_ascii=False, sort_keys=True)

class RunJournal:
    """
    Journal d'exécution JSONL, chaîné par SHA-256 (signature HMAC si secret).

    Une entrée par transition d'étape et par effet de bord (commande, fichier),
    pour pouvoir auditer après coup ce qu'un plan a réellement fait.
    """
    def __init__(self, path: str | Path, *, run_id: str = "", secret: str = "") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.run_id = run_id or time.strftime("%Y%m%d-%H%M%S")
        self.secret = secret or ""
        self._prev = self._last_hash()

    def _last_hash(self) -> str:
        if not self.path.exists():
            return GENESIS
        last = None
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    last = line
        if not last:
            return GENESIS
        try:
            return json.loads(last).get("hash", GENESIS)
        except json.JSONDecodeError:
            return GENESIS

    def _sign(self, digest: str) -> Optional[str]:
        if not self.secret:
            return None
        return hmac.new(self.secret.encode("utf-8"), digest.encode("utf-8"), sha256).hexdigest()

    def log(self, kind: str, level: str, message: str, data: dict | None = None) -> JournalEntry:
        data = data or {}
        ts = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        base = _digest_base(ts, self.run_id, kind, level, message, data, self._prev)
        digest = sha256(base.encode("utf-8")).hexdigest()
        entry = JournalEntry(ts, self.run_id, kind, level, message, data, self._prev, digest, self._sign(digest))
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(entry), ensure_ascii=False) + "\n")
        self._prev = digest
        return entry

    def step_sink(self, snapshot: dict) -> None:
        """Progress sink : journalise l'étape au curseur."""
        idx = snapshot["currentStepIndex"]
        steps = snapshot["steps"]
        cur = steps[idx] if idx < len(steps) else None
        self.log("step", "info", cur["description"] if cur else "plan terminé", {
            "currentStepIndex": idx,
            "totalSteps": snapshot["totalSteps"],
            "statuses": [s["status"] for s in steps],
        })

    @staticmethod
    def verify(path: str | Path, *, secret: str = "") -> bool:
        """Vérifie la chaîne et la signature HMAC (si secret fourni)."""
        prev = GENESIS
        for line in Path(path).read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
                base = _digest_base(obj["ts"], obj["run_id"], obj["kind"], obj["level"], obj["message"], obj["data"], prev)
            except (json.JSONDecodeError, KeyError):
                return False
            digest = sha256(base.encode("utf-8")).hexdigest()
            if digest != obj.get("hash") or obj.get("prev_hash") != prev:
                return False
            if secret:
                sig = hmac.new(secret.encode("utf-8"), digest.encode("utf-8"), sha256).hexdigest()
                if sig != obj.get("sig"):
                    return False
            prev = digest
        return True
