from __future__ import annotations
import argparse
import uvicorn
from ..config import load_settings, PROFILES
from .app import create_app

def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser("taskpilot-web", description="TaskPilot : tableau de bord local et API de plans")
    ap.add_argument("--config", default="config", help="Dossier de configuration.")
    ap.add_argument("--profile", choices=PROFILES, default="safe", help="Profil de sécurité.")
    ap.add_argument("--llm-model", default=None, help="dummy | tag Ollama.")
    ap.add_argument("--dry-run", action="store_true", help="Les exécutions lancées depuis l'UI ne touchent à rien.")
    ap.add_argument("--db", default=None, help="Base SQLite (défaut: memory.db_path du profil).")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8765)
    args = ap.parse_args(argv)

    settings = load_settings(args.config, args.profile, overrides={
        "dry_run": True if args.dry_run else None,
        "llm_model": args.llm_model,
    })
    if args.db:
        settings.memory.db_path = args.db
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level="info")

if __name__ == "__main__":
    main()
