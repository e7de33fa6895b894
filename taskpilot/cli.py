from __future__ import annotations
import argparse
import json
import sys
from . import __version__
from .config import load_settings, PROFILES
from .core.orchestrator import run_request
from .core.types import RUN_COMPLETED, RUN_PLANNED
from .llm.ollama import has_ollama

STATUS_MARK = {"pending": " ", "in-progress": ">", "completed": "x", "failed": "!"}

# === Affichage ================================================================
def _print_banner() -> None:
    print(f"TaskPilot v{__version__}")

def _print_settings(request: str | None, config: str, s) -> None:
    print(f"request = {request!r}")
    print(f"config  = {config!r}")
    print(f"profile = {s.general.profile}")
    print(f"dry_run = {s.general.dry_run}")
    print(f"workspace = {s.general.workspace_path}")
    print(f"llm.model = {s.llm.model}")

def _print_plan(plan) -> None:
    print("\n=== PLAN ===")
    print(f"{plan.description} (~{plan.estimated_time})")
    for step in plan.steps:
        deps = f"  [après: {', '.join(str(d + 1) for d in step.dependencies)}]" if step.dependencies else ""
        print(f"[{STATUS_MARK.get(step.status, '?')}] {step.id}. {step.description}{deps}")

def _print_progress(snapshot: dict) -> None:
    idx, total = snapshot["currentStepIndex"], snapshot["totalSteps"]
    marks = "".join(STATUS_MARK.get(s["status"], "?") for s in snapshot["steps"])
    print(f"[progress] {min(idx + 1, total)}/{total} [{marks}]", flush=True)

def _print_response(step, text: str) -> None:
    print(f"\n--- étape {step.id}: {step.description} ---")
    print(text.strip())

# === Arguments ================================================================
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser("taskpilot", description="TaskPilot : planification et exécution pas à pas d'une requête")
    ap.add_argument("--request", help="Requête en langage naturel à planifier et exécuter.")
    ap.add_argument("--config", default="config", help="Chemin vers le dossier de configuration.")
    ap.add_argument("--profile", choices=PROFILES, default="safe", help="Profil de sécurité.")
    ap.add_argument("--dry-run", action="store_true", help="Ne pas exécuter les commandes ni écrire de fichiers.")
    ap.add_argument("--plan-only", action="store_true", help="Afficher le plan sans l'exécuter.")
    ap.add_argument("--llm-model", default=None, help="dummy | tag Ollama (ex: llama3.1:8b-instruct-q4_K_M).")
    ap.add_argument("--step-delay", type=float, default=None, help="Pause entre deux étapes (secondes).")
    ap.add_argument("--persist-run", action="store_true", help="Persister l'exécution (SQLite).")
    ap.add_argument("--json", action="store_true", help="Afficher le résultat final en JSON.")
    ap.add_argument("--version", action="store_true", help="Afficher la version et quitter.")
    return ap

# === Main ====================================================================
def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print(__version__)
        return 0
    if not args.request:
        print("ERR: --request est requis.", file=sys.stderr)
        return 2

    s = load_settings(
        config=args.config,
        profile=args.profile,
        overrides={
            "dry_run": True if args.dry_run else None,
            "step_delay_sec": args.step_delay,
            "llm_model": args.llm_model,
        },
    )
    if s.llm.model.lower() != "dummy" and not has_ollama():
        print("ERR: Ollama non disponible. Installez-le ou utilisez --llm-model dummy.", file=sys.stderr)
        return 2

    if not args.json:
        _print_banner()
        _print_settings(args.request, args.config, s)

    result = run_request(
        s,
        args.request,
        progress_sink=None if args.json else _print_progress,
        on_response=None if args.json else _print_response,
        plan_only=args.plan_only,
        persist=True if args.persist_run else None,
    )

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif result.plan is not None:
        _print_plan(result.plan)

    if result.error:
        print(f"\nERREUR: {result.error}", file=sys.stderr)
    if not args.json:
        print(f"\nSTATUS: {result.status}")
    return 0 if result.status in (RUN_COMPLETED, RUN_PLANNED) else 1

if __name__ == "__main__":
    raise SystemExit(main())
