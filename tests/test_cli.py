import json
import subprocess
import sys
from pathlib import Path

def run_cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "taskpilot", *args],
        text=True,
        capture_output=True,
        check=False,
    )

def test_help_works():
    p = run_cli("--help")
    assert p.returncode == 0
    assert "--request" in p.stdout

def test_version():
    p = run_cli("--version")
    assert p.returncode == 0
    assert p.stdout.strip().count(".") == 2

def test_request_required():
    p = run_cli()
    assert p.returncode == 2
    assert "--request" in p.stderr

def test_plan_only():
    assert Path("config").exists()
    p = run_cli("--request", "Créer un script", "--plan-only", "--config", "config", "--profile", "safe", "--llm-model", "dummy")
    assert p.returncode == 0
    assert "TaskPilot v" in p.stdout
    assert "=== PLAN ===" in p.stdout
    assert "[ ] 2. Créer la structure du projet  [après: 1]" in p.stdout
    assert "STATUS: planned" in p.stdout

def test_dry_run_json():
    p = run_cli("--request", "Créer un script", "--dry-run", "--step-delay", "0", "--json", "--llm-model", "dummy")
    assert p.returncode == 0
    data = json.loads(p.stdout)
    assert data["status"] == "completed"
    assert [s["status"] for s in data["plan"]["steps"]] == ["completed"] * 3
