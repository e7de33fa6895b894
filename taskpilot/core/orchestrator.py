from __future__ import annotations
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from ..config import Settings
from ..llm.base import LLM, LLMRequest
from ..llm.dummy import DummyLLM
from ..llm.executor import LLMStepExecutor
from ..llm.ollama import OllamaCLI
from ..memory.db import MemoryDB, DBProgressSink, persist_run
from ..security.kill import KillSwitchEngaged, kill_engaged
from ..tools.errors import ToolError
from ..tools.files import FileApplier
from ..tools.journal import RunJournal
from ..tools.logs import log_event
from ..tools.shell import CommandRunner
from ..tools.workspace import workspace_summary
from .errors import ExecutorError, SynthesisError
from .loop import ExecutionLoop
from .progress import ProgressSink, fan_out
from .prompts import build_planning_prompt, load_system_prompt
from .synthesizer import synthesize
from .types import Plan, Step, RunResult, RUN_FAILED, RUN_COMPLETED, RUN_CANCELLED, RUN_PLANNED

JOURNAL_NAME = "journal.jsonl"


def build_llm(settings: Settings) -> LLM:
    if settings.llm.model.lower() == "dummy":
        return DummyLLM()
    return OllamaCLI(settings.llm.model, kill_switch_path=settings.general.kill_switch_path)


def plan_request(settings: Settings, request: str, llm: LLM) -> Plan:
    """Demande un plan au LLM puis le synthétise (SynthesisError si inexploitable)."""
    if not request or not request.strip():
        raise SynthesisError("Invalid request: Request cannot be empty")
    req = LLMRequest(
        prompt=build_planning_prompt(request),
        max_tokens=settings.llm.max_tokens,
        temperature=settings.llm.temperature,
    )
    try:
        raw = llm.generate(req)
    except KillSwitchEngaged:
        raise
    except (RuntimeError, OSError, subprocess.SubprocessError) as e:
        raise ExecutorError(f"LLM error: {e}") from e
    if not raw or not raw.strip():
        raise SynthesisError("No response from task planner")
    plan = synthesize(raw, request)
    log_event(settings, f"Created task plan with {plan.total_steps} steps")
    return plan


def run_request(
    settings: Settings,
    request: str,
    *,
    llm: Optional[LLM] = None,
    progress_sink: ProgressSink | None = None,
    on_response: Callable[[Step, str], None] | None = None,
    plan_only: bool = False,
    persist: Optional[bool] = None,
    db: Optional[MemoryDB] = None,
) -> RunResult:
    """Requête -> plan -> exécution. Les erreurs deviennent un RunResult 'failed'."""
    llm = llm or build_llm(settings)
    logs: List[str] = []

    def _log(message: str) -> None:
        logs.append(message)
        log_event(settings, message)

    persist = settings.memory.persist_runs if persist is None else persist
    own_db = False
    if persist and db is None:
        db = MemoryDB(settings.memory.db_path)
        own_db = True

    plan: Optional[Plan] = None
    try:
        try:
            plan = plan_request(settings, request, llm)
        except (SynthesisError, ExecutorError) as e:
            _log(f"[Planner] échec: {e}")
            result = RunResult(status=RUN_FAILED, plan=None, error=str(e), logs=logs)
            if db is not None:
                persist_run(db, request, result.status, error=result.error)
            return result
        except KillSwitchEngaged as e:
            _log(f"[Planner] annulé: {e}")
            return RunResult(status=RUN_CANCELLED, plan=None, error=str(e), logs=logs)

        _log(f"[Planner] {plan.total_steps} étape(s) générée(s) pour: {request!r}")
        if plan_only:
            return RunResult(status=RUN_PLANNED, plan=plan, logs=logs)

        journal = RunJournal(Path(settings.general.log_dir) / JOURNAL_NAME, secret=settings.security.chain_secret)
        journal.log("run", "info", request, {"totalSteps": plan.total_steps, "dry_run": settings.general.dry_run})
        system_prompt = load_system_prompt(settings.general.system_prompt_path)
        if settings.general.system_prompt_path:
            if not Path(settings.general.system_prompt_path).exists():
                log_event(settings, f"prompt système introuvable: {settings.general.system_prompt_path} (prompt intégré utilisé)", level="warn")
            else:
                _log(f"[Executor] prompt système: {settings.general.system_prompt_path}")
        sinks = [progress_sink, journal.step_sink]
        if db is not None:
            sinks.append(DBProgressSink(db, run_label=journal.run_id))

        loop = ExecutionLoop(
            LLMStepExecutor(llm, max_tokens=settings.llm.max_tokens, temperature=settings.llm.temperature),
            CommandRunner(settings, journal=journal),
            FileApplier(settings, journal=journal),
            progress_sink=fan_out(*sinks),
            context_provider=lambda: workspace_summary(settings),
            system_prompt=system_prompt,
            step_delay=settings.general.step_delay_sec,
            should_cancel=lambda: kill_engaged(settings.general.kill_switch_path),
            on_response=on_response,
            log=_log,
        )
        try:
            status = loop.run(plan)
            error = None
            if loop.blocked_on:
                error = "dépendances non satisfaites: " + ", ".join(str(d + 1) for d in loop.blocked_on)
        except (ExecutorError, ToolError) as e:
            status, error = RUN_FAILED, str(e)
        journal.log("run", "info" if status == RUN_COMPLETED else "error", status, {"error": error})

        result = RunResult(status=status, plan=plan, error=error, logs=logs)
        if db is not None:
            persist_run(db, request, result.status, error=result.error, plan=plan.to_dict())
        return result
    finally:
        if own_db and db is not None:
            db.close()
