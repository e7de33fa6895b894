"""
Boucle d'exécution d'un plan.

Séquentielle : l'étape n+1 ne démarre qu'une fois l'étape n terminée
(completed) ou en échec (failed). Pour chaque étape :

    in-progress -> appel de l'exécutant -> commandes -> fichiers -> completed

Toute erreur de l'exécutant, d'une commande ou d'une écriture passe l'étape
en failed et remonte à l'appelant ; aucune reprise automatique. L'annulation
(kill-switch) est vérifiée en début d'itération et avant chaque appel
externe ; l'étape en cours revient alors à pending.
"""
from __future__ import annotations
import time
from typing import Callable, Dict, List, Optional

from ..security.kill import KillSwitchEngaged
from .blocks import parse_response
from .errors import ExecutorError, PlanCancelled
from .progress import ProgressSink, apply_status, emit
from .prompts import SYSTEM_PROMPT, build_step_context
from .scheduler import next_eligible_step, unmet_dependencies
from .types import (
    Plan, Step, FileOperation,
    PENDING, IN_PROGRESS, COMPLETED, FAILED,
    RUN_COMPLETED, RUN_CANCELLED, RUN_BLOCKED,
)

StepExecutor = Callable[[str], str]
CommandRunnerFn = Callable[..., object]
FileApplierFn = Callable[[List[FileOperation]], Optional[List[str]]]

DEFAULT_STEP_DELAY = 1.0


class ExecutionLoop:
    def __init__(
        self,
        step_executor: StepExecutor,
        command_runner: CommandRunnerFn,
        file_applier: FileApplierFn,
        *,
        progress_sink: ProgressSink | None = None,
        context_provider: Callable[[], str] | None = None,
        system_prompt: str = SYSTEM_PROMPT,
        step_delay: float = DEFAULT_STEP_DELAY,
        should_cancel: Callable[[], bool] | None = None,
        on_response: Callable[[Step, str], None] | None = None,
        log: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.step_executor = step_executor
        self.command_runner = command_runner
        self.file_applier = file_applier
        self.progress_sink = progress_sink
        self.context_provider = context_provider or (lambda: "No files in context.")
        self.system_prompt = system_prompt
        self.step_delay = step_delay
        self.should_cancel = should_cancel
        self.on_response = on_response
        self._log = log
        self._sleep = sleep
        self.responses: Dict[int, str] = {}
        self.blocked_on: List[int] = []

    def log(self, message: str) -> None:
        if self._log is not None:
            self._log(message)

    def _checkpoint(self) -> None:
        if self.should_cancel is not None and self.should_cancel():
            raise PlanCancelled("exécution annulée")

    def _set(self, plan: Plan, index: int, status: str) -> None:
        apply_status(plan, index, status)
        emit(self.progress_sink, plan)

    def run(self, plan: Plan) -> str:
        """
        Mène le plan à son terme. Renvoie completed, cancelled ou blocked ;
        lève l'erreur de l'étape en échec.
        """
        self.blocked_on = []
        emit(self.progress_sink, plan)
        while plan.current_step < plan.total_steps:
            index = plan.current_step
            try:
                self._checkpoint()
            except PlanCancelled:
                self.log(f"Annulation avant l'étape {index + 1}")
                return RUN_CANCELLED

            step = next_eligible_step(plan)
            if step is None:
                self.blocked_on = unmet_dependencies(plan, plan.steps[index])
                waiting = ", ".join(str(d + 1) for d in self.blocked_on)
                self.log(f"Dépendances non satisfaites pour l'étape {index + 1}; en attente de: {waiting}")
                return RUN_BLOCKED

            self._set(plan, index, IN_PROGRESS)
            self.log(f"Executing step {index + 1}/{plan.total_steps}: {step.description}")
            try:
                self.run_step(plan, step)
            except (PlanCancelled, KillSwitchEngaged):
                self._set(plan, index, PENDING)
                self.log(f"Étape {index + 1} interrompue (annulation)")
                return RUN_CANCELLED
            except Exception as e:
                self._set(plan, index, FAILED)
                self.log(f"Step {index + 1} failed: {step.description} ({e})")
                raise

            self._set(plan, index, COMPLETED)
            self.log(f"Étape {index + 1} terminée")
            if plan.current_step < plan.total_steps and self.step_delay > 0:
                self._sleep(self.step_delay)

        self.log("All tasks completed successfully!")
        return RUN_COMPLETED

    def run_step(self, plan: Plan, step: Step) -> None:
        """Exécute une étape : appel LLM puis application des commandes et fichiers."""
        context = build_step_context(plan, step, self.context_provider(), system_prompt=self.system_prompt)

        self._checkpoint()
        text = self.step_executor(context)
        if not isinstance(text, str) or not text.strip():
            raise ExecutorError("empty response")
        self.responses[step.id] = text
        if self.on_response is not None:
            self.on_response(step, text)

        parsed = parse_response(text)
        for command in parsed.commands:
            self._checkpoint()
            self.command_runner(command, description=f"Step {step.id}: executing generated command")

        if parsed.files:
            self._checkpoint()
            touched = self.file_applier(parsed.files)
            step.files = list(touched) if touched is not None else [op.path for op in parsed.files]


def run(
    plan: Plan,
    step_executor: StepExecutor,
    command_runner: CommandRunnerFn,
    file_applier: FileApplierFn,
    progress_sink: ProgressSink | None = None,
    **options,
) -> str:
    return ExecutionLoop(step_executor, command_runner, file_applier, progress_sink=progress_sink, **options).run(plan)
