"""Run controller: the single owner of the live plan and document state.

The controller exposes every operation on a revision session:

1. start / reanalyze   - (re)generate the plan via the plan generator
2. run_step            - execute one PENDING step
3. run_all             - execute all PENDING steps in order, stopping at the
                         first failure
4. add_step / delete_step / reset_step - edit the worklist
5. discard             - drop the project

Exclusivity: every mutating operation except add_step holds one busy lock
for its whole duration. The lock is acquired non-blocking, so a second
operation is rejected with Busy instead of queueing. run_all holds the lock
for the entire chain. add_step takes no lock and may only run alongside
step execution.

A short state lock guards reads and writes of the plan and document, so a
snapshot taken from another thread (e.g. an API poll during a chain) never
sees a half-applied transition. Remote calls are made outside it.

Callers only ever get deep copies; the live objects never leave this class.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from docrefine.config import ProviderConfig
from docrefine.errors import (
    Busy,
    DocumentTooShort,
    ExecutionFailure,
    InvalidStepState,
    NoActivePlan,
    NotConfigured,
    StepNotFound,
)
from docrefine.orchestrator.planner import PlanGenerator
from docrefine.orchestrator.schemas import (
    DocumentState,
    ReviewStep,
    RevisionPlan,
    StepStatus,
    generate_step_id,
)

from .schemas import (
    ChainRunResult,
    PlanProgress,
    SessionSnapshot,
    StepRunResult,
    transition_step,
)
from .step_runner import StepExecutor

logger = logging.getLogger(__name__)

# Shorter documents are rejected before any analysis call
MIN_DOCUMENT_CHARS = 10

MANUAL_STEP_REASONING = "Added manually by the user"

# Operations that never replace the plan, so add_step may run alongside them
APPEND_WHILE_RUNNING = frozenset({"run step", "run all"})


class RunController:
    """Owns one revision session and serialises every operation on it."""

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        *,
        plan_generator: Optional[PlanGenerator] = None,
        step_executor: Optional[StepExecutor] = None,
        pacing_delay: float = 0.0,
    ):
        self._config = config or ProviderConfig()
        self._generator = plan_generator or PlanGenerator()
        self._executor = step_executor or StepExecutor()
        self.pacing_delay = pacing_delay

        self._plan: Optional[RevisionPlan] = None
        self._document = DocumentState()

        self._busy = threading.Lock()
        self._state_lock = threading.RLock()
        self._running: Optional[str] = None
        self._active_step_id: Optional[str] = None

    # ── Read side ───────────────────────────────────────────

    @property
    def config(self) -> ProviderConfig:
        return self._config.model_copy()

    @property
    def plan(self) -> Optional[RevisionPlan]:
        with self._state_lock:
            return self._plan.model_copy(deep=True) if self._plan else None

    @property
    def document(self) -> DocumentState:
        with self._state_lock:
            return self._document

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def active_step_id(self) -> Optional[str]:
        return self._active_step_id

    def get_step(self, step_id: str) -> ReviewStep:
        with self._state_lock:
            return self._require_step(step_id).model_copy()

    def snapshot(self) -> SessionSnapshot:
        with self._state_lock:
            plan = self.plan
            return SessionSnapshot(
                plan=plan,
                document=self._document,
                busy=self.is_busy,
                running_operation=self._running,
                active_step_id=self._active_step_id,
                progress=PlanProgress.of(plan),
            )

    # ── Exclusivity ─────────────────────────────────────────

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if not self._busy.acquire(blocking=False):
            logger.warning(f"Rejected '{operation}': '{self._running}' is in progress")
            raise Busy(operation, self._running)
        with self._state_lock:
            self._running = operation
        try:
            yield
        finally:
            # Cleared together with the release so add_step sees a consistent pair
            with self._state_lock:
                self._running = None
                self._busy.release()

    def _require_configured(self) -> None:
        if not self._config.is_configured():
            raise NotConfigured("Provider is not configured: set an API key and model first")

    def _require_plan(self) -> RevisionPlan:
        if self._plan is None:
            raise NoActivePlan("No active plan: analyze a document first")
        return self._plan

    def _require_step(self, step_id: str) -> ReviewStep:
        step = self._require_plan().find_step(step_id)
        if step is None:
            raise StepNotFound(step_id)
        return step

    # ── Configuration ───────────────────────────────────────

    def configure(self, config: ProviderConfig) -> None:
        with self._exclusive("configure"):
            self._config = config.model_copy()
        logger.info(
            f"Configured provider={config.provider.value}, model={config.model}, "
            f"configured={config.is_configured()}"
        )

    # ── Plan lifecycle ──────────────────────────────────────

    def start(self, text: str) -> RevisionPlan:
        """Analyze a new document and make it the active project.

        On failure the previous plan and document stay in place.
        """
        with self._exclusive("analyze"):
            if len(text.strip()) < MIN_DOCUMENT_CHARS:
                raise DocumentTooShort(
                    f"Document must contain at least {MIN_DOCUMENT_CHARS} characters"
                )
            plan = self._generator.generate(text, self._config)
            with self._state_lock:
                self._plan = plan
                self._document = DocumentState(original_text=text, current_text=text, version=1)
                logger.info(f"New project: {len(plan.steps)} steps, version 1")
                return self._plan.model_copy(deep=True)

    def reanalyze(self) -> RevisionPlan:
        """Replace analysis and steps with a fresh plan for the current text.

        The document state (text and version) is left untouched.
        """
        with self._exclusive("reanalyze"):
            with self._state_lock:
                self._require_plan()
                text = self._document.current_text
                version = self._document.version
            plan = self._generator.generate(text, self._config)
            with self._state_lock:
                self._plan = plan
                logger.info(f"Re-analyzed version {version}: {len(plan.steps)} new steps")
                return self._plan.model_copy(deep=True)

    def discard(self) -> None:
        with self._exclusive("discard"):
            with self._state_lock:
                self._plan = None
                self._document = DocumentState()
        logger.info("Project discarded")

    # ── Worklist edits ──────────────────────────────────────

    def add_step(self, name: str, description: str) -> ReviewStep:
        """Append a PENDING step.

        Allowed while a step or chain runs: an in-flight run_all iterates
        the step order it captured at start, so the new step is not part of
        it. Rejected with Busy during any other operation, since those may
        replace or drop the plan the step would be appended to.
        """
        if not name.strip() or not description.strip():
            raise ValueError("Step name and description must not be empty")

        with self._state_lock:
            if self.is_busy and self._running not in APPEND_WHILE_RUNNING:
                logger.warning(f"Rejected 'add step': '{self._running}' is in progress")
                raise Busy("add step", self._running)
            plan = self._require_plan()
            existing = set(plan.step_ids())
            step_id = generate_step_id()
            while step_id in existing:
                step_id = generate_step_id()
            step = ReviewStep(
                id=step_id,
                name=name.strip(),
                description=description.strip(),
                reasoning=MANUAL_STEP_REASONING,
                status=StepStatus.PENDING,
            )
            plan.steps.append(step)
            logger.info(f"[step {step.id}] Added '{step.name}' at position {len(plan.steps)}")
            return step.model_copy()

    def delete_step(self, step_id: str) -> None:
        """Remove a PENDING step. Completed and failed steps are kept as history."""
        with self._exclusive("delete step"):
            with self._state_lock:
                plan = self._require_plan()
                step = self._require_step(step_id)
                if step.status != StepStatus.PENDING:
                    raise InvalidStepState(step_id, step.status.value, "delete")
                plan.steps = [s for s in plan.steps if s.id != step_id]
        logger.info(f"[step {step_id}] Deleted")

    def reset_step(self, step_id: str) -> ReviewStep:
        """Offer a FAILED step for another run (FAILED -> PENDING)."""
        with self._exclusive("reset step"):
            with self._state_lock:
                step = self._require_step(step_id)
                transition_step(step, StepStatus.PENDING)
                step.output = None
                step.diff_summary = None
                logger.info(f"[step {step_id}] Reset to PENDING")
                return step.model_copy()

    # ── Execution ───────────────────────────────────────────

    def run_step(self, step_id: str) -> ReviewStep:
        """Execute one PENDING step against the current text.

        Raises:
            StepNotFound, InvalidStepState, NotConfigured: Before anything changes
            ExecutionFailure: The step is now FAILED, the document is unchanged
        """
        return self.run_step_result(step_id).step

    def run_step_result(self, step_id: str) -> StepRunResult:
        """Like run_step, also returning the document state the step produced."""
        with self._exclusive("run step"):
            with self._state_lock:
                step = self._require_step(step_id)
                if step.status != StepStatus.PENDING:
                    raise InvalidStepState(step_id, step.status.value, "run")
            self._require_configured()
            return self._execute_step(step_id)

    def run_all(
        self,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> ChainRunResult:
        """Execute every PENDING step in plan order, one after another.

        The step order is captured once at the start. Steps already COMPLETED
        or FAILED are skipped. The chain stops at the first failure: that
        step is FAILED, later steps stay PENDING, and ExecutionFailure is
        raised with the ids completed before it.
        """
        with self._exclusive("run all"):
            with self._state_lock:
                step_ids = self._require_plan().step_ids()
            self._require_configured()

            total = len(step_ids)
            completed: list[str] = []
            skipped: list[str] = []

            logger.info(f"Starting auto-run over {total} steps")

            for index, step_id in enumerate(step_ids):
                with self._state_lock:
                    step = self._plan.find_step(step_id) if self._plan else None
                    runnable = step is not None and step.status == StepStatus.PENDING
                    step_name = step.name if step else ""
                if not runnable:
                    skipped.append(step_id)
                    continue

                if completed and self.pacing_delay > 0:
                    time.sleep(self.pacing_delay)

                if progress_callback:
                    progress_callback(f"Step {index + 1}/{total}: {step_name}")

                try:
                    self._execute_step(step_id)
                except ExecutionFailure as e:
                    e.completed_step_ids = list(completed)
                    logger.error(
                        f"Auto-run aborted at step {step_id} ({index + 1}/{total}) "
                        f"after {len(completed)} completed: {e.message}"
                    )
                    raise
                completed.append(step_id)

            version = self._document.version
            logger.info(
                f"Auto-run completed: {len(completed)} steps run, "
                f"{len(skipped)} skipped, version {version}"
            )
            return ChainRunResult(
                completed_step_ids=completed,
                skipped_step_ids=skipped,
                version=version,
            )

    def _execute_step(self, step_id: str) -> StepRunResult:
        """Run one step and apply its COMPLETED / FAILED transition.

        Caller must hold the busy lock and have checked the step is PENDING.
        """
        with self._state_lock:
            plan = self._require_plan()
            step = self._require_step(step_id)
            other = next((s for s in plan.steps if s.status == StepStatus.IN_PROGRESS), None)
            if other is not None:
                raise Busy("start step", running=f"step {other.id}")
            transition_step(step, StepStatus.IN_PROGRESS)
            self._active_step_id = step.id
            text = self._document.current_text
            analysis = plan.analysis
            step_input = step.model_copy()

        logger.info(f"[step {step_id}] IN_PROGRESS: '{step_input.name}'")

        try:
            revision = self._executor.execute(text, step_input, analysis, self._config)
        except Exception as e:
            with self._state_lock:
                transition_step(step, StepStatus.FAILED)
                self._active_step_id = None
            logger.error(f"[step {step_id}] FAILED: {e}")
            if isinstance(e, ExecutionFailure):
                raise
            raise ExecutionFailure(
                f"Step '{step_input.name}' failed: {e}",
                step_id=step_id,
                step_name=step_input.name,
            ) from e

        with self._state_lock:
            step.output = revision.revised_text
            step.diff_summary = revision.diff_summary
            transition_step(step, StepStatus.COMPLETED)
            self._document = self._document.model_copy(
                update={
                    "current_text": revision.revised_text,
                    "version": self._document.version + 1,
                }
            )
            self._active_step_id = None
            logger.info(f"[step {step_id}] COMPLETED, document version {self._document.version}")
            return StepRunResult(step=step.model_copy(), document=self._document)
