"""Executor-side schemas: step revisions, the step state machine, run results.

These are distinct from the orchestrator schemas (which describe plans).
Executor schemas describe what happens during and after execution.
"""

from typing import Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from docrefine.errors import InvalidStepState
from docrefine.orchestrator.schemas import (
    DocumentState,
    ReviewStep,
    RevisionPlan,
    StepStatus,
    WireModel,
)

# Allowed step transitions. FAILED -> PENDING is the explicit reset;
# COMPLETED is terminal.
STEP_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.PENDING: {StepStatus.IN_PROGRESS},
    StepStatus.IN_PROGRESS: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.FAILED: {StepStatus.PENDING},
    StepStatus.COMPLETED: set(),
}

_TRANSITION_ACTIONS = {
    StepStatus.IN_PROGRESS: "start",
    StepStatus.COMPLETED: "complete",
    StepStatus.FAILED: "fail",
    StepStatus.PENDING: "reset",
}


def can_transition(from_status: StepStatus, to_status: StepStatus) -> bool:
    return to_status in STEP_TRANSITIONS.get(from_status, set())


def transition_step(step: ReviewStep, to_status: StepStatus) -> ReviewStep:
    """Move ``step`` to ``to_status`` in place.

    Raises:
        InvalidStepState: If the transition is not allowed
    """
    if not can_transition(step.status, to_status):
        raise InvalidStepState(step.id, step.status.value, _TRANSITION_ACTIONS[to_status])
    step.status = to_status
    return step


class StepRevision(WireModel):
    """Validated revision service result for one step."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    revised_text: str = Field(..., description="Full revised document text")
    diff_summary: str = Field(..., description="What the step added")

    @field_validator("revised_text", "diff_summary")
    @classmethod
    def require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class StepRunResult(WireModel):
    """A completed step with the document state its completion produced."""

    step: ReviewStep
    document: DocumentState


class ChainRunResult(WireModel):
    """Outcome of an auto-run chain that finished without failure."""

    completed_step_ids: list[str] = Field(default_factory=list)
    skipped_step_ids: list[str] = Field(
        default_factory=list,
        description="Steps not PENDING when the chain reached them",
    )
    version: int = 0


class PlanProgress(WireModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0

    @classmethod
    def of(cls, plan: Optional[RevisionPlan]) -> "PlanProgress":
        if plan is None:
            return cls()
        return cls(
            total=len(plan.steps),
            pending=plan.count(StepStatus.PENDING),
            in_progress=plan.count(StepStatus.IN_PROGRESS),
            completed=plan.count(StepStatus.COMPLETED),
            failed=plan.count(StepStatus.FAILED),
        )


class SessionSnapshot(WireModel):
    """Read-only view of the controller state for presentation layers."""

    plan: Optional[RevisionPlan] = None
    document: DocumentState = Field(default_factory=DocumentState)
    busy: bool = False
    running_operation: Optional[str] = None
    active_step_id: Optional[str] = None
    progress: PlanProgress = Field(default_factory=PlanProgress)
