"""Execution engine for revision plans.

Takes the RevisionPlan produced by the orchestrator and applies its steps
to the document, one revision call per step.

Architecture (bottom-up):
- schemas: step state machine, step revisions, run results, snapshots
- step_runner: single revision call for one step, with result validation
- run_controller: session owner; single and chained execution, worklist
  edits, busy guard
"""

from .run_controller import MANUAL_STEP_REASONING, MIN_DOCUMENT_CHARS, RunController
from .schemas import (
    STEP_TRANSITIONS,
    ChainRunResult,
    PlanProgress,
    SessionSnapshot,
    StepRevision,
    StepRunResult,
    can_transition,
    transition_step,
)
from .step_runner import LLMRevisionService, RevisionService, StepExecutor

__all__ = [
    "MANUAL_STEP_REASONING",
    "MIN_DOCUMENT_CHARS",
    "RunController",
    "STEP_TRANSITIONS",
    "ChainRunResult",
    "PlanProgress",
    "SessionSnapshot",
    "StepRevision",
    "StepRunResult",
    "can_transition",
    "transition_step",
    "LLMRevisionService",
    "RevisionService",
    "StepExecutor",
]
