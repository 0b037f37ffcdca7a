"""Schemas for document analysis and revision plans.

The central data structure is RevisionPlan: one DocumentAnalysis plus an
ordered list of ReviewSteps. DocumentState tracks the text the steps are
applied to.

Attributes are snake_case in Python and camelCase on the wire (LLM payloads
and API JSON), e.g. ``gap_analysis.missing_content`` <-> ``gapAnalysis.missingContent``.
"""

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def generate_step_id() -> str:
    return f"step-{uuid.uuid4().hex[:12]}"


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty")
    return value


class WireModel(BaseModel):
    """Base model accepting and emitting camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepStatus(str, Enum):
    """Step lifecycle states."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class GapAnalysis(WireModel):
    """Distance between the document and the domain's expert standard."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    professional_standards: str = Field(
        ...,
        description="First-principles standard of the domain",
    )
    missing_content: str = Field(
        ...,
        description="Domain logic, theory or data an expert would expect to find",
    )

    @field_validator("professional_standards", "missing_content")
    @classmethod
    def require_text(cls, value: str) -> str:
        return _require_text(value)


class DocumentAnalysis(WireModel):
    """Analysis record attached to a plan. Replaced wholesale, never patched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    category: str = Field(..., description="Precise sub-domain of the document")
    assigned_persona: Optional[str] = Field(
        default=None,
        description="Expert role adopted for the whole revision session",
    )
    current_level: str
    target_level: str
    summary: str
    gap_analysis: GapAnalysis

    def persona(self) -> str:
        """The persona to write in, falling back to a category expert."""
        if self.assigned_persona and self.assigned_persona.strip():
            return self.assigned_persona.strip()
        return f"{self.category} expert"


class ReviewStep(WireModel):
    """One revision task with its own lifecycle status."""

    id: str = Field(default_factory=generate_step_id)
    name: str
    description: str
    reasoning: str = ""
    status: StepStatus = StepStatus.PENDING
    output: Optional[str] = Field(
        default=None,
        description="Full revised text at the time this step completed",
    )
    diff_summary: Optional[str] = Field(
        default=None,
        description="What the step added, in plain words",
    )


class RevisionPlan(WireModel):
    """Analysis plus an ordered worklist of steps. A plan with no steps is valid."""

    analysis: DocumentAnalysis
    steps: list[ReviewStep] = Field(default_factory=list)

    def find_step(self, step_id: str) -> Optional[ReviewStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    def count(self, status: StepStatus) -> int:
        return sum(1 for s in self.steps if s.status == status)

    def has_pending_steps(self) -> bool:
        return any(s.status == StepStatus.PENDING for s in self.steps)


class DocumentState(WireModel):
    """Original text, latest revised text and a monotonically increasing version.

    Version is 0 before any plan exists, 1 once a plan is created from the
    text, and +1 for each successfully completed step.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    original_text: str = ""
    current_text: str = ""
    version: int = Field(default=0, ge=0)

    @property
    def is_empty(self) -> bool:
        return self.version == 0


# ── Analysis Service payload ────────────────────────────────


class ProposedStep(WireModel):
    """A step as returned by the analysis service (id optional)."""

    id: Optional[str] = None
    name: str
    description: str
    reasoning: str

    @field_validator("name", "description")
    @classmethod
    def require_text(cls, value: str) -> str:
        return _require_text(value)


class AnalysisPayload(WireModel):
    """Strict shape of the analysis service response."""

    analysis: DocumentAnalysis
    steps: list[ProposedStep]
