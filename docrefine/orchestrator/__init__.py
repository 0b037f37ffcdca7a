"""Plan generation: document analysis and the revision plan data model."""

from .planner import AnalysisService, LLMAnalysisService, PlanGenerator, build_plan
from .schemas import (
    AnalysisPayload,
    DocumentAnalysis,
    DocumentState,
    GapAnalysis,
    ReviewStep,
    RevisionPlan,
    StepStatus,
    generate_step_id,
)

__all__ = [
    "AnalysisService",
    "LLMAnalysisService",
    "PlanGenerator",
    "build_plan",
    "AnalysisPayload",
    "DocumentAnalysis",
    "DocumentState",
    "GapAnalysis",
    "ReviewStep",
    "RevisionPlan",
    "StepStatus",
    "generate_step_id",
]
