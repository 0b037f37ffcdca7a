"""Error taxonomy for the revision engine.

Every error carries a stable ``code`` and an ``http_status`` so the API layer
can translate it without knowing each subclass.
"""

from typing import Any, Optional, Sequence


class DocRefineError(Exception):
    """Base error with code + message for API error reasons."""

    code: str = "DOCREFINE_ERROR"
    http_status: int = 500

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_reason(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class NotConfigured(DocRefineError):
    """No usable provider configuration. Raised before any remote call."""

    code = "NOT_CONFIGURED"
    http_status = 412


class Busy(DocRefineError):
    """Another mutating operation is in flight."""

    code = "BUSY"
    http_status = 409

    def __init__(self, operation: str, running: Optional[str] = None) -> None:
        self.operation = operation
        self.running = running
        detail = f" ('{running}' is running)" if running else ""
        super().__init__(f"Cannot {operation}: another operation is in progress{detail}")

    def to_reason(self) -> dict[str, Any]:
        reason = super().to_reason()
        reason["operation"] = self.operation
        reason["running"] = self.running
        return reason


class StepNotFound(DocRefineError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, step_id: str) -> None:
        self.step_id = step_id
        super().__init__(f"Step not found: {step_id}")

    def to_reason(self) -> dict[str, Any]:
        reason = super().to_reason()
        reason["step_id"] = self.step_id
        return reason


class InvalidState(DocRefineError):
    """The session is not in a state that allows the operation."""

    code = "INVALID_STATE"
    http_status = 409


class InvalidStepState(InvalidState):
    """Step is not in the status the requested transition needs."""

    def __init__(self, step_id: str, status: str, action: str) -> None:
        self.step_id = step_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} step {step_id}: status is {status}")

    def to_reason(self) -> dict[str, Any]:
        reason = super().to_reason()
        reason.update(step_id=self.step_id, status=self.status)
        return reason


class NoActivePlan(InvalidState):
    code = "NO_ACTIVE_PLAN"


class DocumentTooShort(DocRefineError):
    code = "DOCUMENT_TOO_SHORT"
    http_status = 422


class AnalysisFailure(DocRefineError):
    """The plan generator could not produce a valid plan."""

    code = "ANALYSIS_FAILED"
    http_status = 502


class ExecutionFailure(DocRefineError):
    """The step executor could not produce a valid revision for a step."""

    code = "EXECUTION_FAILED"
    http_status = 502

    def __init__(
        self,
        message: str,
        step_id: str,
        step_name: str = "",
        completed_step_ids: Sequence[str] = (),
    ) -> None:
        self.step_id = step_id
        self.step_name = step_name
        self.completed_step_ids = list(completed_step_ids)
        super().__init__(message)

    def to_reason(self) -> dict[str, Any]:
        reason = super().to_reason()
        reason.update(
            step_id=self.step_id,
            step_name=self.step_name,
            completed_step_ids=self.completed_step_ids,
        )
        return reason
