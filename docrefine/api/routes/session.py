"""Session API routes: one in-memory revision session per process.

Endpoints:
    GET    /v1/models                         Model catalogue and presets
    GET    /v1/session                        Snapshot (plan, document, busy)
    PUT    /v1/session/config                 Replace provider configuration
    POST   /v1/session/analyze                Analyze a new document
    POST   /v1/session/reanalyze              New plan for the current text
    DELETE /v1/session                        Discard the project
    POST   /v1/session/steps                  Add a step
    DELETE /v1/session/steps/{step_id}        Delete a PENDING step
    POST   /v1/session/steps/{step_id}/run    Run one step
    POST   /v1/session/steps/{step_id}/reset  FAILED -> PENDING
    POST   /v1/session/run-all                Run all PENDING steps in order

Routes are plain ``def`` so FastAPI runs them in its threadpool: while a
run-all request blocks on the chain, other requests are still served and
see a busy session.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from docrefine.config import (
    AVAILABLE_MODELS,
    OPENAI_COMPATIBLE_PRESETS,
    ProviderConfig,
    pacing_delay_from_env,
)
from docrefine.errors import DocRefineError
from docrefine.executor import RunController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session"])

_session: Optional[RunController] = None


def get_session() -> RunController:
    """Get the global session controller, configured from the environment."""
    global _session
    if _session is None:
        _session = RunController(
            ProviderConfig.from_env(),
            pacing_delay=pacing_delay_from_env(),
        )
    return _session


def reset_session(controller: Optional[RunController] = None) -> None:
    """Replace (or drop) the global session controller."""
    global _session
    _session = controller


def _http_error(e: DocRefineError) -> HTTPException:
    if e.http_status >= 500:
        logger.error(f"[{e.code}] {e.message}")
    return HTTPException(status_code=e.http_status, detail=e.to_reason())


# --- Request schemas ---


class AnalyzeRequest(BaseModel):
    text: str = Field(..., description="Full document text to analyze")


class AddStepRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


# --- Catalogue ---


@router.get("/models")
async def list_models():
    """Selectable models and OpenAI-compatible presets."""
    return {
        "models": AVAILABLE_MODELS,
        "openai_compatible_presets": OPENAI_COMPATIBLE_PRESETS,
    }


# --- Session ---


@router.get("/session")
def get_snapshot():
    return get_session().snapshot().model_dump(mode="json", by_alias=True)


@router.put("/session/config")
def configure(config: ProviderConfig):
    """Replace the provider configuration. The API key is never echoed back."""
    try:
        get_session().configure(config)
    except DocRefineError as e:
        raise _http_error(e)
    return config.redacted()


@router.post("/session/analyze")
def analyze(request: AnalyzeRequest):
    """Analyze a document and start a new project (version 1)."""
    try:
        plan = get_session().start(request.text)
    except DocRefineError as e:
        raise _http_error(e)
    return plan.model_dump(mode="json", by_alias=True)


@router.post("/session/reanalyze")
def reanalyze():
    """Replace the plan with a fresh analysis of the current text."""
    try:
        plan = get_session().reanalyze()
    except DocRefineError as e:
        raise _http_error(e)
    return plan.model_dump(mode="json", by_alias=True)


@router.delete("/session")
def discard():
    try:
        get_session().discard()
    except DocRefineError as e:
        raise _http_error(e)
    return {"discarded": True}


# --- Steps ---


@router.post("/session/steps", status_code=201)
def add_step(request: AddStepRequest):
    try:
        step = get_session().add_step(request.name, request.description)
    except DocRefineError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return step.model_dump(mode="json", by_alias=True)


@router.delete("/session/steps/{step_id}")
def delete_step(step_id: str):
    try:
        get_session().delete_step(step_id)
    except DocRefineError as e:
        raise _http_error(e)
    return {"deleted": step_id}


@router.post("/session/steps/{step_id}/run")
def run_step(step_id: str):
    """Run one PENDING step. Returns the step and the new document state."""
    try:
        result = get_session().run_step_result(step_id)
    except DocRefineError as e:
        raise _http_error(e)
    return result.model_dump(mode="json", by_alias=True)


@router.post("/session/steps/{step_id}/reset")
def reset_step(step_id: str):
    try:
        step = get_session().reset_step(step_id)
    except DocRefineError as e:
        raise _http_error(e)
    return step.model_dump(mode="json", by_alias=True)


@router.post("/session/run-all")
def run_all():
    """Run every PENDING step in order, stopping at the first failure.

    Synchronous: the response is sent when the chain ends.
    """
    try:
        result = get_session().run_all(
            progress_callback=lambda message: logger.info(f"[run-all] {message}")
        )
    except DocRefineError as e:
        raise _http_error(e)
    return result.model_dump(mode="json", by_alias=True)
