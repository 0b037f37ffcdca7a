"""LLM-powered plan generation.

Sends the document to the configured model with the analysis prompt and
returns a validated RevisionPlan: the model identifies the document's
domain, adopts an expert persona, measures the gap to expert standard and
proposes an ordered list of revision steps.

Generation is all-or-nothing. Any transport error, unparsable JSON or
missing field raises AnalysisFailure and no plan is returned.
"""

import json
import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from docrefine.config import ProviderConfig
from docrefine.errors import AnalysisFailure, NotConfigured
from docrefine.llm import get_backend, parse_llm_json_response
from docrefine.prompts import get_prompt_registry

from .schemas import (
    AnalysisPayload,
    ReviewStep,
    RevisionPlan,
    StepStatus,
    generate_step_id,
)

logger = logging.getLogger(__name__)


class AnalysisService(Protocol):
    """Returns the decoded (not yet validated) analysis payload."""

    def analyze(self, text: str, config: ProviderConfig) -> dict[str, Any]: ...


class LLMAnalysisService:
    """Analysis service backed by the configured LLM provider."""

    PROMPT_KEY = "analysis"

    def analyze(self, text: str, config: ProviderConfig) -> dict[str, Any]:
        prompt = get_prompt_registry().get(self.PROMPT_KEY)
        system_prompt, user_message = prompt.render(document_text=text)

        backend = get_backend(config)
        result = backend.execute_sync(
            system_prompt=system_prompt,
            user_message=user_message,
            max_tokens=config.max_output_tokens,
            json_output=True,
            label="analysis",
        )

        logger.info(
            f"[analysis] {result.model_id} returned {len(result.content):,} chars "
            f"({result.input_tokens}+{result.output_tokens} tokens, {result.duration_ms}ms)"
        )

        try:
            return parse_llm_json_response(result.content)
        except (json.JSONDecodeError, ValueError):
            logger.error(f"[analysis] Raw response (first 500 chars): {result.content[:500]}")
            raise


class PlanGenerator:
    """Produces a RevisionPlan from document text via an analysis service."""

    def __init__(self, service: Optional[AnalysisService] = None):
        self.service = service or LLMAnalysisService()

    def generate(self, document_text: str, config: ProviderConfig) -> RevisionPlan:
        """Generate a plan for ``document_text``.

        Raises:
            NotConfigured: If the config has no usable credentials (no call is made)
            AnalysisFailure: If the call fails or the payload is malformed
        """
        if not config.is_configured():
            raise NotConfigured("Provider is not configured: set an API key and model first")

        logger.info(
            f"[analysis] Generating plan: {len(document_text):,} chars, "
            f"provider={config.provider.value}, model={config.model}"
        )

        try:
            raw = self.service.analyze(document_text, config)
        except AnalysisFailure:
            raise
        except Exception as e:
            logger.error(f"[analysis] Analysis call failed: {e}")
            raise AnalysisFailure(f"Plan generation failed: {e}") from e

        plan = build_plan(raw)

        logger.info(
            f"[analysis] Plan ready: category='{plan.analysis.category}', "
            f"persona='{plan.analysis.persona()}', {len(plan.steps)} steps"
        )
        return plan


def build_plan(raw: Any) -> RevisionPlan:
    """Validate an analysis payload and turn it into a fresh plan.

    Every step starts PENDING. Steps without an id, or repeating an id
    already used in the same payload, get a generated one.

    Raises:
        AnalysisFailure: If the payload does not match the analysis schema
    """
    if not isinstance(raw, dict):
        raise AnalysisFailure(
            f"Analysis response must be a JSON object, got {type(raw).__name__}"
        )

    try:
        payload = AnalysisPayload.model_validate(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.error(f"[analysis] Malformed analysis payload: {errors}")
        raise AnalysisFailure(f"Analysis response is malformed: {errors}") from e

    seen: set[str] = set()
    steps: list[ReviewStep] = []
    for proposed in payload.steps:
        step_id = (proposed.id or "").strip()
        if not step_id or step_id in seen:
            step_id = generate_step_id()
        seen.add(step_id)
        steps.append(
            ReviewStep(
                id=step_id,
                name=proposed.name,
                description=proposed.description,
                reasoning=proposed.reasoning,
                status=StepStatus.PENDING,
            )
        )

    return RevisionPlan(analysis=payload.analysis, steps=steps)
