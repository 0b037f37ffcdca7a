"""Single-step execution: one revision call per step.

This is the atomic unit of execution. The executor sends the current
document text, one step's instruction and the governing analysis (persona,
category, professional standard) to the revision service, and validates
what comes back. It knows nothing about the plan and mutates nothing; the
run controller applies the result.

No retries: a failure is reported once, as ExecutionFailure.
"""

import json
import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from docrefine.config import ProviderConfig
from docrefine.errors import ExecutionFailure, NotConfigured
from docrefine.llm import get_backend, parse_llm_json_response
from docrefine.orchestrator.schemas import DocumentAnalysis, ReviewStep
from docrefine.prompts import get_prompt_registry

from .schemas import StepRevision

logger = logging.getLogger(__name__)

# Used when the analysis carries no professional standard text
DEFAULT_STANDARD = "the highest standard of the field"


class RevisionService(Protocol):
    """Returns the decoded (not yet validated) revision payload."""

    def revise(
        self,
        text: str,
        step: ReviewStep,
        analysis: DocumentAnalysis,
        config: ProviderConfig,
    ) -> dict[str, Any]: ...


class LLMRevisionService:
    """Revision service backed by the configured LLM provider."""

    PROMPT_KEY = "revision"

    def revise(
        self,
        text: str,
        step: ReviewStep,
        analysis: DocumentAnalysis,
        config: ProviderConfig,
    ) -> dict[str, Any]:
        prompt = get_prompt_registry().get(self.PROMPT_KEY)
        system_prompt, user_message = prompt.render(
            persona=analysis.persona(),
            category=analysis.category,
            step_name=step.name,
            step_description=step.description,
            standard=analysis.gap_analysis.professional_standards or DEFAULT_STANDARD,
            current_text=text,
        )

        label = f"step {step.id}"
        backend = get_backend(config)
        result = backend.execute_sync(
            system_prompt=system_prompt,
            user_message=user_message,
            max_tokens=config.max_output_tokens,
            json_output=True,
            label=label,
        )

        try:
            return parse_llm_json_response(result.content)
        except (json.JSONDecodeError, ValueError):
            logger.error(f"[{label}] Raw response (first 500 chars): {result.content[:500]}")
            raise


class StepExecutor:
    """Runs one step through a revision service and validates the result."""

    def __init__(self, service: Optional[RevisionService] = None):
        self.service = service or LLMRevisionService()

    def execute(
        self,
        current_text: str,
        step: ReviewStep,
        analysis: DocumentAnalysis,
        config: ProviderConfig,
    ) -> StepRevision:
        """Revise ``current_text`` according to ``step``.

        Raises:
            NotConfigured: If the config has no usable credentials (no call is made)
            ExecutionFailure: If the call fails or the result is incomplete
        """
        if not config.is_configured():
            raise NotConfigured("Provider is not configured: set an API key and model first")

        logger.info(
            f"[step {step.id}] Executing '{step.name}' as {analysis.persona()} "
            f"on {len(current_text):,} chars"
        )

        try:
            raw = self.service.revise(current_text, step, analysis, config)
        except ExecutionFailure:
            raise
        except Exception as e:
            logger.error(f"[step {step.id}] Revision call failed: {e}")
            raise ExecutionFailure(
                f"Step '{step.name}' failed: {e}",
                step_id=step.id,
                step_name=step.name,
            ) from e

        if not isinstance(raw, dict):
            raise ExecutionFailure(
                f"Step '{step.name}' failed: revision response must be a JSON object",
                step_id=step.id,
                step_name=step.name,
            )

        try:
            revision = StepRevision.model_validate(raw)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            logger.error(f"[step {step.id}] Incomplete revision payload: {fields}")
            raise ExecutionFailure(
                f"Step '{step.name}' failed: revision response is missing or has empty {fields}",
                step_id=step.id,
                step_name=step.name,
            ) from e

        logger.info(
            f"[step {step.id}] Revision ready: {len(revision.revised_text):,} chars"
        )
        return revision
