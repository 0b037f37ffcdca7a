"""Shared LLM client utilities.

Provides a common calling interface over Gemini, OpenAI-compatible and
Anthropic APIs, used by both the plan generator and the step executor.
"""

from docrefine.llm.backends import (
    AnthropicBackend,
    GeminiBackend,
    LLMCallResult,
    ModelBackend,
    OpenAICompatibleBackend,
)
from docrefine.llm.client import parse_llm_json_response
from docrefine.llm.factory import get_backend

__all__ = [
    "parse_llm_json_response",
    "LLMCallResult",
    "ModelBackend",
    "GeminiBackend",
    "OpenAICompatibleBackend",
    "AnthropicBackend",
    "get_backend",
]
