"""Provider configuration.

The engine never looks inside the credentials. It only asks
``ProviderConfig.is_configured()`` before attempting a remote call.

Environment:
    DOCREFINE_PROVIDER      gemini | openai | anthropic (default: gemini)
    DOCREFINE_MODEL         model id (default depends on provider)
    DOCREFINE_API_KEY       falls back to GEMINI_API_KEY / OPENAI_API_KEY /
                            ANTHROPIC_API_KEY, then API_KEY
    DOCREFINE_BASE_URL      OpenAI-compatible endpoint root
    DOCREFINE_TIMEOUT       request timeout in seconds
    DOCREFINE_PACING_DELAY  seconds slept between auto-run steps
"""

import logging
import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"  # any OpenAI-compatible chat completions endpoint
    ANTHROPIC = "anthropic"


DEFAULT_MODELS = {
    LLMProvider.GEMINI: "gemini-3-flash-preview",
    LLMProvider.OPENAI: "gpt-4o",
    LLMProvider.ANTHROPIC: "claude-sonnet-4-6",
}

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"

AVAILABLE_MODELS = [
    {"id": "gemini-3-flash-preview", "name": "Gemini 3.0 Flash (balanced)", "provider": "gemini"},
    {"id": "gemini-3-pro-preview", "name": "Gemini 3.0 Pro (strongest reasoning)", "provider": "gemini"},
    {"id": "gemini-2.5-flash-latest", "name": "Gemini 2.5 Flash (fastest)", "provider": "gemini"},
    {"id": "claude-sonnet-4-6", "name": "Claude Sonnet 4.6", "provider": "anthropic"},
]

OPENAI_COMPATIBLE_PRESETS = [
    {"id": "gpt-4o", "name": "GPT-4o (OpenAI)"},
    {"id": "deepseek-chat", "name": "DeepSeek V3"},
    {"id": "deepseek-reasoner", "name": "DeepSeek R1"},
    {"id": "claude-3-5-sonnet-20240620", "name": "Claude 3.5 Sonnet (via OneAPI)"},
]

_PROVIDER_KEY_VARS = {
    LLMProvider.GEMINI: "GEMINI_API_KEY",
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
}


class ProviderConfig(BaseModel):
    """Which backend and model to target, and with which credentials."""

    provider: LLMProvider = LLMProvider.GEMINI
    api_key: str = Field(default="", description="Provider API key (never logged)")
    model: str = Field(default=DEFAULT_MODELS[LLMProvider.GEMINI])
    base_url: Optional[str] = Field(
        default=None,
        description="OpenAI-compatible endpoint root, e.g. https://api.deepseek.com/v1",
    )
    timeout_seconds: float = Field(default=300.0, gt=0)
    max_output_tokens: int = Field(default=32768, gt=0)

    def is_configured(self) -> bool:
        return bool(self.api_key.strip()) and bool(self.model.strip())

    def resolved_base_url(self) -> str:
        return (self.base_url or DEFAULT_OPENAI_BASE_URL).rstrip("/")

    def redacted(self) -> dict:
        """Config as a dict safe to return to a client."""
        data = self.model_dump(mode="json")
        key = self.api_key.strip()
        data["api_key"] = f"...{key[-4:]}" if len(key) > 4 else ("***" if key else "")
        data["configured"] = self.is_configured()
        return data

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        raw_provider = os.environ.get("DOCREFINE_PROVIDER", LLMProvider.GEMINI.value).lower()
        try:
            provider = LLMProvider(raw_provider)
        except ValueError:
            logger.warning(f"Unknown DOCREFINE_PROVIDER '{raw_provider}', using gemini")
            provider = LLMProvider.GEMINI

        api_key = (
            os.environ.get("DOCREFINE_API_KEY")
            or os.environ.get(_PROVIDER_KEY_VARS[provider])
            or os.environ.get("API_KEY")
            or ""
        )

        kwargs = {
            "provider": provider,
            "api_key": api_key,
            "model": os.environ.get("DOCREFINE_MODEL") or DEFAULT_MODELS[provider],
            "base_url": os.environ.get("DOCREFINE_BASE_URL") or None,
        }
        timeout = os.environ.get("DOCREFINE_TIMEOUT")
        if timeout:
            kwargs["timeout_seconds"] = float(timeout)
        return cls(**kwargs)


def pacing_delay_from_env() -> float:
    """Chain pacing delay in seconds (0 disables it)."""
    raw = os.environ.get("DOCREFINE_PACING_DELAY", "0")
    try:
        return max(0.0, float(raw))
    except ValueError:
        logger.warning(f"Invalid DOCREFINE_PACING_DELAY '{raw}', pacing disabled")
        return 0.0
