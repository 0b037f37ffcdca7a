"""Model backend factory.

Resolves a provider configuration to the appropriate backend implementation.
"""

import logging
from typing import Union

from docrefine.config import LLMProvider, ProviderConfig
from docrefine.llm.backends import AnthropicBackend, GeminiBackend, OpenAICompatibleBackend

logger = logging.getLogger(__name__)


def get_backend(
    config: ProviderConfig,
) -> Union[GeminiBackend, OpenAICompatibleBackend, AnthropicBackend]:
    """Get the backend for a provider configuration.

    Raises:
        ValueError: If the provider is not recognized
    """
    if config.provider == LLMProvider.GEMINI:
        return GeminiBackend(config)
    elif config.provider == LLMProvider.OPENAI:
        return OpenAICompatibleBackend(config)
    elif config.provider == LLMProvider.ANTHROPIC:
        return AnthropicBackend(config)
    else:
        raise ValueError(
            f"Unknown provider: '{config.provider}'. "
            f"Expected one of: {', '.join(p.value for p in LLMProvider)}."
        )
