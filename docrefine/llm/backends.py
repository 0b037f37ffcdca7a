"""LLM backend abstraction for multi-provider support.

Provides a unified interface for calling different LLM providers
(Google Gemini, OpenAI-compatible endpoints, Anthropic Claude) with a
consistent response format.

Each backend handles provider-specific concerns:
- Client creation and timeout configuration
- Requesting JSON output
- Response parsing and token counting

Backends never retry. A failed call raises and the caller decides what the
failure means for its operation.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from docrefine.config import ProviderConfig

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Normalized response from any LLM backend."""

    content: str
    model_id: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


@runtime_checkable
class ModelBackend(Protocol):
    """Protocol for LLM backend implementations."""

    @property
    def model_id(self) -> str: ...

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        json_output: bool = True,
        label: str = "",
    ) -> LLMCallResult: ...


class GeminiBackend:
    """Google Gemini backend.

    Requires google-genai package: pip install google-genai
    """

    def __init__(self, config: ProviderConfig):
        self._config = config

    @property
    def model_id(self) -> str:
        return self._config.model

    def _get_client(self):
        from google import genai

        return genai.Client(
            api_key=self._config.api_key,
            http_options=genai.types.HttpOptions(
                timeout=int(self._config.timeout_seconds * 1000),
            ),
        )

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        json_output: bool = True,
        label: str = "",
    ) -> LLMCallResult:
        from google import genai

        client = self._get_client()
        start_time = time.time()

        estimated_input_tokens = (len(system_prompt) + len(user_message)) // 4
        logger.info(
            f"[{label}] Gemini sync: model={self.model_id}, "
            f"~{estimated_input_tokens:,} input tokens, max_tokens={max_tokens}"
        )

        config_kwargs: dict[str, Any] = {
            "system_instruction": system_prompt,
            "max_output_tokens": max_tokens,
        }
        if json_output:
            config_kwargs["response_mime_type"] = "application/json"

        response = client.models.generate_content(
            model=self.model_id,
            contents=user_message,
            config=genai.types.GenerateContentConfig(**config_kwargs),
        )

        duration_ms = int((time.time() - start_time) * 1000)

        # Skip thought parts, keep only the answer text
        raw_text = ""
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if getattr(part, "thought", False):
                    continue
                raw_text += getattr(part, "text", "") or ""

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self.model_id}")

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) or estimated_input_tokens
        output_tokens = getattr(usage, "candidates_token_count", None) or len(raw_text) // 4

        logger.info(
            f"[{label}] Gemini sync completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms, {len(raw_text):,} chars"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self.model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )


class OpenAICompatibleBackend:
    """Any endpoint speaking the OpenAI chat completions protocol.

    Covers OpenAI itself plus DeepSeek, OneAPI gateways and similar.
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._config = config
        self._transport = transport

    @property
    def model_id(self) -> str:
        return self._config.model

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        json_output: bool = True,
        label: str = "",
    ) -> LLMCallResult:
        url = f"{self._config.resolved_base_url()}/chat/completions"
        payload: dict[str, Any] = {
            "model": self.model_id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
        }
        if json_output:
            payload["response_format"] = {"type": "json_object"}

        logger.info(
            f"[{label}] OpenAI-compatible sync: model={self.model_id}, url={url}, "
            f"~{(len(system_prompt) + len(user_message)) // 4:,} input tokens"
        )

        start_time = time.time()
        timeout = httpx.Timeout(
            connect=60.0,
            read=self._config.timeout_seconds,
            write=60.0,
            pool=60.0,
        )
        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            response = client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self._config.api_key}"},
            )
            if response.status_code >= 400:
                raise RuntimeError(
                    f"[{label}] OpenAI-compatible API error ({response.status_code}): "
                    f"{response.text[:500]}"
                )
            data = response.json()

        duration_ms = int((time.time() - start_time) * 1000)

        try:
            raw_text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise RuntimeError(f"[{label}] Response missing expected content") from e

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self.model_id}")

        usage = data.get("usage") or {}
        input_tokens = usage.get("prompt_tokens", 0)
        output_tokens = usage.get("completion_tokens", 0)

        logger.info(
            f"[{label}] OpenAI-compatible sync completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms, {len(raw_text):,} chars"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self.model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )


class AnthropicBackend:
    """Anthropic Claude backend."""

    def __init__(self, config: ProviderConfig):
        self._config = config

    @property
    def model_id(self) -> str:
        return self._config.model

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        json_output: bool = True,
        label: str = "",
    ) -> LLMCallResult:
        """Execute a synchronous (non-streaming) Anthropic call.

        Claude has no JSON mode; the prompts already demand bare JSON and the
        caller strips any markdown fences.
        """
        from anthropic import Anthropic

        client = Anthropic(
            api_key=self._config.api_key,
            timeout=httpx.Timeout(
                connect=60.0,
                read=self._config.timeout_seconds,
                write=120.0,
                pool=60.0,
            ),
        )
        start_time = time.time()

        logger.info(
            f"[{label}] Anthropic sync: model={self.model_id}, "
            f"~{(len(system_prompt) + len(user_message)) // 4:,} input tokens, "
            f"max_tokens={max_tokens}"
        )

        response = client.messages.create(
            model=self.model_id,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )

        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        for block in response.content:
            if hasattr(block, "text"):
                raw_text += block.text

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self.model_id}")

        logger.info(
            f"[{label}] Anthropic sync completed: {response.usage.input_tokens}+"
            f"{response.usage.output_tokens} tokens, {duration_ms}ms, "
            f"{len(raw_text):,} chars"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self.model_id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=duration_ms,
        )
