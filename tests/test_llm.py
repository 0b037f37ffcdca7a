import json

import httpx
import pytest

from docrefine.config import LLMProvider, ProviderConfig
from docrefine.llm import (
    AnthropicBackend,
    GeminiBackend,
    OpenAICompatibleBackend,
    get_backend,
    parse_llm_json_response,
)


@pytest.mark.parametrize(
    "raw",
    [
        '{"a": 1}',
        '  {"a": 1}\n',
        '```json\n{"a": 1}\n```',
        '```\n{"a": 1}\n```',
    ],
)
def test_parse_strips_fences(raw):
    assert parse_llm_json_response(raw) == {"a": 1}


def test_parse_rejects_non_object():
    with pytest.raises(ValueError):
        parse_llm_json_response("[1, 2]")


def test_parse_rejects_garbage():
    with pytest.raises(json.JSONDecodeError):
        parse_llm_json_response("Sure! Here is your plan.")


@pytest.mark.parametrize(
    "provider,backend_cls",
    [
        (LLMProvider.GEMINI, GeminiBackend),
        (LLMProvider.OPENAI, OpenAICompatibleBackend),
        (LLMProvider.ANTHROPIC, AnthropicBackend),
    ],
)
def test_factory_dispatches_on_provider(provider, backend_cls):
    backend = get_backend(ProviderConfig(provider=provider, api_key="k", model="m"))
    assert isinstance(backend, backend_cls)
    assert backend.model_id == "m"


def _openai_config(**overrides):
    values = {
        "provider": LLMProvider.OPENAI,
        "api_key": "sk-test",
        "model": "deepseek-chat",
        "base_url": "https://llm.example.com/v1/",
    }
    values.update(overrides)
    return ProviderConfig(**values)


def test_openai_compatible_request_and_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"content": ' {"revisedText": "x"} '}}],
                "usage": {"prompt_tokens": 12, "completion_tokens": 7},
            },
        )

    backend = OpenAICompatibleBackend(_openai_config(), transport=httpx.MockTransport(handler))
    result = backend.execute_sync("system", "user", max_tokens=100, label="test")

    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "deepseek-chat"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert seen["body"]["messages"][0] == {"role": "system", "content": "system"}
    assert result.content == '{"revisedText": "x"}'
    assert (result.input_tokens, result.output_tokens) == (12, 7)


def test_openai_compatible_without_json_mode():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    backend = OpenAICompatibleBackend(_openai_config(), transport=httpx.MockTransport(handler))
    backend.execute_sync("s", "u", max_tokens=10, json_output=False)

    assert "response_format" not in bodies[0]


def test_openai_compatible_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad key"}))
    backend = OpenAICompatibleBackend(_openai_config(), transport=transport)

    with pytest.raises(RuntimeError, match="401"):
        backend.execute_sync("s", "u", max_tokens=10)


@pytest.mark.parametrize(
    "body",
    [
        {"choices": []},
        {"choices": [{"message": {"content": "   "}}]},
        {"choices": [{"message": {"content": None}}]},
    ],
)
def test_openai_compatible_empty_response(body):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    backend = OpenAICompatibleBackend(_openai_config(), transport=transport)

    with pytest.raises(RuntimeError):
        backend.execute_sync("s", "u", max_tokens=10)
