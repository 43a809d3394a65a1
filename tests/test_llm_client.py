import json

import httpx
import pytest

from whateat_recipes.app.core.config import Settings
from whateat_recipes.app.services.llm_client import (
    ChatCompletionsClient,
    LLMProviderError,
    _parse_llm_json_content,
    build_llm_client,
)

SCHEMA = {"type": "object", "properties": {"title": {"type": "string"}}}


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def make_client(handler, max_retries=2):
    return ChatCompletionsClient(
        api_key="sk-test",
        model="gpt-test",
        base_url="https://llm.example.com/v1/",
        max_completion_tokens=1234,
        max_retries=max_retries,
        retry_backoff_seconds=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_generate_structured_sends_schema_request():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return completion('{"title": "Soup"}')

    result = await make_client(handler).generate_structured("system", "user", "recipe", SCHEMA)

    assert result == {"title": "Soup"}
    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    body = seen["body"]
    assert body["model"] == "gpt-test"
    assert body["max_completion_tokens"] == 1234
    assert body["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "user"},
    ]
    assert body["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "recipe", "strict": True, "schema": SCHEMA},
    }


@pytest.mark.asyncio
async def test_retries_retryable_status_then_succeeds():
    responses = [httpx.Response(503), httpx.Response(429), completion('{"title": "Tea"}')]
    calls = []

    def handler(request):
        calls.append(request)
        return responses[len(calls) - 1]

    result = await make_client(handler).generate_structured("s", "u", "recipe", SCHEMA)
    assert result == {"title": "Tea"}
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"error": {"message": "boom", "type": "server_error"}})

    with pytest.raises(LLMProviderError) as excinfo:
        await make_client(handler, max_retries=1).generate_structured("s", "u", "recipe", SCHEMA)
    assert len(calls) == 2
    assert excinfo.value.status == 500
    assert excinfo.value.type == "server_error"


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(
            400,
            headers={"x-request-id": "req_123"},
            json={"error": {"message": "bad schema", "type": "invalid_request_error", "code": "invalid_schema"}},
        )

    with pytest.raises(LLMProviderError) as excinfo:
        await make_client(handler).generate_structured("s", "u", "recipe", SCHEMA)
    assert len(calls) == 1
    assert excinfo.value.details() == {
        "status": 400,
        "code": "invalid_schema",
        "type": "invalid_request_error",
        "request_id": "req_123",
        "message": "bad schema",
    }


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_raised():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LLMProviderError):
        await make_client(handler, max_retries=2).generate_structured("s", "u", "recipe", SCHEMA)
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_missing_content_raises_value_error():
    client = make_client(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ValueError):
        await client.generate_structured("s", "u", "recipe", SCHEMA)


@pytest.mark.parametrize(
    "raw",
    [
        '{"title": "Soup"}',
        '```json\n{"title": "Soup"}\n```',
        'Here you go: {"title": "Soup"} enjoy',
    ],
)
def test_parse_llm_json_content(raw):
    assert _parse_llm_json_content(raw) == {"title": "Soup"}


def test_parse_llm_json_content_rejects_garbage():
    with pytest.raises(ValueError):
        _parse_llm_json_content("no json here")


def test_build_llm_client_requires_api_key():
    assert build_llm_client(Settings(OPENAI_API_KEY=None)) is None
    client = build_llm_client(Settings(OPENAI_API_KEY="sk-live", OPENAI_MODEL="gpt-mini"))
    assert isinstance(client, ChatCompletionsClient)
    assert client.model == "gpt-mini"
