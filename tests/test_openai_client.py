"""Tests for the OpenAI client: request shape, retries, and failure mapping."""
import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from intentions import openai_client
from intentions.config import settings
from intentions.errors import UpstreamFailure


def _completion(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def transport_client():
    """Install a client backed by httpx.MockTransport; yields a setter for the handler."""
    state = {"handler": None, "requests": []}

    def _dispatch(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    openai_client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(_dispatch),
        base_url="https://api.test/v1",
    )
    with patch("intentions.openai_client.asyncio.sleep", new=AsyncMock()):
        yield state
    openai_client._client = None


async def _call():
    return await openai_client.chat_json("gpt-test", "system", "user", max_tokens=50, temperature=0.5)


async def test_returns_decoded_json_object(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(200, json=_completion('{"a": 1}'))
    assert await _call() == {"a": 1}

    sent = json.loads(transport_client["requests"][0].content)
    assert transport_client["requests"][0].url.path == "/v1/chat/completions"
    assert sent["model"] == "gpt-test"
    assert sent["response_format"] == {"type": "json_object"}
    assert sent["messages"][0] == {"role": "system", "content": "system"}
    assert sent["max_tokens"] == 50


async def test_retries_on_5xx_then_succeeds(transport_client):
    responses = iter([httpx.Response(503), httpx.Response(200, json=_completion('{"ok": true}'))])
    transport_client["handler"] = lambda req: next(responses)
    assert await _call() == {"ok": True}
    assert len(transport_client["requests"]) == 2


async def test_persistent_5xx_is_upstream_failure(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(500)
    with pytest.raises(UpstreamFailure, match="500"):
        await _call()
    assert len(transport_client["requests"]) == settings.upstream_max_retries + 1


async def test_4xx_not_retried(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(401)
    with pytest.raises(UpstreamFailure):
        await _call()
    assert len(transport_client["requests"]) == 1


async def test_timeout_is_upstream_failure(transport_client):
    def _timeout(req):
        raise httpx.ReadTimeout("slow", request=req)

    transport_client["handler"] = _timeout
    with pytest.raises(UpstreamFailure):
        await _call()


async def test_empty_content_is_upstream_failure(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(200, json=_completion(""))
    with pytest.raises(UpstreamFailure, match="no content"):
        await _call()


async def test_missing_choices_is_upstream_failure(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(200, json={"choices": []})
    with pytest.raises(UpstreamFailure):
        await _call()


async def test_non_json_content_is_upstream_failure(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(200, json=_completion("Sure! Here you go"))
    with pytest.raises(UpstreamFailure, match="not valid JSON"):
        await _call()


async def test_json_array_content_is_upstream_failure(transport_client):
    transport_client["handler"] = lambda req: httpx.Response(200, json=_completion("[1, 2]"))
    with pytest.raises(UpstreamFailure, match="not a JSON object"):
        await _call()


async def test_uninitialized_client_raises():
    openai_client._client = None
    with pytest.raises(RuntimeError):
        await _call()


async def test_hung_upstream_hits_overall_deadline(transport_client):
    async def _hang(req):
        await asyncio.Event().wait()

    transport_client["handler"] = _hang
    with patch("intentions.openai_client.worst_case_seconds", return_value=0.05):
        with pytest.raises(UpstreamFailure, match="did not answer"):
            await _call()


def test_worst_case_bound():
    assert openai_client.worst_case_seconds(retries=0, timeout=10) == 10
    assert openai_client.worst_case_seconds(retries=2, timeout=30) == 93
    assert openai_client.worst_case_seconds() <= 35
