"""OpenAI-compatible chat completion client (JSON mode only)."""
import asyncio
import json
import logging
from typing import Any

import httpx

from intentions.config import settings
from intentions.errors import UpstreamFailure

logger = logging.getLogger(__name__)

BACKOFF_INIT = 1

# ---------------------------------------------------------------------------
# Persistent HTTP client
# ---------------------------------------------------------------------------
_client: httpx.AsyncClient | None = None


def _require_client() -> httpx.AsyncClient:
    """Return the persistent client, or raise if not initialized."""
    if _client is None:
        raise RuntimeError("OpenAI client not initialized, call init_client() first")
    return _client


def init_client() -> None:
    global _client
    if _client is not None:
        return  # idempotent
    _client = httpx.AsyncClient(
        base_url=settings.openai_base_url.rstrip("/"),
        headers={
            "Authorization": f"Bearer {settings.openai_api_key}",
            "Content-Type": "application/json",
        },
        timeout=settings.upstream_timeout_seconds,
    )


async def close_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

def worst_case_seconds(retries=None, timeout=None, backoff_init=BACKOFF_INIT) -> float:
    """Upper bound on the time one chat_json call can spend before giving up."""
    if retries is None:
        retries = settings.upstream_max_retries
    if timeout is None:
        timeout = settings.upstream_timeout_seconds
    return (retries + 1) * timeout + backoff_init * sum(range(1, retries + 1))


async def _retry_http(coro_factory, retries=None, backoff_init=BACKOFF_INIT):
    """Retry an HTTP call on transient failures."""
    if retries is None:
        retries = settings.upstream_max_retries
    for attempt in range(retries + 1):
        try:
            return await coro_factory()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code < 500 or attempt == retries:
                raise
            logger.warning("OpenAI HTTP %d, retrying in %ds…", exc.response.status_code, backoff_init * (attempt + 1))
        except (httpx.TimeoutException, httpx.ConnectError) as exc:
            if attempt == retries:
                raise
            logger.warning("OpenAI HTTP error: %s, retrying in %ds…", exc, backoff_init * (attempt + 1))
        await asyncio.sleep(backoff_init * (attempt + 1))


async def chat_json(
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
) -> dict[str, Any]:
    """Run one chat completion in JSON mode and return the decoded object.

    Every failure (transport, HTTP status, empty or non-JSON content) is
    raised as UpstreamFailure.
    """
    payload = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
        "response_format": {"type": "json_object"},
    }

    async def _do():
        resp = await _require_client().post("/chat/completions", json=payload)
        resp.raise_for_status()
        return resp.json()

    try:
        body = await asyncio.wait_for(_retry_http(_do), worst_case_seconds())
    except asyncio.TimeoutError as exc:
        raise UpstreamFailure(f"OpenAI did not answer within {worst_case_seconds():.0f}s") from exc
    except httpx.HTTPStatusError as exc:
        raise UpstreamFailure(f"OpenAI returned {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamFailure(f"OpenAI request failed: {exc!r}") from exc
    except ValueError as exc:
        raise UpstreamFailure("OpenAI returned a non-JSON body") from exc

    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not content:
        raise UpstreamFailure(f"OpenAI response from {model} had no content")

    try:
        result = json.loads(content)
    except json.JSONDecodeError as exc:
        raise UpstreamFailure(f"OpenAI content from {model} is not valid JSON") from exc
    if not isinstance(result, dict):
        raise UpstreamFailure(f"OpenAI content from {model} is not a JSON object")
    return result
