"""Shared fixtures for the Intentions API test suite.

Environment variables MUST be set before any app imports because
intentions.config.Settings() and the rate limiter singleton are built at
import time.
"""
import os

# Set env vars before any app module is imported
os.environ.setdefault("API_SECRET_KEY", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, patch

API_KEY = "test-secret"
WEEK_START = "2025-01-06"


def make_previous(days: int = 7, weeks: int = 1, months: int = 1) -> list[dict]:
    """Caller-supplied history with the given number of entries per scope."""
    items = [{"text": f"day intention {i}", "scope": "day", "date": f"2024-12-{i + 1:02d}"} for i in range(days)]
    items += [{"text": f"week intention {i}", "scope": "week", "date": "2024-12-02"} for i in range(weeks)]
    items += [{"text": f"month intention {i}", "scope": "month", "date": "2024-12-01"} for i in range(months)]
    return items


def make_week_payload(start: str = WEEK_START, days: int = 7, weeks: int = 1, months: int = 1) -> dict:
    """A collaborator payload shaped like a real model reply."""
    day_num = int(start[-2:])
    prefix = start[:-2]
    items = [{"date": f"{prefix}{day_num + i:02d}", "text": f"fresh day {i}", "scope": "day"} for i in range(days)]
    items += [{"date": start, "text": "fresh week", "scope": "week"} for _ in range(weeks)]
    items += [{"date": start, "text": "fresh month", "scope": "month"} for _ in range(months)]
    return {"intentions": items}


@pytest.fixture
def mock_openai():
    """Patch the OpenAI collaborator.

    Only openai_client is mocked; everything else (auth, rate limiting,
    tier routing, validation, error envelopes) is real.
    """
    mocks = {
        "init_client": MagicMock(),
        "close_client": AsyncMock(),
        "chat_json": AsyncMock(return_value=make_week_payload()),
    }
    with patch.multiple("intentions.openai_client", **mocks):
        yield mocks


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """The limiter is a module-level singleton; clear it so tests don't share quota."""
    from intentions.rate_limiter import rate_limiter
    rate_limiter._windows.clear()
    enabled = rate_limiter.enabled
    yield
    rate_limiter._windows.clear()
    rate_limiter.enabled = enabled


@pytest.fixture(autouse=True)
def _reset_store():
    """Stored intentions are module-level; start every test with an empty store."""
    from intentions import store
    store.clear()
    yield
    store.clear()


@pytest_asyncio.fixture
async def client(mock_openai):
    """httpx.AsyncClient using ASGITransport, bypasses lifespan."""
    import httpx
    from main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        headers={"X-API-Key": API_KEY},
    ) as c:
        yield c
