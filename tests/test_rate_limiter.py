"""Tests for the tiered sliding-window rate limiter and identity resolution."""
import asyncio

import pytest
from starlette.datastructures import Headers

from intentions.rate_limiter import (
    TIER_FULL,
    TIER_REPHRASE,
    TIER_SHUFFLE,
    TieredRateLimiter,
    get_identifier,
    prune,
)

WINDOW = 7200.0
BASE = 1_700_000_000.0


@pytest.fixture
def limiter():
    return TieredRateLimiter(window_seconds=WINDOW, hard_limit=50, tier1_max=10, tier2_max=20, enabled=True)


async def _burn(limiter, n, identifier="user:abc", now=BASE):
    return [await limiter.admit(identifier, now) for _ in range(n)]


# ---------------------------------------------------------------------------
# Tiers and remaining
# ---------------------------------------------------------------------------

async def test_first_nine_requests_count_down(limiter):
    decisions = await _burn(limiter, 9)
    assert [d.tier for d in decisions] == [TIER_FULL] * 9
    assert [d.remaining for d in decisions] == list(range(49, 40, -1))
    assert all(d.allowed for d in decisions)


async def test_tier_boundaries(limiter):
    """Tier is decided on the count before this request is added."""
    decisions = await _burn(limiter, 50)
    tiers = [d.tier for d in decisions]
    assert tiers[:10] == [TIER_FULL] * 10
    assert tiers[10:20] == [TIER_REPHRASE] * 10
    assert tiers[20:] == [TIER_SHUFFLE] * 30
    assert all(d.allowed for d in decisions)


async def test_remaining_tracks_active_count(limiter):
    decisions = await _burn(limiter, 50)
    for i, d in enumerate(decisions):
        assert d.remaining == 50 - i - 1
    assert decisions[-1].remaining == 0


async def test_request_past_hard_limit_denied(limiter):
    await _burn(limiter, 50)
    denied = await limiter.admit("user:abc", BASE + 1)
    assert denied.allowed is False
    assert denied.tier == TIER_SHUFFLE
    assert denied.remaining == 0
    assert denied.reset_at == BASE + WINDOW


async def test_denied_request_not_recorded(limiter):
    await _burn(limiter, 50)
    for _ in range(5):
        await limiter.admit("user:abc", BASE + 1)
    assert len(limiter._windows["user:abc"]) == 50


async def test_reset_at_follows_oldest_timestamp(limiter):
    first = await limiter.admit("user:abc", BASE)
    second = await limiter.admit("user:abc", BASE + 600)
    assert first.reset_at == BASE + WINDOW
    assert second.reset_at == BASE + WINDOW
    assert second.reset_at_ms == int((BASE + WINDOW) * 1000)


async def test_concurrent_admits_never_exceed_hard_limit(limiter):
    decisions = await asyncio.gather(*(limiter.admit("user:abc", BASE) for _ in range(80)))
    assert sum(d.allowed for d in decisions) == 50
    assert len(limiter._windows["user:abc"]) == 50
    remaining = sorted(d.remaining for d in decisions if d.allowed)
    assert remaining == list(range(50))


async def test_different_identifiers_independent(limiter):
    await _burn(limiter, 50, "user:a")
    assert (await limiter.admit("user:a", BASE)).allowed is False
    d = await limiter.admit("user:b", BASE)
    assert d.allowed is True
    assert d.tier == TIER_FULL


# ---------------------------------------------------------------------------
# Sliding window
# ---------------------------------------------------------------------------

async def test_oldest_expiry_frees_exactly_one_slot(limiter):
    await limiter.admit("user:abc", BASE)
    await _burn(limiter, 49, now=BASE + 60)

    # Oldest is still inside the window at exactly BASE + WINDOW
    assert (await limiter.admit("user:abc", BASE + WINDOW)).allowed is False

    later = BASE + WINDOW + 1
    freed = await limiter.admit("user:abc", later)
    assert freed.allowed is True
    assert freed.remaining == 0
    assert (await limiter.admit("user:abc", later)).allowed is False


async def test_reset_at_rolls_forward_as_oldest_expires(limiter):
    await limiter.admit("user:abc", BASE)
    await limiter.admit("user:abc", BASE + 600)
    d = await limiter.admit("user:abc", BASE + WINDOW + 1)
    assert d.reset_at == BASE + 600 + WINDOW


async def test_full_window_expiry_restores_tier_one(limiter):
    await _burn(limiter, 30)
    d = await limiter.admit("user:abc", BASE + WINDOW + 1)
    assert d.tier == TIER_FULL
    assert d.remaining == 49


async def test_partial_window_expiry(limiter):
    """Only old entries expire; recent ones remain and count."""
    await _burn(limiter, 10, now=BASE)
    await _burn(limiter, 5, now=BASE + 3600)
    d = await limiter.admit("user:abc", BASE + WINDOW + 1)
    assert d.tier == TIER_FULL  # 5 live before this request
    assert d.remaining == 44


def test_prune_is_pure():
    original = [BASE, BASE + 10, BASE + 20]
    kept = prune(original, BASE + WINDOW + 15, WINDOW)
    assert list(kept) == [BASE + 20]
    assert original == [BASE, BASE + 10, BASE + 20]


# ---------------------------------------------------------------------------
# Cleanup and toggle
# ---------------------------------------------------------------------------

async def test_admit_sweeps_idle_identifiers(limiter):
    await limiter.admit("user:old", BASE)
    await limiter.admit("user:new", BASE + WINDOW + 1)
    assert "user:old" not in limiter._windows
    assert "user:new" in limiter._windows


async def test_cleanup_removes_stale(limiter):
    await limiter.admit("user:abc", BASE)
    await limiter.cleanup(BASE + WINDOW + 1)
    assert "user:abc" not in limiter._windows


async def test_cleanup_keeps_active(limiter):
    await limiter.admit("user:abc", BASE)
    await limiter.cleanup(BASE + 60)
    assert "user:abc" in limiter._windows


async def test_disabled_limiter_always_tier_one():
    limiter = TieredRateLimiter(window_seconds=WINDOW, hard_limit=50, tier1_max=10, tier2_max=20, enabled=False)
    for _ in range(60):
        d = await limiter.admit("user:abc", BASE)
        assert d.allowed is True
        assert d.tier == TIER_FULL
        assert d.remaining == 50
        assert d.reset_at == BASE + WINDOW
    assert limiter._windows == {}


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------

def test_identifier_prefers_user_id():
    headers = Headers({"x-user-id": "abc", "x-forwarded-for": "1.2.3.4"})
    assert get_identifier(headers) == "user:abc"


def test_identifier_uses_first_forwarded_hop():
    headers = Headers({"x-forwarded-for": "1.2.3.4, 10.0.0.1, 10.0.0.2"})
    assert get_identifier(headers) == "ip:1.2.3.4"


def test_identifier_prefers_cf_connecting_ip():
    headers = Headers({"cf-connecting-ip": "5.6.7.8", "x-forwarded-for": "1.2.3.4"})
    assert get_identifier(headers) == "ip:5.6.7.8"


def test_identifier_blank_user_id_falls_back_to_ip():
    headers = Headers({"x-user-id": "  ", "x-forwarded-for": "1.2.3.4"})
    assert get_identifier(headers) == "ip:1.2.3.4"


def test_identifier_unknown_bucket():
    assert get_identifier(Headers({})) == "ip:unknown"
