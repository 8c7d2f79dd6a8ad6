"""Per-identifier sliding-window rate limiter with tiered service levels (in-memory).

Each identifier keeps the timestamps of its admitted requests over the last
window. The count of live timestamps picks a tier: full generation, cheap
rephrasing, local shuffle, and finally refusal at the hard limit. State is
process-local and lost on restart.
"""
import asyncio
import logging
import time
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from intentions.config import settings

logger = logging.getLogger(__name__)

TIER_FULL = 1
TIER_REPHRASE = 2
TIER_SHUFFLE = 3


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds
    tier: int
    limit: int

    @property
    def reset_at_ms(self) -> int:
        return int(self.reset_at * 1000)


def get_identifier(headers: Mapping[str, str]) -> str:
    """Derive the rate-limit key: trusted user id first, then the client address."""
    user_id = (headers.get("X-User-Id") or "").strip()
    if user_id:
        return f"user:{user_id}"
    ip = (headers.get("CF-Connecting-IP") or "").strip()
    if not ip:
        ip = (headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return f"ip:{ip or 'unknown'}"


def prune(timestamps: Iterable[float], now: float, window: float) -> deque[float]:
    """Return the timestamps still inside the window ending at ``now``."""
    cutoff = now - window
    return deque(t for t in timestamps if t >= cutoff)


class TieredRateLimiter:
    def __init__(
        self,
        *,
        window_seconds: float | None = None,
        hard_limit: int | None = None,
        tier1_max: int | None = None,
        tier2_max: int | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.window_seconds = window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        self.hard_limit = hard_limit if hard_limit is not None else settings.rate_limit_hard_limit
        self.tier1_max = tier1_max if tier1_max is not None else settings.rate_limit_tier1_max
        self.tier2_max = tier2_max if tier2_max is not None else settings.rate_limit_tier2_max
        self.enabled = enabled if enabled is not None else settings.rate_limit_enabled
        self._windows: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    def classify(self, active_count: int) -> int:
        """Map the pre-increment request count to a service tier."""
        if active_count < self.tier1_max:
            return TIER_FULL
        if active_count < self.tier2_max:
            return TIER_REPHRASE
        return TIER_SHUFFLE

    async def admit(self, identifier: str, now: float | None = None) -> RateDecision:
        """Decide on one request, recording it only if it is admitted."""
        if now is None:
            now = time.time()

        if not self.enabled:
            return RateDecision(
                allowed=True,
                remaining=self.hard_limit,
                reset_at=now + self.window_seconds,
                tier=TIER_FULL,
                limit=self.hard_limit,
            )

        # Read-prune-classify-append must not interleave for the same identifier.
        async with self._lock:
            dq = prune(self._windows.get(identifier, ()), now, self.window_seconds)
            active = len(dq)

            if active >= self.hard_limit:
                self._windows[identifier] = dq
                logger.info("Rate limit exceeded for %s (%d in window)", identifier, active)
                return RateDecision(
                    allowed=False,
                    remaining=0,
                    reset_at=dq[0] + self.window_seconds,
                    tier=TIER_SHUFFLE,
                    limit=self.hard_limit,
                )

            tier = self.classify(active)
            dq.append(now)
            self._windows[identifier] = dq
            self._sweep(now)

            return RateDecision(
                allowed=True,
                remaining=self.hard_limit - active - 1,
                reset_at=dq[0] + self.window_seconds,
                tier=tier,
                limit=self.hard_limit,
            )

    def _sweep(self, now: float) -> None:
        """Prune every identifier and drop the ones left empty. Caller holds the lock."""
        stale = []
        for key, dq in self._windows.items():
            live = prune(dq, now, self.window_seconds)
            if live:
                self._windows[key] = live
            else:
                stale.append(key)
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("Dropped %d idle rate-limit entries", len(stale))

    async def cleanup(self, now: float | None = None) -> None:
        """Remove entries for identifiers with no requests left in the window."""
        if now is None:
            now = time.time()
        async with self._lock:
            self._sweep(now)


rate_limiter = TieredRateLimiter()
