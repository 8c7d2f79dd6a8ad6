"""Weekly intention generation, one strategy per rate-limit tier.

Tier 1 asks the full model for a fresh week, tier 2 asks the cheap model to
rephrase the caller's history, tier 3 reshuffles that history locally without
any upstream call. Whatever the strategy, the result is 7 day intentions plus
one week and one month intention for the requested week.
"""
import datetime as dt
import enum
import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from intentions import openai_client
from intentions.config import settings
from intentions.errors import UpstreamFailure, ValidationError
from intentions.models import Intention, PreviousIntention
from intentions.rate_limiter import TIER_FULL, TIER_REPHRASE

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
# 7 day + 1 week + 1 month
MIN_SHUFFLE_HISTORY = 9
MAX_REPHRASE_SEEDS = 9
EXPECTED_COUNTS = {"day": DAYS_PER_WEEK, "week": 1, "month": 1}

FULL_MAX_TOKENS = 2000
FULL_TEMPERATURE = 0.8
REPHRASE_MAX_TOKENS = 1000
REPHRASE_TEMPERATURE = 0.7

_intentions_adapter = TypeAdapter(list[Intention])


class Mode(str, enum.Enum):
    FULL = "full"
    REPHRASE = "rephrase"
    SHUFFLE = "shuffle"


@dataclass
class WeekPlan:
    intentions: list[Intention]
    mode: Mode


FULL_SYSTEM_PROMPT = """You are a personal growth and mindfulness advisor. Based on information about a user, generate personalized daily, weekly, and monthly intentions for a specific week.

Return ONLY a valid JSON object with this exact structure:
{
  "intentions": [
    {"date": "YYYY-MM-DD", "text": "intention text (5-15 words)", "scope": "day"},
    {"date": "YYYY-MM-DD", "text": "intention text (5-15 words)", "scope": "week"},
    {"date": "YYYY-MM-DD", "text": "intention text (5-15 words)", "scope": "month"}
  ]
}

Rules:
- Generate exactly ONE daily intention for each day of the week (7 days)
- Generate exactly ONE weekly intention for the week
- Generate exactly ONE monthly intention for the month (if the week spans a month boundary, use the month that contains most days)
- Daily intentions should be specific and actionable for that day
- Weekly intention should be broader and guide the whole week
- Monthly intention should be the most general and guide the whole month
- Make intentions personal, relevant, and inspiring based on the user's information
- Use dates in YYYY-MM-DD format
- Do not include any markdown formatting or code blocks"""

REPHRASE_SYSTEM_PROMPT = """You are a personal growth advisor. Rephrase the given intentions to make them fresh and relevant for a new week. Return ONLY a valid JSON object with this structure:
{
  "intentions": [
    {"date": "YYYY-MM-DD", "text": "rephrased text (5-15 words)", "scope": "day"},
    ...
  ]
}"""


def week_dates(week_start: dt.date) -> list[dt.date]:
    return [week_start + dt.timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def week_end(week_start: dt.date) -> dt.date:
    return week_start + dt.timedelta(days=DAYS_PER_WEEK - 1)


# ---------------------------------------------------------------------------
# Upstream payload validation
# ---------------------------------------------------------------------------

def validate_week(payload: Any, week_start: dt.date) -> list[Intention]:
    """Check a collaborator payload holds exactly 7 day, 1 week and 1 month intention.

    The day intentions must cover each date of the requested week once.

    Malformed payloads are rejected outright, never padded or trimmed.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("intentions"), list):
        raise UpstreamFailure("Invalid response structure: intentions array missing")
    try:
        intentions = _intentions_adapter.validate_python(payload["intentions"])
    except PydanticValidationError as exc:
        raise UpstreamFailure(f"Invalid intention structure: {exc.error_count()} errors") from exc

    counts = Counter(i.scope for i in intentions)
    for scope, expected in EXPECTED_COUNTS.items():
        if counts[scope] != expected:
            raise UpstreamFailure(f"Expected {expected} {scope} intentions, got {counts[scope]}")

    day_dates = sorted(i.date for i in intentions if i.scope == "day")
    if day_dates != week_dates(week_start):
        raise UpstreamFailure(f"Day intentions do not cover the week starting {week_start.isoformat()}")
    return intentions


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def _full_user_prompt(user_info: str, week_start: dt.date, previous: list[PreviousIntention]) -> str:
    prompt = f"Generate intentions for the week starting {week_start.isoformat()}.\n\n"
    prompt += f"User information:\n{user_info}\n\n"
    if previous:
        prompt += "Previous intentions (for context):\n"
        for p in previous:
            prompt += f"- {p.scope} ({p.date}): {p.text}\n"
        prompt += "\n"
    prompt += "Generate 7 daily intentions (one for each day), 1 weekly intention, and 1 monthly intention."
    return prompt


async def generate_full(user_info: str, week_start: dt.date, previous: list[PreviousIntention]) -> list[Intention]:
    payload = await openai_client.chat_json(
        settings.full_model,
        FULL_SYSTEM_PROMPT,
        _full_user_prompt(user_info, week_start, previous),
        max_tokens=FULL_MAX_TOKENS,
        temperature=FULL_TEMPERATURE,
    )
    return validate_week(payload, week_start)


async def generate_rephrased(week_start: dt.date, previous: list[PreviousIntention]) -> list[Intention]:
    seeds = previous[:MAX_REPHRASE_SEEDS]
    lines = "\n".join(f"- {p.scope}: {p.text}" for p in seeds)
    user_prompt = (
        f"Rephrase these intentions for the week starting {week_start.isoformat()}:\n{lines}\n\n"
        "Generate 7 daily intentions, 1 weekly, and 1 monthly."
    )
    payload = await openai_client.chat_json(
        settings.rephrase_model,
        REPHRASE_SYSTEM_PROMPT,
        user_prompt,
        max_tokens=REPHRASE_MAX_TOKENS,
        temperature=REPHRASE_TEMPERATURE,
    )
    return validate_week(payload, week_start)


def shuffle_week(
    previous: list[PreviousIntention],
    week_start: dt.date,
    rng: random.Random | None = None,
) -> list[Intention]:
    """Recombine the caller's history into a new week without any upstream call."""
    if len(previous) < MIN_SHUFFLE_HISTORY:
        raise ValidationError(
            "Not enough previous intentions available. Please create some intentions first."
        )
    rng = rng or random.Random()
    pool = list(previous)
    rng.shuffle(pool)

    daily = [p for p in pool if p.scope == "day"][:DAYS_PER_WEEK]
    weekly = next((p for p in pool if p.scope == "week"), pool[0])
    monthly = next((p for p in pool if p.scope == "month"), pool[1 % len(pool)])

    intentions = []
    for i, day in enumerate(week_dates(week_start)):
        source = daily[i] if i < len(daily) else pool[i % len(pool)]
        intentions.append(Intention(date=day, text=source.text, scope="day"))
    intentions.append(Intention(date=week_start, text=weekly.text, scope="week"))
    intentions.append(Intention(date=week_start, text=monthly.text, scope="month"))
    return intentions


async def generate_week(
    tier: int,
    user_info: str,
    week_start: dt.date,
    previous: list[PreviousIntention],
    rng: random.Random | None = None,
) -> WeekPlan:
    """Fulfil a weekly request with the strategy bound to ``tier``."""
    if tier == TIER_FULL:
        return WeekPlan(await generate_full(user_info, week_start, previous), Mode.FULL)
    if tier == TIER_REPHRASE and previous:
        return WeekPlan(await generate_rephrased(week_start, previous), Mode.REPHRASE)
    if tier == TIER_REPHRASE:
        logger.info("No history to rephrase, falling back to shuffle")
    return WeekPlan(shuffle_week(previous, week_start, rng), Mode.SHUFFLE)
