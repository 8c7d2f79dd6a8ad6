"""AI generation router: weekly intentions plus single-shot helpers.

Every endpoint authenticates, then spends one unit of the caller's quota
before the body is processed. Only the weekly endpoint varies its strategy
with the caller's tier.
"""
import time

from fastapi import APIRouter, Depends, Request, Response

from intentions import companions, generation
from intentions.auth import require_api_key
from intentions.errors import RateLimited, rate_limit_headers
from intentions.models import (
    IntentionTextRequest,
    MonthlyIntentionRequest,
    MonthlyIntentionResponse,
    QuoteResponse,
    RephraseIntentionRequest,
    RephraseIntentionResponse,
    ThemeResponse,
    WeeklyIntentionsRequest,
    WeeklyIntentionsResponse,
)
from intentions.rate_limiter import RateDecision, get_identifier, rate_limiter

router = APIRouter(prefix="/api/ai", dependencies=[Depends(require_api_key)])

RESPONSE_MODE_HEADER = "X-Response-Mode"


async def admit_request(request: Request, response: Response) -> RateDecision:
    """FastAPI dependency: admit the caller or raise RateLimited (429)."""
    now = time.time()
    decision = await rate_limiter.admit(get_identifier(request.headers), now)
    if not decision.allowed:
        raise RateLimited(decision, now)
    response.headers.update(rate_limit_headers(decision))
    return decision


# ---------------------------------------------------------------------------
# Weekly intentions (tiered)
# ---------------------------------------------------------------------------

@router.post("/generate-weekly-intentions", response_model=WeeklyIntentionsResponse)
async def generate_weekly_intentions(
    body: WeeklyIntentionsRequest,
    response: Response,
    decision: RateDecision = Depends(admit_request),
) -> WeeklyIntentionsResponse:
    week_start = body.week_start
    plan = await generation.generate_week(
        decision.tier,
        body.user_info,
        week_start,
        body.previous_intentions,
    )
    if plan.mode is generation.Mode.SHUFFLE:
        response.headers[RESPONSE_MODE_HEADER] = plan.mode.value
    return WeeklyIntentionsResponse(
        intentions=plan.intentions,
        week_start_date=body.week_start_date,
        week_end_date=generation.week_end(week_start),
    )


# ---------------------------------------------------------------------------
# Single-shot helpers
# ---------------------------------------------------------------------------

@router.post("/generate-theme", response_model=ThemeResponse)
async def generate_theme(body: IntentionTextRequest, _: RateDecision = Depends(admit_request)) -> ThemeResponse:
    return ThemeResponse(theme=await companions.generate_theme(body.intention_text))


@router.post("/generate-quote", response_model=QuoteResponse)
async def generate_quote(body: IntentionTextRequest, _: RateDecision = Depends(admit_request)) -> QuoteResponse:
    return await companions.generate_quote(body.intention_text)


@router.post("/rephrase-intention", response_model=RephraseIntentionResponse)
async def rephrase_intention(
    body: RephraseIntentionRequest,
    _: RateDecision = Depends(admit_request),
) -> RephraseIntentionResponse:
    return await companions.rephrase_intention(body.intention_text, body.previous_phrases)


@router.post("/generate-monthly-intention", response_model=MonthlyIntentionResponse)
async def generate_monthly_intention(
    body: MonthlyIntentionRequest,
    _: RateDecision = Depends(admit_request),
) -> MonthlyIntentionResponse:
    return await companions.generate_monthly_intention(body.previous_intentions)
