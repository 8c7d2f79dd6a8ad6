"""Single-shot AI helpers: theme, quote, rephrase, monthly intention.

Each sends one prompt to the utility model and checks that the reply has
the fields the endpoint promises; anything else is an UpstreamFailure.
"""
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from intentions import openai_client
from intentions.config import settings
from intentions.errors import UpstreamFailure
from intentions.models import (
    MonthlyIntentionEntry,
    MonthlyIntentionResponse,
    QuoteResponse,
    RephraseIntentionResponse,
    Theme,
)

# Intentions describe how to be or show up, not measurable goals.
_INTENTION_GUIDANCE = (
    "Remember: intentions are about HOW you want to be or show up, not specific measurable goals. "
    "Focus on being/doing rather than achieving/completing."
)

THEME_PROMPT = (
    "You are a color theory expert. Given a text intention, generate a harmonious color palette that "
    "reflects the mood and theme. Return ONLY a valid JSON object with these exact keys: backgroundColor, "
    "textColor, accentColor (all hex codes like #FFFFFF), name (2-3 words), and reasoning (one sentence). "
    "Do not include any markdown formatting or code blocks."
)

QUOTE_PROMPT = (
    "You are a quote expert. Given a text intention, find or generate a relevant inspirational quote. "
    "Return ONLY a valid JSON object with these exact keys: quote (the quote text), author (the author name "
    'or "Unknown" if generated), and relevance (one sentence explaining why it\'s relevant). '
    "Do not include any markdown formatting or code blocks."
)

REPHRASE_PROMPT = (
    "You are a writing assistant. Rephrase the given intention text to make it fresh and inspiring while "
    f"preserving the core meaning. {_INTENTION_GUIDANCE} Return ONLY a valid JSON object with these exact "
    "keys: rephrasedText (the new phrasing, 5-15 words), and preservedMeaning (boolean). "
    "Do not include any markdown formatting or code blocks."
)

MONTHLY_PROMPT = (
    "You are a personal growth advisor. Analyze patterns in previous monthly intentions and generate a new "
    f"intention that builds on those themes. {_INTENTION_GUIDANCE} Return ONLY a valid JSON object with these "
    "exact keys: intention (5-15 words), and reasoning (one sentence explaining how it builds on previous "
    "themes). Do not include any markdown formatting or code blocks."
)


def _parse(model: type[BaseModel], payload: dict, what: str):
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise UpstreamFailure(f"Invalid {what} response structure") from exc


async def generate_theme(intention_text: str) -> Theme:
    payload = await openai_client.chat_json(
        settings.utility_model,
        THEME_PROMPT,
        f'Generate a color theme for this intention: "{intention_text}"',
        max_tokens=150,
        temperature=0.7,
    )
    return _parse(Theme, payload, "theme")


async def generate_quote(intention_text: str) -> QuoteResponse:
    payload = await openai_client.chat_json(
        settings.utility_model,
        QUOTE_PROMPT,
        f'Find or generate a relevant quote for this intention: "{intention_text}"',
        max_tokens=100,
        temperature=0.8,
    )
    return _parse(QuoteResponse, payload, "quote")


async def rephrase_intention(intention_text: str, previous_phrases: list[str]) -> RephraseIntentionResponse:
    user_prompt = f'Rephrase this intention: "{intention_text}"'
    if previous_phrases:
        user_prompt += f"\n\nAvoid repeating these previous phrasings: {', '.join(previous_phrases)}"
    payload = await openai_client.chat_json(
        settings.utility_model,
        REPHRASE_PROMPT,
        user_prompt,
        max_tokens=100,
        temperature=0.8,
    )
    return _parse(RephraseIntentionResponse, payload, "rephrase")


async def generate_monthly_intention(previous: list[MonthlyIntentionEntry]) -> MonthlyIntentionResponse:
    history = "\n".join(f"{p.month}: {p.text}" for p in previous)
    payload = await openai_client.chat_json(
        settings.utility_model,
        MONTHLY_PROMPT,
        f"Based on these previous monthly intentions:\n{history}\n\n"
        "Generate a new monthly intention that builds on these themes.",
        max_tokens=150,
        temperature=0.7,
    )
    return _parse(MonthlyIntentionResponse, payload, "monthly intention")
