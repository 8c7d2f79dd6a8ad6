"""Pydantic request/response models."""
import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Scope = Literal["day", "week", "month"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def parse_week_start(value: str) -> dt.date:
    """Accept ``YYYY-MM-DD`` or a full ISO datetime; only the calendar date matters."""
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        return dt.datetime.fromisoformat(value).date()


class PreviousIntention(BaseModel):
    text: str = Field(..., min_length=1)
    scope: Scope
    date: str = Field(..., min_length=1)


class Intention(BaseModel):
    date: dt.date
    text: str = Field(..., min_length=1)
    scope: Scope


class WeeklyIntentionsRequest(_CamelModel):
    user_info: str = Field(..., alias="userInfo", min_length=1)
    week_start_date: str = Field(..., alias="weekStartDate", min_length=1)
    previous_intentions: list[PreviousIntention] = Field(default_factory=list, alias="previousIntentions")

    @field_validator("week_start_date")
    @classmethod
    def check_week_start(cls, v: str) -> str:
        try:
            parse_week_start(v)
        except ValueError:
            raise ValueError("Invalid weekStartDate format")
        return v

    @property
    def week_start(self) -> dt.date:
        return parse_week_start(self.week_start_date)


class WeeklyIntentionsResponse(_CamelModel):
    intentions: list[Intention]
    week_start_date: str = Field(..., alias="weekStartDate")
    week_end_date: dt.date = Field(..., alias="weekEndDate")


class IntentionTextRequest(_CamelModel):
    intention_text: str = Field(..., alias="intentionText", min_length=1)

    @field_validator("intention_text")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("intentionText is required")
        return v


class RephraseIntentionRequest(IntentionTextRequest):
    previous_phrases: list[str] = Field(default_factory=list, alias="previousPhrases")


class MonthlyIntentionEntry(BaseModel):
    text: str = Field(..., min_length=1)
    month: str = Field(..., min_length=1)


class MonthlyIntentionRequest(_CamelModel):
    previous_intentions: list[MonthlyIntentionEntry] = Field(..., alias="previousIntentions", min_length=1)


class Theme(_CamelModel):
    background_color: str = Field(..., alias="backgroundColor", min_length=1)
    text_color: str = Field(..., alias="textColor", min_length=1)
    accent_color: str = Field(..., alias="accentColor", min_length=1)
    name: str = Field(..., min_length=1)
    reasoning: str = Field(..., min_length=1)


class ThemeResponse(BaseModel):
    theme: Theme


class QuoteResponse(BaseModel):
    quote: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    relevance: str = Field(..., min_length=1)


class RephraseIntentionResponse(_CamelModel):
    rephrased_text: str = Field(..., alias="rephrasedText", min_length=1)
    preserved_meaning: bool = Field(..., alias="preservedMeaning", strict=True)


class MonthlyIntentionResponse(BaseModel):
    intention: str = Field(..., min_length=1)
    reasoning: str = Field(..., min_length=1)


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: str
    version: str


# ---------------------------------------------------------------------------
# Stored intentions
# ---------------------------------------------------------------------------

class IntentionRecord(_CamelModel):
    id: str
    user_id: str = Field(..., alias="userId")
    text: str
    scope: Scope
    date: str
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")
    theme_id: str | None = Field(default=None, alias="themeId")
    custom_font: str | None = Field(default=None, alias="customFont")
    ai_generated: bool = Field(default=False, alias="aiGenerated")
    ai_rephrased: bool = Field(default=False, alias="aiRephrased")
    quote: str | None = None


class CreateIntentionRequest(_CamelModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    text: str = Field(..., min_length=1)
    scope: Scope
    date: str = Field(..., min_length=1)
    theme_id: str | None = Field(default=None, alias="themeId")
    custom_font: str | None = Field(default=None, alias="customFont")
    ai_generated: bool = Field(default=False, alias="aiGenerated")
    quote: str | None = None

    @field_validator("user_id", "text")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class UpdateIntentionRequest(_CamelModel):
    """Partial update; only fields present in the body are applied."""
    text: str | None = None
    scope: Scope | None = None
    date: str | None = Field(default=None, min_length=1)
    theme_id: str | None = Field(default=None, alias="themeId")
    custom_font: str | None = Field(default=None, alias="customFont")
    ai_rephrased: bool | None = Field(default=None, alias="aiRephrased")
    quote: str | None = None

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str | None) -> str:
        if v is None or not v.strip():
            raise ValueError("text must be a non-empty string")
        return v.strip()


class IntentionEnvelope(BaseModel):
    intention: IntentionRecord


class IntentionListResponse(BaseModel):
    intentions: list[IntentionRecord]


class DeleteResponse(BaseModel):
    success: bool = True
