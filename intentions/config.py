from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Shared secret for X-API-Key / Bearer auth. Empty disables the check (local dev).
    api_secret_key: str = ""

    openai_api_key: str = ""
    openai_base_url: str = Field(default="https://api.openai.com/v1", pattern=r"^https?://")
    full_model: str = "gpt-5.1-mini"
    rephrase_model: str = "gpt-5.1-nano"
    utility_model: str = "gpt-3.5-turbo"
    # One request waits at most (retries + 1) * timeout plus backoff: 2 * 15s + 1s = 31s by default.
    upstream_timeout_seconds: float = Field(default=15.0, gt=0)
    upstream_max_retries: int = Field(default=1, ge=0)

    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = Field(default=7200, ge=1)
    rate_limit_hard_limit: int = Field(default=50, ge=1)
    rate_limit_tier1_max: int = Field(default=10, ge=0)
    rate_limit_tier2_max: int = Field(default=20, ge=0)

    log_level: str = "INFO"
    app_version: str = "1.0.0"
    cors_origins_str: str = "*"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    @model_validator(mode="after")
    def _check_tiers(self) -> "Settings":
        if self.rate_limit_tier1_max >= self.rate_limit_tier2_max:
            raise ValueError("rate_limit_tier1_max must be below rate_limit_tier2_max")
        if self.rate_limit_tier2_max > self.rate_limit_hard_limit:
            raise ValueError("rate_limit_tier2_max must not exceed rate_limit_hard_limit")
        return self


settings = Settings()
