"""Application settings read from the environment (and a local .env file)."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "https://golf-strategy.vercel.app",
    "https://www.golfstrategy.app",
    "https://golfstrategy.app",
)

# Environments allowed to run without JWT_SECRET set
LOCAL_ENVIRONMENTS = ("development", "dev", "test")
LOCAL_JWT_SECRET = "local-development-secret"


class Settings(BaseSettings):
    """Every field is read from the upper-cased variable of the same name."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "development"

    database_url: Optional[str] = None
    google_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-pro"
    gemini_model_fast: str = "gemini-2.5-flash"

    jwt_secret: Optional[str] = None
    jwt_expiry_days: int = Field(30, gt=0)

    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_monthly: Optional[str] = None
    stripe_price_yearly: Optional[str] = None
    stripe_price_credits: Optional[str] = None
    frontend_url: str = "http://localhost:5173"
    trial_code: str = "GOLFBETA2026"

    ghin_email: Optional[str] = None
    ghin_password: Optional[str] = None
    ghin_base_url: str = "https://api2.ghin.com/api/v1"

    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS)
    )
    rate_limit_analyze_per_minute: int = Field(5, gt=0)
    rate_limit_auth_per_minute: int = Field(10, gt=0)
    rate_limit_window_seconds: int = Field(60, gt=0)

    log_level: str = "INFO"

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            origins = [item.strip() for item in value.split(",") if item.strip()]
            return origins or list(DEFAULT_ALLOWED_ORIGINS)
        return value

    @field_validator("log_level", "environment", mode="before")
    @classmethod
    def normalize_case(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, str):
            return value
        value = value.strip()
        return value.upper() if info.field_name == "log_level" else value.lower()

    @model_validator(mode="after")
    def require_jwt_secret(self) -> "Settings":
        if not self.jwt_secret:
            if self.environment not in LOCAL_ENVIRONMENTS:
                raise ValueError(f"JWT_SECRET must be set when ENVIRONMENT is {self.environment!r}")
            self.jwt_secret = LOCAL_JWT_SECRET
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


def reset_settings_cache() -> None:
    """Clear cached settings (primarily for tests)."""
    get_settings.cache_clear()
