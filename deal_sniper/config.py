from __future__ import annotations

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    tp_token: str = Field("", alias="TP_TOKEN")
    tp_marker: str = Field("", alias="TP_MARKER")
    base_url: str = Field("https://api.travelpayouts.com", alias="TP_BASE_URL")
    domain: str = Field("https://www.aviasales.com", alias="TP_DOMAIN")
    timeout_s: float = Field(15.0, alias="TP_TIMEOUT_S")
    currency: str = Field("USD", alias="SNIPER_CURRENCY")
    lang: str = Field("en", alias="SNIPER_LANG")
    log_level: str = Field("WARNING", alias="SNIPER_LOG_LEVEL")

    @field_validator("base_url", "domain")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("timeout_s")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("TP_TIMEOUT_S must be greater than 0")
        return v

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("SNIPER_CURRENCY must be a 3-letter ISO code")
        return v

    @field_validator("lang")
    @classmethod
    def _lang_lower(cls, v: str) -> str:
        return v.strip().lower() or "en"

    @field_validator("log_level")
    @classmethod
    def _level_name(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"SNIPER_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return application settings loaded from the environment."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "get_settings", "LOG_LEVELS"]
