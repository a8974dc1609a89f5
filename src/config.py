"""
Configuration Module

Environment-driven settings for the Webtoon API.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from WEBTOON_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WEBTOON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    jwt_secret: SecretStr = Field(..., description="Secret used to verify bearer tokens.")
    jwt_algorithms: List[str] = Field(default_factory=lambda: ["HS256", "HS384", "HS512"])

    rate_limit_window_seconds: float = Field(default=15 * 60, gt=0)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    trust_forwarded_for: bool = False

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)

    log_level: str = "INFO"
    log_json: bool = True


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
