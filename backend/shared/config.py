"""
Central configuration for the live tracker.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings shared by every tracker component."""

    model_config = SettingsConfigDict(
        env_prefix="LW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # LW_TRACKER_* belongs to TrackerSettings
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    log_level: str = "INFO"
    log_format: str = Field(default="", description='"console" or "json"; empty picks by environment')
    instance_id: str = Field(default="", description="Unique pod/container ID bound to every log line")

    # ── HTTP ─────────────────────────────────────────────────
    http_request_timeout_s: float = 10.0
    http_connect_timeout_s: float = 5.0
    http_max_retries: int = 2
    http_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    # ── YouTube Data API ─────────────────────────────────────
    youtube_api_key: str = ""
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090

    @property
    def youtube_api_key_safe_log(self) -> str:
        """API key with everything but the last four characters redacted."""
        if not self.youtube_api_key:
            return ""
        return "***" + self.youtube_api_key[-4:]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
