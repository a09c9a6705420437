"""
Configuration settings for the Timora study planner.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///data/timora.db",
        description="SQLAlchemy connection string for the local progress store",
    )
    user_id: str = Field(
        default="default",
        description="Learner whose progress record the CLI reads and writes",
    )

    # ========================================
    # Plan Generation
    # ========================================
    plan_day_start: str = Field(
        default="09:00",
        description="Day-start anchor (HH:MM) from which slots are laid out",
    )
    plan_day_end: str = Field(
        default="20:00",
        description="End of the modeled day window (HH:MM); Dinner ends the day here",
    )
    plan_lunch_at: str = Field(
        default="13:00",
        description="Canonical lunch time (HH:MM); Lunch follows the last block ending by then",
    )

    # ─── Remote optimizer (optional) ────────────────────────────────────────────
    optimizer_url: str | None = Field(
        default=None,
        description="Endpoint of a remote plan optimizer (None to disable)",
    )
    optimizer_api_key: str | None = Field(
        default=None,
        description="Bearer token sent to the remote optimizer",
    )
    optimizer_timeout_seconds: float = Field(
        default=20.0,
        description="Request timeout for the remote optimizer",
    )
    optimizer_retry_attempts: int = Field(
        default=2,
        description="Attempts before falling back to the local generator",
    )

    # ========================================
    # Session Timer
    # ========================================
    focus_minutes: int = Field(default=25, description="Focus session length")
    short_break_minutes: int = Field(default=5, description="Short break length")
    long_break_minutes: int = Field(default=15, description="Long break length")
    sessions_before_long_break: int = Field(
        default=4,
        description="Focus sessions completed before a long break",
    )

    # ========================================
    # Sync Behavior
    # ========================================
    sync_max_attempts: int = Field(
        default=5,
        description="Write attempts before a pending write is abandoned until the next flush",
    )
    sync_backoff_base_seconds: float = Field(
        default=0.5,
        description="First retry delay; doubles on every attempt",
    )
    sync_backoff_cap_seconds: float = Field(
        default=30.0,
        description="Upper bound for a single retry delay",
    )
    sync_recent_sessions_limit: int = Field(
        default=50,
        description="Completed sessions remembered for duplicate detection",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def get_timer_defaults(self) -> dict[str, int]:
        """Get timer configuration as a dictionary."""
        return {
            "focus_minutes": self.focus_minutes,
            "short_break_minutes": self.short_break_minutes,
            "long_break_minutes": self.long_break_minutes,
            "sessions_before_long_break": self.sessions_before_long_break,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
