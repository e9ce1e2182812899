"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Data endpoint (pass-through to the hosted match/standings store)
    DATA_URL: str = "http://localhost:8788/api/data"
    SYNC_NOTIFY_URL: str = "http://localhost:8788/api/sync-notify"
    HTTP_TIMEOUT_SECONDS: float = 15.0
    SNAPSHOT_CACHE_TTL_SECONDS: float = 300.0  # 5 min, bypassed by forced polls

    # ═══════════════════════════════════════════════════════════════
    # Adaptive polling cadence
    # ═══════════════════════════════════════════════════════════════
    POLL_INTERVAL_LIVE_SECONDS: float = 60.0
    POLL_INTERVAL_ACTIVE_SECONDS: float = 120.0
    POLL_INTERVAL_IDLE_SECONDS: float = 300.0
    POLL_INTERVAL_COOLDOWN_SECONDS: float = 600.0  # after consecutive errors
    INACTIVITY_THRESHOLD_SECONDS: float = 120.0
    POLL_ERROR_THRESHOLD: int = 3

    # Events
    EVENT_HISTORY_SIZE: int = 10
    NOTIFY_FLAGS_PATH: str = "./data/notify_flags.json"
    NOTIFY_WEBHOOK_URL: str = ""  # Empty = log-only notifications

    # Ambient effects
    FAVORITE_TEAM_ID: int = 81  # FC Barcelona (football-data.org id)

    # Observability
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
