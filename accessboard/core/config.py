import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from accessboard.models.analytics import Season


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Analytics
    ANALYTICS_TIMEZONE: str = "UTC"
    PRIMARY_LOCK_ID: str = "19228015"
    EARLY_HOUR: int = 8
    LATE_HOUR: int = 22
    LEADERBOARD_LIMIT: int = 5
    DEFAULT_PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 500
    SEASONS: List[Season] = []

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_PER_MIN: int = 60

    # Logging
    SLOW_QUERY_MS: int = 300

    # Observability / Tracing
    OTEL_ENABLED: bool = False
    OTEL_EXPORTER: str = "console"  # console | memory

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


@dataclass(frozen=True)
class AnalyticsConfig:
    """Immutable knobs handed to the analytics core for one request."""

    timezone: str = "UTC"
    primary_lock_id: str = "19228015"
    early_hour: int = 8
    late_hour: int = 22
    leaderboard_limit: int = 5
    seasons: Tuple[Season, ...] = ()

    @classmethod
    def from_settings(cls, settings_obj: Optional[Settings] = None) -> "AnalyticsConfig":
        cfg = settings_obj or settings
        return cls(
            timezone=cfg.ANALYTICS_TIMEZONE,
            primary_lock_id=cfg.PRIMARY_LOCK_ID,
            early_hour=cfg.EARLY_HOUR,
            late_hour=cfg.LATE_HOUR,
            leaderboard_limit=cfg.LEADERBOARD_LIMIT,
            seasons=tuple(cfg.SEASONS),
        )


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("accessboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = ["DATABASE_URL"]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if not 0 <= cfg.EARLY_HOUR <= 24 or not 0 <= cfg.LATE_HOUR <= 24:
        message = "EARLY_HOUR and LATE_HOUR must be between 0 and 24"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
