import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Streaks
    STREAK_POLICY: str = "misses"  # misses | completion
    STREAK_MAX_MISSES_FOR_POSITIVE: int = 2
    STREAK_MIN_COMPLETION_PCT: float = 0.75

    # Presence
    PRESENCE_DEDUPE: str = "none"  # none | user_id
    PRESENCE_GLOBAL_ROOM: str = "__global__"
    PRESENCE_ROOM_LABEL: str = "__any__"
    PRESENCE_REFCOUNT_TEARDOWN: bool = False
    PRESENCE_SESSION_KEY: str = "presence_session_id"

    # HTTP
    CORS_ORIGINS: str = "http://localhost:5173"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


STREAK_POLICIES = ("misses", "completion")
DEDUPE_POLICIES = ("none", "user_id")


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate streak and presence configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Returns False when problems were found and tolerated.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("founders_zoo")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if cfg.STREAK_POLICY not in STREAK_POLICIES:
        problems.append(f"STREAK_POLICY must be one of {', '.join(STREAK_POLICIES)}")
    if cfg.PRESENCE_DEDUPE not in DEDUPE_POLICIES:
        problems.append(f"PRESENCE_DEDUPE must be one of {', '.join(DEDUPE_POLICIES)}")
    if cfg.STREAK_MAX_MISSES_FOR_POSITIVE < 0:
        problems.append("STREAK_MAX_MISSES_FOR_POSITIVE must be >= 0")
    if not 0.0 <= cfg.STREAK_MIN_COMPLETION_PCT <= 1.0:
        problems.append("STREAK_MIN_COMPLETION_PCT must be within [0, 1]")
    if not cfg.PRESENCE_GLOBAL_ROOM:
        problems.append("PRESENCE_GLOBAL_ROOM must not be empty")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
