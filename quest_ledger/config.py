import logging
from typing import Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    LOG_LEVEL: str = "INFO"

    # Local snapshot slot
    SNAPSHOT_DIR: Optional[str] = None  # unset = keep snapshots in memory
    SNAPSHOT_KEY: str = "pointsSystem"

    # Remote persistence
    DEFAULT_USER_ID: Optional[str] = "local-user"
    INTENT_MAX_ATTEMPTS: int = 3
    INTENT_RETRY_BACKOFF: float = 0.05  # seconds, multiplied by the attempt number

    # Ledger rules
    STREAK_BONUS_CAP: int = 10

    model_config = ConfigDict(
        env_prefix="QUEST_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration values.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("quest_ledger")
    strict_mode = strict if strict is not None else cfg.CONFIG_STRICT

    problems = []
    if cfg.INTENT_MAX_ATTEMPTS < 1:
        problems.append("INTENT_MAX_ATTEMPTS must be at least 1")
    if cfg.INTENT_RETRY_BACKOFF < 0:
        problems.append("INTENT_RETRY_BACKOFF must not be negative")
    if cfg.STREAK_BONUS_CAP < 1:
        problems.append("STREAK_BONUS_CAP must be at least 1")
    if not cfg.DEFAULT_USER_ID:
        problems.append("DEFAULT_USER_ID is empty; persistence intents will be skipped")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
