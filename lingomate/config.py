from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Keeps datetimes naive so they stay comparable with values read back from
    SQLite, which doesn't store tz info.
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "LingoMate"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'lingomate.db'}"
    debug: bool = False
    log_level: str = "INFO"

    # SM-2 scheduling
    default_ease_factor: float = 2.5
    min_ease_factor: float = 1.3
    lapse_ease_penalty: float = 0.2

    # Identity and plan gating
    default_user_id: str = "00000000-0000-0000-0000-000000000000"
    premium_user_ids: list[str] = []
    free_daily_review_limit: int = 200

    storage_read_retries: int = 3

    model_config = {"env_prefix": "LINGOMATE_", "env_file": ".env"}


settings = Settings()
