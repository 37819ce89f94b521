from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/targettracker"
    default_tz: str = "UTC"
    tracker_api_key: str | None = None

    # Root directory of the tracked corpus (document paths are relative to it)
    corpus_root: str = "."
    log_level: str = "INFO"

    # Debounced persistence: seconds of quiet before a scheduled save runs
    save_debounce_seconds: float = 5.0

    # Defaults for a fresh state. Once state exists, the persisted values win.
    daily_reset_hour: int = 0  # 0-23
    weekly_reset_day: int = 0  # 0=Sunday .. 6=Saturday
    max_idle_ms: int = 30_000  # Idle cap per accrual
    use_comments_in_word_count: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
