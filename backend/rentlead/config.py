from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    LEADS_DB_URL: str = "sqlite+aiosqlite:///./rentlead.db"
    LOG_LEVEL: str = "INFO"
    # How long a SQLite writer waits on another writer's lock before failing
    SQLITE_BUSY_TIMEOUT_S: float = 10.0

    # Guards job/admin endpoints. Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Priority tiers (days until move-in) ---
    HOT_MAX_DAYS: int = 7
    WARM_MAX_DAYS: int = 30

    # --- Response tracking ---
    # OwnerStats.fast_response_count counts first responses within this many minutes
    FAST_RESPONSE_MINUTE_THRESHOLD: int = 10
    # Trust score "fast" term uses this much coarser window
    PROMPT_RESPONSE_HOUR_THRESHOLD: int = 24
    RECENT_LEAD_WINDOW_DAYS: int = 30

    # CAS retries on the owner stats aggregate before giving up
    OWNER_STATS_MAX_RETRIES: int = 5

    # --- Notifier (push/SMS gateway webhook) ---
    NOTIFY_WEBHOOK_URL: str | None = None
    NOTIFY_WEBHOOK_SECRET: str | None = None
    NOTIFY_TIMEOUT_S: float = 10.0

    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 10
    OUTBOX_BACKOFF_BASE_SECONDS: float = 5.0
    OUTBOX_BACKOFF_CAP_SECONDS: float = 3600.0  # 1 hour cap

    # --- Scheduler tuning ---
    SCHED_DISPATCH_INTERVAL_MINUTES: int = 5
    # Off by default: re-evaluating priority changes the sort order owners see.
    SCHED_REPRIORITIZE_ENABLED: bool = False
    SCHED_REPRIORITIZE_HOUR: int = 3


settings = Settings()
