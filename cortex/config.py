from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    CORTEX_DB_URL: str = "sqlite+aiosqlite:///./cortex.db"
    LOG_LEVEL: str = "INFO"

    # --- Minimal API key guard for debug routes ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Report windows ---
    DEFAULT_WINDOW_DAYS: int = 30
    MAX_WINDOW_DAYS: int = 365
    RECENT_LEADS_LIMIT: int = 10
    TOP_CAMPAIGNS_LIMIT: int = 5
    MAX_PAGE_SIZE: int = 100

    # --- Predictive ---
    HIGH_SCORE_THRESHOLD: int = 70
    STALE_LEAD_DAYS: int = 7
    FORECAST_HISTORY_DAYS: int = 30
    # Off = deterministic projection (mean only). On = +/-15% random wobble per day.
    FORECAST_JITTER: bool = False


settings = Settings()
