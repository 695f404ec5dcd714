from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend routing
    API_URL: str = ""  # Explicit override, e.g. "https://api.example.com/api"
    HOSTNAME: str = "localhost"
    ENVIRONMENT: str = "development"

    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Credential persistence
    TOKEN_STORE_PATH: str = ""  # Empty keeps the token in memory only

    # Retry policy for list fetches
    RETRY_MAX_RETRIES: int = 3
    RETRY_INITIAL_DELAY_SECONDS: float = 1.0

    # Stats store
    STATS_MIN_REFRESH_INTERVAL_SECONDS: float = 5.0
    STATS_RECONCILE_DELAY_SECONDS: float = 0.5

    # Observability
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str = ""

    model_config = {"env_file": ".env", "env_prefix": "VIBEFLO_", "extra": "ignore"}


settings = Settings()
