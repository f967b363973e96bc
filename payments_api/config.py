from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "postgresql+psycopg://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"

    MONIME_WEBHOOK_SECRET: str | None = None
    # dev only: accept unsigned events while no secret is configured
    MONIME_WEBHOOK_ALLOW_UNSIGNED: bool = False

    MONIME_ACCESS_TOKEN: str | None = None
    MONIME_SPACE_ID: str | None = None
    MONIME_API_BASE: str = "https://api.monime.io"
    MONIME_API_VERSION: str = "caph.2025-08-23"
    monime_timeout_seconds: float = 10.0

    default_currency: str = "SLE"

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_webhooks_per_min: int = 120

settings = Settings()
