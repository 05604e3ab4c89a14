from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    database_url: str = "sqlite+aiosqlite:///./ledger.db"
    redis_url: str = "redis://localhost:6379/0"

    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    currency: str = "USD"

    # Idempotency settings
    idempotency_backend: Literal["memory", "redis"] = "memory"
    idempotency_ttl_seconds: float = 15 * 60
    idempotency_sweep_interval_seconds: float = 5 * 60
    idempotency_key_prefix: str = "idempotency:transactions:"


settings = Settings()
