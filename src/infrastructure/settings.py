"""Application settings loaded from environment variables via Pydantic."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """Central configuration for the contract billing engine."""

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    # Database
    use_database: bool = False
    database_url: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "contracts"
    db_pool_size: int = 10
    db_max_overflow: int = 5

    # Celery
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"
    contracts_queue: str = "contracts"
    use_task_queue: bool = True

    # Contracts
    recent_contracts_window: int = 10
    support_sku_lookback_days: int = 7

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "*"


def get_settings() -> AppSettings:
    """Return the application settings singleton."""
    return AppSettings()
