"""
Database configuration for the contract billing engine.

Centralises connection settings and pool tuning and builds the
``postgresql+psycopg2://`` URL used by the synchronous engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from infrastructure.settings import AppSettings, get_settings


@dataclass(frozen=True)
class DatabaseSettings:
    """Immutable database connection and pool configuration.

    ``URL`` overrides the individual PostgreSQL settings when set, which
    is how tests point the stores at SQLite.
    """

    URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "contracts"

    # Connection-pool tuning
    POOL_SIZE: int = 10
    MAX_OVERFLOW: int = 5
    POOL_TIMEOUT: int = 30

    SSL_MODE: Optional[str] = None

    @classmethod
    def from_app_settings(cls, settings: AppSettings) -> DatabaseSettings:
        return cls(
            URL=settings.database_url,
            POSTGRES_HOST=settings.postgres_host,
            POSTGRES_PORT=settings.postgres_port,
            POSTGRES_USER=settings.postgres_user,
            POSTGRES_PASSWORD=settings.postgres_password,
            POSTGRES_DB=settings.postgres_db,
            POOL_SIZE=settings.db_pool_size,
            MAX_OVERFLOW=settings.db_max_overflow,
        )


def get_database_url(settings: Optional[DatabaseSettings] = None) -> str:
    """Build the SQLAlchemy database URL.

    Parameters
    ----------
    settings:
        An explicit :class:`DatabaseSettings` instance.  When *None* the
        cached defaults are used.
    """
    s = settings or get_default_settings()
    if s.URL:
        return s.URL
    url = (
        f"postgresql+psycopg2://{s.POSTGRES_USER}:{s.POSTGRES_PASSWORD}"
        f"@{s.POSTGRES_HOST}:{s.POSTGRES_PORT}/{s.POSTGRES_DB}"
    )
    if s.SSL_MODE:
        url += f"?sslmode={s.SSL_MODE}"
    return url


@lru_cache(maxsize=1)
def get_default_settings() -> DatabaseSettings:
    """Return cached :class:`DatabaseSettings` built from ``APP_*`` variables."""
    return DatabaseSettings.from_app_settings(get_settings())
