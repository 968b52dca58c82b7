"""Integration test fixtures: SQL stores on SQLite and, when Docker is available, PostgreSQL."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))


@pytest.fixture(scope="session")
def postgres_url():
    """Provide a PostgreSQL URL via testcontainers.

    Skips when testcontainers or Docker is unavailable (CI without Docker).
    """
    try:
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer("postgres:16-alpine") as pg:
            yield pg.get_connection_url()
    except Exception:
        pytest.skip("PostgreSQL testcontainer unavailable")


@pytest.fixture(params=["sqlite", "postgresql"])
def sync_engine(request):
    """Synchronous engine with the schema created; dropped again afterwards."""
    from infrastructure.database.config import DatabaseSettings
    from infrastructure.database.engine import build_sync_engine, create_schema
    from infrastructure.database.models import Base

    if request.param == "sqlite":
        url = "sqlite+pysqlite:///:memory:"
    else:
        url = request.getfixturevalue("postgres_url")

    engine = build_sync_engine(DatabaseSettings(URL=url))
    create_schema(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine):
    from sqlalchemy.orm import sessionmaker

    return sessionmaker(bind=sync_engine, expire_on_commit=False)


@pytest.fixture
def contract_store(session_factory):
    from infrastructure.database.repository import SqlContractRepository

    return SqlContractRepository(session_factory)


@pytest.fixture
def tier_store(session_factory):
    from infrastructure.database.repository import SqlTierRepository

    return SqlTierRepository(session_factory)
