from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from domain.models.tier import PackageType, Tier  # noqa: E402
from infrastructure.adapters import InMemoryScheduler  # noqa: E402
from infrastructure.container import ServiceContainer, reset_container, set_container  # noqa: E402
from infrastructure.settings import AppSettings  # noqa: E402


@pytest.fixture
def container():
    container = ServiceContainer(
        settings=AppSettings(use_task_queue=False, use_database=False),
        scheduler=InMemoryScheduler(),
    )
    container.tier_repo.add_tier(Tier(id="nav-standard", name="standard", package_type=PackageType.NAVIGATOR))
    container.tier_repo.add_tier(Tier(id="nav-heritage", name="heritage", package_type=PackageType.NAVIGATOR))
    set_container(container)
    yield container
    reset_container()


@pytest.fixture
def client(container):
    from presentation.main import app
    from starlette.testclient import TestClient

    with TestClient(app) as client:
        yield client


@pytest.fixture
def contract_payload():
    return {
        "customerId": "customer-1",
        "type": "navigator",
        "startDate": "2024-01-01T00:00:00Z",
        "endDate": "2024-12-31T00:00:00Z",
        "tier": "nav-standard",
        "entityId": "entity-1",
        "paymentTerm": "monthly",
        "chargePerTerm": 3000,
    }
