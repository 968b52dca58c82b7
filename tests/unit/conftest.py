"""Shared fixtures for unit tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from application.services.contract_service import ContractService
from application.services.invoice_aggregation_service import InvoiceAggregationService
from application.services.tier_service import TierEntitlementResolver
from domain.models.contract import Contract, ContractType, PaymentTerm
from domain.models.tier import PackageType, Tier
from domain.services.contract_lifecycle import ContractLifecycleService
from infrastructure.adapters import (
    InMemoryAcceleratorRepository,
    InMemoryAnalyticsQueryEngine,
    InMemoryContractRepository,
    InMemoryCustomerRepository,
    InMemoryEntityRepository,
    InMemoryScheduler,
    InMemoryTierRepository,
    LoggingEventPublisher,
)

CUSTOMER_ID = "customer-1"
NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

TIERS = (
    Tier(id="nav-heritage", name="heritage", package_type=PackageType.NAVIGATOR),
    Tier(id="nav-zero", name="zero-entitlements", package_type=PackageType.NAVIGATOR),
    Tier(id="nav-standard", name="standard", package_type=PackageType.NAVIGATOR),
    Tier(id="nav-trial", name="trial", package_type=PackageType.NAVIGATOR, trial_tier=True),
    Tier(id="solve-advantage", name="advantage-only", package_type=PackageType.SOLVE),
    Tier(id="solve-standard", name="standard", package_type=PackageType.SOLVE),
    Tier(id="solve-premium", name="premium", package_type=PackageType.SOLVE),
)


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def _make_contract(
    contract_type: ContractType = ContractType.NAVIGATOR,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    created: Optional[datetime] = None,
    customer_id: str = CUSTOMER_ID,
    tier_id: Optional[str] = "nav-standard",
    payment_term: Optional[PaymentTerm] = PaymentTerm.MONTHLY,
    charge_per_term: float = 0.0,
    **kwargs,
) -> Contract:
    start = start or utc(2024, 1, 1)
    return Contract(
        customer_id=customer_id,
        type=contract_type,
        start_date=start,
        end_date=end,
        tier_id=tier_id,
        payment_term=payment_term,
        charge_per_term=charge_per_term,
        time_created=created or start,
        timestamp=created or start,
        **kwargs,
    )


@pytest.fixture
def make_contract():
    """Factory for contracts owned by CUSTOMER_ID; time_created defaults to the start date."""
    return _make_contract


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def customer_id() -> str:
    return CUSTOMER_ID


@pytest.fixture
def contract_repo() -> InMemoryContractRepository:
    return InMemoryContractRepository()


@pytest.fixture
def tier_repo() -> InMemoryTierRepository:
    return InMemoryTierRepository(TIERS)


@pytest.fixture
def customer_repo() -> InMemoryCustomerRepository:
    return InMemoryCustomerRepository()


@pytest.fixture
def accelerator_repo() -> InMemoryAcceleratorRepository:
    return InMemoryAcceleratorRepository(["accelerator-1"])


@pytest.fixture
def entity_repo() -> InMemoryEntityRepository:
    return InMemoryEntityRepository()


@pytest.fixture
def analytics() -> InMemoryAnalyticsQueryEngine:
    return InMemoryAnalyticsQueryEngine()


@pytest.fixture
def scheduler() -> InMemoryScheduler:
    return InMemoryScheduler()


@pytest.fixture
def event_publisher() -> LoggingEventPublisher:
    return LoggingEventPublisher()


@pytest.fixture
def lifecycle_service() -> ContractLifecycleService:
    return ContractLifecycleService()


@pytest.fixture
def tier_resolver(tier_repo, contract_repo) -> TierEntitlementResolver:
    return TierEntitlementResolver(tier_repo=tier_repo, contract_repo=contract_repo)


@pytest.fixture
def contract_service(
    contract_repo,
    tier_repo,
    customer_repo,
    accelerator_repo,
    tier_resolver,
    lifecycle_service,
    scheduler,
    event_publisher,
) -> ContractService:
    return ContractService(
        contract_repo=contract_repo,
        tier_repo=tier_repo,
        customer_repo=customer_repo,
        accelerator_repo=accelerator_repo,
        tier_resolver=tier_resolver,
        lifecycle_service=lifecycle_service,
        scheduler=scheduler,
        event_publisher=event_publisher,
    )


@pytest.fixture
def aggregation_service(
    contract_repo,
    entity_repo,
    analytics,
    tier_resolver,
    lifecycle_service,
    scheduler,
) -> InvoiceAggregationService:
    return InvoiceAggregationService(
        contract_repo=contract_repo,
        entity_repo=entity_repo,
        analytics=analytics,
        tier_resolver=tier_resolver,
        lifecycle_service=lifecycle_service,
        scheduler=scheduler,
    )

