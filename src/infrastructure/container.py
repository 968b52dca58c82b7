"""Dependency injection container for the contract billing engine.

Wires together all infrastructure adapters and application services,
exposing factory functions suitable for FastAPI's ``Depends()`` system.
"""

from __future__ import annotations

import logging

from application.services.contract_service import ContractService
from application.services.invoice_aggregation_service import InvoiceAggregationService
from application.services.ports import Scheduler
from application.services.support_tier_service import SupportTierService
from application.services.tier_service import TierEntitlementResolver
from domain.services.contract_lifecycle import ContractLifecycleService
from domain.services.support_classifier import SupportTierClassifier
from infrastructure.adapters import (
    InMemoryAcceleratorRepository,
    InMemoryAnalyticsQueryEngine,
    InMemoryAssetRepository,
    InMemoryContractRepository,
    InMemoryCustomerRepository,
    InMemoryEntityRepository,
    InMemoryScheduler,
    InMemoryTierRepository,
    InMemoryWarehouseSKULookup,
    LoggingEventPublisher,
)
from infrastructure.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Central DI container that owns all service instances."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._settings = settings or get_settings()

        # Infrastructure adapters
        if self._settings.use_database:
            from infrastructure.database.config import DatabaseSettings
            from infrastructure.database.engine import create_schema, get_session_factory, get_sync_engine
            from infrastructure.database.repository import SqlContractRepository, SqlTierRepository

            db_settings = DatabaseSettings.from_app_settings(self._settings)
            create_schema(get_sync_engine(db_settings))
            session_factory = get_session_factory(db_settings)
            self.contract_repo = SqlContractRepository(session_factory)
            self.tier_repo = SqlTierRepository(session_factory)
        else:
            self.contract_repo = InMemoryContractRepository()
            self.tier_repo = InMemoryTierRepository()

        self.entity_repo = InMemoryEntityRepository()
        self.customer_repo = InMemoryCustomerRepository()
        self.accelerator_repo = InMemoryAcceleratorRepository()
        self.analytics = InMemoryAnalyticsQueryEngine()
        self.sku_lookup = InMemoryWarehouseSKULookup()
        self.asset_repo = InMemoryAssetRepository()
        self.event_publisher = LoggingEventPublisher()

        if scheduler is not None:
            self.scheduler = scheduler
        elif self._settings.use_task_queue:
            from infrastructure.task_queue import CeleryScheduler

            self.scheduler = CeleryScheduler()
        else:
            self.scheduler = InMemoryScheduler()

        # Domain services
        self.lifecycle_service = ContractLifecycleService()
        self.support_classifier = SupportTierClassifier()

        # Application services
        self.tier_resolver = TierEntitlementResolver(
            tier_repo=self.tier_repo,
            contract_repo=self.contract_repo,
        )

        self.contract_service = ContractService(
            contract_repo=self.contract_repo,
            tier_repo=self.tier_repo,
            customer_repo=self.customer_repo,
            accelerator_repo=self.accelerator_repo,
            tier_resolver=self.tier_resolver,
            lifecycle_service=self.lifecycle_service,
            scheduler=self.scheduler,
            event_publisher=self.event_publisher,
            recent_contracts_window=self._settings.recent_contracts_window,
        )

        self.invoice_aggregation_service = InvoiceAggregationService(
            contract_repo=self.contract_repo,
            entity_repo=self.entity_repo,
            analytics=self.analytics,
            tier_resolver=self.tier_resolver,
            lifecycle_service=self.lifecycle_service,
            scheduler=self.scheduler,
        )

        self.support_tier_service = SupportTierService(
            contract_repo=self.contract_repo,
            asset_repo=self.asset_repo,
            sku_lookup=self.sku_lookup,
            classifier=self.support_classifier,
            lookback_days=self._settings.support_sku_lookback_days,
            lifecycle_service=self.lifecycle_service,
        )

        logger.info("ServiceContainer initialized")


# Module-level singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Return the global container singleton."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install an explicitly built container (tests, workers)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global _container
    _container = None


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------


def get_contract_service() -> ContractService:
    return get_container().contract_service


def get_invoice_aggregation_service() -> InvoiceAggregationService:
    return get_container().invoice_aggregation_service


def get_scheduler() -> Scheduler:
    return get_container().scheduler
