"""Adapter implementations bridging infrastructure to application-layer ports.

In-memory adapters back every port for local runs and tests; the SQL
contract and tier stores live in ``infrastructure.database.repository``
and the Celery scheduler in ``infrastructure.task_queue``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, Optional

from application.services.ports import UnitOfWork
from domain.exceptions import ContractNotFoundError
from domain.models.billing import BillingEntity, SpendQuery, SpendRow
from domain.models.contract import (
    BILLABLE_TYPES,
    GCP_SUPPORT_PROPERTY,
    BillingSnapshot,
    Contract,
    ContractBillingMonth,
    ContractType,
)
from domain.models.support import BillingAccountSKU, CloudAsset
from domain.models.tier import (
    HERITAGE_TIER_NAME,
    ZERO_ENTITLEMENTS_TIER_NAME,
    CustomerTier,
    PackageType,
    Tier,
)

logger = logging.getLogger(__name__)

PROPERTIES_PREFIX = "properties."


def apply_contract_changes(contract: Contract, changes: Mapping[str, Any]) -> None:
    """Apply ``update_contract`` changes to a contract in place."""
    for key, value in changes.items():
        if key.startswith(PROPERTIES_PREFIX):
            contract.properties[key[len(PROPERTIES_PREFIX):]] = value
        elif hasattr(contract, key) and key not in ("id", "billing_data"):
            setattr(contract, key, value)
        else:
            raise ValueError(f"Unknown contract field: {key}")


# ---------------------------------------------------------------------------
# In-memory repository adapters (swap for the SQL stores in production)
# ---------------------------------------------------------------------------

class InMemoryContractRepository:
    """Contract store keeping insertion order; reads return copies."""

    def __init__(self, contracts: Iterable[Contract] = ()) -> None:
        self._store: dict[str, Contract] = {}
        for contract in contracts:
            self._store[contract.id] = copy.deepcopy(contract)

    def _require(self, contract_id: str) -> Contract:
        contract = self._store.get(contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id=contract_id)
        return contract

    def get_contract_by_id(self, contract_id: str) -> Optional[Contract]:
        contract = self._store.get(contract_id)
        return copy.deepcopy(contract) if contract else None

    def list_customer_recent_contracts(
        self,
        customer_id: str,
        types: Sequence[ContractType],
        limit: int,
    ) -> list[Contract]:
        recent: list[Contract] = []
        for contract_type in types:
            matching = [
                c
                for c in self._store.values()
                if c.customer_id == customer_id and c.type is contract_type
            ]
            matching.sort(key=lambda c: c.time_created, reverse=True)
            recent.extend(matching[:limit])
        return copy.deepcopy(recent)

    def get_contracts_by_type(self, customer_id: str, types: Sequence[ContractType]) -> list[Contract]:
        return copy.deepcopy(
            [c for c in self._store.values() if c.customer_id == customer_id and c.type in types]
        )

    def set_active_flag(self, contract_id: str, active: bool) -> None:
        self._require(contract_id).active = active

    def create_contract(self, contract: Contract) -> Contract:
        self._store[contract.id] = copy.deepcopy(contract)
        return copy.deepcopy(contract)

    def cancel_contract(self, contract_id: str, now: datetime) -> None:
        contract = self._require(contract_id)
        contract.end_date = now
        contract.timestamp = now

    def update_contract(self, contract_id: str, changes: Mapping[str, Any]) -> Contract:
        contract = self._require(contract_id)
        apply_contract_changes(contract, changes)
        return copy.deepcopy(contract)

    def write_billing_snapshot(
        self,
        contract_id: str,
        month: str,
        day: str,
        snapshot: BillingSnapshot,
        final: bool,
    ) -> None:
        contract = self._require(contract_id)
        month_data = contract.billing_data.setdefault(month, ContractBillingMonth())
        month_data.record(day, copy.deepcopy(snapshot), final)

    def get_active_contracts(self, contract_type: ContractType) -> list[Contract]:
        return copy.deepcopy(
            [c for c in self._store.values() if c.active and c.type is contract_type]
        )

    def delete_contract(self, contract_id: str) -> None:
        self._require(contract_id)
        del self._store[contract_id]

    def list_billable_contracts(self) -> list[Contract]:
        return copy.deepcopy(
            [
                c
                for c in self._store.values()
                if c.type in BILLABLE_TYPES and c.payment_term is not None
            ]
        )

    def list_customers_with_contracts(self, types: Sequence[ContractType]) -> list[str]:
        customers: dict[str, None] = {}
        for contract in self._store.values():
            if contract.type in types:
                customers.setdefault(contract.customer_id, None)
        return list(customers)

    def get_billing_data(self, contract_id: str) -> dict[str, ContractBillingMonth]:
        return copy.deepcopy(self._require(contract_id).billing_data)

    def update_contract_support(self, support: Mapping[str, Mapping[str, str]]) -> None:
        for contract_id, assets in support.items():
            self._require(contract_id).properties[GCP_SUPPORT_PROPERTY] = dict(assets)


class InMemoryTierRepository:
    """Tier catalogue plus customer entitlements keyed by (customer, package type)."""

    def __init__(self, tiers: Iterable[Tier] = ()) -> None:
        self._tiers: dict[str, Tier] = {t.id: t for t in tiers}
        self._customer_tiers: dict[tuple[str, PackageType], CustomerTier] = {}
        self.writes: list[tuple[str, PackageType, CustomerTier]] = []

    def add_tier(self, tier: Tier) -> Tier:
        self._tiers[tier.id] = tier
        return tier

    def get_tier(self, tier_id: str) -> Optional[Tier]:
        return self._tiers.get(tier_id)

    def get_tier_by_name(self, name: str, package_type: PackageType) -> Optional[Tier]:
        for tier in self._tiers.values():
            if tier.name == name and tier.package_type is package_type:
                return tier
        return None

    def get_heritage_tier(self, package_type: PackageType) -> Optional[Tier]:
        return self.get_tier_by_name(HERITAGE_TIER_NAME, package_type)

    def get_zero_entitlements_tier(self, package_type: PackageType) -> Optional[Tier]:
        return self.get_tier_by_name(ZERO_ENTITLEMENTS_TIER_NAME, package_type)

    def get_customer_tier(self, customer_id: str, package_type: PackageType) -> Optional[CustomerTier]:
        return self._customer_tiers.get((customer_id, package_type))

    def update_customer_tier(
        self,
        customer_id: str,
        package_type: PackageType,
        customer_tier: CustomerTier,
    ) -> None:
        self._customer_tiers[(customer_id, package_type)] = customer_tier
        self.writes.append((customer_id, package_type, customer_tier))


class InMemoryEntityRepository:
    def __init__(self, entities: Iterable[BillingEntity] = ()) -> None:
        self._store: dict[str, BillingEntity] = {e.id: e for e in entities}

    def add(self, entity: BillingEntity) -> BillingEntity:
        self._store[entity.id] = entity
        return entity

    def get_entity(self, entity_id: str) -> Optional[BillingEntity]:
        return self._store.get(entity_id)


class InMemoryCustomerRepository:
    def __init__(self) -> None:
        self.presentation_mode_disabled: list[str] = []

    def disable_presentation_mode(self, customer_id: str) -> None:
        self.presentation_mode_disabled.append(customer_id)


class InMemoryAcceleratorRepository:
    def __init__(self, accelerator_ids: Iterable[str] = ()) -> None:
        self._ids: set[str] = set(accelerator_ids)

    def add(self, accelerator_id: str) -> None:
        self._ids.add(accelerator_id)

    def exists(self, accelerator_id: str) -> bool:
        return accelerator_id in self._ids


class InMemoryAnalyticsQueryEngine:
    """Serves canned spend rows per customer and records every query."""

    def __init__(
        self,
        rows: Optional[Mapping[str, list[SpendRow]]] = None,
        accounts: Optional[Mapping[str, list[str]]] = None,
    ) -> None:
        self._rows: dict[str, list[SpendRow]] = dict(rows or {})
        self._accounts: dict[str, list[str]] = dict(accounts or {})
        self.queries: list[SpendQuery] = []

    def get_accounts(self, customer_id: str) -> list[str]:
        return list(self._accounts.get(customer_id, []))

    def run_query(self, query: SpendQuery) -> list[SpendRow]:
        self.queries.append(query)
        return [
            row
            for row in self._rows.get(query.customer_id, [])
            if row.cloud_provider in query.cloud_providers
        ]


class InMemoryWarehouseSKULookup:
    def __init__(self, rows: Iterable[BillingAccountSKU] = ()) -> None:
        self._rows: list[BillingAccountSKU] = list(rows)

    def get_billing_accounts_sku(self, start: datetime, end: datetime) -> list[BillingAccountSKU]:
        return [row for row in self._rows if start <= row.last_usage <= end]


class InMemoryAssetRepository:
    def __init__(self, assets: Iterable[CloudAsset] = ()) -> None:
        self._assets: list[CloudAsset] = list(assets)

    def list_contract_assets(self, contract_id: str) -> list[CloudAsset]:
        return [a for a in self._assets if a.contract_id == contract_id]


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

class InMemoryScheduler:
    """Scheduler that records units of work instead of queueing them."""

    def __init__(self) -> None:
        self.units: list[UnitOfWork] = []

    def enqueue(self, unit: UnitOfWork) -> None:
        logger.info("Enqueued %s %s", unit.task, unit.kwargs)
        self.units.append(unit)


# ---------------------------------------------------------------------------
# Event publisher
# ---------------------------------------------------------------------------

class LoggingEventPublisher:
    """Event publisher that logs events."""

    def publish(self, event: Any) -> None:
        logger.info("Domain event: %s", event)
