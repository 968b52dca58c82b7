"""Ports shared by the contract, tier, billing and support services.

Adapters live in ``infrastructure``; services only ever see these
protocols.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol

from domain.models.billing import BillingEntity, SpendQuery, SpendRow
from domain.models.contract import BillingSnapshot, Contract, ContractBillingMonth, ContractType
from domain.models.support import BillingAccountSKU, CloudAsset
from domain.models.tier import CustomerTier, PackageType, Tier

# ---------------------------------------------------------------------------
# Units of work handed to the task queue
# ---------------------------------------------------------------------------

REFRESH_CUSTOMER_TIERS_TASK = "application.tasks.contract_tasks.refresh_customer_tiers"
AGGREGATE_CONTRACT_TASK = "application.tasks.contract_tasks.aggregate_contract_invoice_data"

CONTRACTS_QUEUE = "contracts"


@dataclass(frozen=True)
class UnitOfWork:
    """One independently retryable piece of work."""

    task: str
    kwargs: dict[str, Any] = field(default_factory=dict)
    queue: str = CONTRACTS_QUEUE


def refresh_customer_unit(customer_id: str) -> UnitOfWork:
    return UnitOfWork(task=REFRESH_CUSTOMER_TIERS_TASK, kwargs={"customer_id": customer_id})


def aggregate_contract_unit(invoice_month: str, contract_id: str) -> UnitOfWork:
    return UnitOfWork(
        task=AGGREGATE_CONTRACT_TASK,
        kwargs={"invoice_month": invoice_month, "contract_id": contract_id},
    )


# ---------------------------------------------------------------------------
# Repository / infrastructure port interfaces
# ---------------------------------------------------------------------------


class ContractRepository(Protocol):
    """Port: persistence for contracts and their monthly billing data.

    ``update_contract`` takes attribute names of :class:`Contract` as keys;
    ``properties.<name>`` keys update a single entry of ``properties``.
    ``list_customer_recent_contracts`` returns up to *limit* of the newest
    contracts of each requested type.
    """

    def get_contract_by_id(self, contract_id: str) -> Optional[Contract]: ...

    def list_customer_recent_contracts(
        self,
        customer_id: str,
        types: Sequence[ContractType],
        limit: int,
    ) -> list[Contract]: ...

    def get_contracts_by_type(self, customer_id: str, types: Sequence[ContractType]) -> list[Contract]: ...

    def set_active_flag(self, contract_id: str, active: bool) -> None: ...

    def create_contract(self, contract: Contract) -> Contract: ...

    def cancel_contract(self, contract_id: str, now: datetime) -> None: ...

    def update_contract(self, contract_id: str, changes: Mapping[str, Any]) -> Contract: ...

    def write_billing_snapshot(
        self,
        contract_id: str,
        month: str,
        day: str,
        snapshot: BillingSnapshot,
        final: bool,
    ) -> None: ...

    def get_active_contracts(self, contract_type: ContractType) -> list[Contract]: ...

    def delete_contract(self, contract_id: str) -> None: ...

    def list_billable_contracts(self) -> list[Contract]: ...

    def list_customers_with_contracts(self, types: Sequence[ContractType]) -> list[str]: ...

    def get_billing_data(self, contract_id: str) -> dict[str, ContractBillingMonth]: ...

    def update_contract_support(self, support: Mapping[str, Mapping[str, str]]) -> None: ...


class TierRepository(Protocol):
    """Port: tier catalogue and per-customer entitlements."""

    def get_tier(self, tier_id: str) -> Optional[Tier]: ...

    def get_tier_by_name(self, name: str, package_type: PackageType) -> Optional[Tier]: ...

    def get_heritage_tier(self, package_type: PackageType) -> Optional[Tier]: ...

    def get_zero_entitlements_tier(self, package_type: PackageType) -> Optional[Tier]: ...

    def get_customer_tier(self, customer_id: str, package_type: PackageType) -> Optional[CustomerTier]: ...

    def update_customer_tier(
        self,
        customer_id: str,
        package_type: PackageType,
        customer_tier: CustomerTier,
    ) -> None: ...


class EntityRepository(Protocol):
    def get_entity(self, entity_id: str) -> Optional[BillingEntity]: ...


class CustomerRepository(Protocol):
    def disable_presentation_mode(self, customer_id: str) -> None: ...


class AcceleratorRepository(Protocol):
    def exists(self, accelerator_id: str) -> bool: ...


class AnalyticsQueryEngine(Protocol):
    """Port: cloud spend analytics."""

    def get_accounts(self, customer_id: str) -> list[str]: ...

    def run_query(self, query: SpendQuery) -> list[SpendRow]: ...


class WarehouseSKULookup(Protocol):
    def get_billing_accounts_sku(self, start: datetime, end: datetime) -> list[BillingAccountSKU]: ...


class AssetRepository(Protocol):
    def list_contract_assets(self, contract_id: str) -> list[CloudAsset]: ...


class Scheduler(Protocol):
    """Port: hands a unit of work to the task queue."""

    def enqueue(self, unit: UnitOfWork) -> None: ...


class EventPublisher(Protocol):
    """Port: domain-event publishing."""

    def publish(self, event: Any) -> None: ...
