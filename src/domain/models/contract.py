from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional
from uuid import uuid4


class ContractType(str, enum.Enum):
    AWS = "amazon-web-services"
    GOOGLE_CLOUD = "google-cloud"
    AZURE = "microsoft-azure"
    NAVIGATOR = "navigator"
    SOLVE = "solve"
    SOLVE_ACCELERATOR = "solve-accelerator"
    GOOGLE_WORKSPACE = "google-workspace"
    LOOKER = "looker"


CLOUD_RESOLD_TYPES: tuple[ContractType, ...] = (
    ContractType.AWS,
    ContractType.GOOGLE_CLOUD,
    ContractType.AZURE,
)

# Contract types that grant a package tier.
TIERED_TYPES: tuple[ContractType, ...] = (
    ContractType.NAVIGATOR,
    ContractType.SOLVE,
)

# Contract types whose fixed fees are aggregated into monthly billing snapshots.
BILLABLE_TYPES: tuple[ContractType, ...] = (
    ContractType.NAVIGATOR,
    ContractType.SOLVE,
    ContractType.SOLVE_ACCELERATOR,
)


class PaymentTerm(str, enum.Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class ContractStatus(enum.Enum):
    FUTURE = "FUTURE"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


ESTIMATED_FUNDING_PROPERTY = "estimatedFunding"
TYPE_CONTEXT_PROPERTY = "typeContext"
GCP_SUPPORT_PROPERTY = "gcpSupport"


@dataclass(frozen=True)
class ContractFile:
    id: str = ""
    name: str = ""
    parent_id: str = ""
    url: str = ""

    def is_valid(self) -> bool:
        return bool(self.id and self.name and self.parent_id and self.url)


@dataclass(frozen=True)
class UpdatedBy:
    email: str = ""
    name: str = ""


@dataclass
class Consumption:
    """Usage-based charge of a flat-rate contract for one cloud provider."""

    cloud: str = ""
    currency: str = "USD"
    final: bool = False
    variable_fee: float = 0.0


@dataclass
class BillingSnapshot:
    base_fee: float = 0.0
    consumption: list[Consumption] = field(default_factory=list)


@dataclass
class ContractBillingMonth:
    """All aggregation runs recorded for one contract and billing month.

    Entries are keyed by the ``YYYY-MM-DD`` date of the run; a rerun on the
    same day overwrites that day's entry and leaves earlier days in place.
    """

    entries: dict[str, BillingSnapshot] = field(default_factory=dict)
    last_update_date: str = ""
    final: bool = False

    def record(self, day: str, snapshot: BillingSnapshot, final: bool) -> None:
        self.entries[day] = snapshot
        self.last_update_date = day
        # A settled month stays settled.
        self.final = self.final or final

    def latest(self) -> Optional[BillingSnapshot]:
        return self.entries.get(self.last_update_date)


@dataclass
class Contract:
    id: str = field(default_factory=lambda: uuid4().hex)
    customer_id: str = ""
    type: ContractType = ContractType.NAVIGATOR
    entity_id: Optional[str] = None
    tier_id: Optional[str] = None
    account_manager_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_commitment: bool = False
    commitment_months: float = 0.0
    payment_term: Optional[PaymentTerm] = None
    charge_per_term: float = 0.0
    monthly_flat_rate: float = 0.0
    discount: float = 0.0
    point_of_sale: str = ""
    is_advantage: bool = False
    active: bool = False
    notes: str = ""
    purchase_order: str = ""
    contract_file: Optional[ContractFile] = None
    properties: dict[str, Any] = field(default_factory=dict)
    updated_by: Optional[UpdatedBy] = None
    time_created: datetime = field(default_factory=lambda: datetime.now(UTC))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    billing_data: dict[str, ContractBillingMonth] = field(default_factory=dict)

    @property
    def estimated_funding(self) -> Optional[float]:
        value = self.properties.get(ESTIMATED_FUNDING_PROPERTY)
        return float(value) if value is not None else None
