from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from domain.models.contract import CLOUD_RESOLD_TYPES

# Cost types and services left out of flat-rate spend.
EXCLUDED_COST_TYPES: tuple[str, ...] = ("Credit Adjustment", "Credit")
EXCLUDED_SERVICE_PATTERN = "Looker"


@dataclass(frozen=True)
class BillingEntity:
    """Billing legal unit of a customer; owns the invoicing currency."""

    id: str = ""
    customer_id: str = ""
    currency: str = "USD"


@dataclass(frozen=True)
class SpendQuery:
    """Request for cloud spend per provider over a date window."""

    customer_id: str
    start: datetime
    end: datetime
    currency: str
    accounts: tuple[str, ...] = ()
    cloud_providers: tuple[str, ...] = tuple(t.value for t in CLOUD_RESOLD_TYPES)
    excluded_cost_types: tuple[str, ...] = EXCLUDED_COST_TYPES
    excluded_service_pattern: str = EXCLUDED_SERVICE_PATTERN
    exclude_marketplace: bool = True


@dataclass(frozen=True)
class SpendRow:
    cloud_provider: str = ""
    invoice_id: Optional[str] = None
    year: str = ""
    month: str = ""
    cost: float = 0.0


@dataclass
class MonthlyBillingSummary:
    """Most recent aggregation of one billing month, flattened for export."""

    month: str
    base_fee: float
    final: bool
    last_update_date: str
    consumption: list = field(default_factory=list)
