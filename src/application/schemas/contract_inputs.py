"""Input value objects accepted by :class:`ContractService`.

Dates arrive as RFC 3339 strings and are parsed by the service so that a
malformed value surfaces as a :class:`ContractValidationError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from typing import Optional

from domain.exceptions import ContractValidationError
from domain.models.contract import ContractFile


_RFC3339 = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})")


def parse_rfc3339(value: str, field_name: str) -> datetime:
    """Parse an RFC 3339 timestamp, normalised to UTC.

    Date-only values and timestamps without an offset are rejected.
    """
    if not isinstance(value, str) or not _RFC3339.fullmatch(value.strip()):
        raise ContractValidationError(f"{field_name} is not a valid RFC 3339 timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ContractValidationError(f"{field_name} is not a valid RFC 3339 timestamp: {value!r}") from exc
    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class ContractInput:
    customer_id: str
    type: str
    start_date: str
    end_date: str = ""
    entity_id: str = ""
    tier_id: str = ""
    account_manager_id: str = ""
    is_commitment: bool = False
    commitment_months: float = 0.0
    payment_term: str = ""
    charge_per_term: float = 0.0
    monthly_flat_rate: float = 0.0
    discount: float = 0.0
    point_of_sale: str = ""
    is_advantage: bool = False
    notes: str = ""
    purchase_order: str = ""
    contract_file: Optional[ContractFile] = None
    type_context: str = ""
    estimated_funding: Optional[float] = None


@dataclass(frozen=True)
class ContractUpdate:
    """Partial update; ``None`` (or an empty string) leaves a field untouched."""

    type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    entity_id: Optional[str] = None
    tier_id: Optional[str] = None
    account_manager_id: Optional[str] = None
    is_commitment: Optional[bool] = None
    commitment_months: Optional[float] = None
    payment_term: Optional[str] = None
    charge_per_term: Optional[float] = None
    monthly_flat_rate: Optional[float] = None
    discount: Optional[float] = None
    point_of_sale: Optional[str] = None
    is_advantage: Optional[bool] = None
    notes: Optional[str] = None
    purchase_order: Optional[str] = None
    contract_file: Optional[ContractFile] = None
    type_context: Optional[str] = None
    estimated_funding: Optional[float] = None

    def supplied_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) not in (None, "")]
