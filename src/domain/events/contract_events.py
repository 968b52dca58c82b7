from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from domain.models.tier import PackageType


@dataclass
class ContractEvent:
    customer_id: str = ""
    contract_id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: str = ""


@dataclass
class ContractCreated(ContractEvent):
    event_type: str = "ContractCreated"


@dataclass
class ContractUpdated(ContractEvent):
    event_type: str = "ContractUpdated"
    updated_fields: list[str] = field(default_factory=list)


@dataclass
class ContractCancelled(ContractEvent):
    event_type: str = "ContractCancelled"


@dataclass
class ContractDeleted(ContractEvent):
    event_type: str = "ContractDeleted"


@dataclass
class CustomerTierUpdated(ContractEvent):
    event_type: str = "CustomerTierUpdated"
    package_type: PackageType = PackageType.NAVIGATOR
    tier_id: Optional[str] = None
