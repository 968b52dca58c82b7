from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime


class SupportTier(str, enum.Enum):
    BASIC = "basic"
    STANDARD = "standard"
    ENHANCED = "enhanced"
    PREMIUM = "premium"


@dataclass(frozen=True)
class BillingAccountSKU:
    """One warehouse row: a SKU recently billed on a billing account."""

    billing_account_id: str = ""
    sku_id: str = ""
    last_usage: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class CloudAsset:
    id: str = ""
    contract_id: str = ""
    billing_account_id: str = ""


@dataclass(frozen=True)
class AssetSupport:
    asset_id: str
    billing_account_id: str
    support_tier: SupportTier
    sku_id: str
