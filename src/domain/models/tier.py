from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class PackageType(str, enum.Enum):
    NAVIGATOR = "navigator"
    SOLVE = "solve"


ADVANTAGE_ONLY_TIER_NAME = "advantage-only"
HERITAGE_TIER_NAME = "heritage"
ZERO_ENTITLEMENTS_TIER_NAME = "zero-entitlements"

# Solve tiers that already include accelerators at no extra charge.
ACCELERATOR_INCLUSIVE_TIER_NAMES: frozenset[str] = frozenset({"premium", "enterprise"})


@dataclass(frozen=True)
class Tier:
    id: str = ""
    name: str = ""
    package_type: PackageType = PackageType.NAVIGATOR
    trial_tier: bool = False


@dataclass(frozen=True)
class CustomerTier:
    """Entitlement currently assigned to a customer for one package type."""

    tier_id: Optional[str] = None
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
