from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Optional

from domain.models.contract import Contract, ContractType
from domain.models.tier import ACCELERATOR_INCLUSIVE_TIER_NAMES, CustomerTier, PackageType, Tier

# Customers whose first cloud-resold contract predates this keep the heritage tier.
HERITAGE_CUTOFF = datetime(2024, 3, 31, tzinfo=UTC)


class FallbackTier(enum.Enum):
    ADVANTAGE_ONLY = "advantage-only"
    HERITAGE = "heritage"
    ZERO_ENTITLEMENTS = "zero-entitlements"


def sort_newest_first(contracts: Iterable[Contract]) -> list[Contract]:
    """Newest ``time_created`` first; equal timestamps keep their input order."""
    return sorted(contracts, key=lambda c: c.time_created, reverse=True)


def latest_contract_of_type(
    contracts: Sequence[Contract], contract_type: ContractType
) -> Optional[Contract]:
    """First match in an already newest-first sequence."""
    for contract in contracts:
        if contract.type is contract_type:
            return contract
    return None


def is_heritage_customer(cloud_contracts: Iterable[Contract]) -> bool:
    starts = [c.start_date for c in cloud_contracts if c.start_date is not None]
    if not starts:
        return False
    return min(starts) < HERITAGE_CUTOFF


def fallback_tier_for(
    package_type: PackageType, cloud_contracts: Iterable[Contract]
) -> FallbackTier:
    if package_type is PackageType.SOLVE:
        return FallbackTier.ADVANTAGE_ONLY
    if is_heritage_customer(cloud_contracts):
        return FallbackTier.HERITAGE
    return FallbackTier.ZERO_ENTITLEMENTS


def customer_tier_from_contract(tier: Tier, contract: Contract) -> CustomerTier:
    """Entitlement granted by an active contract on *tier*."""
    if tier.trial_tier:
        return CustomerTier(
            tier_id=tier.id,
            trial_start_date=contract.start_date,
            trial_end_date=contract.end_date,
        )
    return CustomerTier(tier_id=tier.id)


def includes_accelerators(tier: Optional[Tier]) -> bool:
    if tier is None:
        return False
    return tier.package_type is PackageType.SOLVE and tier.name in ACCELERATOR_INCLUSIVE_TIER_NAMES
