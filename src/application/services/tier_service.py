"""Tier entitlement resolution.

Decides which :class:`CustomerTier` a customer holds for a package type:
the tier of the contract that claimed the type, or a fallback tier once
no contract does.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from domain.exceptions import TierNotFoundError
from domain.models.contract import CLOUD_RESOLD_TYPES, Contract, ContractType
from domain.models.tier import ADVANTAGE_ONLY_TIER_NAME, CustomerTier, PackageType, Tier
from domain.services.tier_policy import (
    FallbackTier,
    customer_tier_from_contract,
    fallback_tier_for,
    includes_accelerators,
    latest_contract_of_type,
)

from application.services.ports import ContractRepository, TierRepository

logger = logging.getLogger(__name__)


class TierEntitlementResolver:
    def __init__(self, tier_repo: TierRepository, contract_repo: ContractRepository) -> None:
        self._tier_repo = tier_repo
        self._contract_repo = contract_repo

    # -- helpers ----------------------------------------------------------

    def _contract_tier(self, contract: Contract) -> Optional[Tier]:
        if not contract.tier_id:
            return None
        return self._tier_repo.get_tier(contract.tier_id)

    def _fallback(self, kind: FallbackTier, package_type: PackageType) -> Tier:
        if kind is FallbackTier.ADVANTAGE_ONLY:
            tier = self._tier_repo.get_tier_by_name(ADVANTAGE_ONLY_TIER_NAME, package_type)
        elif kind is FallbackTier.HERITAGE:
            tier = self._tier_repo.get_heritage_tier(package_type)
        else:
            tier = self._tier_repo.get_zero_entitlements_tier(package_type)

        if tier is None:
            raise TierNotFoundError(f"{kind.value} ({package_type.value})")
        return tier

    # -- public API -------------------------------------------------------

    def resolve_active_tier(self, contract: Contract) -> Optional[CustomerTier]:
        """Entitlement granted by an active contract, or ``None`` if its tier is unknown."""
        tier = self._contract_tier(contract)
        if tier is None:
            logger.error("Tier %s of contract %s not found", contract.tier_id, contract.id)
            return None
        return customer_tier_from_contract(tier, contract)

    def is_trial_contract(self, contract: Contract) -> bool:
        tier = self._contract_tier(contract)
        return tier is not None and tier.trial_tier

    def trial_dates_for(self, contract: Contract) -> Optional[CustomerTier]:
        """Trial window of *contract* on top of the customer's current tier.

        ``None`` when the contract's tier is not a trial tier.
        """
        if not self.is_trial_contract(contract):
            return None
        current = self._tier_repo.get_customer_tier(contract.customer_id, PackageType(contract.type.value))
        return CustomerTier(
            tier_id=current.tier_id if current else None,
            trial_start_date=contract.start_date,
            trial_end_date=contract.end_date,
        )

    def get_default_tier(
        self,
        package_type: PackageType,
        customer_id: str,
        contracts: Sequence[Contract],
    ) -> CustomerTier:
        """Fallback entitlement for a package type no contract claims.

        *contracts* is the customer's newest-first contract history; if its
        most recent navigator contract was a trial, the trial window is kept.
        """
        if package_type is PackageType.SOLVE:
            tier = self._fallback(FallbackTier.ADVANTAGE_ONLY, package_type)
            return CustomerTier(tier_id=tier.id)

        cloud_contracts = self._contract_repo.get_contracts_by_type(customer_id, CLOUD_RESOLD_TYPES)
        tier = self._fallback(fallback_tier_for(package_type, cloud_contracts), package_type)

        latest = latest_contract_of_type(contracts, ContractType(package_type.value))
        if latest is not None and self.is_trial_contract(latest):
            return CustomerTier(
                tier_id=tier.id,
                trial_start_date=latest.start_date,
                trial_end_date=latest.end_date,
            )
        return CustomerTier(tier_id=tier.id)

    def solve_tier_includes_accelerators(self, customer_id: str) -> bool:
        current = self._tier_repo.get_customer_tier(customer_id, PackageType.SOLVE)
        if current is None or not current.tier_id:
            return False
        return includes_accelerators(self._tier_repo.get_tier(current.tier_id))
