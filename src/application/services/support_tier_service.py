from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Optional

from domain.exceptions import ContractIntegrityError
from domain.models.contract import ContractType
from domain.models.support import AssetSupport
from domain.services.contract_lifecycle import ContractLifecycleService
from domain.services.support_classifier import SupportTierClassifier, group_skus_by_account

from application.services.ports import AssetRepository, ContractRepository, WarehouseSKULookup

logger = logging.getLogger(__name__)

DEFAULT_SKU_LOOKBACK_DAYS = 7


@dataclass
class SupportClassificationResult:
    classified: dict[str, list[AssetSupport]] = field(default_factory=dict)
    excluded_contracts: list[str] = field(default_factory=list)
    inactive_contracts: list[str] = field(default_factory=list)


class SupportTierService:
    """Writes the original support tier of each active Google Cloud contract's assets."""

    def __init__(
        self,
        contract_repo: ContractRepository,
        asset_repo: AssetRepository,
        sku_lookup: WarehouseSKULookup,
        classifier: SupportTierClassifier,
        lookback_days: int = DEFAULT_SKU_LOOKBACK_DAYS,
        lifecycle_service: Optional[ContractLifecycleService] = None,
    ) -> None:
        self._contract_repo = contract_repo
        self._asset_repo = asset_repo
        self._sku_lookup = sku_lookup
        self._classifier = classifier
        self._lookback = timedelta(days=lookback_days)
        self._lifecycle = lifecycle_service or ContractLifecycleService()

    def classify_support_tiers(self, now: Optional[datetime] = None) -> SupportClassificationResult:
        now = now or datetime.now(UTC)
        result = SupportClassificationResult()

        contracts = self._contract_repo.get_active_contracts(ContractType.GOOGLE_CLOUD)
        assets_by_contract = {}
        for contract in contracts:
            # The stored active flag is only refreshed for navigator and solve contracts.
            try:
                active = self._lifecycle.is_active(contract, now)
            except ContractIntegrityError as exc:
                logger.error("Skipping contract %s: %s", contract.id, exc.detail)
                active = False
            if not active:
                result.inactive_contracts.append(contract.id)
                continue

            assets = self._asset_repo.list_contract_assets(contract.id)
            if not assets:
                result.excluded_contracts.append(contract.id)
                continue
            assets_by_contract[contract.id] = assets

        if result.excluded_contracts:
            logger.info("%d contracts without assets excluded from support classification", len(result.excluded_contracts))

        if not assets_by_contract:
            return result

        account_skus = group_skus_by_account(self._sku_lookup.get_billing_accounts_sku(now - self._lookback, now))

        support: dict[str, dict[str, str]] = {}
        for contract_id, assets in assets_by_contract.items():
            classified = self._classifier.classify(assets, account_skus)
            result.classified[contract_id] = classified
            support[contract_id] = {item.asset_id: item.support_tier.value for item in classified}

        self._contract_repo.update_contract_support(support)
        logger.info("Support tiers written for %d contracts", len(support))
        return result
