"""Map Google Cloud assets to the support tier they were originally sold with.

The tier is inferred from support SKUs recently billed on the asset's
billing account. The SKU table is injected so tests and deployments can
supply their own catalogue.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Optional

from domain.models.support import AssetSupport, BillingAccountSKU, CloudAsset, SupportTier

DEFAULT_SKU_SUPPORT_TIERS: Mapping[str, SupportTier] = MappingProxyType(
    {
        "Basic Support": SupportTier.BASIC,
        "Standard Support": SupportTier.STANDARD,
        "Enhanced Support": SupportTier.ENHANCED,
        "Premium Support": SupportTier.PREMIUM,
        "Role-Based Support Development": SupportTier.STANDARD,
        "Role-Based Support Production": SupportTier.ENHANCED,
    }
)


def group_skus_by_account(rows: Iterable[BillingAccountSKU]) -> dict[str, list[str]]:
    """``billing_account -> [sku, ...]`` in row order."""
    grouped: dict[str, list[str]] = {}
    for row in rows:
        grouped.setdefault(row.billing_account_id, []).append(row.sku_id)
    return grouped


class SupportTierClassifier:
    def __init__(self, sku_tiers: Mapping[str, SupportTier] = DEFAULT_SKU_SUPPORT_TIERS) -> None:
        self._sku_tiers: Mapping[str, SupportTier] = MappingProxyType(dict(sku_tiers))

    @property
    def sku_tiers(self) -> Mapping[str, SupportTier]:
        return self._sku_tiers

    def tier_for_skus(self, skus: Iterable[str]) -> Optional[tuple[SupportTier, str]]:
        """First SKU with a catalogue entry wins."""
        for sku in skus:
            tier = self._sku_tiers.get(sku)
            if tier is not None:
                return tier, sku
        return None

    def classify(
        self,
        assets: Iterable[CloudAsset],
        account_skus: Mapping[str, list[str]],
    ) -> list[AssetSupport]:
        results: list[AssetSupport] = []
        for asset in assets:
            match = self.tier_for_skus(account_skus.get(asset.billing_account_id, ()))
            if match is None:
                continue
            tier, sku = match
            results.append(
                AssetSupport(
                    asset_id=asset.id,
                    billing_account_id=asset.billing_account_id,
                    support_tier=tier,
                    sku_id=sku,
                )
            )
        return results
