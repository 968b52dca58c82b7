"""Integration tests for the SQL tier store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from domain.models.tier import CustomerTier, PackageType, Tier


@pytest.mark.integration
class TestTierCatalogue:

    def test_lookup_by_id_and_name(self, tier_store):
        tier_store.add_tier(Tier(id="nav-heritage", name="heritage", package_type=PackageType.NAVIGATOR))
        tier_store.add_tier(Tier(id="nav-zero", name="zero-entitlements", package_type=PackageType.NAVIGATOR))
        tier_store.add_tier(Tier(id="solve-heritage", name="heritage", package_type=PackageType.SOLVE))

        assert tier_store.get_tier("nav-zero").name == "zero-entitlements"
        assert tier_store.get_heritage_tier(PackageType.NAVIGATOR).id == "nav-heritage"
        assert tier_store.get_heritage_tier(PackageType.SOLVE).id == "solve-heritage"
        assert tier_store.get_zero_entitlements_tier(PackageType.NAVIGATOR).id == "nav-zero"
        assert tier_store.get_zero_entitlements_tier(PackageType.SOLVE) is None
        assert tier_store.get_tier("missing") is None

    def test_trial_flag(self, tier_store):
        tier_store.add_tier(Tier(id="t", name="trial", package_type=PackageType.NAVIGATOR, trial_tier=True))
        assert tier_store.get_tier("t").trial_tier is True


@pytest.mark.integration
class TestCustomerTiers:

    def test_upsert(self, tier_store):
        start = datetime(2024, 7, 1, tzinfo=timezone.utc)
        end = datetime(2024, 7, 31, tzinfo=timezone.utc)

        tier_store.update_customer_tier("customer-1", PackageType.NAVIGATOR, CustomerTier(tier_id="a"))
        tier_store.update_customer_tier(
            "customer-1",
            PackageType.NAVIGATOR,
            CustomerTier(tier_id="b", trial_start_date=start, trial_end_date=end),
        )

        assert tier_store.get_customer_tier("customer-1", PackageType.NAVIGATOR) == CustomerTier(
            tier_id="b", trial_start_date=start, trial_end_date=end
        )

    def test_package_types_independent(self, tier_store):
        tier_store.update_customer_tier("customer-1", PackageType.SOLVE, CustomerTier(tier_id="s"))
        assert tier_store.get_customer_tier("customer-1", PackageType.NAVIGATOR) is None
        assert tier_store.get_customer_tier("customer-1", PackageType.SOLVE).tier_id == "s"
