"""Unit tests for TierEntitlementResolver."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from application.services.tier_service import TierEntitlementResolver
from domain.exceptions import TierNotFoundError
from domain.models.contract import ContractType
from domain.models.tier import CustomerTier, PackageType, Tier
from infrastructure.adapters import InMemoryTierRepository


def _dt(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestResolveActiveTier:
    def test_regular_tier(self, tier_resolver, make_contract):
        assert tier_resolver.resolve_active_tier(make_contract(tier_id="nav-standard")) == CustomerTier(
            tier_id="nav-standard"
        )

    def test_unknown_tier(self, tier_resolver, make_contract):
        assert tier_resolver.resolve_active_tier(make_contract(tier_id="missing")) is None

    def test_no_tier(self, tier_resolver, make_contract):
        assert tier_resolver.resolve_active_tier(make_contract(tier_id=None)) is None


class TestTrialDates:
    def test_non_trial_contract(self, tier_resolver, make_contract):
        assert tier_resolver.trial_dates_for(make_contract(tier_id="nav-standard")) is None

    def test_keeps_current_tier(self, tier_resolver, tier_repo, make_contract):
        tier_repo.update_customer_tier("customer-1", PackageType.NAVIGATOR, CustomerTier(tier_id="nav-zero"))
        contract = make_contract(start=_dt(2024, 7, 1), end=_dt(2024, 7, 31), tier_id="nav-trial")

        assert tier_resolver.trial_dates_for(contract) == CustomerTier(
            tier_id="nav-zero",
            trial_start_date=_dt(2024, 7, 1),
            trial_end_date=_dt(2024, 7, 31),
        )


class TestDefaultTier:
    def test_solve(self, tier_resolver):
        assert tier_resolver.get_default_tier(PackageType.SOLVE, "customer-1", []) == CustomerTier(
            tier_id="solve-advantage"
        )

    def test_navigator_without_cloud_contracts(self, tier_resolver):
        assert tier_resolver.get_default_tier(PackageType.NAVIGATOR, "customer-1", []).tier_id == "nav-zero"

    def test_navigator_with_early_cloud_contract(self, tier_resolver, contract_repo, make_contract):
        contract_repo.create_contract(make_contract(ContractType.AZURE, tier_id=None, start=_dt(2023, 5, 1)))
        assert tier_resolver.get_default_tier(PackageType.NAVIGATOR, "customer-1", []).tier_id == "nav-heritage"

    def test_other_customers_cloud_contracts_ignored(self, tier_resolver, contract_repo, make_contract):
        contract_repo.create_contract(
            make_contract(ContractType.AZURE, tier_id=None, start=_dt(2023, 5, 1), customer_id="other")
        )
        assert tier_resolver.get_default_tier(PackageType.NAVIGATOR, "customer-1", []).tier_id == "nav-zero"

    def test_latest_trial_window_kept(self, tier_resolver, make_contract):
        trial = make_contract(start=_dt(2024, 4, 1), end=_dt(2024, 4, 30), tier_id="nav-trial")
        older = make_contract(start=_dt(2023, 1, 1), end=_dt(2023, 12, 31), tier_id="nav-standard")

        assert tier_resolver.get_default_tier(PackageType.NAVIGATOR, "customer-1", [trial, older]) == CustomerTier(
            tier_id="nav-zero",
            trial_start_date=_dt(2024, 4, 1),
            trial_end_date=_dt(2024, 4, 30),
        )

    def test_missing_fallback_tier(self, contract_repo):
        resolver = TierEntitlementResolver(InMemoryTierRepository(), contract_repo)
        with pytest.raises(TierNotFoundError):
            resolver.get_default_tier(PackageType.NAVIGATOR, "customer-1", [])


class TestSolveTierIncludesAccelerators:
    def test_premium(self, tier_resolver, tier_repo):
        tier_repo.update_customer_tier("customer-1", PackageType.SOLVE, CustomerTier(tier_id="solve-premium"))
        assert tier_resolver.solve_tier_includes_accelerators("customer-1")

    def test_standard(self, tier_resolver, tier_repo):
        tier_repo.update_customer_tier("customer-1", PackageType.SOLVE, CustomerTier(tier_id="solve-standard"))
        assert not tier_resolver.solve_tier_includes_accelerators("customer-1")

    def test_no_solve_tier(self, tier_resolver):
        assert not tier_resolver.solve_tier_includes_accelerators("customer-1")

    def test_enterprise_tier_added_later(self, tier_resolver, tier_repo):
        tier_repo.add_tier(Tier(id="solve-enterprise", name="enterprise", package_type=PackageType.SOLVE))
        tier_repo.update_customer_tier("customer-1", PackageType.SOLVE, CustomerTier(tier_id="solve-enterprise"))
        assert tier_resolver.solve_tier_includes_accelerators("customer-1")
