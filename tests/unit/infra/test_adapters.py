"""Tests for infrastructure.adapters."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from domain.exceptions import ContractNotFoundError
from domain.models.billing import SpendQuery, SpendRow
from domain.models.contract import (
    ESTIMATED_FUNDING_PROPERTY,
    BillingSnapshot,
    Contract,
    ContractType,
)
from domain.models.support import BillingAccountSKU
from infrastructure.adapters import (
    InMemoryAnalyticsQueryEngine,
    InMemoryContractRepository,
    InMemoryWarehouseSKULookup,
    apply_contract_changes,
)


def _dt(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestApplyContractChanges:
    def test_attribute_and_property(self):
        contract = Contract()
        apply_contract_changes(contract, {"notes": "n", f"properties.{ESTIMATED_FUNDING_PROPERTY}": 10.0})
        assert contract.notes == "n"
        assert contract.estimated_funding == 10.0

    @pytest.mark.parametrize("key", ["id", "billing_data", "no_such_field"])
    def test_rejected_keys(self, key):
        with pytest.raises(ValueError):
            apply_contract_changes(Contract(), {key: "x"})


class TestInMemoryContractRepository:
    def test_reads_are_copies(self, make_contract):
        repo = InMemoryContractRepository()
        contract = make_contract()
        repo.create_contract(contract)

        fetched = repo.get_contract_by_id(contract.id)
        fetched.notes = "changed"

        assert repo.get_contract_by_id(contract.id).notes == ""

    def test_recent_contracts_newest_first_and_limited(self, make_contract):
        contracts = [make_contract(created=_dt(2024, m, 1)) for m in range(1, 6)]
        repo = InMemoryContractRepository(contracts)

        recent = repo.list_customer_recent_contracts("customer-1", (ContractType.NAVIGATOR,), 3)

        assert [c.id for c in recent] == [c.id for c in reversed(contracts)][:3]

    def test_recent_contracts_limited_per_type(self, make_contract):
        navigator = make_contract(ContractType.NAVIGATOR, created=_dt(2023, 1, 1))
        solves = [
            make_contract(ContractType.SOLVE, tier_id="solve-standard", created=_dt(2024, m, 1)) for m in range(1, 5)
        ]
        repo = InMemoryContractRepository([navigator, *solves])

        recent = repo.list_customer_recent_contracts("customer-1", (ContractType.NAVIGATOR, ContractType.SOLVE), 2)

        assert [c.id for c in recent] == [navigator.id, solves[3].id, solves[2].id]

    def test_recent_contracts_filters_type_and_customer(self, make_contract):
        repo = InMemoryContractRepository(
            [
                make_contract(ContractType.AWS, tier_id=None),
                make_contract(customer_id="other"),
            ]
        )
        assert repo.list_customer_recent_contracts("customer-1", (ContractType.NAVIGATOR,), 10) == []

    def test_cancel_sets_end(self, make_contract):
        contract = make_contract()
        repo = InMemoryContractRepository([contract])
        repo.cancel_contract(contract.id, _dt(2024, 6, 1))
        assert repo.get_contract_by_id(contract.id).end_date == _dt(2024, 6, 1)

    def test_missing_contract(self):
        repo = InMemoryContractRepository()
        assert repo.get_contract_by_id("nope") is None
        with pytest.raises(ContractNotFoundError):
            repo.set_active_flag("nope", True)

    def test_write_billing_snapshot(self, make_contract):
        contract = make_contract()
        repo = InMemoryContractRepository([contract])

        repo.write_billing_snapshot(contract.id, "2024-02", "2024-03-01", BillingSnapshot(base_fee=1.0), True)
        repo.write_billing_snapshot(contract.id, "2024-02", "2024-03-02", BillingSnapshot(base_fee=2.0), False)

        month = repo.get_billing_data(contract.id)["2024-02"]
        assert month.final is True
        assert month.latest().base_fee == 2.0

    def test_update_contract_support(self, make_contract):
        contract = make_contract(ContractType.GOOGLE_CLOUD, tier_id=None)
        repo = InMemoryContractRepository([contract])
        repo.update_contract_support({contract.id: {"asset-1": "premium"}})
        assert repo.get_contract_by_id(contract.id).properties["gcpSupport"] == {"asset-1": "premium"}


class TestInMemoryAnalyticsQueryEngine:
    def test_filters_by_cloud_provider(self):
        engine = InMemoryAnalyticsQueryEngine(
            rows={"c": [SpendRow(cloud_provider="google-cloud", cost=1.0), SpendRow(cloud_provider="looker", cost=2.0)]}
        )
        query = SpendQuery(customer_id="c", start=_dt(2024, 2, 1), end=_dt(2024, 2, 29), currency="USD")
        assert [r.cloud_provider for r in engine.run_query(query)] == ["google-cloud"]
        assert engine.queries == [query]


def test_sku_lookup_window():
    lookup = InMemoryWarehouseSKULookup(
        [
            BillingAccountSKU(billing_account_id="a", sku_id="old", last_usage=_dt(2024, 1, 1)),
            BillingAccountSKU(billing_account_id="a", sku_id="new", last_usage=_dt(2024, 6, 10)),
        ]
    )
    rows = lookup.get_billing_accounts_sku(_dt(2024, 6, 8), _dt(2024, 6, 15))
    assert [r.sku_id for r in rows] == ["new"]
