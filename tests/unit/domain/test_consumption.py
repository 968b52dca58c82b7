"""Tests for src/domain/services/consumption.py"""

from datetime import datetime, timezone

import pytest

from domain.models.billing import SpendRow
from domain.services.consumption import (
    build_consumption,
    is_aws_final,
    is_cloud_final,
    map_spend_to_cloud,
)

AWS = "amazon-web-services"
GCP = "google-cloud"
MONTH_START = datetime(2024, 2, 1, tzinfo=timezone.utc)


def _dt(year, month, day, hour=0):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class TestMapSpendToCloud:
    def test_sums_per_provider_in_first_seen_order(self):
        rows = [
            SpendRow(cloud_provider=GCP, cost=100.0),
            SpendRow(cloud_provider=AWS, cost=50.0),
            SpendRow(cloud_provider=GCP, cost=25.5),
        ]
        spend = map_spend_to_cloud(rows)
        assert list(spend) == [GCP, AWS]
        assert spend[GCP] == pytest.approx(125.5)
        assert spend[AWS] == pytest.approx(50.0)

    def test_empty(self):
        assert map_spend_to_cloud([]) == {}


class TestFinality:
    def test_aws_final_once_invoiced_and_month_over(self):
        rows = [SpendRow(cloud_provider=AWS, invoice_id="inv-1", cost=1.0)]
        assert is_aws_final(rows, MONTH_START, _dt(2024, 3, 1))

    def test_aws_not_final_during_month(self):
        rows = [SpendRow(cloud_provider=AWS, invoice_id="inv-1", cost=1.0)]
        assert not is_aws_final(rows, MONTH_START, _dt(2024, 2, 28))

    def test_aws_not_final_with_uninvoiced_row(self):
        rows = [
            SpendRow(cloud_provider=AWS, invoice_id="inv-1", cost=1.0),
            SpendRow(cloud_provider=AWS, invoice_id=None, cost=2.0),
        ]
        assert not is_aws_final(rows, MONTH_START, _dt(2024, 4, 1))

    def test_other_clouds_settle_after_sixth_of_next_month(self):
        assert not is_cloud_final(MONTH_START, _dt(2024, 3, 6))
        assert is_cloud_final(MONTH_START, _dt(2024, 3, 6, 1))


class TestBuildConsumption:
    def test_flat_rate_applied_per_cloud(self):
        rows = [
            SpendRow(cloud_provider=GCP, cost=10000.0),
            SpendRow(cloud_provider=AWS, invoice_id="inv-1", cost=2000.0),
        ]
        entries, all_final = build_consumption(rows, 3.0, "EUR", MONTH_START, _dt(2024, 3, 10))

        assert [e.cloud for e in entries] == [GCP, AWS]
        assert entries[0].variable_fee == pytest.approx(300.0)
        assert entries[1].variable_fee == pytest.approx(60.0)
        assert all(e.currency == "EUR" for e in entries)
        assert all_final

    def test_partially_final(self):
        rows = [
            SpendRow(cloud_provider=GCP, cost=100.0),
            SpendRow(cloud_provider=AWS, invoice_id=None, cost=100.0),
        ]
        entries, all_final = build_consumption(rows, 3.0, "USD", MONTH_START, _dt(2024, 3, 10))
        assert entries[0].final is True
        assert entries[1].final is False
        assert all_final is False

    def test_no_spend_is_final(self):
        entries, all_final = build_consumption([], 3.0, "USD", MONTH_START, _dt(2024, 2, 10))
        assert entries == []
        assert all_final is True
