"""Tests for src/domain/services/contract_lifecycle.py"""

from datetime import datetime, timedelta, timezone

import pytest

from domain.exceptions import ContractIntegrityError
from domain.models.contract import ContractStatus, ContractType
from domain.services.contract_lifecycle import ContractLifecycleService, derive_status
from domain.services.proration import month_window


def _dt(year, month, day, hour=0):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def lifecycle():
    return ContractLifecycleService()


class TestDeriveStatus:
    @pytest.mark.parametrize(
        "start, end, now, expected",
        [
            (_dt(2024, 1, 1), None, _dt(2024, 6, 1), ContractStatus.ACTIVE),
            (_dt(2024, 1, 1), _dt(2024, 12, 31), _dt(2024, 6, 1), ContractStatus.ACTIVE),
            (_dt(2024, 7, 1), None, _dt(2024, 6, 1), ContractStatus.FUTURE),
            (_dt(2024, 1, 1), _dt(2024, 3, 31), _dt(2024, 6, 1), ContractStatus.EXPIRED),
            (_dt(2024, 7, 1), _dt(2024, 6, 1), _dt(2024, 6, 15), ContractStatus.CANCELLED),
        ],
    )
    def test_statuses(self, start, end, now, expected):
        assert derive_status(start, end, now) is expected

    def test_start_bound_is_inclusive(self):
        start = _dt(2024, 1, 1)
        assert derive_status(start, None, start) is ContractStatus.ACTIVE

    def test_end_bound_is_inclusive(self):
        end = _dt(2024, 3, 31)
        assert derive_status(_dt(2024, 1, 1), end, end) is ContractStatus.ACTIVE
        assert derive_status(_dt(2024, 1, 1), end, end + timedelta(microseconds=1)) is ContractStatus.EXPIRED

    def test_cancelled_wins_over_future(self):
        # A future contract cancelled today ends before it starts.
        assert derive_status(_dt(2024, 9, 1), _dt(2024, 6, 15), _dt(2024, 6, 15)) is ContractStatus.CANCELLED

    def test_missing_start_is_integrity_error(self):
        with pytest.raises(ContractIntegrityError) as exc_info:
            derive_status(None, None, _dt(2024, 6, 1), contract_id="c-1")
        assert exc_info.value.contract_id == "c-1"
        assert exc_info.value.status_code == 500


class TestLifecycleService:
    def test_is_active(self, lifecycle, make_contract):
        contract = make_contract(start=_dt(2024, 1, 1))
        assert lifecycle.is_active(contract, _dt(2024, 6, 1))

    def test_is_future(self, lifecycle, make_contract):
        contract = make_contract(start=_dt(2024, 9, 1))
        assert lifecycle.is_future(contract, _dt(2024, 6, 1))
        assert not lifecycle.is_active(contract, _dt(2024, 6, 1))

    def test_is_future_without_start_is_false(self, lifecycle, make_contract):
        contract = make_contract()
        contract.start_date = None
        assert not lifecycle.is_future(contract, _dt(2024, 6, 1))

    @pytest.mark.parametrize(
        "status, claims",
        [
            (ContractStatus.ACTIVE, True),
            (ContractStatus.FUTURE, True),
            (ContractStatus.EXPIRED, False),
            (ContractStatus.CANCELLED, False),
        ],
    )
    def test_claims_entitlement(self, lifecycle, status, claims):
        assert lifecycle.claims_entitlement(status) is claims


class TestActiveForBillingMonth:
    def test_overlapping_contract(self, lifecycle, make_contract):
        start, end = month_window(2024, 2)
        contract = make_contract(start=_dt(2024, 1, 1), end=_dt(2024, 8, 31))
        assert lifecycle.is_active_for_billing_month(contract, start, end)

    def test_starts_on_last_day_of_month(self, lifecycle, make_contract):
        start, end = month_window(2024, 2)
        contract = make_contract(start=_dt(2024, 2, 29))
        assert lifecycle.is_active_for_billing_month(contract, start, end)

    def test_starts_after_month(self, lifecycle, make_contract):
        start, end = month_window(2024, 2)
        contract = make_contract(start=_dt(2024, 3, 1))
        assert not lifecycle.is_active_for_billing_month(contract, start, end)

    def test_ended_before_month(self, lifecycle, make_contract):
        start, end = month_window(2024, 2)
        contract = make_contract(start=_dt(2023, 1, 1), end=_dt(2024, 1, 31))
        assert not lifecycle.is_active_for_billing_month(contract, start, end)

    def test_accelerator_billed_in_end_month(self, lifecycle, make_contract):
        start, end = month_window(2024, 5)
        contract = make_contract(
            ContractType.SOLVE_ACCELERATOR,
            start=_dt(2024, 1, 1),
            end=_dt(2024, 5, 20),
        )
        assert lifecycle.is_active_for_billing_month(contract, start, end)

    def test_missing_start_is_integrity_error(self, lifecycle, make_contract):
        start, end = month_window(2024, 2)
        contract = make_contract()
        contract.start_date = None
        with pytest.raises(ContractIntegrityError):
            lifecycle.is_active_for_billing_month(contract, start, end)
