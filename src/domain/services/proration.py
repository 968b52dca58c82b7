"""Pure proration rules for contract fixed fees.

Every function here is deterministic: the caller supplies ``now`` and the
billing window. Internal helpers return ``None`` for "not billable this
cycle"; :func:`to_base_fee` turns that into the ``NOT_BILLABLE`` sentinel
that downstream billing reports expect.
"""

from __future__ import annotations

import calendar
import re
from datetime import UTC, datetime, timedelta
from typing import Optional

from domain.exceptions import InvalidBillingMonthError
from domain.models.contract import Contract

NOT_BILLABLE: float = -0.01

BILLING_MONTH_FORMAT = "%Y-%m"
BILLING_DAY_FORMAT = "%Y-%m-%d"

# Before this day of the month an implicit invoice month means the previous one.
INVOICE_CLOSE_DAY = 10

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})(?:-(\d{2}))?$")


def to_base_fee(amount: Optional[float]) -> float:
    return NOT_BILLABLE if amount is None else amount


def _discounted(amount: float, discount: float) -> float:
    if discount > 0.0:
        return amount * ((100 - discount) / 100)
    return amount


# ---------------------------------------------------------------------------
# Billing-month windows
# ---------------------------------------------------------------------------


def month_window(year: int, month: int) -> tuple[datetime, datetime]:
    """Return the first instant and the last microsecond of a month (UTC)."""
    start = datetime(year, month, 1, tzinfo=UTC)
    days = calendar.monthrange(year, month)[1]
    end = start + timedelta(days=days) - timedelta(microseconds=1)
    return start, end


def parse_invoice_month(value: str) -> tuple[datetime, datetime]:
    """Parse ``YYYY-MM`` (or a ``YYYY-MM-DD`` day inside the month)."""
    match = _MONTH_RE.match(value.strip())
    if match is None:
        raise InvalidBillingMonthError(value)
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidBillingMonthError(value)
    if match.group(3) is not None:
        day = int(match.group(3))
        if not 1 <= day <= calendar.monthrange(year, month)[1]:
            raise InvalidBillingMonthError(value)
    return month_window(year, month)


def invoice_month_window(invoice_month: str, now: datetime) -> tuple[datetime, datetime]:
    """Resolve the billing month to aggregate.

    An empty *invoice_month* means "the month currently being invoiced":
    the previous month during the first ``INVOICE_CLOSE_DAY`` days, the
    current month afterwards.
    """
    if invoice_month:
        return parse_invoice_month(invoice_month)

    if now.day <= INVOICE_CLOSE_DAY:
        previous = now.replace(day=1) - timedelta(days=1)
        return month_window(previous.year, previous.month)
    return month_window(now.year, now.month)


def billing_month_key(month_start: datetime) -> str:
    return month_start.strftime(BILLING_MONTH_FORMAT)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's end."""
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# ---------------------------------------------------------------------------
# Fixed fees
# ---------------------------------------------------------------------------


def get_billable_days(
    contract: Contract,
    month_start: datetime,
    month_end: datetime,
    now: datetime,
) -> tuple[datetime, datetime]:
    """Clamp the contract interval to the billing month and to *now*."""
    start = contract.start_date or month_start
    if start < month_start:
        start = month_start

    end = contract.end_date
    if end is None or end > now:
        end = now
    if end > month_end:
        end = month_end

    return start, end


def prorate_monthly(
    contract: Contract,
    start: datetime,
    end: datetime,
    month_end: datetime,
) -> Optional[float]:
    if (start.year, start.month) != (end.year, end.month):
        return None
    if start > end:
        return None

    billable_days = float(end.day - start.day) + 1.0
    charge_per_day = contract.charge_per_term / float(month_end.day)
    return _discounted(charge_per_day, contract.discount) * billable_days


def calculate_fixed_monthly_charge(
    contract: Contract,
    start: datetime,
    end: datetime,
    month_end: datetime,
) -> float:
    return to_base_fee(prorate_monthly(contract, start, end, month_end))


def annual_charge(contract: Contract, month_start: datetime) -> Optional[float]:
    if contract.start_date is None:
        return None
    if (contract.start_date.year, contract.start_date.month) != (
        month_start.year,
        month_start.month,
    ):
        return None
    return _discounted(contract.charge_per_term, contract.discount)


def calculate_annual_charge(contract: Contract, month_start: datetime) -> float:
    return to_base_fee(annual_charge(contract, month_start))


def is_accelerator_billing_month(contract: Contract, month_end: datetime, now: datetime) -> bool:
    """An accelerator is invoiced in the month it ends, once it has ended."""
    if contract.end_date is None:
        return False
    same_month = (contract.end_date.year, contract.end_date.month) == (
        month_end.year,
        month_end.month,
    )
    return same_month and now >= contract.end_date


def accelerator_charge(
    contract: Contract,
    month_end: datetime,
    now: datetime,
    tier_includes_accelerator: bool,
) -> Optional[float]:
    """Accelerators bill their full charge once, in the month they end.

    Estimated funding above zero covers the accelerator, as does a solve
    tier that already includes accelerators.
    """
    if not is_accelerator_billing_month(contract, month_end, now):
        return None
    funding = contract.estimated_funding
    if funding is not None and funding > 0:
        return None
    if tier_includes_accelerator:
        return None
    return contract.charge_per_term


def calculate_accelerator_charge(
    contract: Contract,
    month_end: datetime,
    now: datetime,
    tier_includes_accelerator: bool,
) -> float:
    return to_base_fee(accelerator_charge(contract, month_end, now, tier_includes_accelerator))
