from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from domain.models.billing import SpendRow
from domain.models.contract import Consumption, ContractType
from domain.services.proration import add_months

# Non-AWS providers settle once this day of the following month has passed.
CLOUD_SETTLEMENT_DAY = 6


def map_spend_to_cloud(rows: Iterable[SpendRow]) -> dict[str, float]:
    """Sum spend per cloud provider, keeping first-seen provider order."""
    spend: dict[str, float] = {}
    for row in rows:
        spend[row.cloud_provider] = spend.get(row.cloud_provider, 0.0) + row.cost
    return spend


def is_aws_final(rows: Iterable[SpendRow], month_start: datetime, now: datetime) -> bool:
    for row in rows:
        if row.cloud_provider == ContractType.AWS.value and not row.invoice_id:
            return False
    return now >= add_months(month_start, 1)


def is_cloud_final(month_start: datetime, now: datetime) -> bool:
    next_month = add_months(month_start, 1)
    settlement = next_month.replace(day=CLOUD_SETTLEMENT_DAY, hour=0, minute=0, second=0, microsecond=0)
    return now > settlement


def build_consumption(
    rows: list[SpendRow],
    monthly_flat_rate: float,
    currency: str,
    month_start: datetime,
    now: datetime,
) -> tuple[list[Consumption], bool]:
    """Turn spend rows into flat-rate consumption entries.

    Returns the entries and whether every one of them is final.
    """
    entries: list[Consumption] = []
    all_final = True
    for cloud, spend in map_spend_to_cloud(rows).items():
        if cloud == ContractType.AWS.value:
            final = is_aws_final(rows, month_start, now)
        else:
            final = is_cloud_final(month_start, now)
        all_final = all_final and final
        entries.append(
            Consumption(
                cloud=cloud,
                currency=currency,
                final=final,
                variable_fee=spend * (monthly_flat_rate / 100),
            )
        )
    return entries, all_final
