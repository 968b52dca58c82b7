from __future__ import annotations

from datetime import datetime
from typing import Optional

from domain.exceptions import ContractIntegrityError
from domain.models.contract import Contract, ContractStatus, ContractType
from domain.services.proration import is_accelerator_billing_month

_ENTITLING_STATUSES: frozenset[ContractStatus] = frozenset(
    {ContractStatus.ACTIVE, ContractStatus.FUTURE}
)


def derive_status(
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    now: datetime,
    contract_id: str = "",
) -> ContractStatus:
    """Single source of truth for a contract's status at *now*.

    Both bounds are inclusive. A contract whose end precedes its start can
    only come from cancelling it before it began.
    """
    if start_date is None:
        raise ContractIntegrityError(contract_id=contract_id, reason="start date is nil")

    if end_date is not None and end_date < start_date:
        return ContractStatus.CANCELLED

    if now < start_date:
        return ContractStatus.FUTURE

    if end_date is None or now <= end_date:
        return ContractStatus.ACTIVE

    return ContractStatus.EXPIRED


class ContractLifecycleService:

    def status(self, contract: Contract, now: datetime) -> ContractStatus:
        return derive_status(contract.start_date, contract.end_date, now, contract.id)

    def is_active(self, contract: Contract, now: datetime) -> bool:
        return self.status(contract, now) is ContractStatus.ACTIVE

    def is_future(self, contract: Contract, now: datetime) -> bool:
        if contract.start_date is None:
            return False
        return self.status(contract, now) is ContractStatus.FUTURE

    def claims_entitlement(self, status: ContractStatus) -> bool:
        return status in _ENTITLING_STATUSES

    def is_active_for_billing_month(
        self,
        contract: Contract,
        month_start: datetime,
        month_end: datetime,
    ) -> bool:
        """Whether any part of the billing month falls inside the contract."""
        if contract.start_date is None:
            raise ContractIntegrityError(contract_id=contract.id, reason="start date is nil")

        # Accelerators are billed in their end month even once expired.
        if (
            contract.type is ContractType.SOLVE_ACCELERATOR
            and contract.end_date is not None
            and (contract.end_date.year, contract.end_date.month)
            == (month_end.year, month_end.month)
        ):
            return True

        last_day = month_end.replace(hour=0, minute=0, second=0, microsecond=0)
        if contract.start_date > last_day:
            return False

        return contract.end_date is None or contract.end_date >= month_start

    def is_accelerator_billing_month(
        self,
        contract: Contract,
        month_end: datetime,
        now: datetime,
    ) -> bool:
        return is_accelerator_billing_month(contract, month_end, now)
