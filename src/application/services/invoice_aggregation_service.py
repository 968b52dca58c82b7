"""Monthly billing aggregation for navigator, solve and accelerator contracts.

Each run computes the contract's fixed base fee for the billing month and,
for flat-rate solve contracts, a usage charge per cloud provider, then
records the result as that day's snapshot of the month.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Optional

from domain.exceptions import ContractIntegrityError, ContractNotFoundError
from domain.models.billing import MonthlyBillingSummary, SpendQuery
from domain.models.contract import BillingSnapshot, Contract, ContractType, PaymentTerm
from domain.services.consumption import build_consumption
from domain.services.contract_lifecycle import ContractLifecycleService
from domain.services.proration import (
    BILLING_DAY_FORMAT,
    billing_month_key,
    calculate_accelerator_charge,
    calculate_annual_charge,
    calculate_fixed_monthly_charge,
    get_billable_days,
    invoice_month_window,
)

from application.services.ports import (
    AnalyticsQueryEngine,
    ContractRepository,
    EntityRepository,
    Scheduler,
    aggregate_contract_unit,
)
from application.services.tier_service import TierEntitlementResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractAggregation:
    contract_id: str
    month: str
    day: str
    snapshot: BillingSnapshot
    final: bool


@dataclass
class AggregationSummary:
    month: str
    enqueued: int = 0
    results: list[ContractAggregation] = field(default_factory=list)


class InvoiceAggregationService:
    def __init__(
        self,
        contract_repo: ContractRepository,
        entity_repo: EntityRepository,
        analytics: AnalyticsQueryEngine,
        tier_resolver: TierEntitlementResolver,
        lifecycle_service: ContractLifecycleService,
        scheduler: Scheduler,
    ) -> None:
        self._contract_repo = contract_repo
        self._entity_repo = entity_repo
        self._analytics = analytics
        self._tiers = tier_resolver
        self._lifecycle = lifecycle_service
        self._scheduler = scheduler

    # -- helpers ----------------------------------------------------------

    def _fan_out(self, month: str) -> int:
        contracts = self._contract_repo.list_billable_contracts()
        enqueued = 0
        for contract in contracts:
            try:
                self._scheduler.enqueue(aggregate_contract_unit(month, contract.id))
                enqueued += 1
            except Exception:
                logger.exception("Failed to schedule aggregation of contract %s for %s", contract.id, month)

        logger.info("Scheduled %s aggregation for %d of %d contracts", month, enqueued, len(contracts))
        return enqueued

    def _flat_rate_consumption(
        self,
        contract: Contract,
        start: datetime,
        end: datetime,
        month_start: datetime,
        now: datetime,
    ) -> Optional[tuple[list, bool]]:
        if not contract.entity_id:
            logger.error("No entity for flat-rate contract %s", contract.id)
            return None

        entity = self._entity_repo.get_entity(contract.entity_id)
        if entity is None:
            logger.error("Entity %s of contract %s not found", contract.entity_id, contract.id)
            return None

        query = SpendQuery(
            customer_id=contract.customer_id,
            start=start,
            end=end,
            currency=entity.currency,
            accounts=tuple(self._analytics.get_accounts(contract.customer_id)),
        )
        rows = self._analytics.run_query(query)
        return build_consumption(rows, contract.monthly_flat_rate, entity.currency, month_start, now)

    # -- public API -------------------------------------------------------

    def aggregate_contract(
        self,
        contract: Contract,
        month_start: datetime,
        month_end: datetime,
        now: datetime,
    ) -> Optional[ContractAggregation]:
        """Compute and store one contract's snapshot for the month.

        Returns ``None`` when nothing is written.
        """
        if not self._lifecycle.is_active_for_billing_month(contract, month_start, month_end):
            logger.info("Contract %s not active in %s", contract.id, billing_month_key(month_start))
            return None

        consumption: list = []
        final = True

        if contract.type is ContractType.SOLVE_ACCELERATOR:
            base_fee = calculate_accelerator_charge(
                contract,
                month_end,
                now,
                self._tiers.solve_tier_includes_accelerators(contract.customer_id),
            )
        else:
            start, end = get_billable_days(contract, month_start, month_end, now)
            if contract.payment_term is PaymentTerm.ANNUAL:
                base_fee = calculate_annual_charge(contract, month_start)
            else:
                base_fee = calculate_fixed_monthly_charge(contract, start, end, month_end)

            if contract.monthly_flat_rate > 0.0 and contract.type is ContractType.SOLVE:
                flat_rate = self._flat_rate_consumption(contract, start, end, month_start, now)
                if flat_rate is None:
                    return None
                consumption, final = flat_rate

        aggregation = ContractAggregation(
            contract_id=contract.id,
            month=billing_month_key(month_start),
            day=now.strftime(BILLING_DAY_FORMAT),
            snapshot=BillingSnapshot(base_fee=base_fee, consumption=consumption),
            final=final,
        )
        self._contract_repo.write_billing_snapshot(
            aggregation.contract_id,
            aggregation.month,
            aggregation.day,
            aggregation.snapshot,
            aggregation.final,
        )
        logger.info(
            "Contract %s %s snapshot: base fee %s, final=%s",
            contract.id,
            aggregation.month,
            base_fee,
            final,
        )
        return aggregation

    def aggregate_invoice_data(
        self,
        invoice_month: str = "",
        contract_id: str = "",
        now: Optional[datetime] = None,
    ) -> AggregationSummary:
        """Aggregate one contract, or schedule every billable contract.

        An empty *invoice_month* resolves to the month currently being
        invoiced.
        """
        now = now or datetime.now(UTC)
        month_start, month_end = invoice_month_window(invoice_month, now)
        month = billing_month_key(month_start)

        if not contract_id:
            return AggregationSummary(month=month, enqueued=self._fan_out(month))

        contract = self._contract_repo.get_contract_by_id(contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id=contract_id)

        summary = AggregationSummary(month=month)
        aggregation = self.aggregate_contract(contract, month_start, month_end, now)
        if aggregation is not None:
            summary.results.append(aggregation)
        return summary

    def schedule_aggregation(
        self,
        invoice_month: str = "",
        contract_id: str = "",
        now: Optional[datetime] = None,
    ) -> AggregationSummary:
        """Hand aggregation to the task queue without computing anything inline."""
        now = now or datetime.now(UTC)
        month_start, _ = invoice_month_window(invoice_month, now)
        month = billing_month_key(month_start)

        if not contract_id:
            return AggregationSummary(month=month, enqueued=self._fan_out(month))

        if self._contract_repo.get_contract_by_id(contract_id) is None:
            raise ContractNotFoundError(contract_id=contract_id)

        self._scheduler.enqueue(aggregate_contract_unit(month, contract_id))
        return AggregationSummary(month=month, enqueued=1)

    def get_latest_billing_data(self, contract_id: str) -> list[MonthlyBillingSummary]:
        """Latest snapshot of every billed month, oldest month first."""
        if self._contract_repo.get_contract_by_id(contract_id) is None:
            raise ContractNotFoundError(contract_id=contract_id)

        summaries: list[MonthlyBillingSummary] = []
        for month, data in sorted(self._contract_repo.get_billing_data(contract_id).items()):
            latest = data.latest()
            if latest is None:
                raise ContractIntegrityError(
                    contract_id=contract_id,
                    reason=f"billing month {month} has no entry for {data.last_update_date or 'lastUpdateDate'}",
                )
            summaries.append(
                MonthlyBillingSummary(
                    month=month,
                    base_fee=latest.base_fee,
                    final=data.final,
                    last_update_date=data.last_update_date,
                    consumption=list(latest.consumption),
                )
            )
        return summaries
