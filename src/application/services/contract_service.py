"""Application service for contract lifecycle operations.

``ContractService`` validates and persists contract mutations, keeps each
customer's package tiers in line with their contracts, and schedules the
asynchronous follow-up refresh after every mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from domain.events.contract_events import (
    ContractCancelled,
    ContractCreated,
    ContractDeleted,
    ContractEvent,
    ContractUpdated,
    CustomerTierUpdated,
)
from domain.exceptions import (
    AcceleratorNotFoundError,
    ContractIntegrityError,
    ContractNotFoundError,
    ContractValidationError,
)
from domain.models.contract import (
    ESTIMATED_FUNDING_PROPERTY,
    TIERED_TYPES,
    TYPE_CONTEXT_PROPERTY,
    Contract,
    ContractFile,
    ContractStatus,
    ContractType,
    PaymentTerm,
    UpdatedBy,
)
from domain.models.tier import CustomerTier, PackageType
from domain.services.contract_lifecycle import ContractLifecycleService
from domain.services.proration import add_months
from domain.services.tier_policy import sort_newest_first

from application.schemas.contract_inputs import ContractInput, ContractUpdate, parse_rfc3339
from application.services.ports import (
    AcceleratorRepository,
    ContractRepository,
    CustomerRepository,
    EventPublisher,
    Scheduler,
    TierRepository,
    refresh_customer_unit,
)
from application.services.tier_service import TierEntitlementResolver

logger = logging.getLogger(__name__)

DEFAULT_RECENT_CONTRACTS_WINDOW = 10


@dataclass
class TierRefreshResult:
    """What a single customer refresh changed."""

    customer_id: str
    active_flags_changed: list[str] = field(default_factory=list)
    tiers_updated: list[PackageType] = field(default_factory=list)
    skipped_contracts: list[str] = field(default_factory=list)


class ContractService:
    """Orchestrates contract CRUD and customer tier refreshes."""

    def __init__(
        self,
        contract_repo: ContractRepository,
        tier_repo: TierRepository,
        customer_repo: CustomerRepository,
        accelerator_repo: AcceleratorRepository,
        tier_resolver: TierEntitlementResolver,
        lifecycle_service: ContractLifecycleService,
        scheduler: Scheduler,
        event_publisher: EventPublisher,
        recent_contracts_window: int = DEFAULT_RECENT_CONTRACTS_WINDOW,
    ) -> None:
        self._contract_repo = contract_repo
        self._tier_repo = tier_repo
        self._customer_repo = customer_repo
        self._accelerator_repo = accelerator_repo
        self._tiers = tier_resolver
        self._lifecycle = lifecycle_service
        self._scheduler = scheduler
        self._event_publisher = event_publisher
        self._recent_contracts_window = recent_contracts_window

    # -- helpers ----------------------------------------------------------

    def _get(self, contract_id: str) -> Contract:
        contract = self._contract_repo.get_contract_by_id(contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id=contract_id)
        return contract

    def _publish(self, event: ContractEvent) -> None:
        try:
            self._event_publisher.publish(event)
        except Exception:
            logger.exception("Failed to publish %s for contract %s", event.event_type, event.contract_id)

    def _schedule_refresh(self, customer_id: str) -> None:
        try:
            self._scheduler.enqueue(refresh_customer_unit(customer_id))
        except Exception:
            logger.exception("Failed to schedule tier refresh for customer %s", customer_id)
            raise

    @staticmethod
    def _parse_type(value: str) -> ContractType:
        try:
            return ContractType(value)
        except ValueError as exc:
            raise ContractValidationError(f"unknown contract type {value!r}") from exc

    @staticmethod
    def _parse_payment_term(value: str) -> Optional[PaymentTerm]:
        if not value:
            return None
        try:
            return PaymentTerm(value)
        except ValueError as exc:
            raise ContractValidationError(f"unknown payment term {value!r}") from exc

    @staticmethod
    def _check_contract_file(contract_file: ContractFile) -> None:
        if not contract_file.is_valid():
            raise ContractValidationError("contract file must have id, name, parentId and url")

    def _check_accelerator(self, accelerator_id: str) -> None:
        if not self._accelerator_repo.exists(accelerator_id):
            raise AcceleratorNotFoundError(accelerator_id=accelerator_id)

    @staticmethod
    def _check_window(start: Optional[datetime], end: Optional[datetime]) -> None:
        if start is not None and end is not None and end < start:
            raise ContractValidationError("endDate must not be before startDate")

    def _upsert_customer_tier(
        self,
        customer_id: str,
        package_type: PackageType,
        customer_tier: CustomerTier,
        contract_id: str = "",
    ) -> bool:
        """Write *customer_tier* unless it is already the stored value."""
        if self._tier_repo.get_customer_tier(customer_id, package_type) == customer_tier:
            return False
        self._tier_repo.update_customer_tier(customer_id, package_type, customer_tier)
        logger.info(
            "Customer %s %s tier set to %s",
            customer_id,
            package_type.value,
            customer_tier.tier_id,
        )
        self._publish(
            CustomerTierUpdated(
                customer_id=customer_id,
                contract_id=contract_id,
                package_type=package_type,
                tier_id=customer_tier.tier_id,
            )
        )
        return True

    def _update_customer_trial_dates(self, contract: Contract) -> bool:
        """Copy a trial contract's window onto the customer tier (best effort)."""
        try:
            customer_tier = self._tiers.trial_dates_for(contract)
            if customer_tier is None:
                return False
            return self._upsert_customer_tier(
                contract.customer_id,
                PackageType(contract.type.value),
                customer_tier,
                contract.id,
            )
        except Exception:
            logger.exception("Failed to update trial dates of customer %s from contract %s", contract.customer_id, contract.id)
            return False

    # -- public API -------------------------------------------------------

    def get_contract(self, contract_id: str) -> Contract:
        return self._get(contract_id)

    def create_contract(self, request: ContractInput, now: Optional[datetime] = None) -> Contract:
        """Validate *request*, persist the contract and schedule a tier refresh."""
        now = now or datetime.now(UTC)
        contract_type = self._parse_type(request.type)
        start = parse_rfc3339(request.start_date, "startDate")

        if contract_type in TIERED_TYPES and not request.tier_id:
            raise ContractValidationError("tier must be specified for navigator/solve contracts")

        if request.is_commitment and not request.commitment_months and not request.end_date:
            raise ContractValidationError("either commitmentMonths or endDate must be specified")

        if request.charge_per_term and not request.entity_id:
            raise ContractValidationError("entityId must be specified when chargePerTerm is specified")

        if request.contract_file is not None:
            self._check_contract_file(request.contract_file)

        end: Optional[datetime] = None
        if request.end_date:
            end = parse_rfc3339(request.end_date, "endDate")
        elif request.commitment_months > 0:
            end = add_months(start, int(request.commitment_months))
        self._check_window(start, end)

        properties: dict[str, Any] = {}
        if request.type_context:
            self._check_accelerator(request.type_context)
            properties[TYPE_CONTEXT_PROPERTY] = request.type_context
        if request.estimated_funding is not None:
            properties[ESTIMATED_FUNDING_PROPERTY] = request.estimated_funding

        contract = Contract(
            customer_id=request.customer_id,
            type=contract_type,
            entity_id=request.entity_id or None,
            tier_id=request.tier_id or None,
            account_manager_id=request.account_manager_id or None,
            start_date=start,
            end_date=end,
            is_commitment=request.is_commitment,
            commitment_months=request.commitment_months,
            payment_term=self._parse_payment_term(request.payment_term),
            charge_per_term=request.charge_per_term,
            monthly_flat_rate=request.monthly_flat_rate,
            discount=request.discount,
            point_of_sale=request.point_of_sale,
            is_advantage=request.is_advantage,
            notes=request.notes,
            purchase_order=request.purchase_order,
            contract_file=request.contract_file,
            properties=properties,
            time_created=now,
            timestamp=now,
        )
        contract.active = self._lifecycle.is_active(contract, now)

        contract = self._contract_repo.create_contract(contract)
        logger.info("Contract %s created for customer %s", contract.id, contract.customer_id)

        self._schedule_refresh(contract.customer_id)
        self._publish(ContractCreated(customer_id=contract.customer_id, contract_id=contract.id))
        return contract

    def update_contract(
        self,
        contract_id: str,
        request: ContractUpdate,
        updated_by: UpdatedBy,
        now: Optional[datetime] = None,
    ) -> Contract:
        """Apply only the fields supplied in *request*."""
        now = now or datetime.now(UTC)
        contract = self._get(contract_id)
        changes: dict[str, Any] = {}

        if request.start_date:
            changes["start_date"] = parse_rfc3339(request.start_date, "startDate")

        if request.is_commitment and not request.commitment_months and not request.end_date:
            raise ContractValidationError("either commitmentMonths or endDate must be specified")

        start = changes.get("start_date", contract.start_date)
        if request.end_date:
            changes["end_date"] = parse_rfc3339(request.end_date, "endDate")
        elif request.commitment_months and start is not None:
            changes["end_date"] = add_months(start, int(request.commitment_months))
        self._check_window(start, changes.get("end_date", contract.end_date))

        if request.type:
            changes["type"] = self._parse_type(request.type)
        if request.payment_term:
            changes["payment_term"] = self._parse_payment_term(request.payment_term)
        if request.commitment_months is not None:
            changes["commitment_months"] = request.commitment_months

        for name in (
            "notes",
            "purchase_order",
            "entity_id",
            "account_manager_id",
            "tier_id",
            "point_of_sale",
        ):
            value = getattr(request, name)
            if value:
                changes[name] = value

        for name in (
            "charge_per_term",
            "monthly_flat_rate",
            "discount",
            "is_commitment",
            "is_advantage",
        ):
            value = getattr(request, name)
            if value is not None:
                changes[name] = value

        if request.estimated_funding is not None:
            changes[f"properties.{ESTIMATED_FUNDING_PROPERTY}"] = request.estimated_funding

        if request.type_context:
            self._check_accelerator(request.type_context)
            changes[f"properties.{TYPE_CONTEXT_PROPERTY}"] = request.type_context

        if request.contract_file is not None:
            self._check_contract_file(request.contract_file)
            changes["contract_file"] = request.contract_file

        changes["timestamp"] = now
        changes["updated_by"] = updated_by

        updated = self._contract_repo.update_contract(contract_id, changes)
        logger.info("Contract %s updated by %s", contract_id, updated_by.email)

        self._schedule_refresh(contract.customer_id)
        self._publish(
            ContractUpdated(
                customer_id=contract.customer_id,
                contract_id=contract_id,
                updated_fields=request.supplied_fields(),
            )
        )
        return updated

    def cancel_contract(self, contract_id: str, now: Optional[datetime] = None) -> Contract:
        """End the contract now.

        A cancelled future contract is invisible to the refresh walk, so a
        trial window is copied to the customer tier here.
        """
        now = now or datetime.now(UTC)
        self._get(contract_id)
        self._contract_repo.cancel_contract(contract_id, now)

        contract = self._get(contract_id)
        logger.info("Contract %s cancelled", contract_id)

        self._update_customer_trial_dates(contract)
        self._schedule_refresh(contract.customer_id)
        self._publish(ContractCancelled(customer_id=contract.customer_id, contract_id=contract_id))
        return contract

    def delete_contract(self, contract_id: str) -> None:
        contract = self._get(contract_id)
        self._contract_repo.delete_contract(contract_id)
        logger.info("Contract %s deleted", contract_id)
        self._publish(ContractDeleted(customer_id=contract.customer_id, contract_id=contract_id))

    def refresh_customer_tiers(self, customer_id: str, now: Optional[datetime] = None) -> TierRefreshResult:
        """Recompute a customer's package tiers from their contract history.

        Contracts are walked newest first and the first active or future
        contract of each type claims it. Types whose claiming contract just
        stopped being active fall back to their default tier.
        """
        now = now or datetime.now(UTC)
        result = TierRefreshResult(customer_id=customer_id)

        contracts = sort_newest_first(
            self._contract_repo.list_customer_recent_contracts(
                customer_id, TIERED_TYPES, self._recent_contracts_window
            )
        )

        claimed: set[ContractType] = set()
        to_reset: set[ContractType] = set()

        for contract in contracts:
            try:
                status = self._lifecycle.status(contract, now)
            except ContractIntegrityError as exc:
                logger.error("Skipping contract %s: %s", contract.id, exc.detail)
                result.skipped_contracts.append(contract.id)
                continue

            is_active = status is ContractStatus.ACTIVE
            was_active = contract.active
            if is_active != was_active:
                try:
                    self._contract_repo.set_active_flag(contract.id, is_active)
                except Exception:
                    logger.exception("Failed to set active flag on contract %s", contract.id)
                    result.skipped_contracts.append(contract.id)
                    continue
                result.active_flags_changed.append(contract.id)

            if contract.type in claimed:
                continue

            if status is ContractStatus.FUTURE:
                logger.info("Future contract %s found for customer %s", contract.id, customer_id)
                if self._update_customer_trial_dates(contract):
                    result.tiers_updated.append(PackageType(contract.type.value))
                claimed.add(contract.type)
                continue

            if not is_active:
                if was_active:
                    to_reset.add(contract.type)
                continue

            claimed.add(contract.type)
            customer_tier = self._tiers.resolve_active_tier(contract)
            if customer_tier is None:
                result.skipped_contracts.append(contract.id)
                continue

            package_type = PackageType(contract.type.value)
            try:
                changed = self._upsert_customer_tier(customer_id, package_type, customer_tier, contract.id)
            except Exception:
                logger.exception("Failed to update %s tier of customer %s", package_type.value, customer_id)
                continue

            if changed:
                result.tiers_updated.append(package_type)
                if customer_tier.trial_start_date is not None:
                    try:
                        self._customer_repo.disable_presentation_mode(customer_id)
                    except Exception:
                        logger.exception("Failed to disable presentation mode of customer %s", customer_id)

        for contract_type in TIERED_TYPES:
            if contract_type not in to_reset or contract_type in claimed:
                continue
            package_type = PackageType(contract_type.value)
            default = self._tiers.get_default_tier(package_type, customer_id, contracts)
            if self._upsert_customer_tier(customer_id, package_type, default):
                result.tiers_updated.append(package_type)
                logger.info("Customer %s %s tier reset to %s", customer_id, package_type.value, default.tier_id)

        return result

    def refresh_all_customer_tiers(self) -> int:
        """Enqueue one tier refresh per customer holding navigator/solve contracts."""
        customers = self._contract_repo.list_customers_with_contracts(TIERED_TYPES)
        enqueued = 0
        for customer_id in customers:
            try:
                self._scheduler.enqueue(refresh_customer_unit(customer_id))
                enqueued += 1
            except Exception:
                logger.exception("Failed to schedule tier refresh for customer %s", customer_id)

        logger.info("Scheduled tier refresh for %d of %d customers", enqueued, len(customers))
        return enqueued
