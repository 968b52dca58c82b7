"""
SQL implementations of the contract and tier store ports.

Each public method runs in its own transaction opened from the injected
:class:`sessionmaker`. Rows are converted to domain dataclasses at the
boundary so nothing ORM-bound leaks into the services.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from domain.exceptions import ContractNotFoundError
from domain.models.contract import (
    BILLABLE_TYPES,
    GCP_SUPPORT_PROPERTY,
    BillingSnapshot,
    Consumption,
    Contract,
    ContractBillingMonth,
    ContractFile,
    ContractType,
    PaymentTerm,
    UpdatedBy,
)
from domain.models.tier import (
    HERITAGE_TIER_NAME,
    ZERO_ENTITLEMENTS_TIER_NAME,
    CustomerTier,
    PackageType,
    Tier,
)
from infrastructure.adapters import apply_contract_changes

from .engine import session_scope
from .models import ContractBillingMonthModel, ContractModel, CustomerTierModel, TierModel


# =========================================================================
# Row <-> domain conversion
# =========================================================================

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def snapshot_to_json(snapshot: BillingSnapshot) -> dict[str, Any]:
    return {
        "baseFee": snapshot.base_fee,
        "consumption": [
            {
                "cloud": c.cloud,
                "currency": c.currency,
                "final": c.final,
                "variableFee": c.variable_fee,
            }
            for c in snapshot.consumption
        ],
    }


def snapshot_from_json(data: Mapping[str, Any]) -> BillingSnapshot:
    return BillingSnapshot(
        base_fee=float(data.get("baseFee", 0.0)),
        consumption=[
            Consumption(
                cloud=c.get("cloud", ""),
                currency=c.get("currency", ""),
                final=bool(c.get("final", False)),
                variable_fee=float(c.get("variableFee", 0.0)),
            )
            for c in data.get("consumption") or []
        ],
    )


def _billing_month_to_domain(row: ContractBillingMonthModel) -> ContractBillingMonth:
    return ContractBillingMonth(
        entries={day: snapshot_from_json(data) for day, data in (row.entries or {}).items()},
        last_update_date=row.last_update_date,
        final=row.final,
    )


def _contract_to_domain(row: ContractModel) -> Contract:
    contract_file = None
    if row.contract_file:
        contract_file = ContractFile(
            id=row.contract_file.get("id", ""),
            name=row.contract_file.get("name", ""),
            parent_id=row.contract_file.get("parentId", ""),
            url=row.contract_file.get("url", ""),
        )

    updated_by = None
    if row.updated_by:
        updated_by = UpdatedBy(email=row.updated_by.get("email", ""), name=row.updated_by.get("name", ""))

    return Contract(
        id=row.id,
        customer_id=row.customer_id,
        type=ContractType(row.type),
        entity_id=row.entity_id,
        tier_id=row.tier_id,
        account_manager_id=row.account_manager_id,
        start_date=_as_utc(row.start_date),
        end_date=_as_utc(row.end_date),
        is_commitment=row.is_commitment,
        commitment_months=row.commitment_months,
        payment_term=PaymentTerm(row.payment_term) if row.payment_term else None,
        charge_per_term=row.charge_per_term,
        monthly_flat_rate=row.monthly_flat_rate,
        discount=row.discount,
        point_of_sale=row.point_of_sale,
        is_advantage=row.is_advantage,
        active=row.active,
        notes=row.notes,
        purchase_order=row.purchase_order,
        contract_file=contract_file,
        properties=dict(row.properties or {}),
        updated_by=updated_by,
        time_created=_as_utc(row.time_created),
        timestamp=_as_utc(row.timestamp),
        billing_data={m.month: _billing_month_to_domain(m) for m in row.billing_months},
    )


def _write_contract(row: ContractModel, contract: Contract) -> None:
    """Copy every scalar field of *contract* onto *row* (billing data excluded)."""
    row.customer_id = contract.customer_id
    row.type = contract.type.value
    row.entity_id = contract.entity_id
    row.tier_id = contract.tier_id
    row.account_manager_id = contract.account_manager_id
    row.start_date = contract.start_date
    row.end_date = contract.end_date
    row.is_commitment = contract.is_commitment
    row.commitment_months = contract.commitment_months
    row.payment_term = contract.payment_term.value if contract.payment_term else None
    row.charge_per_term = contract.charge_per_term
    row.monthly_flat_rate = contract.monthly_flat_rate
    row.discount = contract.discount
    row.point_of_sale = contract.point_of_sale
    row.is_advantage = contract.is_advantage
    row.active = contract.active
    row.notes = contract.notes
    row.purchase_order = contract.purchase_order
    row.contract_file = (
        {
            "id": contract.contract_file.id,
            "name": contract.contract_file.name,
            "parentId": contract.contract_file.parent_id,
            "url": contract.contract_file.url,
        }
        if contract.contract_file
        else None
    )
    # A new dict so the JSON column is flagged dirty.
    row.properties = dict(contract.properties)
    row.updated_by = (
        {"email": contract.updated_by.email, "name": contract.updated_by.name}
        if contract.updated_by
        else None
    )
    row.time_created = contract.time_created
    row.timestamp = contract.timestamp


def _tier_to_domain(row: TierModel) -> Tier:
    return Tier(
        id=row.id,
        name=row.name,
        package_type=PackageType(row.package_type),
        trial_tier=row.trial_tier,
    )


# =========================================================================
# SqlContractRepository
# =========================================================================

class SqlContractRepository:
    """Contract store on the ``contracts`` and ``contract_billing_months`` tables."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _require(session: Session, contract_id: str) -> ContractModel:
        row = session.get(ContractModel, contract_id)
        if row is None:
            raise ContractNotFoundError(contract_id=contract_id)
        return row

    # -- reads ------------------------------------------------------------

    def get_contract_by_id(self, contract_id: str) -> Optional[Contract]:
        with session_scope(self._session_factory) as session:
            row = session.get(ContractModel, contract_id)
            return _contract_to_domain(row) if row else None

    def list_customer_recent_contracts(
        self,
        customer_id: str,
        types: Sequence[ContractType],
        limit: int,
    ) -> list[Contract]:
        recent: list[Contract] = []
        with session_scope(self._session_factory) as session:
            for contract_type in types:
                stmt = (
                    select(ContractModel)
                    .where(
                        ContractModel.customer_id == customer_id,
                        ContractModel.type == contract_type.value,
                    )
                    .order_by(ContractModel.time_created.desc())
                    .limit(limit)
                )
                recent.extend(_contract_to_domain(r) for r in session.scalars(stmt))
        return recent

    def get_contracts_by_type(self, customer_id: str, types: Sequence[ContractType]) -> list[Contract]:
        stmt = select(ContractModel).where(
            ContractModel.customer_id == customer_id,
            ContractModel.type.in_([t.value for t in types]),
        )
        with session_scope(self._session_factory) as session:
            return [_contract_to_domain(r) for r in session.scalars(stmt)]

    def get_active_contracts(self, contract_type: ContractType) -> list[Contract]:
        stmt = select(ContractModel).where(
            ContractModel.type == contract_type.value,
            ContractModel.active.is_(True),
        )
        with session_scope(self._session_factory) as session:
            return [_contract_to_domain(r) for r in session.scalars(stmt)]

    def list_billable_contracts(self) -> list[Contract]:
        stmt = select(ContractModel).where(
            ContractModel.type.in_([t.value for t in BILLABLE_TYPES]),
            ContractModel.payment_term.in_([p.value for p in PaymentTerm]),
        )
        with session_scope(self._session_factory) as session:
            return [_contract_to_domain(r) for r in session.scalars(stmt)]

    def list_customers_with_contracts(self, types: Sequence[ContractType]) -> list[str]:
        stmt = (
            select(ContractModel.customer_id)
            .where(ContractModel.type.in_([t.value for t in types]))
            .distinct()
            .order_by(ContractModel.customer_id)
        )
        with session_scope(self._session_factory) as session:
            return list(session.scalars(stmt))

    def get_billing_data(self, contract_id: str) -> dict[str, ContractBillingMonth]:
        with session_scope(self._session_factory) as session:
            row = self._require(session, contract_id)
            return {m.month: _billing_month_to_domain(m) for m in row.billing_months}

    # -- writes -----------------------------------------------------------

    def create_contract(self, contract: Contract) -> Contract:
        with session_scope(self._session_factory) as session:
            row = ContractModel(id=contract.id)
            _write_contract(row, contract)
            session.add(row)
            session.flush()
            return _contract_to_domain(row)

    def set_active_flag(self, contract_id: str, active: bool) -> None:
        with session_scope(self._session_factory) as session:
            self._require(session, contract_id).active = active

    def cancel_contract(self, contract_id: str, now: datetime) -> None:
        with session_scope(self._session_factory) as session:
            row = self._require(session, contract_id)
            row.end_date = now
            row.timestamp = now

    def update_contract(self, contract_id: str, changes: Mapping[str, Any]) -> Contract:
        with session_scope(self._session_factory) as session:
            row = self._require(session, contract_id)
            contract = _contract_to_domain(row)
            apply_contract_changes(contract, changes)
            _write_contract(row, contract)
            session.flush()
            return _contract_to_domain(row)

    def delete_contract(self, contract_id: str) -> None:
        with session_scope(self._session_factory) as session:
            session.delete(self._require(session, contract_id))

    def write_billing_snapshot(
        self,
        contract_id: str,
        month: str,
        day: str,
        snapshot: BillingSnapshot,
        final: bool,
    ) -> None:
        with session_scope(self._session_factory) as session:
            self._require(session, contract_id)
            row = session.scalars(
                select(ContractBillingMonthModel).where(
                    ContractBillingMonthModel.contract_id == contract_id,
                    ContractBillingMonthModel.month == month,
                )
            ).first()
            if row is None:
                row = ContractBillingMonthModel(
                    contract_id=contract_id,
                    month=month,
                    entries={},
                    final=False,
                )
                session.add(row)

            entries = dict(row.entries or {})
            entries[day] = snapshot_to_json(snapshot)
            row.entries = entries
            row.last_update_date = day
            row.final = bool(row.final) or final

    def update_contract_support(self, support: Mapping[str, Mapping[str, str]]) -> None:
        with session_scope(self._session_factory) as session:
            for contract_id, assets in support.items():
                row = self._require(session, contract_id)
                properties = dict(row.properties or {})
                properties[GCP_SUPPORT_PROPERTY] = dict(assets)
                row.properties = properties


# =========================================================================
# SqlTierRepository
# =========================================================================

class SqlTierRepository:
    """Tier catalogue and customer entitlements on ``tiers`` / ``customer_tiers``."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def add_tier(self, tier: Tier) -> Tier:
        with session_scope(self._session_factory) as session:
            session.merge(
                TierModel(
                    id=tier.id,
                    name=tier.name,
                    package_type=tier.package_type.value,
                    trial_tier=tier.trial_tier,
                )
            )
        return tier

    def get_tier(self, tier_id: str) -> Optional[Tier]:
        with session_scope(self._session_factory) as session:
            row = session.get(TierModel, tier_id)
            return _tier_to_domain(row) if row else None

    def get_tier_by_name(self, name: str, package_type: PackageType) -> Optional[Tier]:
        stmt = select(TierModel).where(
            TierModel.name == name,
            TierModel.package_type == package_type.value,
        )
        with session_scope(self._session_factory) as session:
            row = session.scalars(stmt).first()
            return _tier_to_domain(row) if row else None

    def get_heritage_tier(self, package_type: PackageType) -> Optional[Tier]:
        return self.get_tier_by_name(HERITAGE_TIER_NAME, package_type)

    def get_zero_entitlements_tier(self, package_type: PackageType) -> Optional[Tier]:
        return self.get_tier_by_name(ZERO_ENTITLEMENTS_TIER_NAME, package_type)

    def get_customer_tier(self, customer_id: str, package_type: PackageType) -> Optional[CustomerTier]:
        with session_scope(self._session_factory) as session:
            row = session.get(CustomerTierModel, (customer_id, package_type.value))
            if row is None:
                return None
            return CustomerTier(
                tier_id=row.tier_id,
                trial_start_date=_as_utc(row.trial_start_date),
                trial_end_date=_as_utc(row.trial_end_date),
            )

    def update_customer_tier(
        self,
        customer_id: str,
        package_type: PackageType,
        customer_tier: CustomerTier,
    ) -> None:
        with session_scope(self._session_factory) as session:
            session.merge(
                CustomerTierModel(
                    customer_id=customer_id,
                    package_type=package_type.value,
                    tier_id=customer_tier.tier_id,
                    trial_start_date=customer_tier.trial_start_date,
                    trial_end_date=customer_tier.trial_end_date,
                )
            )
