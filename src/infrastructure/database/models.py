"""
SQLAlchemy 2.0+ ORM models for the contract billing engine.

Schema layout
-------------
* ``contracts``               -- one row per commercial contract
* ``contract_billing_months`` -- per-month aggregation history of a contract
* ``tiers``                   -- tier catalogue
* ``customer_tiers``          -- entitlement per (customer, package type)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)

# JSONB on PostgreSQL, plain JSON elsewhere.
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for every ORM model."""
    pass


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------

class ContractModel(Base):
    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(128))
    tier_id: Mapped[Optional[str]] = mapped_column(String(128))
    account_manager_id: Mapped[Optional[str]] = mapped_column(String(128))

    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    is_commitment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    commitment_months: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    payment_term: Mapped[Optional[str]] = mapped_column(String(16))
    charge_per_term: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    monthly_flat_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    point_of_sale: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    is_advantage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    purchase_order: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    contract_file: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)
    properties: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    updated_by: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)

    time_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    billing_months: Mapped[List["ContractBillingMonthModel"]] = relationship(
        back_populates="contract",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_contracts_customer_type", "customer_id", "type"),
        Index("ix_contracts_type_active", "type", "active"),
    )

    def __repr__(self) -> str:
        return f"<Contract id={self.id!r} customer={self.customer_id!r} type={self.type!r}>"


class ContractBillingMonthModel(Base):
    """Aggregation history of one contract for one ``YYYY-MM`` month.

    ``entries`` maps the ``YYYY-MM-DD`` run date to that run's snapshot.
    """

    __tablename__ = "contract_billing_months"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contract_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    entries: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    last_update_date: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    contract: Mapped["ContractModel"] = relationship(back_populates="billing_months")

    __table_args__ = (
        UniqueConstraint("contract_id", "month", name="uq_contract_billing_month"),
    )


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

class TierModel(Base):
    __tablename__ = "tiers"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    package_type: Mapped[str] = mapped_column(String(16), nullable=False)
    trial_tier: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("name", "package_type", name="uq_tier_name_package"),
    )


class CustomerTierModel(Base):
    __tablename__ = "customer_tiers"

    customer_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    package_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    tier_id: Mapped[Optional[str]] = mapped_column(String(128))
    trial_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    trial_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
