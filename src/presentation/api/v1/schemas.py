"""
Pydantic v2 request/response schemas for the contract billing API.

Payloads use camelCase field names (``startDate``, ``chargePerTerm``);
snake_case names are accepted on input as well. Errors follow RFC 9457
Problem Details.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from application.schemas.contract_inputs import ContractInput, ContractUpdate
from domain.models.billing import MonthlyBillingSummary
from domain.models.contract import Contract, ContractFile

# ---------------------------------------------------------------------------
# Base / shared
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either case on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# RFC 9457 Problem Details error response
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error response following RFC 9457 Problem Details for HTTP APIs.

    See https://www.rfc-editor.org/rfc/rfc9457
    """

    type: str = Field(
        default="about:blank",
        description="A URI reference that identifies the problem type.",
        examples=["https://api.contracts.example/problems/contract-not-found"],
    )
    title: str = Field(..., examples=["Contract Not Found"])
    status: int = Field(..., examples=[404])
    detail: str = Field(..., examples=["Contract not found: 8f14e45f"])
    instance: Optional[str] = Field(default=None)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class ContractFileSchema(_CamelModel):
    id: str = ""
    name: str = ""
    parent_id: str = ""
    url: str = ""

    def to_domain(self) -> ContractFile:
        return ContractFile(id=self.id, name=self.name, parent_id=self.parent_id, url=self.url)


class ContractCreate(_CamelModel):
    """Create a contract. Dates are RFC 3339 strings."""

    customer_id: str = Field(..., min_length=1)
    type: str = Field(..., examples=["navigator"])
    start_date: str = Field(..., examples=["2024-01-01T00:00:00Z"])
    end_date: str = ""
    entity_id: str = ""
    tier: str = Field(default="", description="Tier id; required for navigator and solve.")
    account_manager: str = ""
    is_commitment: bool = False
    commitment_months: float = Field(default=0.0, ge=0)
    payment_term: str = Field(default="", examples=["monthly"])
    charge_per_term: float = Field(default=0.0, ge=0)
    monthly_flat_rate: float = Field(default=0.0, ge=0)
    discount: float = Field(default=0.0, ge=0, le=100)
    point_of_sale: str = ""
    is_advantage: bool = False
    notes: str = ""
    purchase_order: str = ""
    contract_file: Optional[ContractFileSchema] = None
    type_context: str = ""
    estimated_funding: Optional[float] = None

    def to_input(self) -> ContractInput:
        return ContractInput(
            customer_id=self.customer_id,
            type=self.type,
            start_date=self.start_date,
            end_date=self.end_date,
            entity_id=self.entity_id,
            tier_id=self.tier,
            account_manager_id=self.account_manager,
            is_commitment=self.is_commitment,
            commitment_months=self.commitment_months,
            payment_term=self.payment_term,
            charge_per_term=self.charge_per_term,
            monthly_flat_rate=self.monthly_flat_rate,
            discount=self.discount,
            point_of_sale=self.point_of_sale,
            is_advantage=self.is_advantage,
            notes=self.notes,
            purchase_order=self.purchase_order,
            contract_file=self.contract_file.to_domain() if self.contract_file else None,
            type_context=self.type_context,
            estimated_funding=self.estimated_funding,
        )


class ContractPatch(_CamelModel):
    """Partial update; omitted fields are left unchanged."""

    type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    entity_id: Optional[str] = None
    tier: Optional[str] = None
    account_manager: Optional[str] = None
    is_commitment: Optional[bool] = None
    commitment_months: Optional[float] = Field(default=None, ge=0)
    payment_term: Optional[str] = None
    charge_per_term: Optional[float] = Field(default=None, ge=0)
    monthly_flat_rate: Optional[float] = Field(default=None, ge=0)
    discount: Optional[float] = Field(default=None, ge=0, le=100)
    point_of_sale: Optional[str] = None
    is_advantage: Optional[bool] = None
    notes: Optional[str] = None
    purchase_order: Optional[str] = None
    contract_file: Optional[ContractFileSchema] = None
    type_context: Optional[str] = None
    estimated_funding: Optional[float] = None

    def to_update(self) -> ContractUpdate:
        return ContractUpdate(
            type=self.type,
            start_date=self.start_date,
            end_date=self.end_date,
            entity_id=self.entity_id,
            tier_id=self.tier,
            account_manager_id=self.account_manager,
            is_commitment=self.is_commitment,
            commitment_months=self.commitment_months,
            payment_term=self.payment_term,
            charge_per_term=self.charge_per_term,
            monthly_flat_rate=self.monthly_flat_rate,
            discount=self.discount,
            point_of_sale=self.point_of_sale,
            is_advantage=self.is_advantage,
            notes=self.notes,
            purchase_order=self.purchase_order,
            contract_file=self.contract_file.to_domain() if self.contract_file else None,
            type_context=self.type_context,
            estimated_funding=self.estimated_funding,
        )


class ContractResponse(_CamelModel):
    id: str
    customer_id: str
    type: str
    entity_id: Optional[str] = None
    tier: Optional[str] = None
    account_manager: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_commitment: bool
    commitment_months: float
    payment_term: Optional[str] = None
    charge_per_term: float
    monthly_flat_rate: float
    discount: float
    point_of_sale: str
    is_advantage: bool
    active: bool
    notes: str
    purchase_order: str
    contract_file: Optional[ContractFileSchema] = None
    properties: dict[str, Any] = Field(default_factory=dict)
    time_created: datetime
    timestamp: datetime

    @classmethod
    def from_domain(cls, contract: Contract) -> ContractResponse:
        contract_file = None
        if contract.contract_file is not None:
            contract_file = ContractFileSchema(
                id=contract.contract_file.id,
                name=contract.contract_file.name,
                parent_id=contract.contract_file.parent_id,
                url=contract.contract_file.url,
            )
        return cls(
            id=contract.id,
            customer_id=contract.customer_id,
            type=contract.type.value,
            entity_id=contract.entity_id,
            tier=contract.tier_id,
            account_manager=contract.account_manager_id,
            start_date=contract.start_date,
            end_date=contract.end_date,
            is_commitment=contract.is_commitment,
            commitment_months=contract.commitment_months,
            payment_term=contract.payment_term.value if contract.payment_term else None,
            charge_per_term=contract.charge_per_term,
            monthly_flat_rate=contract.monthly_flat_rate,
            discount=contract.discount,
            point_of_sale=contract.point_of_sale,
            is_advantage=contract.is_advantage,
            active=contract.active,
            notes=contract.notes,
            purchase_order=contract.purchase_order,
            contract_file=contract_file,
            properties=dict(contract.properties),
            time_created=contract.time_created,
            timestamp=contract.timestamp,
        )


# ---------------------------------------------------------------------------
# Billing data
# ---------------------------------------------------------------------------


class ConsumptionSchema(_CamelModel):
    cloud: str
    currency: str
    final: bool
    variable_fee: float


class BillingMonthResponse(_CamelModel):
    month: str = Field(..., examples=["2024-02"])
    base_fee: float = Field(..., description="-0.01 when the contract is not billable that month.")
    final: bool
    last_update_date: str
    consumption: list[ConsumptionSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, summary: MonthlyBillingSummary) -> BillingMonthResponse:
        return cls(
            month=summary.month,
            base_fee=summary.base_fee,
            final=summary.final,
            last_update_date=summary.last_update_date,
            consumption=[
                ConsumptionSchema(
                    cloud=c.cloud,
                    currency=c.currency,
                    final=c.final,
                    variable_fee=c.variable_fee,
                )
                for c in summary.consumption
            ],
        )


# ---------------------------------------------------------------------------
# Task triggers
# ---------------------------------------------------------------------------


class TaskAccepted(_CamelModel):
    """Acknowledgement of work handed to the task queue."""

    status: str = "accepted"
    enqueued: int = Field(..., ge=0)
    month: Optional[str] = None
