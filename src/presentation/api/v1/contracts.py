"""Contract management and billing trigger API endpoints."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Path, Query, Response, status

from application.services.contract_service import ContractService
from application.services.invoice_aggregation_service import InvoiceAggregationService
from application.services.ports import Scheduler, refresh_customer_unit
from domain.models.contract import UpdatedBy
from infrastructure.container import (
    get_contract_service,
    get_invoice_aggregation_service,
    get_scheduler,
)

from .schemas import (
    BillingMonthResponse,
    ContractCreate,
    ContractPatch,
    ContractResponse,
    ErrorResponse,
    TaskAccepted,
)

router = APIRouter(prefix="/contracts", tags=["Contracts"])

ContractID = Annotated[str, Path(description="Unique contract identifier.")]

_NOT_FOUND = {"description": "Contract not found.", "model": ErrorResponse}
_INVALID = {"description": "Invalid contract data.", "model": ErrorResponse}


def _updated_by(
    x_user_email: Annotated[str, Header()] = "",
    x_user_name: Annotated[str, Header()] = "",
) -> UpdatedBy:
    return UpdatedBy(email=x_user_email, name=x_user_name)


@router.post(
    "",
    response_model=ContractResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a contract",
    responses={
        201: {"description": "Contract stored; tier refresh scheduled."},
        400: _INVALID,
        404: {"description": "Referenced accelerator not found.", "model": ErrorResponse},
    },
)
async def create_contract(
    body: ContractCreate,
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    contract = service.create_contract(body.to_input())
    return ContractResponse.from_domain(contract)


@router.get(
    "/{contract_id}",
    response_model=ContractResponse,
    summary="Get a contract",
    responses={404: _NOT_FOUND},
)
async def get_contract(
    contract_id: ContractID,
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    return ContractResponse.from_domain(service.get_contract(contract_id))


@router.patch(
    "/{contract_id}",
    response_model=ContractResponse,
    summary="Update a contract",
    responses={400: _INVALID, 404: _NOT_FOUND},
)
async def update_contract(
    contract_id: ContractID,
    body: ContractPatch,
    updated_by: UpdatedBy = Depends(_updated_by),
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    contract = service.update_contract(contract_id, body.to_update(), updated_by)
    return ContractResponse.from_domain(contract)


@router.post(
    "/{contract_id}/cancel",
    response_model=ContractResponse,
    summary="Cancel a contract",
    responses={404: _NOT_FOUND},
)
async def cancel_contract(
    contract_id: ContractID,
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    return ContractResponse.from_domain(service.cancel_contract(contract_id))


@router.delete(
    "/{contract_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a contract",
    responses={404: _NOT_FOUND},
)
async def delete_contract(
    contract_id: ContractID,
    service: ContractService = Depends(get_contract_service),
) -> Response:
    service.delete_contract(contract_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{contract_id}/billing-data",
    response_model=list[BillingMonthResponse],
    summary="Latest billing snapshot of every month",
    responses={404: _NOT_FOUND},
)
async def get_billing_data(
    contract_id: ContractID,
    service: InvoiceAggregationService = Depends(get_invoice_aggregation_service),
) -> list[BillingMonthResponse]:
    return [BillingMonthResponse.from_domain(s) for s in service.get_latest_billing_data(contract_id)]


# ---------------------------------------------------------------------------
# Task triggers
# ---------------------------------------------------------------------------


@router.post(
    "/customers/{customer_id}/refresh-tiers",
    response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Schedule a tier refresh for one customer",
)
async def refresh_customer_tiers(
    customer_id: Annotated[str, Path(description="Customer identifier.")],
    scheduler: Scheduler = Depends(get_scheduler),
) -> TaskAccepted:
    scheduler.enqueue(refresh_customer_unit(customer_id))
    return TaskAccepted(enqueued=1)


@router.post(
    "/refresh-tiers",
    response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Schedule a tier refresh for every customer with contracts",
)
async def refresh_all_customer_tiers(
    service: ContractService = Depends(get_contract_service),
) -> TaskAccepted:
    return TaskAccepted(enqueued=service.refresh_all_customer_tiers())


@router.post(
    "/aggregate",
    response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Schedule invoice aggregation",
    responses={
        400: {"description": "Malformed invoice month.", "model": ErrorResponse},
        404: _NOT_FOUND,
    },
)
async def aggregate_invoice_data(
    invoice_month: Annotated[
        str, Query(alias="invoiceMonth", description="YYYY-MM; defaults to the month being invoiced.")
    ] = "",
    contract_id: Annotated[Optional[str], Query(alias="contractId")] = None,
    service: InvoiceAggregationService = Depends(get_invoice_aggregation_service),
) -> TaskAccepted:
    summary = service.schedule_aggregation(invoice_month, contract_id or "")
    return TaskAccepted(enqueued=summary.enqueued, month=summary.month)
