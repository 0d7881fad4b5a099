"""Settlements routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from tally_settlement.api.dependencies import get_settlement_service
from tally_settlement.api.schemas.settlements import (
    CreateSettlementRequest,
    PaymentCommandRequest,
    RecomputeResponse,
    SettlementResponse,
    SettlementsListResponse,
    TransferGraphResponse,
)
from tally_settlement.services.settlement_service import (
    CreateSettlementInput,
    SettlementService,
    SettlementSnapshot,
)

router = APIRouter(prefix="/settlements", tags=["Settlements"])

SettlementServiceDep = Annotated[SettlementService, Depends(get_settlement_service)]

NOT_FOUND_RESPONSE = {404: {"description": "Settlement not found"}}
LOCKED_RESPONSE = {409: {"description": "Settlement already completed"}}


def _to_response(snapshot: SettlementSnapshot) -> SettlementResponse:
    return SettlementResponse.from_snapshot(
        snapshot.settlement,
        snapshot.balances,
        snapshot.skipped_payment_ids,
    )


@router.get("", response_model=SettlementsListResponse)
def list_settlements(service: SettlementServiceDep) -> SettlementsListResponse:
    """List settlement summaries ordered by creation time."""

    return SettlementsListResponse.from_domain(service.list_settlements())


@router.post(
    "",
    response_model=SettlementResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid payload"}},
)
def create_settlement(
    payload: CreateSettlementRequest,
    service: SettlementServiceDep,
) -> SettlementResponse:
    """Open a settlement and compute its initial transfers."""

    snapshot = service.create_settlement(
        CreateSettlementInput(
            participants=payload.participants,
            title=payload.title,
            payments=[item.to_command() for item in payload.payments],
        )
    )
    return _to_response(snapshot)


@router.get(
    "/{settlement_id}",
    response_model=SettlementResponse,
    responses=NOT_FOUND_RESPONSE,
)
def get_settlement(
    settlement_id: str,
    service: SettlementServiceDep,
) -> SettlementResponse:
    return _to_response(service.get_settlement(settlement_id))


@router.post(
    "/{settlement_id}/payment-commands",
    response_model=SettlementResponse,
    responses={
        400: {"description": "Invalid command"},
        **NOT_FOUND_RESPONSE,
        **LOCKED_RESPONSE,
    },
)
def apply_payment_command(
    settlement_id: str,
    payload: PaymentCommandRequest,
    service: SettlementServiceDep,
) -> SettlementResponse:
    """Add, update or delete a payment and return the recomputed settlement."""

    return _to_response(service.apply_command(settlement_id, payload.to_command()))


@router.post(
    "/{settlement_id}/recompute",
    response_model=RecomputeResponse,
    responses={**NOT_FOUND_RESPONSE, **LOCKED_RESPONSE},
)
def recompute_settlement(
    settlement_id: str,
    service: SettlementServiceDep,
) -> RecomputeResponse:
    return RecomputeResponse.from_computation(service.recompute(settlement_id))


@router.post(
    "/{settlement_id}/complete",
    response_model=SettlementResponse,
    responses={**NOT_FOUND_RESPONSE, **LOCKED_RESPONSE},
)
def complete_settlement(
    settlement_id: str,
    service: SettlementServiceDep,
) -> SettlementResponse:
    """Mark the settlement completed; it rejects further changes."""

    return _to_response(service.complete(settlement_id))


@router.get(
    "/{settlement_id}/transfer-graph",
    response_model=TransferGraphResponse,
    responses=NOT_FOUND_RESPONSE,
)
def get_transfer_graph(
    settlement_id: str,
    service: SettlementServiceDep,
) -> TransferGraphResponse:
    return TransferGraphResponse.from_domain(service.get_transfer_graph(settlement_id))
