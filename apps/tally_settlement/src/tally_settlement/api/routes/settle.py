"""Stateless settlement computation route."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from tally_settlement.api.schemas.settlements import RecomputeResponse, SettleRequest
from tally_settlement.core.settings import Settings, get_settings
from tally_settlement.domain.services.settlement_engine import compute_settlement

router = APIRouter(prefix="/settle", tags=["Settle"])


@router.post(
    "",
    response_model=RecomputeResponse,
    responses={400: {"description": "Invalid payload"}},
)
def settle(
    payload: SettleRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> RecomputeResponse:
    """Compute balances and transfers without storing anything."""

    computation = compute_settlement(
        payload.participants,
        payload.to_payments(),
        tolerance=settings.settlement_tolerance,
    )
    return RecomputeResponse.from_computation(computation)
