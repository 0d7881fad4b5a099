"""API request and response schemas."""

from tally_settlement.api.schemas.settlements import (
    CreateSettlementRequest,
    PaymentCommandRequest,
    RecomputeResponse,
    SettlementResponse,
    SettleRequest,
)

__all__ = [
    "CreateSettlementRequest",
    "PaymentCommandRequest",
    "RecomputeResponse",
    "SettleRequest",
    "SettlementResponse",
]
