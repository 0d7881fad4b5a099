"""Recompute balances and transfers for one payment list."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from tally_settlement.domain.money import DEFAULT_TOLERANCE
from tally_settlement.domain.services.balance_accumulator import accumulate_balances
from tally_settlement.domain.services.transfer_optimizer import optimize
from tally_settlement.domain.value_objects import (
    ParticipantId,
    Payment,
    PaymentAnomaly,
    Transfer,
)


@dataclass(frozen=True, slots=True)
class SettlementComputation:
    """Derived state of a settlement: balances and the transfers clearing them."""

    balances: dict[ParticipantId, Decimal]
    transfers: list[Transfer]
    anomalies: tuple[PaymentAnomaly, ...] = ()

    @property
    def is_settled(self) -> bool:
        return not self.transfers


def compute_settlement(
    participants: Iterable[ParticipantId],
    payments: Iterable[Payment],
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> SettlementComputation:
    """Run balance accumulation followed by transfer optimization."""

    sheet = accumulate_balances(participants, payments)
    transfers = optimize(sheet.balances, tolerance=tolerance)
    return SettlementComputation(
        balances=sheet.balances,
        transfers=transfers,
        anomalies=sheet.anomalies,
    )
