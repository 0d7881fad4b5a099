"""Fold payment records into one signed balance per participant."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal, DivisionByZero, InvalidOperation

from tally_settlement.domain.value_objects import (
    AnomalyKind,
    ParticipantId,
    Payment,
    PaymentAnomaly,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class BalanceSheet:
    """Balances plus the anomalies recovered while building them."""

    balances: dict[ParticipantId, Decimal]
    anomalies: tuple[PaymentAnomaly, ...]

    @property
    def skipped_payment_ids(self) -> list[int]:
        return [
            anomaly.payment_id
            for anomaly in self.anomalies
            if anomaly.kind.skips_payment
        ]


def accumulate(
    participants: Iterable[ParticipantId],
    payments: Iterable[Payment],
) -> dict[ParticipantId, Decimal]:
    """Return net balance per participant (positive means owed money)."""

    return accumulate_balances(participants, payments).balances


def accumulate_balances(
    participants: Iterable[ParticipantId],
    payments: Iterable[Payment],
) -> BalanceSheet:
    """Accumulate balances and report skipped or fallback-split payments."""

    balances: dict[ParticipantId, Decimal] = dict.fromkeys(participants, ZERO)
    anomalies: list[PaymentAnomaly] = []

    for payment in payments:
        if payment.payer not in balances:
            anomalies.append(
                PaymentAnomaly(payment_id=payment.id, kind=AnomalyKind.INVALID_PAYER)
            )
            logger.warning(
                "payment_skipped",
                extra={"payment_id": payment.id, "reason": "invalid_payer"},
            )
            continue

        targets = [target for target in payment.targets if target in balances]
        if not targets:
            anomalies.append(
                PaymentAnomaly(
                    payment_id=payment.id, kind=AnomalyKind.NO_VALID_TARGETS
                )
            )
            logger.warning(
                "payment_skipped",
                extra={"payment_id": payment.id, "reason": "no_valid_targets"},
            )
            continue

        balances[payment.payer] += payment.amount
        for target, share in _split(payment, targets, anomalies):
            balances[target] -= share

    return BalanceSheet(balances=balances, anomalies=tuple(anomalies))


def _split(
    payment: Payment,
    targets: Sequence[ParticipantId],
    anomalies: list[PaymentAnomaly],
) -> list[tuple[ParticipantId, Decimal]]:
    equal_share = payment.amount / len(targets)
    weights = payment.weights
    total_weight = _total(weights) if len(weights) == len(targets) else ZERO
    if not _is_positive(total_weight):
        return [(target, equal_share) for target in targets]

    shares: list[tuple[ParticipantId, Decimal]] = []
    for target, weight in zip(targets, weights, strict=True):
        share = _weighted_share(payment.amount, weight, total_weight)
        if share is None:
            anomalies.append(
                PaymentAnomaly(
                    payment_id=payment.id,
                    kind=AnomalyKind.ARITHMETIC_FALLBACK,
                    participant_id=target,
                )
            )
            logger.debug(
                "weighted_share_fallback",
                extra={"payment_id": payment.id, "participant_id": target},
            )
            share = equal_share
        shares.append((target, share))
    return shares


def _total(weights: Sequence[Decimal]) -> Decimal:
    try:
        return sum(weights, ZERO)
    except InvalidOperation:
        return Decimal("NaN")


def _is_positive(value: Decimal) -> bool:
    # NaN never compares as positive; Decimal raises on ordering NaN.
    return not value.is_nan() and value > ZERO


def _weighted_share(
    amount: Decimal, weight: Decimal, total_weight: Decimal
) -> Decimal | None:
    try:
        share = amount * weight / total_weight
    except (InvalidOperation, DivisionByZero):
        return None
    if not share.is_finite():
        return None
    return share
