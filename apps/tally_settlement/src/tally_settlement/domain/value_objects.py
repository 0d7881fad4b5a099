"""Domain value objects for payments, transfers and computation anomalies."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal

ParticipantId = str


class SplitMode(enum.StrEnum):
    """How a payment amount is divided among its targets."""

    EQUAL = "equal"
    RATIO = "ratio"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class Payment:
    """One expense entry of a settlement.

    ``weights`` holds one value per target: ratios for ``RATIO`` splits and
    monetary amounts for ``FIXED`` splits. Both are applied proportionally, so
    fixed amounts that do not add up to ``amount`` are scaled to it.
    """

    id: int
    payer: ParticipantId
    targets: tuple[ParticipantId, ...]
    amount: Decimal
    label: str = ""
    split_mode: SplitMode = SplitMode.EQUAL
    weights: tuple[Decimal, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Transfer:
    """Recommended payment from one participant to another."""

    sender: ParticipantId
    receiver: ParticipantId
    amount: Decimal

    def __post_init__(self) -> None:
        if self.sender == self.receiver:
            raise ValueError("Transfer sender and receiver must differ")
        if self.amount <= 0:
            raise ValueError("Transfer amount must be positive")


class AnomalyKind(enum.StrEnum):
    """Data anomalies recovered locally while accumulating balances."""

    INVALID_PAYER = "invalid_payer"
    NO_VALID_TARGETS = "no_valid_targets"
    ARITHMETIC_FALLBACK = "arithmetic_fallback"

    @property
    def skips_payment(self) -> bool:
        return self is not AnomalyKind.ARITHMETIC_FALLBACK


@dataclass(frozen=True, slots=True)
class PaymentAnomaly:
    """A payment that was skipped or partially split with a fallback share."""

    payment_id: int
    kind: AnomalyKind
    participant_id: ParticipantId | None = None
