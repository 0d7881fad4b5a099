"""Closed set of payment mutations accepted by a settlement."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from tally_settlement.domain.errors import InvalidRequestError, compose_error_message
from tally_settlement.domain.money import has_storable_precision
from tally_settlement.domain.value_objects import ParticipantId, Payment, SplitMode


@dataclass(frozen=True, slots=True)
class AddPayment:
    """Append a new payment; the settlement assigns its id."""

    payer: ParticipantId
    targets: tuple[ParticipantId, ...]
    amount: Decimal
    label: str
    split_mode: SplitMode = SplitMode.EQUAL
    weights: tuple[Decimal, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class UpdatePayment:
    """Replace the given fields of an existing payment; ``None`` keeps a field."""

    payment_id: int
    payer: ParticipantId | None = None
    targets: tuple[ParticipantId, ...] | None = None
    amount: Decimal | None = None
    label: str | None = None
    split_mode: SplitMode | None = None
    weights: tuple[Decimal, ...] | None = None


@dataclass(frozen=True, slots=True)
class DeletePayment:
    payment_id: int


PaymentCommand = AddPayment | UpdatePayment | DeletePayment


def build_payment(
    *,
    payment_id: int,
    payer: ParticipantId,
    targets: Sequence[ParticipantId],
    amount: Decimal,
    label: str,
    split_mode: SplitMode,
    weights: Sequence[Decimal],
) -> Payment:
    """Validate command fields and return the resulting payment."""

    label = label.strip()
    if not label:
        raise _invalid("Payment label cannot be blank.", "Provide a label.")
    if not amount.is_finite() or amount <= 0:
        raise _invalid(
            "Payment amount must be greater than zero.",
            "Provide a positive amount in the smallest currency unit.",
        )
    if not has_storable_precision(amount):
        raise _invalid(
            "Payment amount has too many digits.",
            "Use at most 15 digits, 4 of them after the decimal point.",
        )
    payer = payer.strip()
    targets = tuple(target.strip() for target in targets)
    if not payer or not all(targets):
        raise _invalid(
            "Participant ids cannot be blank.",
            "Name the payer and every target.",
        )
    if not targets:
        raise _invalid(
            "Payment must have at least one target.",
            "Select one or more participants sharing the cost.",
        )
    if len(set(targets)) != len(targets):
        raise _invalid(
            "Payment targets must not repeat.",
            "List each participant sharing the cost once.",
        )

    if split_mode is SplitMode.EQUAL:
        weights = ()
    else:
        _validate_weights(split_mode, weights, targets, amount)

    return Payment(
        id=payment_id,
        payer=payer,
        targets=targets,
        amount=amount,
        label=label,
        split_mode=split_mode,
        weights=tuple(weights),
    )


def _validate_weights(
    split_mode: SplitMode,
    weights: Sequence[Decimal],
    targets: Sequence[ParticipantId],
    amount: Decimal,
) -> None:
    if len(weights) != len(targets):
        raise _invalid(
            "Split weights must have one value per target.",
            "Send as many weights as targets, in the same order.",
        )
    if any(not weight.is_finite() or weight < 0 for weight in weights):
        raise _invalid(
            "Split weights must be finite and non-negative.",
            "Fix the weights and retry.",
        )
    if not all(has_storable_precision(weight) for weight in weights):
        raise _invalid(
            "Split weights have too many digits.",
            "Use at most 15 digits, 4 of them after the decimal point.",
        )
    total = sum(weights, Decimal("0"))
    if total <= 0:
        raise _invalid(
            "Split weights must add up to more than zero.",
            "Give at least one target a positive weight.",
        )
    if split_mode is SplitMode.FIXED and total != amount:
        raise _invalid(
            "Fixed amounts must add up to the payment amount.",
            "Adjust the per-target amounts or the payment amount.",
        )


def _invalid(cause: str, action: str) -> InvalidRequestError:
    return InvalidRequestError(
        message=compose_error_message(cause=cause, action=action)
    )
