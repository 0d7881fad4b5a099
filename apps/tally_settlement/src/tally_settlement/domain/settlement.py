"""Settlement aggregate root."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TypeVar

from tally_settlement.domain.commands import (
    AddPayment,
    DeletePayment,
    PaymentCommand,
    UpdatePayment,
    build_payment,
)
from tally_settlement.domain.errors import LockedError, PaymentNotFoundError
from tally_settlement.domain.services.settlement_engine import SettlementComputation
from tally_settlement.domain.value_objects import ParticipantId, Payment, Transfer


T = TypeVar("T")


class SettlementStatus(enum.StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


@dataclass(slots=True)
class Settlement:
    """Participants, payments and last computed transfers of one expense episode.

    Once ``is_completed`` is set every mutating method raises ``LockedError``.
    """

    id: str
    title: str
    participants: list[ParticipantId]
    payments: list[Payment] = field(default_factory=list)
    transfers: list[Transfer] = field(default_factory=list)
    is_completed: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def status(self) -> SettlementStatus:
        if self.is_completed:
            return SettlementStatus.COMPLETED
        return SettlementStatus.PENDING

    def ensure_open(self) -> None:
        if self.is_completed:
            raise LockedError(details={"settlement_id": self.id})

    def next_payment_id(self) -> int:
        return max((payment.id for payment in self.payments), default=0) + 1

    def find_payment(self, payment_id: int) -> Payment:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        raise PaymentNotFoundError(
            details={"settlement_id": self.id, "payment_id": payment_id}
        )

    def apply(self, command: PaymentCommand) -> Payment | None:
        """Apply one payment command and return the added or updated payment."""

        self.ensure_open()
        if isinstance(command, AddPayment):
            payment = build_payment(
                payment_id=self.next_payment_id(),
                payer=command.payer,
                targets=command.targets,
                amount=command.amount,
                label=command.label,
                split_mode=command.split_mode,
                weights=command.weights,
            )
            self.payments.append(payment)
            return payment

        if isinstance(command, UpdatePayment):
            current = self.find_payment(command.payment_id)
            updated = build_payment(
                payment_id=current.id,
                payer=_pick(command.payer, current.payer),
                targets=_pick(command.targets, current.targets),
                amount=_pick(command.amount, current.amount),
                label=_pick(command.label, current.label),
                split_mode=_pick(command.split_mode, current.split_mode),
                weights=_pick(command.weights, current.weights),
            )
            index = self.payments.index(current)
            self.payments[index] = updated
            return updated

        if isinstance(command, DeletePayment):
            current = self.find_payment(command.payment_id)
            self.payments.remove(current)
            return None

        raise TypeError(f"Unsupported payment command: {type(command).__name__}")

    def record_computation(self, computation: SettlementComputation) -> None:
        self.ensure_open()
        self.transfers = list(computation.transfers)

    def mark_completed(self, completed_at: datetime | None = None) -> None:
        self.ensure_open()
        self.is_completed = True
        self.completed_at = completed_at or datetime.now(UTC)


def _pick(value: T | None, fallback: T) -> T:
    return fallback if value is None else value
