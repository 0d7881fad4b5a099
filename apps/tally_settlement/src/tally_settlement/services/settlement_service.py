"""Business service orchestrating settlement mutations and recomputation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal

from tally_settlement.application.ports.repositories import SettlementRepository
from tally_settlement.domain.commands import (
    AddPayment,
    DeletePayment,
    PaymentCommand,
    UpdatePayment,
)
from tally_settlement.domain.errors import (
    InvalidRequestError,
    LockedError,
    NotFoundError,
    compose_error_message,
)
from tally_settlement.domain.money import DEFAULT_TOLERANCE
from tally_settlement.domain.services.balance_accumulator import accumulate_balances
from tally_settlement.domain.services.settlement_engine import (
    SettlementComputation,
    compute_settlement,
)
from tally_settlement.domain.services.transfer_graph import (
    TransferGraph,
    build_transfer_graph,
)
from tally_settlement.domain.settlement import Settlement
from tally_settlement.domain.value_objects import ParticipantId
from tally_settlement.services.settlement_locks import SettlementLockRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CreateSettlementInput:
    """Input model for opening a new settlement."""

    participants: list[ParticipantId]
    title: str | None = None
    payments: list[AddPayment] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class SettlementSnapshot:
    """Settlement together with balances derived from its payments."""

    settlement: Settlement
    balances: dict[ParticipantId, Decimal]
    skipped_payment_ids: list[int]


class SettlementService:
    """Serializes edits per settlement and keeps transfers in sync with payments."""

    def __init__(
        self,
        *,
        repository: SettlementRepository,
        locks: SettlementLockRegistry,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ) -> None:
        self._repository = repository
        self._locks = locks
        self._tolerance = tolerance

    def create_settlement(self, payload: CreateSettlementInput) -> SettlementSnapshot:
        participants = _normalize_participants(payload.participants)
        settlement_id = self._repository.next_id()
        title = (payload.title or "").strip() or f"Settlement {settlement_id}"
        settlement = Settlement(
            id=settlement_id,
            title=title,
            participants=participants,
        )
        for command in payload.payments:
            settlement.apply(command)

        with self._locks.hold(settlement_id):
            computation = self._compute(settlement)
            settlement.record_computation(computation)
            self._repository.save(settlement_id, settlement)

        logger.info(
            "settlement_created",
            extra={
                "settlement_id": settlement_id,
                "participants": len(participants),
                "payments": len(settlement.payments),
            },
        )
        return _snapshot(settlement, computation)

    def list_settlements(self) -> list[Settlement]:
        return self._repository.list_all()

    def get_settlement(self, settlement_id: str) -> SettlementSnapshot:
        return _describe(self._load(settlement_id))

    def apply_command(
        self, settlement_id: str, command: PaymentCommand
    ) -> SettlementSnapshot:
        """Add, update or delete one payment and recompute transfers."""

        with self._editing(settlement_id) as settlement:
            settlement.apply(command)
            computation = self._compute(settlement)
            settlement.record_computation(computation)
            self._repository.save(settlement_id, settlement)

        logger.info(
            "payment_command_applied",
            extra={
                "settlement_id": settlement_id,
                "command": _command_name(command),
                "transfers": len(computation.transfers),
            },
        )
        return _snapshot(settlement, computation)

    def recompute(self, settlement_id: str) -> SettlementComputation:
        """Re-derive balances and transfers from the stored payments."""

        with self._editing(settlement_id) as settlement:
            computation = self._compute(settlement)
            settlement.record_computation(computation)
            self._repository.save(settlement_id, settlement)

        logger.info(
            "settlement_recomputed",
            extra={
                "settlement_id": settlement_id,
                "transfers": len(computation.transfers),
                "skipped_payments": len(
                    [item for item in computation.anomalies if item.kind.skips_payment]
                ),
            },
        )
        return computation

    def complete(self, settlement_id: str) -> SettlementSnapshot:
        """Lock the settlement; later mutations raise ``LockedError``."""

        with self._editing(settlement_id) as settlement:
            settlement.mark_completed()
            self._repository.save(settlement_id, settlement)

        logger.info("settlement_completed", extra={"settlement_id": settlement_id})
        return _describe(settlement)

    def get_transfer_graph(self, settlement_id: str) -> TransferGraph:
        settlement = self._load(settlement_id)
        return build_transfer_graph(settlement.participants, settlement.transfers)

    @contextmanager
    def _editing(self, settlement_id: str) -> Iterator[Settlement]:
        with self._locks.hold(settlement_id):
            settlement = self._load(settlement_id, for_update=True)
            try:
                settlement.ensure_open()
            except LockedError:
                logger.warning(
                    "settlement_locked_rejected",
                    extra={"settlement_id": settlement_id},
                )
                raise
            yield settlement

    def _load(self, settlement_id: str, *, for_update: bool = False) -> Settlement:
        if for_update:
            settlement = self._repository.get_for_update(settlement_id)
        else:
            settlement = self._repository.get(settlement_id)
        if settlement is None:
            raise NotFoundError(details={"settlement_id": settlement_id})
        return settlement

    def _compute(self, settlement: Settlement) -> SettlementComputation:
        return compute_settlement(
            settlement.participants,
            settlement.payments,
            tolerance=self._tolerance,
        )


def _snapshot(
    settlement: Settlement, computation: SettlementComputation
) -> SettlementSnapshot:
    return SettlementSnapshot(
        settlement=settlement,
        balances=computation.balances,
        skipped_payment_ids=[
            item.payment_id for item in computation.anomalies if item.kind.skips_payment
        ],
    )


def _describe(settlement: Settlement) -> SettlementSnapshot:
    sheet = accumulate_balances(settlement.participants, settlement.payments)
    return SettlementSnapshot(
        settlement=settlement,
        balances=sheet.balances,
        skipped_payment_ids=sheet.skipped_payment_ids,
    )


def _normalize_participants(participants: list[ParticipantId]) -> list[ParticipantId]:
    normalized: list[ParticipantId] = []
    for participant in participants:
        participant_id = participant.strip()
        if not participant_id:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Participant ids cannot be blank.",
                    action="Remove empty participant entries and retry.",
                )
            )
        if participant_id not in normalized:
            normalized.append(participant_id)
    if not normalized:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="A settlement needs at least one participant.",
                action="List the participants sharing the expenses.",
            )
        )
    return normalized


_COMMAND_NAMES: dict[type, str] = {
    AddPayment: "add",
    UpdatePayment: "update",
    DeletePayment: "delete",
}


def _command_name(command: PaymentCommand) -> str:
    return _COMMAND_NAMES.get(type(command), type(command).__name__)
