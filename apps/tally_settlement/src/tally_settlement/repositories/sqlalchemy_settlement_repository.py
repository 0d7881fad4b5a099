"""Settlement persistence operations backed by SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from tally_settlement.db.models.payment import PaymentRecord
from tally_settlement.db.models.settlement import SettlementRecord
from tally_settlement.domain.settlement import Settlement
from tally_settlement.domain.value_objects import Payment, Transfer


class SqlAlchemySettlementRepository:
    """Repository mapping settlement aggregates to relational rows."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, settlement_id: str) -> Settlement | None:
        record = self._session.scalars(_settlement_statement(settlement_id)).first()
        return _to_domain(record) if record else None

    def get_for_update(self, settlement_id: str) -> Settlement | None:
        statement = _settlement_statement(settlement_id, for_update=True)
        record = self._session.scalars(statement).first()
        return _to_domain(record) if record else None

    def save(self, settlement_id: str, settlement: Settlement) -> None:
        record = self._session.get(SettlementRecord, settlement_id)
        if record is None:
            record = SettlementRecord(id=settlement_id)
            self._session.add(record)

        record.title = settlement.title
        record.participants = list(settlement.participants)
        record.transfers = [_transfer_to_json(item) for item in settlement.transfers]
        record.is_completed = settlement.is_completed
        record.created_at = settlement.created_at
        record.completed_at = settlement.completed_at
        existing = {item.payment_id: item for item in record.payments}
        record.payments = [
            _payment_to_record(payment, position, existing.get(payment.id))
            for position, payment in enumerate(settlement.payments)
        ]
        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def list_all(self) -> list[Settlement]:
        statement = (
            select(SettlementRecord)
            .options(selectinload(SettlementRecord.payments))
            .order_by(SettlementRecord.created_at.asc(), SettlementRecord.id.asc())
        )
        return [_to_domain(record) for record in self._session.scalars(statement)]

    def next_id(self) -> str:
        return str(uuid4())


def _settlement_statement(
    settlement_id: str, *, for_update: bool = False
) -> Select[tuple[SettlementRecord]]:
    statement = (
        select(SettlementRecord)
        .where(SettlementRecord.id == settlement_id)
        .options(selectinload(SettlementRecord.payments))
        .execution_options(populate_existing=for_update)
    )
    if for_update:
        statement = statement.with_for_update(of=SettlementRecord)
    return statement


def _to_domain(record: SettlementRecord) -> Settlement:
    return Settlement(
        id=record.id,
        title=record.title,
        participants=list(record.participants),
        payments=[_payment_to_domain(item) for item in record.payments],
        transfers=[_transfer_from_json(item) for item in record.transfers],
        is_completed=record.is_completed,
        created_at=_as_utc(record.created_at),
        completed_at=_as_utc(record.completed_at) if record.completed_at else None,
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _payment_to_domain(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.payment_id,
        payer=record.payer,
        targets=tuple(record.targets),
        amount=Decimal(record.amount),
        label=record.label,
        split_mode=record.split_mode,
        weights=tuple(Decimal(weight) for weight in record.weights),
    )


def _payment_to_record(
    payment: Payment, position: int, record: PaymentRecord | None
) -> PaymentRecord:
    # Rows are updated in place so the (settlement_id, payment_id) key never
    # collides with a pending delete during flush.
    record = record or PaymentRecord(payment_id=payment.id)
    record.position = position
    record.payer = payment.payer
    record.targets = list(payment.targets)
    record.split_mode = payment.split_mode
    record.weights = [str(weight) for weight in payment.weights]
    record.amount = payment.amount
    record.label = payment.label
    return record


def _transfer_to_json(transfer: Transfer) -> dict[str, Any]:
    return {
        "from": transfer.sender,
        "to": transfer.receiver,
        "amount": str(transfer.amount),
    }


def _transfer_from_json(payload: dict[str, Any]) -> Transfer:
    return Transfer(
        sender=str(payload["from"]),
        receiver=str(payload["to"]),
        amount=Decimal(str(payload["amount"])),
    )
