from __future__ import annotations

from datetime import UTC
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session, sessionmaker

from tally_settlement.db.models.payment import PaymentRecord
from tally_settlement.db.models.settlement import SettlementRecord
from tally_settlement.domain.commands import AddPayment, DeletePayment, UpdatePayment
from tally_settlement.domain.value_objects import SplitMode
from tally_settlement.repositories.sqlalchemy_settlement_repository import (
    SqlAlchemySettlementRepository,
    _settlement_statement,
)
from tally_settlement.services.settlement_locks import SettlementLockRegistry
from tally_settlement.services.settlement_service import (
    CreateSettlementInput,
    SettlementService,
)


def _service(session: Session) -> SettlementService:
    return SettlementService(
        repository=SqlAlchemySettlementRepository(session),
        locks=SettlementLockRegistry(),
    )


def test_settlement_round_trips_through_database(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        snapshot = _service(session).create_settlement(
            CreateSettlementInput(
                participants=["ana", "bia", "caio"],
                title="Viagem",
                payments=[
                    AddPayment(
                        payer="ana",
                        targets=("ana", "bia", "caio"),
                        amount=Decimal("90000"),
                        label="Hotel",
                        split_mode=SplitMode.RATIO,
                        weights=(Decimal("1"), Decimal("2"), Decimal("3")),
                    )
                ],
            )
        )
        settlement_id = snapshot.settlement.id

    with sqlite_session_factory() as session:
        stored = SqlAlchemySettlementRepository(session).get(settlement_id)

    assert stored is not None
    assert stored.title == "Viagem"
    assert stored.participants == ["ana", "bia", "caio"]
    payment = stored.payments[0]
    assert payment.id == 1
    assert payment.amount == Decimal("90000")
    assert payment.split_mode is SplitMode.RATIO
    assert payment.weights == (Decimal("1"), Decimal("2"), Decimal("3"))
    assert [(t.sender, t.receiver, t.amount) for t in stored.transfers] == [
        ("caio", "ana", Decimal("45000")),
        ("bia", "ana", Decimal("30000")),
    ]


def test_update_and_delete_rewrite_payment_rows(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        service = _service(session)
        settlement_id = service.create_settlement(
            CreateSettlementInput(participants=["ana", "bia"])
        ).settlement.id
        for amount in ("100", "200", "300"):
            service.apply_command(
                settlement_id,
                AddPayment(
                    payer="ana",
                    targets=("bia",),
                    amount=Decimal(amount),
                    label="Conta",
                ),
            )
        service.apply_command(settlement_id, DeletePayment(payment_id=2))
        service.apply_command(
            settlement_id, UpdatePayment(payment_id=3, amount=Decimal("50"))
        )

    with sqlite_session_factory() as session:
        stored = SqlAlchemySettlementRepository(session).get(settlement_id)
        row_count = session.scalar(
            select(func.count()).select_from(PaymentRecord)
        )

    assert stored is not None
    assert [(item.id, item.amount) for item in stored.payments] == [
        (1, Decimal("100")),
        (3, Decimal("50")),
    ]
    assert row_count == 2
    assert [(t.sender, t.receiver, t.amount) for t in stored.transfers] == [
        ("bia", "ana", Decimal("150"))
    ]


def test_completion_is_persisted(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        service = _service(session)
        settlement_id = service.create_settlement(
            CreateSettlementInput(participants=["ana", "bia"])
        ).settlement.id
        service.complete(settlement_id)

    with sqlite_session_factory() as session:
        repository = SqlAlchemySettlementRepository(session)
        stored = repository.get(settlement_id)
        listed = repository.list_all()

    assert stored is not None
    assert stored.is_completed
    assert stored.completed_at is not None
    assert [item.id for item in listed] == [settlement_id]


def test_missing_settlement_returns_none(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        assert SqlAlchemySettlementRepository(session).get("missing") is None


def test_locked_read_renders_row_lock_for_postgresql() -> None:
    locked = _settlement_statement("s-1", for_update=True)
    plain = _settlement_statement("s-1")

    assert "FOR UPDATE" in str(locked.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" not in str(plain.compile(dialect=postgresql.dialect()))


def test_get_for_update_returns_current_row(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        settlement_id = _service(session).create_settlement(
            CreateSettlementInput(participants=["ana", "bia"])
        ).settlement.id

    with sqlite_session_factory() as session:
        repository = SqlAlchemySettlementRepository(session)
        stale = repository.get(settlement_id)
        session.execute(
            update(SettlementRecord)
            .where(SettlementRecord.id == settlement_id)
            .values(is_completed=True)
            .execution_options(synchronize_session=False)
        )
        locked = repository.get_for_update(settlement_id)

    assert stale is not None and not stale.is_completed
    assert locked is not None and locked.is_completed


def test_timestamps_come_back_in_utc(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        service = _service(session)
        settlement_id = service.create_settlement(
            CreateSettlementInput(participants=["ana", "bia"])
        ).settlement.id
        service.complete(settlement_id)

    with sqlite_session_factory() as session:
        stored = SqlAlchemySettlementRepository(session).get(settlement_id)

    assert stored is not None
    assert stored.created_at.tzinfo is UTC
    assert stored.completed_at is not None
    assert stored.completed_at.tzinfo is UTC
