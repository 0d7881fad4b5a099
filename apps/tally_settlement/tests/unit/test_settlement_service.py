from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from tally_settlement.domain.commands import AddPayment, DeletePayment, UpdatePayment
from tally_settlement.domain.errors import (
    InvalidRequestError,
    LockedError,
    NotFoundError,
    PaymentNotFoundError,
)
from tally_settlement.domain.settlement import Settlement
from tally_settlement.domain.value_objects import Transfer
from tally_settlement.repositories.in_memory_settlement_repository import (
    InMemorySettlementRepository,
)
from tally_settlement.services.settlement_locks import SettlementLockRegistry
from tally_settlement.services.settlement_service import (
    CreateSettlementInput,
    SettlementService,
)


class RecordingRepository(InMemorySettlementRepository):
    def __init__(self) -> None:
        super().__init__()
        self.saved: list[str] = []
        self.locked_reads: list[str] = []

    def get_for_update(self, settlement_id: str) -> Settlement | None:
        self.locked_reads.append(settlement_id)
        return super().get_for_update(settlement_id)

    def save(self, settlement_id: str, settlement: Settlement) -> None:
        self.saved.append(settlement_id)
        super().save(settlement_id, settlement)


@pytest.fixture
def repository() -> RecordingRepository:
    return RecordingRepository()


@pytest.fixture
def service(repository: RecordingRepository) -> SettlementService:
    return SettlementService(repository=repository, locks=SettlementLockRegistry())


def _add(payer: str, amount: str, targets: tuple[str, ...]) -> AddPayment:
    return AddPayment(
        payer=payer,
        targets=targets,
        amount=Decimal(amount),
        label="Compra",
    )


def _open(service: SettlementService) -> str:
    snapshot = service.create_settlement(
        CreateSettlementInput(participants=["A", "B", "C", "D"], title="Viagem")
    )
    return snapshot.settlement.id


def test_create_settlement_normalizes_participants_and_computes_transfers(
    service: SettlementService,
) -> None:
    snapshot = service.create_settlement(
        CreateSettlementInput(
            participants=[" ana ", "bia", "ana"],
            payments=[_add("ana", "1000", ("ana", "bia"))],
        )
    )

    settlement = snapshot.settlement
    assert settlement.participants == ["ana", "bia"]
    assert settlement.title == f"Settlement {settlement.id}"
    assert snapshot.balances == {"ana": Decimal("500"), "bia": Decimal("-500")}
    assert settlement.transfers == [
        Transfer(sender="bia", receiver="ana", amount=Decimal("500"))
    ]


def test_create_settlement_rejects_blank_participant(
    service: SettlementService,
) -> None:
    with pytest.raises(InvalidRequestError):
        service.create_settlement(CreateSettlementInput(participants=["ana", " "]))


def test_apply_command_recomputes_and_saves_transfers(
    service: SettlementService,
    repository: RecordingRepository,
) -> None:
    settlement_id = _open(service)

    service.apply_command(settlement_id, _add("A", "200", ("A", "C")))
    service.apply_command(settlement_id, _add("A", "200", ("A", "D")))
    service.apply_command(settlement_id, _add("B", "120", ("B", "C")))
    snapshot = service.apply_command(settlement_id, _add("D", "40", ("C",)))

    assert snapshot.balances == {
        "A": Decimal("200"),
        "B": Decimal("60"),
        "C": Decimal("-200"),
        "D": Decimal("-60"),
    }
    stored = repository.get(settlement_id)
    assert stored is not None
    assert [(t.sender, t.receiver, t.amount) for t in stored.transfers] == [
        ("C", "A", Decimal("200")),
        ("D", "B", Decimal("60")),
    ]
    assert repository.saved.count(settlement_id) == 5


def test_update_and_delete_commands_keep_transfers_in_sync(
    service: SettlementService,
) -> None:
    settlement_id = _open(service)
    service.apply_command(settlement_id, _add("A", "400", ("A", "B")))

    updated = service.apply_command(
        settlement_id, UpdatePayment(payment_id=1, amount=Decimal("800"))
    )
    assert updated.balances["B"] == Decimal("-400")

    deleted = service.apply_command(settlement_id, DeletePayment(payment_id=1))
    assert deleted.settlement.payments == []
    assert deleted.settlement.transfers == []


def test_unknown_settlement_raises_not_found(service: SettlementService) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        service.apply_command("missing", _add("A", "10", ("B",)))

    assert exc_info.value.code == "SETTLEMENT_NOT_FOUND"
    with pytest.raises(NotFoundError):
        service.get_settlement("missing")
    with pytest.raises(NotFoundError):
        service.recompute("missing")


def test_unknown_payment_raises_payment_not_found(service: SettlementService) -> None:
    settlement_id = _open(service)

    with pytest.raises(PaymentNotFoundError):
        service.apply_command(settlement_id, DeletePayment(payment_id=5))


def test_completed_settlement_is_locked(
    service: SettlementService,
    repository: RecordingRepository,
    caplog: pytest.LogCaptureFixture,
) -> None:
    settlement_id = _open(service)
    service.apply_command(settlement_id, _add("A", "100", ("B",)))
    completed = service.complete(settlement_id)
    saves_before = len(repository.saved)

    assert completed.settlement.is_completed
    with caplog.at_level(logging.WARNING):
        with pytest.raises(LockedError) as exc_info:
            service.apply_command(settlement_id, _add("A", "100", ("B",)))
    with pytest.raises(LockedError):
        service.recompute(settlement_id)
    with pytest.raises(LockedError):
        service.complete(settlement_id)

    assert exc_info.value.status_code == 409
    assert len(repository.saved) == saves_before
    assert "settlement_locked_rejected" in caplog.messages
    assert len(service.get_settlement(settlement_id).settlement.payments) == 1


def test_recompute_reports_skipped_payments(
    service: SettlementService,
    repository: RecordingRepository,
) -> None:
    settlement_id = _open(service)
    service.apply_command(settlement_id, _add("Z", "100", ("A",)))

    computation = service.recompute(settlement_id)

    assert computation.is_settled
    assert [item.payment_id for item in computation.anomalies] == [1]
    assert service.get_settlement(settlement_id).skipped_payment_ids == [1]


def test_list_settlements_returns_creation_order(service: SettlementService) -> None:
    first = _open(service)
    second = _open(service)

    assert [item.id for item in service.list_settlements()] == [first, second]


def test_transfer_graph_mirrors_stored_transfers(service: SettlementService) -> None:
    settlement_id = _open(service)
    service.apply_command(settlement_id, _add("A", "90", ("D",)))

    graph = service.get_transfer_graph(settlement_id)

    assert graph.nodes == ["A", "B", "C", "D"]
    assert [(link.source, link.target, link.value) for link in graph.links] == [
        ("D", "A", Decimal("90"))
    ]
    assert not graph.is_empty


def test_concurrent_commands_are_serialized(service: SettlementService) -> None:
    settlement_id = _open(service)

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(
            executor.map(
                lambda _: service.apply_command(
                    settlement_id, _add("A", "10", ("B",))
                ),
                range(20),
            )
        )

    snapshot = service.get_settlement(settlement_id)
    assert [item.id for item in snapshot.settlement.payments] == list(range(1, 21))
    assert snapshot.balances["B"] == Decimal("-200")


def test_mutations_load_with_row_lock_and_reads_do_not(
    service: SettlementService,
    repository: RecordingRepository,
) -> None:
    settlement_id = _open(service)

    service.get_settlement(settlement_id)
    service.get_transfer_graph(settlement_id)
    assert repository.locked_reads == []

    service.apply_command(settlement_id, _add("A", "10", ("B",)))
    service.recompute(settlement_id)
    service.complete(settlement_id)

    assert repository.locked_reads == [settlement_id] * 3


def test_lock_registry_is_empty_after_edits(repository: RecordingRepository) -> None:
    locks = SettlementLockRegistry()
    service = SettlementService(repository=repository, locks=locks)
    settlement_id = _open(service)

    service.apply_command(settlement_id, _add("A", "10", ("B",)))

    assert len(locks) == 0
