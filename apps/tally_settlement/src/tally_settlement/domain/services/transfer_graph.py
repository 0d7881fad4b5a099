"""Graph projection of transfers for visualization clients."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from tally_settlement.domain.value_objects import ParticipantId, Transfer


@dataclass(frozen=True, slots=True)
class TransferLink:
    source: ParticipantId
    target: ParticipantId
    value: Decimal


@dataclass(frozen=True, slots=True)
class TransferGraph:
    """Participants as nodes and transfers as weighted edges."""

    nodes: list[ParticipantId]
    links: list[TransferLink]

    @property
    def is_empty(self) -> bool:
        return not self.links


def build_transfer_graph(
    participants: Sequence[ParticipantId],
    transfers: Iterable[Transfer],
) -> TransferGraph:
    links = [
        TransferLink(
            source=transfer.sender,
            target=transfer.receiver,
            value=transfer.amount,
        )
        for transfer in transfers
    ]
    return TransferGraph(nodes=list(participants), links=links)
