"""Process-local settlement storage."""

from __future__ import annotations

import copy
import threading
from itertools import count

from tally_settlement.domain.settlement import Settlement


class InMemorySettlementRepository:
    """Dictionary-backed repository that copies settlements in and out."""

    def __init__(self, settlements: list[Settlement] | None = None) -> None:
        self._settlements: dict[str, Settlement] = {}
        self._guard = threading.Lock()
        self._ids = count(1)
        for settlement in settlements or []:
            self.save(settlement.id, settlement)

    def get(self, settlement_id: str) -> Settlement | None:
        with self._guard:
            settlement = self._settlements.get(settlement_id)
            return copy.deepcopy(settlement) if settlement else None

    def get_for_update(self, settlement_id: str) -> Settlement | None:
        return self.get(settlement_id)

    def save(self, settlement_id: str, settlement: Settlement) -> None:
        with self._guard:
            self._settlements[settlement_id] = copy.deepcopy(settlement)

    def list_all(self) -> list[Settlement]:
        with self._guard:
            settlements = sorted(
                self._settlements.values(), key=lambda item: item.created_at
            )
            return [copy.deepcopy(settlement) for settlement in settlements]

    def next_id(self) -> str:
        with self._guard:
            while True:
                candidate = str(next(self._ids))
                if candidate not in self._settlements:
                    return candidate
