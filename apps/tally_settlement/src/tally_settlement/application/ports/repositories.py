"""Repository ports for the settlement service."""

from __future__ import annotations

from typing import Protocol

from tally_settlement.domain.settlement import Settlement


class SettlementRepository(Protocol):
    """Port for settlement persistence and lookup.

    Implementations must hand out settlements that the caller can mutate
    without affecting stored state until ``save`` is called.
    """

    def get(self, settlement_id: str) -> Settlement | None:
        """Fetch a settlement by id."""

    def get_for_update(self, settlement_id: str) -> Settlement | None:
        """Fetch a settlement and hold its row lock until the next ``save``."""

    def save(self, settlement_id: str, settlement: Settlement) -> None:
        """Insert or replace the settlement stored under ``settlement_id``."""

    def list_all(self) -> list[Settlement]:
        """Return every stored settlement ordered by creation time."""

    def next_id(self) -> str:
        """Reserve an id for a new settlement."""
