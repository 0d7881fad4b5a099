"""Per-settlement mutual exclusion for read-modify-write cycles."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class SettlementLockRegistry:
    """Hands out one lock per settlement id while someone holds or awaits it.

    Entries are dropped once the last holder releases, so the registry only
    tracks settlements that are being edited right now.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def is_held(self, settlement_id: str) -> bool:
        with self._guard:
            lock = self._locks.get(settlement_id)
            return lock is not None and lock.locked()

    @contextmanager
    def hold(self, settlement_id: str) -> Iterator[None]:
        lock = self._checkout(settlement_id)
        try:
            with lock:
                yield
        finally:
            self._release(settlement_id)

    def _checkout(self, settlement_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(settlement_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[settlement_id] = lock
            self._holders[settlement_id] = self._holders.get(settlement_id, 0) + 1
            return lock

    def _release(self, settlement_id: str) -> None:
        with self._guard:
            remaining = self._holders[settlement_id] - 1
            if remaining:
                self._holders[settlement_id] = remaining
            else:
                del self._holders[settlement_id]
                del self._locks[settlement_id]
