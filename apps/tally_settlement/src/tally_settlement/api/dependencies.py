"""API dependency providers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from tally_settlement.application.ports.repositories import SettlementRepository
from tally_settlement.core.settings import Settings, get_settings
from tally_settlement.db.session import get_db_session
from tally_settlement.repositories.in_memory_settlement_repository import (
    InMemorySettlementRepository,
)
from tally_settlement.repositories.sqlalchemy_settlement_repository import (
    SqlAlchemySettlementRepository,
)
from tally_settlement.services.settlement_locks import SettlementLockRegistry
from tally_settlement.services.settlement_service import SettlementService


@lru_cache(maxsize=1)
def get_in_memory_repository() -> InMemorySettlementRepository:
    """Return the process-wide in-memory repository."""

    return InMemorySettlementRepository()


@lru_cache(maxsize=1)
def get_lock_registry() -> SettlementLockRegistry:
    """Return the process-wide per-settlement lock registry."""

    return SettlementLockRegistry()


def get_settlement_repository(
    settings: Annotated[Settings, Depends(get_settings)],
    session: Annotated[Session, Depends(get_db_session)],
) -> SettlementRepository:
    """Build the repository selected by STORAGE_BACKEND."""

    if settings.storage_backend == "database":
        return SqlAlchemySettlementRepository(session)
    return get_in_memory_repository()


def get_settlement_service(
    repository: Annotated[SettlementRepository, Depends(get_settlement_repository)],
    locks: Annotated[SettlementLockRegistry, Depends(get_lock_registry)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SettlementService:
    """Build settlement service with per-request repository."""

    return SettlementService(
        repository=repository,
        locks=locks,
        tolerance=settings.settlement_tolerance,
    )
