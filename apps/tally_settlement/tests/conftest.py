from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tally_settlement.api.app import create_app
from tally_settlement.api.dependencies import (
    get_lock_registry,
    get_settlement_repository,
)
from tally_settlement.db.base import Base, import_orm_models
from tally_settlement.db.session import get_db_session
from tally_settlement.repositories.in_memory_settlement_repository import (
    InMemorySettlementRepository,
)
from tally_settlement.services.settlement_locks import SettlementLockRegistry


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[TestClient, None, None]:
    app = create_app()
    repository = InMemorySettlementRepository()
    locks = SettlementLockRegistry()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_settlement_repository] = lambda: repository
    app.dependency_overrides[get_lock_registry] = lambda: locks
    with TestClient(app) as test_client:
        yield test_client
