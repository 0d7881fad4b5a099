"""Settlement ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tally_settlement.db.base import Base
from tally_settlement.db.models.payment import PaymentRecord


class SettlementRecord(Base):
    """Persisted settlement with its last computed transfers."""

    __tablename__ = "settlements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    participants: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    transfers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    is_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    payments: Mapped[list[PaymentRecord]] = relationship(
        PaymentRecord,
        cascade="all, delete-orphan",
        order_by=PaymentRecord.position,
    )
