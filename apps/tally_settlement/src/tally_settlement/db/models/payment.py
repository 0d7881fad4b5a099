"""Payment ORM model."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from tally_settlement.db.base import Base
from tally_settlement.domain.value_objects import SplitMode


class PaymentRecord(Base):
    """One expense entry owned by a settlement."""

    __tablename__ = "settlement_payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlement_payments_amount_positive"),
        UniqueConstraint(
            "settlement_id",
            "payment_id",
            name="uq_settlement_payments_settlement_payment",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    settlement_id: Mapped[str] = mapped_column(
        ForeignKey("settlements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    payer: Mapped[str] = mapped_column(String(64), nullable=False)
    targets: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    split_mode: Mapped[SplitMode] = mapped_column(
        Enum(
            SplitMode,
            name="split_mode",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    weights: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    label: Mapped[str] = mapped_column(String(280), nullable=False)
