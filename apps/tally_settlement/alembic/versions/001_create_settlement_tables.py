"""Create settlement and payment tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_create_settlement_tables"
down_revision = None
branch_labels = None
depends_on = None


split_mode_enum = sa.Enum("equal", "ratio", "fixed", name="split_mode")


def upgrade() -> None:
    """Apply schema upgrades."""
    bind = op.get_bind()
    split_mode_enum.create(bind, checkfirst=True)

    op.create_table(
        "settlements",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("participants", sa.JSON(), nullable=False),
        sa.Column("transfers", sa.JSON(), nullable=False),
        sa.Column(
            "is_completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "settlement_payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "settlement_id",
            sa.String(length=36),
            sa.ForeignKey("settlements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("payment_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("payer", sa.String(length=64), nullable=False),
        sa.Column("targets", sa.JSON(), nullable=False),
        sa.Column("split_mode", split_mode_enum, nullable=False),
        sa.Column("weights", sa.JSON(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 4), nullable=False),
        sa.Column("label", sa.String(length=280), nullable=False),
        sa.CheckConstraint(
            "amount > 0", name="ck_settlement_payments_amount_positive"
        ),
        sa.UniqueConstraint(
            "settlement_id",
            "payment_id",
            name="uq_settlement_payments_settlement_payment",
        ),
    )
    op.create_index(
        "ix_settlement_payments_settlement_id",
        "settlement_payments",
        ["settlement_id"],
        unique=False,
    )


def downgrade() -> None:
    """Revert schema upgrades."""
    op.drop_index(
        "ix_settlement_payments_settlement_id", table_name="settlement_payments"
    )
    op.drop_table("settlement_payments")
    op.drop_table("settlements")

    bind = op.get_bind()
    split_mode_enum.drop(bind, checkfirst=True)
