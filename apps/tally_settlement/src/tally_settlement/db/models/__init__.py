"""ORM models for the tally_settlement domain."""

from tally_settlement.db.models.payment import PaymentRecord
from tally_settlement.db.models.settlement import SettlementRecord

__all__ = [
    "PaymentRecord",
    "SettlementRecord",
]
