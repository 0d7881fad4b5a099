"""Pydantic schemas for settlement endpoints."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from tally_settlement.domain.commands import (
    AddPayment,
    DeletePayment,
    PaymentCommand,
    UpdatePayment,
)
from tally_settlement.domain.money import (
    AMOUNT_DECIMAL_PLACES,
    AMOUNT_MAX_DIGITS,
    format_amount,
    format_balance,
    format_money,
)
from tally_settlement.domain.services.settlement_engine import SettlementComputation
from tally_settlement.domain.services.transfer_graph import TransferGraph
from tally_settlement.domain.settlement import Settlement
from tally_settlement.domain.value_objects import Payment, SplitMode, Transfer

SplitModeName = Literal["equal", "ratio", "fixed"]
ParticipantIdField = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)
]
# Bounded to what the Numeric(18, 4) amount column stores exactly.
PositiveAmount = Annotated[
    Decimal,
    Field(
        gt=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        allow_inf_nan=False,
    ),
]
Weight = Annotated[
    Decimal,
    Field(
        ge=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        allow_inf_nan=False,
    ),
]


class PaymentFields(BaseModel):
    """Fields shared by payment creation payloads."""

    payer: ParticipantIdField
    targets: list[ParticipantIdField] = Field(min_length=1)
    amount: PositiveAmount
    label: str = Field(min_length=1, max_length=280)
    split_mode: SplitModeName = "equal"
    weights: list[Weight] = Field(default_factory=list)

    @field_validator("label")
    @classmethod
    def validate_label(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Label cannot be blank.")
        return trimmed

    @model_validator(mode="after")
    def validate_weights(self) -> PaymentFields:
        if self.split_mode == "equal":
            return self
        if len(self.weights) != len(self.targets):
            raise ValueError("Weights must have one value per target.")
        if self.split_mode == "fixed" and sum(self.weights) != self.amount:
            raise ValueError("Fixed amounts must add up to the payment amount.")
        return self

    def to_command(self) -> AddPayment:
        return AddPayment(
            payer=self.payer,
            targets=tuple(self.targets),
            amount=self.amount,
            label=self.label,
            split_mode=SplitMode(self.split_mode),
            weights=tuple(self.weights),
        )


class AddPaymentRequest(PaymentFields):
    action: Literal["add"]


class UpdatePaymentRequest(BaseModel):
    """Typed partial update; omitted fields keep their current value."""

    action: Literal["update"]
    payment_id: int = Field(ge=1)
    payer: ParticipantIdField | None = None
    targets: list[ParticipantIdField] | None = Field(default=None, min_length=1)
    amount: PositiveAmount | None = None
    label: str | None = Field(default=None, min_length=1, max_length=280)
    split_mode: SplitModeName | None = None
    weights: list[Weight] | None = None

    def to_command(self) -> UpdatePayment:
        return UpdatePayment(
            payment_id=self.payment_id,
            payer=self.payer,
            targets=tuple(self.targets) if self.targets is not None else None,
            amount=self.amount,
            label=self.label,
            split_mode=SplitMode(self.split_mode) if self.split_mode else None,
            weights=tuple(self.weights) if self.weights is not None else None,
        )


class DeletePaymentRequest(BaseModel):
    action: Literal["delete"]
    payment_id: int = Field(ge=1)

    def to_command(self) -> DeletePayment:
        return DeletePayment(payment_id=self.payment_id)


class PaymentCommandRequest(BaseModel):
    """Envelope for the closed set of payment mutations."""

    command: Annotated[
        AddPaymentRequest | UpdatePaymentRequest | DeletePaymentRequest,
        Field(discriminator="action"),
    ]

    def to_command(self) -> PaymentCommand:
        return self.command.to_command()


class CreateSettlementRequest(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    participants: list[ParticipantIdField] = Field(min_length=1)
    payments: list[PaymentFields] = Field(default_factory=list)


class SettleRequest(BaseModel):
    """Stateless engine input: participants and their payments."""

    participants: list[ParticipantIdField] = Field(min_length=1)
    payments: list[PaymentFields] = Field(default_factory=list)

    def to_payments(self) -> list[Payment]:
        return [
            Payment(
                id=index,
                payer=item.payer,
                targets=tuple(item.targets),
                amount=item.amount,
                label=item.label,
                split_mode=SplitMode(item.split_mode),
                weights=tuple(item.weights) if item.split_mode != "equal" else (),
            )
            for index, item in enumerate(self.payments, start=1)
        ]


class PaymentResponse(BaseModel):
    id: int
    payer: str
    targets: list[str]
    amount: str
    label: str
    split_mode: SplitModeName
    weights: list[str]

    @classmethod
    def from_domain(cls, payment: Payment) -> PaymentResponse:
        return cls(
            id=payment.id,
            payer=payment.payer,
            targets=list(payment.targets),
            amount=format_amount(payment.amount),
            label=payment.label,
            split_mode=payment.split_mode.value,
            weights=[format_amount(weight) for weight in payment.weights],
        )


class TransferResponse(BaseModel):
    """Serialized transfer using ``from``/``to`` keys."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from")
    receiver: str = Field(alias="to")
    amount: str = Field(pattern=r"^[0-9]+$")

    @classmethod
    def from_domain(cls, transfer: Transfer) -> TransferResponse:
        return cls(
            sender=transfer.sender,
            receiver=transfer.receiver,
            amount=format_money(transfer.amount),
        )


class BalanceResponse(BaseModel):
    participant_id: str
    balance: str = Field(pattern=r"^-?[0-9]+\.[0-9]{2}$")


def _balances(balances: Mapping[str, Decimal]) -> list[BalanceResponse]:
    return [
        BalanceResponse(participant_id=participant_id, balance=format_balance(value))
        for participant_id, value in balances.items()
    ]


def _transfers(transfers: Sequence[Transfer]) -> list[TransferResponse]:
    return [TransferResponse.from_domain(item) for item in transfers]


class RecomputeResponse(BaseModel):
    """Balances and transfers of one recompute."""

    balances: list[BalanceResponse]
    transfers: list[TransferResponse]
    skipped_payment_ids: list[int]

    @classmethod
    def from_computation(cls, computation: SettlementComputation) -> RecomputeResponse:
        return cls(
            balances=_balances(computation.balances),
            transfers=_transfers(computation.transfers),
            skipped_payment_ids=[
                item.payment_id
                for item in computation.anomalies
                if item.kind.skips_payment
            ],
        )


class SettlementSummaryResponse(BaseModel):
    id: str
    title: str
    status: Literal["PENDING", "COMPLETED"]
    created_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_domain(cls, settlement: Settlement) -> SettlementSummaryResponse:
        return cls(
            id=settlement.id,
            title=settlement.title,
            status=settlement.status.value,
            created_at=settlement.created_at,
            completed_at=settlement.completed_at,
        )


class SettlementsListResponse(BaseModel):
    settlements: list[SettlementSummaryResponse]

    @classmethod
    def from_domain(cls, settlements: list[Settlement]) -> SettlementsListResponse:
        return cls(
            settlements=[
                SettlementSummaryResponse.from_domain(item) for item in settlements
            ]
        )


class SettlementResponse(SettlementSummaryResponse):
    """Full settlement view with derived balances and stored transfers."""

    is_completed: bool
    participants: list[str]
    payments: list[PaymentResponse]
    balances: list[BalanceResponse]
    transfers: list[TransferResponse]
    skipped_payment_ids: list[int]

    @classmethod
    def from_snapshot(
        cls,
        settlement: Settlement,
        balances: Mapping[str, Decimal],
        skipped_payment_ids: list[int],
    ) -> SettlementResponse:
        return cls(
            id=settlement.id,
            title=settlement.title,
            status=settlement.status.value,
            created_at=settlement.created_at,
            completed_at=settlement.completed_at,
            is_completed=settlement.is_completed,
            participants=list(settlement.participants),
            payments=[
                PaymentResponse.from_domain(item) for item in settlement.payments
            ],
            balances=_balances(balances),
            transfers=_transfers(settlement.transfers),
            skipped_payment_ids=skipped_payment_ids,
        )


class TransferGraphNode(BaseModel):
    id: str


class TransferGraphLink(BaseModel):
    source: str
    target: str
    value: str


class TransferGraphResponse(BaseModel):
    """Nodes and edges for graph rendering; empty links mean nothing to settle."""

    nodes: list[TransferGraphNode]
    links: list[TransferGraphLink]
    is_empty: bool

    @classmethod
    def from_domain(cls, graph: TransferGraph) -> TransferGraphResponse:
        return cls(
            nodes=[TransferGraphNode(id=node) for node in graph.nodes],
            links=[
                TransferGraphLink(
                    source=link.source,
                    target=link.target,
                    value=format_money(link.value),
                )
                for link in graph.links
            ],
            is_empty=graph.is_empty,
        )
