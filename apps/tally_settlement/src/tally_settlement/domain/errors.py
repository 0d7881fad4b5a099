"""Domain exceptions used across API and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


def compose_error_message(*, cause: str, action: str) -> str:
    """Build a user-facing error message with cause and corrective action."""

    return f"Cause: {cause} Action: {action}"


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(DomainError):
    """Raised when user sends semantically invalid input."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_REQUEST",
            message=message
            or compose_error_message(
                cause="Request data violates business rules.",
                action="Adjust the input fields and try again.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class NotFoundError(DomainError):
    """Raised when a settlement id cannot be resolved."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        code: str = "SETTLEMENT_NOT_FOUND",
    ) -> None:
        super().__init__(
            code=code,
            message=message
            or compose_error_message(
                cause="Settlement was not found for the provided id.",
                action="Check the settlement id and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


SettlementNotFoundError = NotFoundError


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment command references an unknown payment id."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message
            or compose_error_message(
                cause="Payment was not found in this settlement.",
                action="Reload the settlement and use an existing payment id.",
            ),
            details=details,
            code="PAYMENT_NOT_FOUND",
        )


class LockedError(DomainError):
    """Raised when a completed settlement receives a mutation or recompute."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="SETTLEMENT_LOCKED",
            message=message
            or compose_error_message(
                cause="Settlement is already completed and cannot change.",
                action="Create a new settlement to record further payments.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )
