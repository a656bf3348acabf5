"""
orderdesk/core/errors.py

Typed failure kinds for the purchase-order lifecycle.

Rules:
- Every failure has a stable machine code and its own user-facing message.
  Screens must never collapse these into one generic "failed" alert.
- Core internals raise these; the public facade turns them into Result values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class OrderDeskError(Exception):
    """Base class for all lifecycle errors."""

    code = "orderdesk_error"
    http_status = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = {k: _jsonable(v) for k, v in self.details.items()}
        return payload


class InvalidTransition(OrderDeskError):
    """Event is not legal from the order's current status (or not for this actor)."""

    code = "invalid_transition"
    http_status = 409


class SelfAcceptance(OrderDeskError):
    """Actor tried to accept the offer they made themselves."""

    code = "self_acceptance"
    http_status = 409


class StaleNegotiationState(OrderDeskError):
    """Caller lost a race; the ledger moved on since they last looked."""

    code = "stale_negotiation_state"
    http_status = 409


class UnknownOrder(OrderDeskError):
    code = "unknown_order"
    http_status = 404


class InvalidAmount(OrderDeskError):
    code = "invalid_amount"
    http_status = 422


class InvoiceNotAllowed(OrderDeskError):
    """Order is not invoice-eligible, or already has an invoice."""

    code = "invoice_not_allowed"
    http_status = 409


class UnknownAttachment(OrderDeskError):
    code = "unknown_attachment"
    http_status = 404


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return str(value)


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a facade call: either a value or a typed error, never both.

    Callers branch on `ok`; `unwrap()` re-raises the typed error for code paths
    that prefer exceptions (the Flask service layer does).
    """

    value: Optional[T] = None
    error: Optional[OrderDeskError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: OrderDeskError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
