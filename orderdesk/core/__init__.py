"""
orderdesk.core

Framework-free purchase-order lifecycle rules.

The functions below are the public entry points used by screens and by the
service layer. Mutating entry points return Result values: domain failures come
back as typed errors, never as generic exceptions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from . import invoices, negotiation, state_machine, views
from .errors import (
    InvalidAmount,
    InvalidTransition,
    InvoiceNotAllowed,
    OrderDeskError,
    Result,
    SelfAcceptance,
    StaleNegotiationState,
    UnknownAttachment,
    UnknownOrder,
)
from .invoices import amount_for
from .ledger import current_asking_amount
from .records import NegotiationEvent, PaymentEntry, PurchaseOrder, ingest_orders
from .taxonomy import display_label, status_style, to_display_status

__all__ = [
    "InvalidAmount",
    "InvalidTransition",
    "InvoiceNotAllowed",
    "OrderDeskError",
    "Result",
    "SelfAcceptance",
    "StaleNegotiationState",
    "UnknownAttachment",
    "UnknownOrder",
    "amount_for",
    "append_negotiation_event",
    "can_create_invoice",
    "compute_payment_tracker_view",
    "compute_vendor_pending_count",
    "current_asking_amount",
    "display_label",
    "find_order",
    "status_style",
    "to_display_status",
    "transition",
]


def find_order(order_id: Any, orders: Iterable) -> PurchaseOrder:
    """Look an order up by id; a missing id is an error, never an empty result."""
    wanted = str(order_id)
    for order in ingest_orders(orders):
        if order.id == wanted:
            return order
    raise UnknownOrder("Purchase order not found.", order_id=wanted)


def _resolve(order: Any, orders: Optional[Iterable]) -> PurchaseOrder:
    if isinstance(order, PurchaseOrder):
        return order
    if orders is not None:
        return find_order(order, orders)
    records = ingest_orders([order])
    if not records:
        raise UnknownOrder("Purchase order not found.", order_id=str(order))
    return records[0]


def transition(
    order: Any,
    event: str,
    actor: str,
    *,
    orders: Optional[Iterable] = None,
    amount=None,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> Result[PurchaseOrder]:
    """
    Apply a lifecycle event.

    `order` may be a record, an API mapping, or an id looked up in `orders`.
    """
    try:
        record = _resolve(order, orders)
        return Result.success(
            state_machine.apply_transition(
                record, event, actor, amount=amount, at=at, in_response_to=in_response_to
            )
        )
    except OrderDeskError as exc:
        return Result.failure(exc)


def append_negotiation_event(
    order: Any,
    actor: str,
    kind: str,
    amount=None,
    message: Optional[str] = None,
    *,
    orders: Optional[Iterable] = None,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> Result[NegotiationEvent]:
    try:
        record = _resolve(order, orders)
        _, event = negotiation.apply_negotiation_event(
            record, actor, kind, amount, message, at=at, in_response_to=in_response_to
        )
        return Result.success(event)
    except OrderDeskError as exc:
        return Result.failure(exc)


def compute_vendor_pending_count(vendor_id: Any, orders: Iterable, invoices: Iterable) -> int:
    return views.vendor_pending_count(vendor_id, orders, invoices)


def compute_payment_tracker_view(
    receivables: Iterable,
    payables: Iterable,
    payment_filter: str = "all",
) -> list[PaymentEntry]:
    return views.payment_tracker(receivables, payables, payment_filter)


def can_create_invoice(order: Any, existing_invoices: Iterable = ()) -> bool:
    return invoices.can_create_invoice(order, existing_invoices)
