"""
orderdesk/services.py

Command layer between the HTTP routes and the pure core.

Every mutation follows the same shape:
1) load the row (FOR UPDATE where the database supports it)
2) convert to a core record and run the core command
3) write the returned post-state back (append-only for ledger and history)
4) audit + commit once

IMPORTANT:
- Domain failures propagate as OrderDeskError subclasses; the app-level error
  handler rolls the session back and turns them into JSON responses.
- Two writers racing for the same ledger slot collide on the unique
  (order_id, seq) constraint; the loser gets StaleNegotiationState.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy.exc import IntegrityError

from . import core
from .audit import log_action, serialize_model
from .core import invoices as invoice_rules
from .core import negotiation
from .core.errors import InvoiceNotAllowed, StaleNegotiationState, UnknownOrder
from .core.records import NegotiationEvent, PaymentEntry, parse_amount, utcnow
from .core.state_machine import DISPATCH
from .core.taxonomy import DRAFT
from .extensions import db
from .models import (
    ClientInvoice,
    MaterialRequest,
    OrderItem,
    PurchaseOrder,
    User,
    VendorInvoice,
)
from .security import actor_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------
def load_order(order_id: int, *, lock: bool = False) -> PurchaseOrder:
    query = db.select(PurchaseOrder).filter_by(id=order_id)
    if lock:
        query = query.with_for_update()
    order = db.session.execute(query).scalar_one_or_none()
    if order is None:
        raise UnknownOrder("Purchase order not found.", order_id=str(order_id))
    return order


def visible_orders(user: User) -> list[PurchaseOrder]:
    """Vendors see orders addressed to them; owners and admins see all."""
    query = db.select(PurchaseOrder).order_by(PurchaseOrder.id.asc())
    if user.is_vendor:
        query = query.filter_by(vendor_id=user.id)
    return list(db.session.execute(query).scalars())


def visible_invoices(user: User) -> list[VendorInvoice]:
    query = db.select(VendorInvoice).order_by(VendorInvoice.id.asc())
    if user.is_vendor:
        query = query.filter_by(vendor_id=user.id)
    return list(db.session.execute(query).scalars())


def order_records(user: User) -> list:
    return [order.to_record() for order in visible_orders(user)]


def invoice_records(user: User) -> list:
    return [invoice.to_record() for invoice in visible_invoices(user)]


def receivables() -> list[PaymentEntry]:
    rows = db.session.execute(db.select(ClientInvoice).order_by(ClientInvoice.id.asc())).scalars()
    return [row.to_payment() for row in rows]


def payables(user: User) -> list[PaymentEntry]:
    entries = []
    for invoice in visible_invoices(user):
        record = invoice.to_record()
        entries.append(
            PaymentEntry(
                id=record.id,
                status=record.status,
                amount=invoice_rules.amount_for(record),
                kind="payable",
                due_date=record.due_date,
                counterparty=invoice.vendor.display_name if invoice.vendor else None,
                project_name=invoice.project.title if invoice.project else None,
            )
        )
    return entries


def material_request_records() -> list:
    rows = db.session.execute(db.select(MaterialRequest).order_by(MaterialRequest.id.asc())).scalars()
    return [row.to_record() for row in rows]


# ---------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------
def _new_number(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def _persist_order(order: PurchaseOrder, record, author: Optional[User]) -> None:
    """Write a core post-state back; a lost race on the ledger is reported as stale."""
    order.apply_record(record, author.id if author is not None else None)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise StaleNegotiationState(
            "Someone else updated this negotiation at the same time. Refresh and try again.",
            order_id=str(order.id),
        ) from exc


def create_order(
    owner: User,
    *,
    vendor_id: int,
    total_amount: Any,
    items: Iterable[dict] = (),
    project_id: Optional[int] = None,
    currency: Optional[str] = None,
    order_number: Optional[str] = None,
    dispatch: bool = False,
):
    """
    Create a draft purchase order, optionally sending it to the vendor right away.

    Items are dicts with materialName / quantity / unit (already validated by the route).
    """
    total = parse_amount(total_amount, field_name="totalAmount")
    now = utcnow()

    order = PurchaseOrder(
        order_number=order_number or _new_number("PO"),
        vendor_id=vendor_id,
        project_id=project_id,
        owner_id=owner.id,
        status=DRAFT,
        total_amount=total,
        currency=currency or "INR",
        created_at=now,
        updated_at=now,
    )
    for line_no, item in enumerate(items, start=1):
        order.items.append(
            OrderItem(
                line_no=line_no,
                material_name=item["materialName"],
                quantity=parse_amount(item.get("quantity", 1), field_name="quantity"),
                unit=item["unit"],
            )
        )
    db.session.add(order)
    db.session.flush()

    if dispatch:
        record = core.transition(order.to_record(), DISPATCH, actor_for(owner), at=now).unwrap()
        _persist_order(order, record, owner)

    log_action(order, "CREATE", after=serialize_model(order))
    db.session.commit()
    logger.info("order %s created (%s) by %s", order.id, order.status, owner.username)
    return order.to_record()


def transition_order(
    order_id: int,
    user: User,
    event: str,
    *,
    amount: Any = None,
    in_response_to: Optional[int] = None,
    at: Optional[datetime] = None,
):
    order = load_order(order_id, lock=True)
    before = serialize_model(order)
    actor = actor_for(user)

    record = core.transition(
        order.to_record(), event, actor, amount=amount, at=at or utcnow(), in_response_to=in_response_to
    ).unwrap()
    _persist_order(order, record, user)

    log_action(order, "TRANSITION", before=before, after=serialize_model(order))
    db.session.commit()
    logger.info("order %s: %s by %s -> %s", order.id, event, actor, record.status)
    return record


def negotiate(
    order_id: int,
    user: User,
    kind: str,
    *,
    amount: Any = None,
    message: Optional[str] = None,
    in_response_to: Optional[int] = None,
    at: Optional[datetime] = None,
) -> tuple[Any, NegotiationEvent]:
    """Append one ledger event (offer / counter_offer / accept / reject / message)."""
    order = load_order(order_id, lock=True)
    before = serialize_model(order)
    actor = actor_for(user)

    record, event = negotiation.apply_negotiation_event(
        order.to_record(), actor, kind, amount, message, at=at or utcnow(), in_response_to=in_response_to
    )
    _persist_order(order, record, user)

    log_action(order, "NEGOTIATE", before=before, after=serialize_model(order))
    db.session.commit()
    logger.info(
        "order %s: ledger #%s %s by %s (amount=%s, status=%s)",
        order.id,
        event.seq,
        event.kind,
        actor,
        event.amount,
        record.status,
    )
    return record, event


# ---------------------------------------------------------------------
# Vendor invoices
# ---------------------------------------------------------------------
def load_invoice(invoice_id: int) -> VendorInvoice:
    return db.get_or_404(VendorInvoice, invoice_id)


def create_invoice(
    order_id: int,
    user: User,
    *,
    invoice_number: Optional[str] = None,
    due_date: Optional[datetime] = None,
):
    """Raise the vendor invoice for an accepted order (at most one per order)."""
    order = load_order(order_id, lock=True)
    existing = db.session.execute(db.select(VendorInvoice).filter_by(purchase_order_id=order.id)).scalars()

    record = invoice_rules.draft_invoice(
        order.to_record(),
        invoice_number or _new_number("INV"),
        [inv.to_record() for inv in existing],
        due_date=due_date,
    )

    invoice = VendorInvoice(
        invoice_number=record.number,
        purchase_order_id=order.id,
        project_id=order.project_id,
        vendor_id=order.vendor_id,
        status=record.status,
        total_amount=record.total_amount,
        amount_paid=record.amount_paid,
        amount_due=record.amount_due,
        due_date=record.due_date,
    )
    db.session.add(invoice)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise InvoiceNotAllowed("An invoice already exists for this order.", order_id=str(order.id)) from exc

    log_action(invoice, "CREATE", after=serialize_model(invoice))
    db.session.commit()
    logger.info("invoice %s raised for order %s (%s) by %s", invoice.id, order.id, record.total_amount, user.username)
    return invoice.to_record()


def _update_invoice(invoice: VendorInvoice, record, action: str):
    before = serialize_model(invoice)
    invoice.apply_record(record)
    db.session.flush()
    log_action(invoice, action, before=before, after=serialize_model(invoice))
    db.session.commit()
    return invoice.to_record()


def approve_invoice(invoice_id: int, user: User):
    invoice = load_invoice(invoice_id)
    record = invoice_rules.approve_invoice(invoice.to_record())
    result = _update_invoice(invoice, record, "APPROVE")
    logger.info("invoice %s approved by %s", invoice.id, user.username)
    return result


def record_payment(invoice_id: int, user: User, amount: Any):
    invoice = load_invoice(invoice_id)
    record = invoice_rules.record_payment(invoice.to_record(), amount)
    result = _update_invoice(invoice, record, "PAYMENT")
    logger.info(
        "invoice %s: payment %s by %s (due %s, %s)",
        invoice.id,
        parse_amount(amount),
        user.username,
        record.amount_due,
        record.status,
    )
    return result


def remove_attachment(invoice_id: int, attachment_id: int, user: User):
    invoice = load_invoice(invoice_id)
    record = invoice_rules.remove_attachment(invoice.to_record(), attachment_id)
    result = _update_invoice(invoice, record, "DELETE_ATTACHMENT")
    logger.info("invoice %s: attachment %s removed by %s", invoice.id, attachment_id, user.username)
    return result
