"""
orderdesk/core/invoices.py

Invoice gate: when a vendor invoice may exist for an order, which amount an
invoice carries, and the small pending -> approved -> paid workflow.

NOTE:
- `totalAmount` and `amount` are both accepted as the invoice amount;
  `totalAmount` wins when both are present.
- Attachment removal is allowed in every invoice status (paid included).
"""

from __future__ import annotations

import copy
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from .errors import InvalidAmount, InvalidTransition, InvoiceNotAllowed, UnknownAttachment
from .records import (
    PurchaseOrder,
    VendorInvoice,
    ingest_invoices,
    ingest_orders,
    parse_amount,
    resolve_amount,
)
from .taxonomy import (
    INVOICE_APPROVED,
    INVOICE_ELIGIBLE,
    INVOICE_PAID,
    INVOICE_PENDING,
    display_label,
)

ZERO = Decimal("0.00")


def amount_for(invoice: Any) -> Decimal:
    """totalAmount ?? amount ?? 0, for records and raw API mappings alike."""
    if isinstance(invoice, VendorInvoice):
        if invoice.total_amount is not None:
            return invoice.total_amount
        if invoice.amount is not None:
            return invoice.amount
        return ZERO
    if isinstance(invoice, Mapping):
        return resolve_amount(invoice)
    return ZERO


def _as_order(order: Any) -> Optional[PurchaseOrder]:
    records = ingest_orders([order])
    return records[0] if records else None


def can_create_invoice(order: Any, invoices: Iterable = ()) -> bool:
    """True iff the order is invoice-eligible and no invoice references it yet."""
    record = _as_order(order)
    if record is None or record.status not in INVOICE_ELIGIBLE:
        return False
    return not any(inv.purchase_order_id == record.id for inv in ingest_invoices(invoices))


def draft_invoice(
    order: Any,
    invoice_number: str,
    invoices: Iterable = (),
    *,
    invoice_id: Optional[str] = None,
    due_date: Optional[datetime] = None,
) -> VendorInvoice:
    """
    Build the pending invoice for an accepted order.

    Amount is the negotiated final amount, falling back to the original quote.
    """
    record = _as_order(order)
    if record is None:
        raise InvoiceNotAllowed("The order could not be read.")
    if record.status not in INVOICE_ELIGIBLE:
        raise InvoiceNotAllowed(
            f"An invoice can only be raised once the order is accepted (it is {display_label(record.status)}).",
            order_id=record.id,
            status=record.status,
        )
    if not can_create_invoice(record, invoices):
        raise InvoiceNotAllowed("An invoice already exists for this order.", order_id=record.id)

    amount = record.final_amount if record.final_amount is not None else record.total_amount
    return VendorInvoice(
        id=invoice_id or f"inv-{record.id}",
        number=invoice_number,
        status=INVOICE_PENDING,
        total_amount=amount,
        vendor_id=record.vendor_id,
        project_id=record.project_id,
        purchase_order_id=record.id,
        due_date=due_date,
        amount_paid=ZERO,
        amount_due=amount,
    )


def approve_invoice(invoice: VendorInvoice) -> VendorInvoice:
    if invoice.status != INVOICE_PENDING:
        raise InvalidTransition(
            f"Only pending invoices can be approved (this one is {invoice.status}).",
            invoice_id=invoice.id,
            status=invoice.status,
        )
    updated = copy.deepcopy(invoice)
    updated.status = INVOICE_APPROVED
    return updated


def outstanding(invoice: VendorInvoice) -> Decimal:
    if invoice.amount_due is not None:
        return invoice.amount_due
    return amount_for(invoice) - invoice.amount_paid


def record_payment(invoice: VendorInvoice, amount: Any) -> VendorInvoice:
    """
    Register a payment against an approved invoice.

    The invoice becomes paid once nothing is left outstanding.
    """
    if invoice.status != INVOICE_APPROVED:
        raise InvalidTransition(
            f"Payments can only be recorded on approved invoices (this one is {invoice.status}).",
            invoice_id=invoice.id,
            status=invoice.status,
        )
    paid = parse_amount(amount)
    if paid <= 0:
        raise InvalidAmount("Payment amount must be greater than zero.", field="amount", value=amount)
    due = outstanding(invoice)
    if paid > due:
        raise InvalidAmount(
            f"Payment exceeds the outstanding amount ({due}).", field="amount", value=amount
        )

    updated = copy.deepcopy(invoice)
    updated.amount_paid = invoice.amount_paid + paid
    updated.amount_due = due - paid
    if updated.amount_due == ZERO:
        updated.status = INVOICE_PAID
    return updated


def remove_attachment(invoice: VendorInvoice, attachment_id: Any) -> VendorInvoice:
    target = str(attachment_id)
    if not any(att.id == target for att in invoice.attachments):
        raise UnknownAttachment("Attachment not found on this invoice.", invoice_id=invoice.id, attachment_id=target)
    updated = copy.deepcopy(invoice)
    updated.attachments = [att for att in invoice.attachments if att.id != target]
    return updated
