"""
orderdesk/blueprints/invoices/routes.py

Vendor invoice routes.

Includes:
- List (vendors see their own invoices only)
- Raise the invoice for an accepted order (vendor)
- Approve / record payment (owner)
- Remove an attachment (either side, any invoice status)
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_login import current_user, login_required

from ... import services
from ...core.records import parse_timestamp
from ...security import can_see_vendor_data, forbidden, role_required
from ...utils import bad_request, invoice_payload, ok, parse_optional_int

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _guard(invoice_id: int):
    """Load an invoice and check the current user may touch it."""
    invoice = services.load_invoice(invoice_id)
    if not can_see_vendor_data(invoice.vendor_id):
        return None
    return invoice


@invoices_bp.route("/", methods=["GET"])
@login_required
def list_invoices():
    records = services.invoice_records(current_user)
    status = (request.args.get("status") or "").strip()
    if status:
        records = [inv for inv in records if inv.status == status]
    return ok([invoice_payload(inv) for inv in records])


@invoices_bp.route("/", methods=["POST"])
@login_required
@role_required("vendor")
def create_invoice():
    data = request.get_json(silent=True) or {}

    order_id = parse_optional_int(data.get("purchaseOrder"))
    if order_id is None:
        return bad_request("purchaseOrder is required.")

    order = services.load_order(order_id)
    if not can_see_vendor_data(order.vendor_id):
        return forbidden()

    try:
        due_date = parse_timestamp(data.get("dueDate"))
    except ValueError:
        return bad_request("dueDate must be an ISO-8601 date.")

    record = services.create_invoice(
        order_id,
        current_user,
        invoice_number=(str(data.get("invoiceNumber") or "").strip() or None),
        due_date=due_date,
    )
    return ok(invoice_payload(record), 201)


@invoices_bp.route("/<int:invoice_id>/approve", methods=["POST"])
@login_required
@role_required("owner")
def approve_invoice(invoice_id: int):
    record = services.approve_invoice(invoice_id, current_user)
    return ok(invoice_payload(record))


@invoices_bp.route("/<int:invoice_id>/payments", methods=["POST"])
@login_required
@role_required("owner")
def record_payment(invoice_id: int):
    data = request.get_json(silent=True) or {}
    record = services.record_payment(invoice_id, current_user, data.get("amount"))
    return ok(invoice_payload(record), 201)


@invoices_bp.route("/<int:invoice_id>/attachments/<int:attachment_id>", methods=["DELETE"])
@login_required
def delete_attachment(invoice_id: int, attachment_id: int):
    if _guard(invoice_id) is None:
        return forbidden()
    record = services.remove_attachment(invoice_id, attachment_id, current_user)
    return ok(invoice_payload(record))
