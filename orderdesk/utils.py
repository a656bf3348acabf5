"""
Utility functions shared across the API. This includes:
- ok / bad_request: the response envelopes used by every route.
- order_payload / invoice_payload / material_request_payload: record -> JSON dicts.
- parse_optional_int: tolerant request parsing.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from flask import jsonify

from .core import ledger, state_machine
from .core.invoices import amount_for, outstanding
from .core.records import MaterialRequest, PurchaseOrder, VendorInvoice
from .core.taxonomy import invoice_style, status_style, to_display_status


def ok(data: Any, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def bad_request(message: str):
    return jsonify({"success": False, "error": {"code": "bad_request", "message": message}}), 400


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def order_payload(order: PurchaseOrder, actor: Optional[str] = None, *, detail: bool = False) -> dict:
    """
    JSON form of a purchase order.

    With an actor, `allowedEvents` lists what that side may do next.
    The detail form adds the negotiation ledger and status history.
    """
    payload = {
        "_id": order.id,
        "orderNumber": order.number,
        "status": order.status,
        "displayStatus": to_display_status(order.status),
        "style": status_style(order.status).to_dict(),
        "totalAmount": _num(order.total_amount),
        "currency": order.currency,
        "vendorId": order.vendor_id,
        "projectId": order.project_id,
        "ownerId": order.owner_id,
        "items": [item.to_dict() for item in order.items],
        "negotiation": {
            "finalAmount": _num(order.final_amount),
            "currentAmount": _num(ledger.current_asking_amount(order)),
            "lastSeq": len(order.events),
        },
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }
    if actor is not None:
        payload["allowedEvents"] = state_machine.allowed_events(order, actor)
    if detail:
        payload["negotiation"]["events"] = [event.to_dict() for event in order.events]
        payload["history"] = [change.to_dict() for change in order.history]
    return payload


def invoice_payload(invoice: VendorInvoice) -> dict:
    return {
        "_id": invoice.id,
        "invoiceNumber": invoice.number,
        "status": invoice.status,
        "style": invoice_style(invoice.status).to_dict(),
        "totalAmount": _num(amount_for(invoice)),
        "amountPaid": _num(invoice.amount_paid),
        "amountDue": _num(outstanding(invoice)),
        "vendorId": invoice.vendor_id,
        "projectId": invoice.project_id,
        "purchaseOrderId": invoice.purchase_order_id,
        "dueDate": _iso(invoice.due_date),
        "attachments": [
            {"_id": a.id, "filename": a.filename, "url": a.url, "mimeType": a.mime_type, "size": a.size}
            for a in invoice.attachments
        ],
    }


def material_request_payload(req: MaterialRequest) -> dict:
    return {
        "_id": req.id,
        "title": req.title,
        "status": req.status,
        "priority": req.priority,
        "projectId": req.project_id,
        "requiredBy": _iso(req.required_by),
        "materials": [
            {"name": m.name, "quantity": float(m.quantity), "unit": m.unit, "category": m.category}
            for m in req.materials
        ],
    }


def decimals_to_float(data: Any) -> Any:
    """Recursively turn Decimals into floats (overview dicts)."""
    if isinstance(data, Decimal):
        return float(data)
    if isinstance(data, dict):
        return {k: decimals_to_float(v) for k, v in data.items()}
    if isinstance(data, list):
        return [decimals_to_float(v) for v in data]
    return data


def parse_optional_int(value: Any) -> int | None:
    """Parse optional int from JSON/query; junk becomes None."""
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None

