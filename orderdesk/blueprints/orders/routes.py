"""
orderdesk/blueprints/orders/routes.py

Purchase order routes.

Includes:
- List / detail / create
- Lifecycle transitions (dispatch, counter, accept, reject, begin_work, ship, deliver, close)
- Negotiation ledger (offers, acceptance, rejection, messages)
- Quotation tabs and the "recent order updates" feed

IMPORTANT:
- Clients are never trusted. The acting side (owner/vendor) comes from the
  logged-in user, never from the request body.
- Domain errors bubble up to the app-level handler (JSON + rollback).
"""

from __future__ import annotations

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from ... import services
from ...core import views
from ...extensions import db
from ...models import PurchaseOrder, User
from ...security import actor_for, order_access_required, role_required
from ...utils import bad_request, ok, order_payload, parse_optional_int

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _load_order(order_id: int, **_: object) -> PurchaseOrder:
    """Loader for decorator factories."""
    return services.load_order(order_id)


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _validate_items(raw) -> list[dict] | str:
    """Return clean item dicts, or an error message."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        return "items must be a list."
    items = []
    for idx, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            return f"Item {idx} is not an object."
        name = str(item.get("materialName") or "").strip()
        unit = str(item.get("unit") or "").strip()
        if not name or not unit:
            return f"Item {idx} needs materialName and unit."
        items.append({"materialName": name, "unit": unit, "quantity": item.get("quantity", 1)})
    return items


# ---------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------
@orders_bp.route("/", methods=["GET"])
@login_required
def list_orders():
    actor = actor_for(current_user)
    records = services.order_records(current_user)

    status = (request.args.get("status") or "").strip()
    if status:
        records = [o for o in records if o.status == status]

    return ok([order_payload(o, actor) for o in records])


@orders_bp.route("/quotations", methods=["GET"])
@login_required
def quotations():
    tab = (request.args.get("tab") or "all").strip()
    if tab not in views.QUOTATION_TABS:
        return bad_request(f"Unknown tab '{tab}'. Use one of: {', '.join(views.QUOTATION_TABS)}.")

    actor = actor_for(current_user)
    records = views.quotation_tab(services.order_records(current_user), tab)
    return ok({"tab": tab, "orders": [order_payload(o, actor) for o in records]})


@orders_bp.route("/updates", methods=["GET"])
@login_required
def order_updates():
    limit = parse_optional_int(request.args.get("limit")) or current_app.config["ORDER_UPDATES_PREVIEW"]
    records = views.vendor_order_updates(services.order_records(current_user), limit=limit)
    return ok([order_payload(o) for o in records])


# ---------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------
@orders_bp.route("/", methods=["POST"])
@login_required
@role_required("owner")
def create_order():
    data = _payload()

    vendor_id = parse_optional_int(data.get("vendorId"))
    vendor = db.session.get(User, vendor_id) if vendor_id is not None else None
    if vendor is None or not vendor.is_vendor:
        return bad_request("vendorId must reference a vendor account.")

    if data.get("totalAmount") is None:
        return bad_request("totalAmount is required.")

    items = _validate_items(data.get("items"))
    if isinstance(items, str):
        return bad_request(items)

    order_number = (str(data.get("orderNumber") or "").strip()) or None
    if order_number and db.session.execute(
        db.select(PurchaseOrder.id).filter_by(order_number=order_number)
    ).first():
        return bad_request("A purchase order with this number already exists.")

    record = services.create_order(
        current_user,
        vendor_id=vendor.id,
        project_id=parse_optional_int(data.get("projectId")),
        total_amount=data.get("totalAmount"),
        items=items,
        currency=(str(data.get("currency") or "").strip().upper() or current_app.config["DEFAULT_CURRENCY"]),
        order_number=order_number,
        dispatch=bool(data.get("send")),
    )
    return ok(order_payload(record, actor_for(current_user), detail=True), 201)


# ---------------------------------------------------------------------
# Detail & lifecycle
# ---------------------------------------------------------------------
@orders_bp.route("/<int:order_id>", methods=["GET"])
@login_required
@order_access_required(_load_order)
def order_detail(order_id: int):
    record = services.load_order(order_id).to_record()
    return ok(order_payload(record, actor_for(current_user), detail=True))


@orders_bp.route("/<int:order_id>/transition", methods=["POST"])
@login_required
@order_access_required(_load_order)
def transition(order_id: int):
    data = _payload()
    event = str(data.get("event") or "").strip()
    if not event:
        return bad_request("event is required.")

    record = services.transition_order(
        order_id,
        current_user,
        event,
        amount=data.get("amount"),
        in_response_to=parse_optional_int(data.get("inResponseTo")),
    )
    return ok(order_payload(record, actor_for(current_user), detail=True))


# ---------------------------------------------------------------------
# Negotiation ledger
# ---------------------------------------------------------------------
@orders_bp.route("/<int:order_id>/negotiation", methods=["GET"])
@login_required
@order_access_required(_load_order)
def negotiation_history(order_id: int):
    record = services.load_order(order_id).to_record()
    payload = order_payload(record, actor_for(current_user), detail=True)
    return ok({**payload["negotiation"], "status": record.status, "allowedEvents": payload["allowedEvents"]})


@orders_bp.route("/<int:order_id>/negotiation", methods=["POST"])
@login_required
@order_access_required(_load_order)
def negotiation_event(order_id: int):
    data = _payload()
    kind = str(data.get("kind") or "").strip()
    if not kind:
        return bad_request("kind is required.")

    record, event = services.negotiate(
        order_id,
        current_user,
        kind,
        amount=data.get("amount"),
        message=data.get("message"),
        in_response_to=parse_optional_int(data.get("inResponseTo")),
    )
    return ok({"event": event.to_dict(), "order": order_payload(record, actor_for(current_user))}, 201)
