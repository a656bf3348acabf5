"""
orderdesk/blueprints/dashboard/routes.py

Read-only dashboard cards, all computed by orderdesk.core.views from the
rows the current user may see.
"""

from __future__ import annotations

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from ... import core, services
from ...core import views
from ...security import can_see_vendor_data, forbidden, role_required
from ...utils import bad_request, decimals_to_float, material_request_payload, ok, parse_optional_int

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.route("/vendors/<int:vendor_id>/pending-count", methods=["GET"])
@login_required
def vendor_pending_count(vendor_id: int):
    if not can_see_vendor_data(vendor_id):
        return forbidden()
    count = core.compute_vendor_pending_count(
        vendor_id,
        services.order_records(current_user),
        services.invoice_records(current_user),
    )
    return ok({"vendorId": str(vendor_id), "pendingCount": count})


@dashboard_bp.route("/vendor-overview", methods=["GET"])
@login_required
@role_required("vendor")
def vendor_overview():
    orders = services.order_records(current_user)
    overview = views.vendor_overview(current_user.id, orders, services.invoice_records(current_user))
    overview["activeOrders"] = views.vendor_active_order_count(current_user.id, orders)
    return ok(decimals_to_float(overview))


@dashboard_bp.route("/payment-tracker", methods=["GET"])
@login_required
@role_required("owner")
def payment_tracker():
    payment_filter = (request.args.get("filter") or "all").strip()
    if payment_filter not in views.PAYMENT_FILTERS:
        return bad_request(f"Unknown filter '{payment_filter}'. Use one of: {', '.join(views.PAYMENT_FILTERS)}.")

    limit = parse_optional_int(request.args.get("limit"))
    entries = core.compute_payment_tracker_view(
        services.receivables(),
        services.payables(current_user),
        payment_filter,
    )
    preview = entries[: limit or current_app.config["PAYMENT_TRACKER_PREVIEW"]]
    return ok({"filter": payment_filter, "total": len(entries), "entries": [e.to_dict() for e in preview]})


@dashboard_bp.route("/status-summary", methods=["GET"])
@login_required
def status_summary():
    orders = services.order_records(current_user)
    return ok(
        {
            "byStatus": views.status_summary(orders),
            "pendingQuotations": views.pending_quotations_total(orders),
            "acceptedInvoices": len(views.accepted_invoices(services.invoice_records(current_user))),
        }
    )


@dashboard_bp.route("/material-requests", methods=["GET"])
@login_required
@role_required("owner")
def material_requests():
    queue = views.material_request_queue(services.material_request_records())
    return ok([material_request_payload(req) for req in queue])
