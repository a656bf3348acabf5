"""
orderdesk/core/views.py

Derived dashboard views. Every function here is a pure function of its inputs:
collections are normalized by the ingestion guard, nothing is cached, and
orderings use explicit tie-breakers so equal inputs always give equal output.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from .invoices import amount_for
from .records import (
    PaymentEntry,
    PurchaseOrder,
    ingest_invoices,
    ingest_material_requests,
    ingest_orders,
    ingest_payments,
    money,
)
from .taxonomy import (
    ACCEPTED,
    ACTIVE_STATUSES,
    COMPLETED,
    IN_NEGOTIATION,
    INVOICE_APPROVED,
    INVOICE_PAID,
    INVOICE_PENDING,
    NEW_BUCKET,
    PRIORITIES,
    SENT,
    display_buckets,
    to_display_status,
)

QUOTATION_TABS = (NEW_BUCKET, IN_NEGOTIATION, "all")

PAYMENT_FILTERS = ("all", "overdue", "pending")
DUE_SOON_STATUSES = frozenset({"pending", "sent", "viewed"})

RECEIVABLE = "receivable"
PAYABLE = "payable"

_EPOCH = datetime(1970, 1, 1)


# ---------------------------------------------------------------------
# Vendor counters
# ---------------------------------------------------------------------
def vendor_pending_count(vendor_id: Any, orders: Iterable, invoices: Iterable) -> int:
    """Pending invoices + orders in negotiation, for one vendor."""
    vendor = str(vendor_id)
    pending_invoices = sum(
        1 for inv in ingest_invoices(invoices) if inv.vendor_id == vendor and inv.status == INVOICE_PENDING
    )
    negotiating = sum(
        1 for order in ingest_orders(orders) if order.vendor_id == vendor and order.status == IN_NEGOTIATION
    )
    return pending_invoices + negotiating


def vendor_active_order_count(vendor_id: Any, orders: Iterable) -> int:
    vendor = str(vendor_id)
    return sum(1 for o in ingest_orders(orders) if o.vendor_id == vendor and o.status in ACTIVE_STATUSES)


def pending_quotations_total(orders: Iterable) -> int:
    """Orders waiting on a negotiation answer, across all vendors."""
    return sum(1 for o in ingest_orders(orders) if o.status == IN_NEGOTIATION)


# ---------------------------------------------------------------------
# Quotation tabs
# ---------------------------------------------------------------------
def quotation_tab(orders: Iterable, tab: str) -> list[PurchaseOrder]:
    """
    Orders for a quotations tab, in input order.

    - new: display status "new" (stored "sent")
    - in_negotiation: stored in_negotiation
    - all: unfiltered
    """
    if tab not in QUOTATION_TABS:
        raise ValueError(f"Unknown quotation tab '{tab}'.")
    records = ingest_orders(orders)
    if tab == "all":
        return records
    if tab == NEW_BUCKET:
        return [o for o in records if to_display_status(o.status) == NEW_BUCKET]
    return [o for o in records if o.status == IN_NEGOTIATION]


# ---------------------------------------------------------------------
# Ordering helpers
# ---------------------------------------------------------------------
def _newest_first(stamp: Optional[datetime], identifier: str) -> tuple:
    # dated rows first (newest first), undated last; ids break ties
    if stamp is None:
        return (1, 0.0, identifier)
    return (0, -(stamp - _EPOCH).total_seconds(), identifier)


# ---------------------------------------------------------------------
# Payment tracker
# ---------------------------------------------------------------------
def payment_tracker(
    receivables: Iterable,
    payables: Iterable,
    payment_filter: str = "all",
    limit: Optional[int] = None,
) -> list[PaymentEntry]:
    """
    Receivables and payables merged into one list, tagged by direction.

    Filters: overdue (status overdue), pending ("Due Soon": pending/sent/viewed),
    all. Sorted by due date, most recent first.
    """
    if payment_filter not in PAYMENT_FILTERS:
        raise ValueError(f"Unknown payment filter '{payment_filter}'.")

    entries = ingest_payments(receivables, RECEIVABLE) + ingest_payments(payables, PAYABLE)

    if payment_filter == "overdue":
        entries = [e for e in entries if e.status == "overdue"]
    elif payment_filter == "pending":
        entries = [e for e in entries if e.status in DUE_SOON_STATUSES]

    entries.sort(key=lambda e: _newest_first(e.due_date, f"{e.kind}:{e.id}"))
    if limit is not None:
        entries = entries[:limit]
    return entries


# ---------------------------------------------------------------------
# Timelines
# ---------------------------------------------------------------------
def vendor_order_updates(orders: Iterable, limit: Optional[int] = None) -> list[PurchaseOrder]:
    """All orders, most recently touched first (updated_at, else created_at)."""
    records = sorted(ingest_orders(orders), key=lambda o: _newest_first(o.last_activity, o.id))
    if limit is not None:
        records = records[:limit]
    return records


# ---------------------------------------------------------------------
# Overviews
# ---------------------------------------------------------------------
def accepted_invoices(invoices: Iterable) -> list:
    return [inv for inv in ingest_invoices(invoices) if inv.status in (INVOICE_APPROVED, INVOICE_PAID)]


def vendor_overview(vendor_id: Any, orders: Iterable, invoices: Iterable) -> dict:
    """Order and invoice counters plus earnings for a vendor's dashboard."""
    vendor = str(vendor_id)
    own_orders = [o for o in ingest_orders(orders) if o.vendor_id == vendor]
    own_invoices = [i for i in ingest_invoices(invoices) if i.vendor_id == vendor]

    def _count(status: str) -> int:
        return sum(1 for o in own_orders if o.status == status)

    total = Decimal("0.00")
    received = Decimal("0.00")
    outstanding = Decimal("0.00")
    for inv in own_invoices:
        amount = amount_for(inv)
        total += amount
        received += inv.amount_paid
        outstanding += inv.amount_due if inv.amount_due is not None else amount - inv.amount_paid

    return {
        "orders": {
            "total": len(own_orders),
            "new": _count(SENT),
            "inNegotiation": _count(IN_NEGOTIATION),
            "accepted": _count(ACCEPTED),
            "completed": _count(COMPLETED),
        },
        "invoices": {
            "total": len(own_invoices),
            "pending": sum(1 for i in own_invoices if i.status == INVOICE_PENDING),
            "paid": sum(1 for i in own_invoices if i.status == INVOICE_PAID),
        },
        "earnings": {
            "totalEarnings": money(total),
            "received": money(received),
            "pending": money(outstanding),
        },
    }


def status_summary(orders: Iterable) -> dict[str, int]:
    """Order count per display bucket, in lifecycle order; unknown buckets appended."""
    summary = {bucket: 0 for bucket in display_buckets()}
    for order in ingest_orders(orders):
        bucket = to_display_status(order.status)
        summary[bucket] = summary.get(bucket, 0) + 1
    return summary


# ---------------------------------------------------------------------
# Material requests
# ---------------------------------------------------------------------
_PRIORITY_RANK = {name: rank for rank, name in enumerate(reversed(PRIORITIES))}


def material_request_queue(requests: Iterable) -> list:
    """Pending requests, most urgent first, then earliest required-by date (undated last)."""
    pending = [r for r in ingest_material_requests(requests) if r.status == "pending"]

    def _key(req):
        rank = _PRIORITY_RANK.get(req.priority, len(PRIORITIES))
        if req.required_by is None:
            return (rank, 1, 0.0, req.id)
        return (rank, 0, (req.required_by - _EPOCH).total_seconds(), req.id)

    return sorted(pending, key=_key)
