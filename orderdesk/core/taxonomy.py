"""
orderdesk/core/taxonomy.py

Status vocabularies and the single presentation table for them.

Every screen that shows an order or invoice badge reads from STATUS_TABLE /
INVOICE_STATUS_TABLE. Unknown statuses render with the neutral style and
their raw value as label; they never raise.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------
DRAFT = "draft"
SENT = "sent"
IN_NEGOTIATION = "in_negotiation"
ACCEPTED = "accepted"
REJECTED = "rejected"
IN_PROGRESS = "in_progress"
SHIPPED = "shipped"
DELIVERED = "delivered"
COMPLETED = "completed"

ORDER_STATUSES = (
    DRAFT,
    SENT,
    IN_NEGOTIATION,
    ACCEPTED,
    REJECTED,
    IN_PROGRESS,
    SHIPPED,
    DELIVERED,
    COMPLETED,
)

TERMINAL_STATUSES = frozenset({REJECTED, COMPLETED})
NEGOTIABLE_STATUSES = frozenset({SENT, IN_NEGOTIATION})
ACTIVE_STATUSES = NEGOTIABLE_STATUSES
INVOICE_ELIGIBLE = frozenset({ACCEPTED, IN_PROGRESS, SHIPPED, DELIVERED, COMPLETED})

OWNER = "owner"
VENDOR = "vendor"
ACTORS = (OWNER, VENDOR)

INVOICE_PENDING = "pending"
INVOICE_APPROVED = "approved"
INVOICE_PAID = "paid"
INVOICE_STATUSES = (INVOICE_PENDING, INVOICE_APPROVED, INVOICE_PAID)

MATERIAL_REQUEST_STATUSES = ("pending", "approved", "rejected")
PRIORITIES = ("low", "medium", "high", "urgent")

# Display bucket for orders the vendor has not responded to yet.
NEW_BUCKET = "new"


# ---------------------------------------------------------------------
# Presentation table
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StatusStyle:
    label: str
    bucket: str
    tone: str
    color: str
    background: str

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "bucket": self.bucket,
            "tone": self.tone,
            "color": self.color,
            "background": self.background,
        }


NEUTRAL_COLOR = "#6B7280"
NEUTRAL_BACKGROUND = "#F3F4F6"

STATUS_TABLE: dict[str, StatusStyle] = {
    DRAFT: StatusStyle("Draft", DRAFT, "neutral", NEUTRAL_COLOR, NEUTRAL_BACKGROUND),
    SENT: StatusStyle("New", NEW_BUCKET, "info", "#3B82F6", "#DBEAFE"),
    IN_NEGOTIATION: StatusStyle("Negotiating", IN_NEGOTIATION, "warning", "#F59E0B", "#FEF3C7"),
    ACCEPTED: StatusStyle("Accepted", ACCEPTED, "success", "#10B981", "#D1FAE5"),
    REJECTED: StatusStyle("Rejected", REJECTED, "danger", "#EF4444", "#FEE2E2"),
    IN_PROGRESS: StatusStyle("In Progress", IN_PROGRESS, "info", "#6366F1", "#E0E7FF"),
    SHIPPED: StatusStyle("Shipped", SHIPPED, "info", "#0EA5E9", "#E0F2FE"),
    DELIVERED: StatusStyle("Delivered", DELIVERED, "success", "#14B8A6", "#CCFBF1"),
    COMPLETED: StatusStyle("Completed", COMPLETED, "success", "#059669", "#D1FAE5"),
}

INVOICE_STATUS_TABLE: dict[str, StatusStyle] = {
    INVOICE_PENDING: StatusStyle("Negotiation", INVOICE_PENDING, "warning", "#F59E0B", "#FEF3C7"),
    INVOICE_APPROVED: StatusStyle("Under Review", INVOICE_APPROVED, "info", "#3B82F6", "#DBEAFE"),
    INVOICE_PAID: StatusStyle("Paid", INVOICE_PAID, "success", "#10B981", "#D1FAE5"),
}


def _fallback(status) -> StatusStyle:
    raw = "" if status is None else str(status)
    return StatusStyle(raw, raw, "neutral", NEUTRAL_COLOR, NEUTRAL_BACKGROUND)


def status_style(status) -> StatusStyle:
    """Presentation data for a stored order status (neutral for unknown values)."""
    return STATUS_TABLE.get(status) or _fallback(status)


def to_display_status(status) -> str:
    """Stored status -> display bucket ("sent" shows as "new")."""
    return status_style(status).bucket


def display_label(status) -> str:
    return status_style(status).label


def invoice_style(status) -> StatusStyle:
    return INVOICE_STATUS_TABLE.get(status) or _fallback(status)


def invoice_label(status) -> str:
    return invoice_style(status).label


def display_buckets() -> list[str]:
    """Display buckets in lifecycle order (used by status summaries)."""
    return [STATUS_TABLE[s].bucket for s in ORDER_STATUSES]
