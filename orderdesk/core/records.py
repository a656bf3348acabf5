"""
orderdesk/core/records.py

Plain records for orders, negotiation events, invoices, material requests and
payment rows, plus the single ingestion guard that turns API-shaped mappings
(camelCase, Mongo-style `_id`, populated or bare references) into records.

IMPORTANT:
- Money is Decimal, rounded half-up to cents.
- Timestamps are naive UTC datetimes (aware values are converted).
- ingest_* helpers never fail as a whole: a malformed entry is logged at DEBUG
  and excluded, so one bad record cannot zero a dashboard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, TypeVar

from .errors import InvalidAmount
from .taxonomy import DRAFT, INVOICE_PENDING

logger = logging.getLogger(__name__)

R = TypeVar("R")

CENT = Decimal("0.01")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    """Naive UTC now (matches the datetime columns in the database)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_amount(value: Any, *, field_name: str = "amount") -> Decimal:
    """
    Parse a submitted amount.

    Raises InvalidAmount for booleans, non-numeric input, NaN/Infinity and
    negative values.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"{field_name} must be a number.", field=field_name, value=value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"{field_name} must be a number.", field=field_name, value=value) from None
    if not amount.is_finite():
        raise InvalidAmount(f"{field_name} must be a finite number.", field=field_name, value=value)
    if amount < 0:
        raise InvalidAmount(f"{field_name} cannot be negative.", field=field_name, value=value)
    return money(amount)


def _optional_amount(value: Any, field_name: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return parse_amount(value, field_name=field_name)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetime/date/ISO-8601 strings (trailing Z allowed); None stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def stamp_or_now(at: Optional[datetime]) -> datetime:
    """Caller-supplied event time as naive UTC, or now when not given."""
    return parse_timestamp(at) or utcnow()


def resolve_amount(data: Mapping) -> Decimal:
    """totalAmount ?? amount ?? 0 for an API mapping."""
    for key in ("totalAmount", "amount"):
        value = data.get(key)
        if value is not None:
            return parse_amount(value, field_name=key)
    return Decimal("0.00")


def ref_id(value: Any) -> Optional[str]:
    """
    Normalize a reference that may be a bare id or a populated object.

    "abc" -> "abc", 7 -> "7", {"_id": "abc", ...} -> "abc", None -> None
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        inner = value.get("_id", value.get("id"))
        return ref_id(inner)
    if isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _nested(data: Mapping, key: str) -> Mapping:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{key} must be an object")
    return value


def _nested_list(data: Mapping, key: str) -> list[Mapping]:
    value = data.get(key) or []
    if isinstance(value, (str, bytes, Mapping)):
        raise ValueError(f"{key} must be a list")
    entries = list(value)
    if not all(isinstance(entry, Mapping) for entry in entries):
        raise ValueError(f"{key} entries must be objects")
    return entries


def _required_id(data: Mapping) -> str:
    identifier = ref_id(data.get("_id", data.get("id")))
    if not identifier:
        raise ValueError("record has no id")
    return identifier


# ---------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------
@dataclass
class OrderItem:
    material_name: str
    quantity: Decimal
    unit: str

    def to_dict(self) -> dict:
        return {"materialName": self.material_name, "quantity": float(self.quantity), "unit": self.unit}


@dataclass
class NegotiationEvent:
    seq: int
    actor: str
    kind: str
    timestamp: datetime
    amount: Optional[Decimal] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "actor": self.actor,
            "kind": self.kind,
            "amount": float(self.amount) if self.amount is not None else None,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class StatusChange:
    from_status: str
    to_status: str
    event: str
    actor: str
    at: datetime

    def to_dict(self) -> dict:
        return {
            "from": self.from_status,
            "to": self.to_status,
            "event": self.event,
            "actor": self.actor,
            "at": self.at.isoformat(),
        }


@dataclass
class PurchaseOrder:
    id: str
    number: Optional[str] = None
    status: str = DRAFT
    total_amount: Decimal = Decimal("0.00")
    vendor_id: Optional[str] = None
    project_id: Optional[str] = None
    owner_id: Optional[str] = None
    items: list[OrderItem] = field(default_factory=list)
    final_amount: Optional[Decimal] = None
    currency: str = "INR"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    events: list[NegotiationEvent] = field(default_factory=list)
    history: list[StatusChange] = field(default_factory=list)

    @property
    def last_activity(self) -> Optional[datetime]:
        return self.updated_at or self.created_at


@dataclass
class Attachment:
    id: str
    filename: str
    url: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


@dataclass
class VendorInvoice:
    id: str
    number: Optional[str] = None
    status: str = INVOICE_PENDING
    total_amount: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    vendor_id: Optional[str] = None
    project_id: Optional[str] = None
    purchase_order_id: Optional[str] = None
    due_date: Optional[datetime] = None
    amount_paid: Decimal = Decimal("0.00")
    amount_due: Optional[Decimal] = None
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class MaterialLine:
    name: str
    quantity: Decimal
    unit: str
    category: Optional[str] = None
    required_by: Optional[datetime] = None


@dataclass
class MaterialRequest:
    id: str
    title: Optional[str] = None
    status: str = "pending"
    priority: str = "medium"
    project_id: Optional[str] = None
    requester_id: Optional[str] = None
    required_by: Optional[datetime] = None
    materials: list[MaterialLine] = field(default_factory=list)


@dataclass
class PaymentEntry:
    id: str
    status: str
    amount: Decimal
    kind: str
    due_date: Optional[datetime] = None
    counterparty: Optional[str] = None
    project_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "status": self.status,
            "amount": float(self.amount),
            "paymentType": self.kind,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "counterparty": self.counterparty,
            "projectName": self.project_name,
        }


# ---------------------------------------------------------------------
# Mapping -> record
# ---------------------------------------------------------------------
def order_from_mapping(data: Mapping) -> PurchaseOrder:
    negotiation = _nested(data, "negotiation")
    items = [
        OrderItem(
            material_name=str(item.get("materialName") or item.get("name") or ""),
            quantity=Decimal(str(item.get("quantity", 0))),
            unit=str(item.get("unit") or ""),
        )
        for item in _nested_list(data, "items")
    ]
    events = [
        NegotiationEvent(
            seq=int(ev.get("seq", index)),
            actor=str(ev["actor"]),
            kind=str(ev["kind"]),
            amount=_optional_amount(ev.get("amount"), "amount"),
            message=ev.get("message"),
            timestamp=parse_timestamp(ev["timestamp"]),
        )
        for index, ev in enumerate(_nested_list(negotiation, "events"), start=1)
    ]
    status = data.get("status") or DRAFT
    if not isinstance(status, str):
        raise ValueError("status must be a string")

    return PurchaseOrder(
        id=_required_id(data),
        number=data.get("purchaseOrderNumber"),
        status=status,
        total_amount=_optional_amount(data.get("totalAmount"), "totalAmount") or Decimal("0.00"),
        vendor_id=ref_id(data.get("vendor")),
        project_id=ref_id(data.get("project")),
        owner_id=ref_id(data.get("owner") or data.get("createdBy")),
        items=items,
        final_amount=_optional_amount(negotiation.get("finalAmount"), "finalAmount"),
        currency=data.get("currency") or "INR",
        created_at=parse_timestamp(data.get("createdAt")),
        updated_at=parse_timestamp(data.get("updatedAt")),
        events=events,
    )


def invoice_from_mapping(data: Mapping) -> VendorInvoice:
    attachments = [
        Attachment(
            id=_required_id(att),
            filename=str(att.get("filename") or att.get("originalName") or ""),
            url=att.get("url"),
            mime_type=att.get("mimeType"),
            size=att.get("size"),
        )
        for att in _nested_list(data, "attachments")
    ]
    return VendorInvoice(
        id=_required_id(data),
        number=data.get("invoiceNumber"),
        status=str(data.get("status") or INVOICE_PENDING),
        total_amount=_optional_amount(data.get("totalAmount"), "totalAmount"),
        amount=_optional_amount(data.get("amount"), "amount"),
        vendor_id=ref_id(data.get("vendor")),
        project_id=ref_id(data.get("project")),
        purchase_order_id=ref_id(data.get("purchaseOrder")),
        due_date=parse_timestamp(data.get("dueDate")),
        amount_paid=_optional_amount(data.get("amountPaid"), "amountPaid") or Decimal("0.00"),
        amount_due=_optional_amount(data.get("amountDue"), "amountDue"),
        attachments=attachments,
    )


def material_request_from_mapping(data: Mapping) -> MaterialRequest:
    materials = [
        MaterialLine(
            name=str(m.get("name") or ""),
            quantity=Decimal(str(m.get("quantity", 0))),
            unit=str(m.get("unit") or ""),
            category=m.get("category"),
            required_by=parse_timestamp(m.get("requiredBy")),
        )
        for m in _nested_list(data, "materials")
    ]
    return MaterialRequest(
        id=_required_id(data),
        title=data.get("title"),
        status=str(data.get("status") or "pending"),
        priority=str(data.get("priority") or "medium"),
        project_id=ref_id(data.get("project")),
        requester_id=ref_id(data.get("requestedBy") or data.get("requester")),
        required_by=parse_timestamp(data.get("requiredBy")),
        materials=materials,
    )


def payment_from_mapping(data: Mapping, kind: str) -> PaymentEntry:
    return PaymentEntry(
        id=_required_id(data),
        status=str(data.get("status") or ""),
        amount=resolve_amount(data),
        kind=kind,
        due_date=parse_timestamp(data.get("dueDate")),
        counterparty=data.get("clientName") or data.get("vendorName"),
        project_name=data.get("projectName"),
    )


# ---------------------------------------------------------------------
# Ingestion boundary
# ---------------------------------------------------------------------
def _ingest(items: Any, record_type: type[R], convert: Callable[[Mapping], R], label: str) -> list[R]:
    if items is None or isinstance(items, (str, bytes, Mapping)):
        return []
    try:
        iterator = iter(items)
    except TypeError:
        return []

    records = []
    for raw in iterator:
        if isinstance(raw, record_type):
            records.append(raw)
            continue
        if not isinstance(raw, Mapping):
            logger.debug("Skipping non-mapping %s entry: %r", label, raw)
            continue
        try:
            records.append(convert(raw))
        except (KeyError, TypeError, ValueError, InvalidOperation, InvalidAmount) as exc:
            logger.debug("Skipping malformed %s %r: %s", label, raw.get("_id", raw.get("id")), exc)
    return records


def ingest_orders(items: Any) -> list[PurchaseOrder]:
    return _ingest(items, PurchaseOrder, order_from_mapping, "order")


def ingest_invoices(items: Any) -> list[VendorInvoice]:
    return _ingest(items, VendorInvoice, invoice_from_mapping, "invoice")


def ingest_material_requests(items: Any) -> list[MaterialRequest]:
    return _ingest(items, MaterialRequest, material_request_from_mapping, "material request")


def ingest_payments(items: Any, kind: str) -> list[PaymentEntry]:
    """Payment rows get tagged with `kind` (receivable/payable) on the way in."""
    entries = _ingest(items, PaymentEntry, lambda raw: payment_from_mapping(raw, kind), kind)
    return [entry if entry.kind == kind else replace(entry, kind=kind) for entry in entries]
