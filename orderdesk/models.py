"""
Order Desk – Persistence Models

Tables backing the purchase-order lifecycle:
- Users (owner / vendor / admin) and projects
- Purchase orders with ordered item lines
- Negotiation ledger (append-only, one row per event, unique per (order, seq))
- Status change history (fulfillment and negotiation status moves)
- Vendor invoices + attachments, client invoices (receivables)
- Material requests with material lines
- Audit log

IMPORTANT:
- Business rules live in orderdesk.core. Models only convert to/from core records
  (to_record / apply_record); they never decide whether a change is legal.
- The ledger's unique (order, seq) constraint turns two racing commits into an
  IntegrityError for the loser, which the service layer reports as stale.
"""

from __future__ import annotations

from decimal import Decimal

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .core import records
from .core.records import utcnow
from .core.taxonomy import DRAFT, INVOICE_PENDING, OWNER, VENDOR
from .extensions import db

ROLE_OWNER = "owner"
ROLE_VENDOR = "vendor"
ROLE_ADMIN = "admin"
ROLES = (ROLE_OWNER, ROLE_VENDOR, ROLE_ADMIN)


def _dec(value) -> Decimal | None:
    if value is None:
        return None
    return records.money(Decimal(str(value)))


def _sid(value) -> str | None:
    return None if value is None else str(value)


# ---------------------------------------------------------------------
# Users & projects
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """Login user. Role decides which side of a negotiation the user acts for."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    display_name = db.Column(db.String(150), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_OWNER, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == ROLE_VENDOR

    @property
    def actor(self) -> str:
        """Negotiation side: vendors act as vendor, owners and admins as owner."""
        return VENDOR if self.is_vendor else OWNER

    def to_dict(self) -> dict:
        return {
            "_id": str(self.id),
            "username": self.username,
            "displayName": self.display_name or self.username,
            "role": self.role,
        }

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    owner = db.relationship("User", foreign_keys=[owner_id])

    def __repr__(self):
        return f"<Project {self.title}>"


# ---------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------
class PurchaseOrder(db.Model):
    __tablename__ = "purchase_orders"

    id = db.Column(db.Integer, primary_key=True)

    order_number = db.Column(db.String(50), unique=True, nullable=False, index=True)

    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    status = db.Column(db.String(30), nullable=False, default=DRAFT, index=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    final_amount = db.Column(db.Numeric(12, 2), nullable=True)
    currency = db.Column(db.String(3), nullable=False, default="INR")

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, index=True)

    project = db.relationship("Project")
    vendor = db.relationship("User", foreign_keys=[vendor_id])
    owner = db.relationship("User", foreign_keys=[owner_id])

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_no",
    )
    events = db.relationship(
        "NegotiationEntry",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="NegotiationEntry.seq",
    )
    status_changes = db.relationship(
        "StatusChangeEntry",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="StatusChangeEntry.id",
    )

    def to_record(self) -> records.PurchaseOrder:
        return records.PurchaseOrder(
            id=str(self.id),
            number=self.order_number,
            status=self.status,
            total_amount=_dec(self.total_amount) or Decimal("0.00"),
            vendor_id=_sid(self.vendor_id),
            project_id=_sid(self.project_id),
            owner_id=_sid(self.owner_id),
            items=[
                records.OrderItem(material_name=i.material_name, quantity=Decimal(str(i.quantity)), unit=i.unit)
                for i in self.items
            ],
            final_amount=_dec(self.final_amount),
            currency=self.currency,
            created_at=self.created_at,
            updated_at=self.updated_at,
            events=[e.to_record() for e in self.events],
            history=[c.to_record() for c in self.status_changes],
        )

    def apply_record(self, record: records.PurchaseOrder, author_id: int | None = None) -> None:
        """
        Persist a post-state returned by the core.

        Only appends: ledger and history rows past the ones already stored are added.
        """
        for event in record.events[len(self.events):]:
            self.events.append(
                NegotiationEntry(
                    seq=event.seq,
                    actor=event.actor,
                    kind=event.kind,
                    amount=event.amount,
                    message=event.message,
                    author_id=author_id,
                    created_at=event.timestamp,
                )
            )
        for change in record.history[len(self.status_changes):]:
            self.status_changes.append(
                StatusChangeEntry(
                    from_status=change.from_status,
                    to_status=change.to_status,
                    event=change.event,
                    actor=change.actor,
                    author_id=author_id,
                    created_at=change.at,
                )
            )
        self.status = record.status
        self.final_amount = record.final_amount
        self.updated_at = record.updated_at or utcnow()

    def __repr__(self):
        return f"<PurchaseOrder {self.order_number} [{self.status}]>"


class OrderItem(db.Model):
    __tablename__ = "purchase_order_items"

    id = db.Column(db.Integer, primary_key=True)

    order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    line_no = db.Column(db.Integer, nullable=False, default=1)
    material_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=1)
    unit = db.Column(db.String(30), nullable=False)

    order = db.relationship("PurchaseOrder", back_populates="items")


class NegotiationEntry(db.Model):
    """One ledger event. Never updated or deleted by the application."""

    __tablename__ = "negotiation_events"

    id = db.Column(db.Integer, primary_key=True)

    order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    seq = db.Column(db.Integer, nullable=False)
    actor = db.Column(db.String(20), nullable=False)
    kind = db.Column(db.String(20), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=True)
    message = db.Column(db.Text, nullable=True)

    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    order = db.relationship("PurchaseOrder", back_populates="events")
    author = db.relationship("User")

    __table_args__ = (db.UniqueConstraint("order_id", "seq", name="uq_negotiation_order_seq"),)

    def to_record(self) -> records.NegotiationEvent:
        return records.NegotiationEvent(
            seq=self.seq,
            actor=self.actor,
            kind=self.kind,
            amount=_dec(self.amount),
            message=self.message,
            timestamp=self.created_at,
        )


class StatusChangeEntry(db.Model):
    __tablename__ = "order_status_changes"

    id = db.Column(db.Integer, primary_key=True)

    order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    from_status = db.Column(db.String(30), nullable=False)
    to_status = db.Column(db.String(30), nullable=False)
    event = db.Column(db.String(30), nullable=False)
    actor = db.Column(db.String(20), nullable=False)

    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    order = db.relationship("PurchaseOrder", back_populates="status_changes")

    def to_record(self) -> records.StatusChange:
        return records.StatusChange(
            from_status=self.from_status,
            to_status=self.to_status,
            event=self.event,
            actor=self.actor,
            at=self.created_at,
        )


# ---------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------
class VendorInvoice(db.Model):
    __tablename__ = "vendor_invoices"

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.String(50), unique=True, nullable=False, index=True)

    # optional: standalone invoices exist; at most one invoice per order
    purchase_order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    )
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False, default=INVOICE_PENDING, index=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=True)
    # legacy amount column; read only when total_amount is empty
    amount = db.Column(db.Numeric(12, 2), nullable=True)

    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    amount_due = db.Column(db.Numeric(12, 2), nullable=True)

    due_date = db.Column(db.DateTime, nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    purchase_order = db.relationship("PurchaseOrder", backref=db.backref("invoice", uselist=False))
    project = db.relationship("Project")
    vendor = db.relationship("User")

    attachments = db.relationship(
        "InvoiceAttachment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceAttachment.id",
    )

    def to_record(self) -> records.VendorInvoice:
        return records.VendorInvoice(
            id=str(self.id),
            number=self.invoice_number,
            status=self.status,
            total_amount=_dec(self.total_amount),
            amount=_dec(self.amount),
            vendor_id=_sid(self.vendor_id),
            project_id=_sid(self.project_id),
            purchase_order_id=_sid(self.purchase_order_id),
            due_date=self.due_date,
            amount_paid=_dec(self.amount_paid) or Decimal("0.00"),
            amount_due=_dec(self.amount_due),
            attachments=[a.to_record() for a in self.attachments],
        )

    def apply_record(self, record: records.VendorInvoice) -> None:
        self.status = record.status
        self.amount_paid = record.amount_paid
        self.amount_due = record.amount_due
        kept = {a.id for a in record.attachments}
        for attachment in list(self.attachments):
            if str(attachment.id) not in kept:
                self.attachments.remove(attachment)

    def __repr__(self):
        return f"<VendorInvoice {self.invoice_number} [{self.status}]>"


class InvoiceAttachment(db.Model):
    __tablename__ = "invoice_attachments"

    id = db.Column(db.Integer, primary_key=True)

    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("vendor_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    filename = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(500), nullable=True)
    mime_type = db.Column(db.String(100), nullable=True)
    size = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)

    invoice = db.relationship("VendorInvoice", back_populates="attachments")

    def to_record(self) -> records.Attachment:
        return records.Attachment(
            id=str(self.id), filename=self.filename, url=self.url, mime_type=self.mime_type, size=self.size
        )


class ClientInvoice(db.Model):
    """Invoice sent to a client (a receivable on the payment tracker)."""

    __tablename__ = "client_invoices"

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    client_name = db.Column(db.String(255), nullable=True)

    # draft / sent / viewed / paid / overdue / cancelled
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    due_date = db.Column(db.DateTime, nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    project = db.relationship("Project")

    def to_payment(self) -> records.PaymentEntry:
        return records.PaymentEntry(
            id=str(self.id),
            status=self.status,
            amount=_dec(self.total_amount) or Decimal("0.00"),
            kind="receivable",
            due_date=self.due_date,
            counterparty=self.client_name,
            project_name=self.project.title if self.project else None,
        )


# ---------------------------------------------------------------------
# Material requests
# ---------------------------------------------------------------------
class MaterialRequest(db.Model):
    __tablename__ = "material_requests"

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=False)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    priority = db.Column(db.String(20), nullable=False, default="medium", index=True)
    required_by = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    materials = db.relationship(
        "MaterialRequestLine",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="MaterialRequestLine.line_no",
    )

    def to_record(self) -> records.MaterialRequest:
        return records.MaterialRequest(
            id=str(self.id),
            title=self.title,
            status=self.status,
            priority=self.priority,
            project_id=_sid(self.project_id),
            requester_id=_sid(self.requester_id),
            required_by=self.required_by,
            materials=[
                records.MaterialLine(
                    name=m.name,
                    quantity=Decimal(str(m.quantity)),
                    unit=m.unit,
                    category=m.category,
                    required_by=m.required_by,
                )
                for m in self.materials
            ],
        )


class MaterialRequestLine(db.Model):
    __tablename__ = "material_request_lines"

    id = db.Column(db.Integer, primary_key=True)

    request_id = db.Column(
        db.Integer,
        db.ForeignKey("material_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    line_no = db.Column(db.Integer, nullable=False, default=1)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=1)
    unit = db.Column(db.String(30), nullable=False)
    category = db.Column(db.String(50), nullable=True)
    required_by = db.Column(db.DateTime, nullable=True)

    request = db.relationship("MaterialRequest", back_populates="materials")


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Who did what to which entity, with before/after snapshots."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = db.Column(db.String(150), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(30), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    user = db.relationship("User", backref=db.backref("audit_entries", lazy=True))
