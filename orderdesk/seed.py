"""
orderdesk/seed.py

Seed demo data for local development.

Rules:
- Safe to run multiple times (idempotent): rows are matched by username,
  project title, order number and invoice number.
- Orders are moved through the lifecycle with the same service functions the
  API uses, so the ledger and status history look like real usage.

NOTE:
- Demo passwords are for development only.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from . import services
from .core.records import utcnow
from .extensions import db
from .models import (
    ROLE_ADMIN,
    ROLE_OWNER,
    ROLE_VENDOR,
    ClientInvoice,
    MaterialRequest,
    MaterialRequestLine,
    Project,
    PurchaseOrder,
    User,
)


DEMO_USERS = [
    # username, display name, role, password
    ("owner", "Site Owner", ROLE_OWNER, "owner"),
    ("vendor", "Acme Building Supplies", ROLE_VENDOR, "vendor"),
    ("admin", "Administrator", ROLE_ADMIN, "admin"),
]

DEMO_PROJECT = "Riverside Residences"

DEMO_ORDERS = [
    # order number, total, items, how far along
    ("PO-DEMO-001", Decimal("50000.00"), [("Cement", 100, "bags")], "sent"),
    ("PO-DEMO-002", Decimal("82000.00"), [("TMT Steel", 4, "tonnes"), ("Binding wire", 20, "kg")], "in_negotiation"),
    ("PO-DEMO-003", Decimal("15000.00"), [("River sand", 10, "m3")], "accepted"),
]

DEMO_CLIENT_INVOICES = [
    # number, client, status, amount, due in days
    ("CI-DEMO-001", "Riverside Housing Society", "sent", Decimal("250000.00"), 10),
    ("CI-DEMO-002", "Riverside Housing Society", "overdue", Decimal("120000.00"), -5),
]


def _ensure_user(username: str, display_name: str, role: str, password: str) -> User:
    user = db.session.execute(db.select(User).filter_by(username=username)).scalar_one_or_none()
    if user:
        return user
    user = User(username=username, display_name=display_name, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    return user


def _advance(order_id: int, owner: User, vendor: User, target: str) -> None:
    if target in ("in_negotiation", "accepted"):
        services.negotiate(order_id, vendor, "offer", amount="78000", message="Best price for this week.")
    if target == "accepted":
        services.negotiate(order_id, owner, "accept")


def seed_demo_data() -> None:
    """Create demo users, one project, a few orders, receivables and a material request."""
    users = {username: _ensure_user(username, name, role, pw) for username, name, role, pw in DEMO_USERS}
    owner, vendor = users["owner"], users["vendor"]

    project = db.session.execute(db.select(Project).filter_by(title=DEMO_PROJECT)).scalar_one_or_none()
    if not project:
        project = Project(title=DEMO_PROJECT, owner_id=owner.id)
        db.session.add(project)
        db.session.flush()
    db.session.commit()

    for number, total, items, target in DEMO_ORDERS:
        if db.session.execute(db.select(PurchaseOrder.id).filter_by(order_number=number)).first():
            continue
        record = services.create_order(
            owner,
            vendor_id=vendor.id,
            project_id=project.id,
            total_amount=total,
            items=[{"materialName": name, "quantity": qty, "unit": unit} for name, qty, unit in items],
            order_number=number,
            dispatch=True,
        )
        _advance(int(record.id), owner, vendor, target)

    now = utcnow()
    for number, client, status, amount, due_in in DEMO_CLIENT_INVOICES:
        if db.session.execute(db.select(ClientInvoice.id).filter_by(invoice_number=number)).first():
            continue
        db.session.add(
            ClientInvoice(
                invoice_number=number,
                project_id=project.id,
                client_name=client,
                status=status,
                total_amount=amount,
                due_date=now + timedelta(days=due_in),
            )
        )

    title = "Foundation materials"
    if not db.session.execute(db.select(MaterialRequest.id).filter_by(title=title)).first():
        material_request = MaterialRequest(
            title=title,
            project_id=project.id,
            requester_id=owner.id,
            priority="high",
            required_by=now + timedelta(days=7),
        )
        material_request.materials.append(
            MaterialRequestLine(line_no=1, name="Cement", quantity=200, unit="bags", category="civil")
        )
        db.session.add(material_request)

    db.session.commit()
