"""
Integration tests for the dashboard cards.
"""

from datetime import datetime

import pytest

from orderdesk.extensions import db
from orderdesk.models import ClientInvoice, MaterialRequest


@pytest.fixture
def receivables(app, project):
    db.session.add_all(
        [
            ClientInvoice(invoice_number="CI-1", client_name="Society", status="sent", total_amount=1000,
                          due_date=datetime(2024, 4, 1), project_id=project),
            ClientInvoice(invoice_number="CI-2", client_name="Society", status="overdue", total_amount=500,
                          due_date=datetime(2024, 2, 1), project_id=project),
        ]
    )
    db.session.commit()


class TestPendingCount:
    def test_counts_pending_invoices(self, client, login, users, accepted_order):
        login("vendor")
        client.post("/api/invoices/", json={"purchaseOrder": accepted_order})

        resp = client.get(f"/api/dashboard/vendors/{users['vendor']}/pending-count")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["pendingCount"] == 1

    def test_vendor_cannot_read_other_vendor(self, client, login, users):
        login("other_vendor")
        assert client.get(f"/api/dashboard/vendors/{users['vendor']}/pending-count").status_code == 403

    def test_owner_can_read_any_vendor(self, client, login, users, sent_order):
        login("vendor")
        client.post(f"/api/orders/{sent_order}/negotiation", json={"kind": "offer", "amount": 45000})
        login("owner")
        resp = client.get(f"/api/dashboard/vendors/{users['vendor']}/pending-count")
        assert resp.get_json()["data"]["pendingCount"] == 1


class TestPaymentTracker:
    def test_latest_due_date_first(self, client, login, users, receivables):
        login("owner")
        data = client.get("/api/dashboard/payment-tracker").get_json()["data"]
        assert data["total"] == 2
        assert [e["status"] for e in data["entries"]] == ["sent", "overdue"]
        assert data["entries"][0]["paymentType"] == "receivable"
        assert data["entries"][0]["projectName"] == "Riverside Residences"

    def test_preview_limit(self, client, login, users, receivables):
        login("owner")
        data = client.get("/api/dashboard/payment-tracker?limit=1").get_json()["data"]
        assert data["total"] == 2
        assert len(data["entries"]) == 1

    def test_overdue_filter(self, client, login, users, receivables):
        login("owner")
        data = client.get("/api/dashboard/payment-tracker?filter=overdue").get_json()["data"]
        assert [e["status"] for e in data["entries"]] == ["overdue"]

    def test_unknown_filter(self, client, login, users):
        login("owner")
        assert client.get("/api/dashboard/payment-tracker?filter=later").status_code == 400

    def test_vendors_cannot_see_tracker(self, client, login, users):
        login("vendor")
        assert client.get("/api/dashboard/payment-tracker").status_code == 403


def test_status_summary(client, login, users, sent_order):
    login("owner")
    data = client.get("/api/dashboard/status-summary").get_json()["data"]
    assert data["byStatus"]["new"] == 1
    assert data["pendingQuotations"] == 0
    assert data["acceptedInvoices"] == 0


def test_vendor_overview(client, login, users, accepted_order):
    login("vendor")
    client.post("/api/invoices/", json={"purchaseOrder": accepted_order})

    data = client.get("/api/dashboard/vendor-overview").get_json()["data"]

    assert data["orders"]["accepted"] == 1
    assert data["invoices"] == {"total": 1, "pending": 1, "paid": 0}
    assert data["earnings"]["pending"] == 45000.0
    assert data["activeOrders"] == 0


def test_material_request_queue(client, login, users, project):
    db.session.add_all(
        [
            MaterialRequest(title="Later", project_id=project, priority="low"),
            MaterialRequest(title="Now", project_id=project, priority="urgent"),
            MaterialRequest(title="Done", project_id=project, priority="urgent", status="approved"),
        ]
    )
    db.session.commit()
    login("owner")

    data = client.get("/api/dashboard/material-requests").get_json()["data"]

    assert [r["title"] for r in data] == ["Now", "Later"]
