"""
Tests for the dashboard views.

Verifies that:
- the vendor pending count adds pending invoices and orders in negotiation
- views are pure: same inputs, same outputs, inputs untouched
- malformed records are skipped, never fatal
- quotation tabs, the payment tracker and the updates feed filter and sort as expected
"""

import copy
from datetime import datetime
from decimal import Decimal

import pytest

from factories import make_invoice, make_order
from orderdesk import core
from orderdesk.core import views


def _api_orders():
    return [
        {"_id": "po-1", "status": "sent", "vendor": "v-1", "totalAmount": 50000, "updatedAt": "2024-03-01T09:00:00Z"},
        {"_id": "po-2", "status": "in_negotiation", "vendor": {"_id": "v-1"}, "totalAmount": 82000,
         "updatedAt": "2024-03-03T09:00:00Z"},
        {"_id": "po-3", "status": "accepted", "vendor": "v-2", "totalAmount": 15000, "createdAt": "2024-03-02T09:00:00Z"},
        {"_id": "po-4", "status": "in_negotiation", "vendor": "v-2", "totalAmount": 9000},
    ]


class TestVendorPendingCount:
    def test_pending_invoices_plus_negotiating_orders(self):
        invoices = [
            {"_id": "i-1", "status": "pending", "vendor": "v-1", "totalAmount": 100},
            {"_id": "i-2", "status": "paid", "vendor": "v-1", "totalAmount": 100},
        ]
        orders = [{"_id": "po-1", "status": "in_negotiation", "vendor": "v-1"}]

        assert core.compute_vendor_pending_count("v-1", orders, invoices) == 2

    def test_other_vendors_are_ignored(self):
        assert views.vendor_pending_count("v-2", _api_orders(), []) == 1

    def test_is_idempotent_and_pure(self):
        orders = _api_orders()
        invoices = [make_invoice()]
        snapshot = (copy.deepcopy(orders), copy.deepcopy(invoices))

        first = views.vendor_pending_count("v-1", orders, invoices)
        second = views.vendor_pending_count("v-1", orders, invoices)

        assert first == second == 2
        assert (orders, invoices) == snapshot

    def test_malformed_records_are_skipped(self):
        orders = [
            {"status": "in_negotiation", "vendor": "v-1"},  # no id
            {"_id": "po-x", "status": "in_negotiation", "vendor": "v-1", "totalAmount": "lots"},
            "garbage",
            None,
            {"_id": "po-ok", "status": "in_negotiation", "vendor": "v-1"},
        ]
        assert views.vendor_pending_count("v-1", orders, None) == 1

    def test_malformed_nested_fields_are_skipped(self):
        orders = [
            {"_id": "po-items", "status": "in_negotiation", "vendor": "v-1", "items": ["cement"]},
            {"_id": "po-neg", "status": "in_negotiation", "vendor": "v-1", "negotiation": "n/a"},
            {"_id": "po-ev", "status": "in_negotiation", "vendor": "v-1", "negotiation": {"events": [42]}},
            {"_id": "po-ok", "status": "in_negotiation", "vendor": "v-1"},
        ]
        invoices = [
            {"_id": "i-bad", "status": "pending", "vendor": "v-1", "attachments": "scan.pdf"},
            {"_id": "i-ok", "status": "pending", "vendor": "v-1"},
        ]

        assert core.compute_vendor_pending_count("v-1", orders, invoices) == 2
        assert [o.id for o in views.vendor_order_updates(orders)] == ["po-ok"]

    def test_active_order_count(self):
        assert views.vendor_active_order_count("v-1", _api_orders()) == 2

    def test_pending_quotations_total(self):
        assert views.pending_quotations_total(_api_orders()) == 2


class TestQuotationTabs:
    def test_new_tab_holds_sent_orders(self):
        assert [o.id for o in views.quotation_tab(_api_orders(), "new")] == ["po-1"]

    def test_negotiation_tab_keeps_input_order(self):
        assert [o.id for o in views.quotation_tab(_api_orders(), "in_negotiation")] == ["po-2", "po-4"]

    def test_all_tab(self):
        assert len(views.quotation_tab(_api_orders(), "all")) == 4

    def test_unknown_tab(self):
        with pytest.raises(ValueError):
            views.quotation_tab(_api_orders(), "archived")


class TestOrderUpdates:
    def test_newest_first_undated_last(self):
        ids = [o.id for o in views.vendor_order_updates(_api_orders())]
        assert ids == ["po-2", "po-3", "po-1", "po-4"]

    def test_limit(self):
        assert len(views.vendor_order_updates(_api_orders(), limit=2)) == 2

    def test_ties_broken_by_id(self):
        stamp = datetime(2024, 1, 1)
        orders = [make_order(id="b", updated_at=stamp), make_order(id="a", updated_at=stamp)]
        assert [o.id for o in views.vendor_order_updates(orders)] == ["a", "b"]


class TestPaymentTracker:
    receivables = [
        {"_id": "r-1", "status": "sent", "totalAmount": 1000, "dueDate": "2024-04-01", "clientName": "Society"},
        {"_id": "r-2", "status": "overdue", "amount": 500, "dueDate": "2024-02-01"},
        {"_id": "r-3", "status": "paid", "amount": 200},
    ]
    payables = [
        {"_id": "p-1", "status": "pending", "totalAmount": 300, "dueDate": "2024-03-15", "vendorName": "Acme"},
        {"_id": "p-2", "status": "overdue", "totalAmount": 700, "dueDate": "2024-03-20"},
    ]

    def test_all_entries_tagged_and_sorted(self):
        entries = core.compute_payment_tracker_view(self.receivables, self.payables)
        assert [(e.kind, e.id) for e in entries] == [
            ("receivable", "r-1"),
            ("payable", "p-2"),
            ("payable", "p-1"),
            ("receivable", "r-2"),
            ("receivable", "r-3"),
        ]

    def test_overdue_filter(self):
        entries = views.payment_tracker(self.receivables, self.payables, "overdue")
        assert {e.id for e in entries} == {"r-2", "p-2"}

    def test_pending_filter_means_due_soon(self):
        entries = views.payment_tracker(self.receivables, self.payables, "pending")
        assert [e.id for e in entries] == ["r-1", "p-1"]

    def test_amount_and_counterparty(self):
        entry = views.payment_tracker(self.receivables, [], "all")[0]
        assert entry.amount == Decimal("1000.00")
        assert entry.counterparty == "Society"
        assert entry.to_dict()["paymentType"] == "receivable"

    def test_total_amount_wins_over_amount(self):
        payables = [{"_id": "p-9", "status": "pending", "totalAmount": 500, "amount": 100}]
        entry = core.compute_payment_tracker_view([], payables)[0]
        assert entry.amount == Decimal("500.00")
        assert entry.amount == core.amount_for(payables[0])

    def test_limit(self):
        assert len(views.payment_tracker(self.receivables, self.payables, limit=3)) == 3

    def test_unknown_filter(self):
        with pytest.raises(ValueError):
            views.payment_tracker([], [], "someday")


class TestOverviews:
    def test_vendor_overview(self):
        orders = _api_orders()
        invoices = [
            make_invoice(id="i-1", status="paid", total_amount=Decimal("1000.00"),
                         amount_paid=Decimal("1000.00"), amount_due=Decimal("0.00")),
            make_invoice(id="i-2", status="pending", total_amount=Decimal("500.00"), amount_due=Decimal("500.00")),
            make_invoice(id="i-3", vendor_id="v-2"),
        ]
        overview = views.vendor_overview("v-1", orders, invoices)

        assert overview["orders"] == {"total": 2, "new": 1, "inNegotiation": 1, "accepted": 0, "completed": 0}
        assert overview["invoices"] == {"total": 2, "pending": 1, "paid": 1}
        assert overview["earnings"] == {
            "totalEarnings": Decimal("1500.00"),
            "received": Decimal("1000.00"),
            "pending": Decimal("500.00"),
        }

    def test_status_summary_counts_display_buckets(self):
        summary = views.status_summary(_api_orders() + [{"_id": "po-9", "status": "on_hold"}])
        assert summary["new"] == 1
        assert summary["in_negotiation"] == 2
        assert summary["accepted"] == 1
        assert summary["draft"] == 0
        assert summary["on_hold"] == 1
        assert "sent" not in summary

    def test_accepted_invoices(self):
        invoices = [make_invoice(id="a", status="approved"), make_invoice(id="b", status="pending"),
                    make_invoice(id="c", status="paid")]
        assert [i.id for i in views.accepted_invoices(invoices)] == ["a", "c"]


class TestMaterialRequestQueue:
    def test_pending_requests_by_priority_then_date(self):
        requests = [
            {"_id": "m-1", "status": "pending", "priority": "low", "requiredBy": "2024-03-02"},
            {"_id": "m-2", "status": "pending", "priority": "urgent"},
            {"_id": "m-3", "status": "approved", "priority": "urgent"},
            {"_id": "m-4", "status": "pending", "priority": "urgent", "requiredBy": "2024-03-05"},
            {"_id": "m-5", "status": "pending", "priority": "high", "requiredBy": "2024-03-01"},
        ]
        assert [r.id for r in views.material_request_queue(requests)] == ["m-4", "m-2", "m-5", "m-1"]
