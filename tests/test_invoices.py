"""
Tests for the invoice gate.

Verifies that:
- amount_for reads totalAmount, then amount, then 0
- an invoice may only be raised for accepted-or-later orders, once per order
- the pending -> approved -> paid workflow and payment bounds
- attachments can be removed in any invoice status
"""

from decimal import Decimal

import pytest

from factories import make_invoice, make_order
from orderdesk import core
from orderdesk.core import invoices
from orderdesk.core.errors import InvalidAmount, InvalidTransition, InvoiceNotAllowed, UnknownAttachment
from orderdesk.core.records import Attachment
from orderdesk.core.taxonomy import INVOICE_ELIGIBLE, ORDER_STATUSES


class TestAmountFor:
    def test_total_amount_wins(self):
        assert core.amount_for({"totalAmount": 1200, "amount": 900}) == Decimal("1200.00")

    def test_legacy_amount(self):
        assert core.amount_for({"amount": 900}) == Decimal("900.00")

    def test_neither(self):
        assert core.amount_for({"_id": "i-1"}) == Decimal("0.00")

    def test_record(self):
        assert invoices.amount_for(make_invoice(total_amount=None, amount=Decimal("10.00"))) == Decimal("10.00")


class TestCanCreateInvoice:
    @pytest.mark.parametrize("status", ORDER_STATUSES)
    def test_only_eligible_statuses(self, status):
        assert core.can_create_invoice(make_order(status=status)) is (status in INVOICE_ELIGIBLE)

    def test_one_invoice_per_order(self):
        order = make_order(status="accepted")
        assert core.can_create_invoice(order, [{"_id": "i-1", "purchaseOrder": {"_id": "po-1"}}]) is False
        assert core.can_create_invoice(order, [{"_id": "i-1", "purchaseOrder": "po-2"}]) is True

    def test_api_shaped_order(self):
        assert core.can_create_invoice({"_id": "po-1", "status": "delivered"}) is True


class TestDraftInvoice:
    def test_uses_final_amount(self):
        order = make_order(status="accepted", final_amount=Decimal("45000.00"))
        invoice = invoices.draft_invoice(order, "INV-1")

        assert invoice.status == "pending"
        assert invoice.total_amount == Decimal("45000.00")
        assert invoice.amount_due == Decimal("45000.00")
        assert invoice.purchase_order_id == "po-1"
        assert invoice.vendor_id == "v-1"

    def test_falls_back_to_total(self):
        invoice = invoices.draft_invoice(make_order(status="completed"), "INV-1")
        assert invoice.total_amount == Decimal("50000")

    def test_not_yet_accepted(self):
        with pytest.raises(InvoiceNotAllowed) as exc:
            invoices.draft_invoice(make_order(status="in_negotiation"), "INV-1")
        assert exc.value.http_status == 409

    def test_duplicate(self):
        with pytest.raises(InvoiceNotAllowed):
            invoices.draft_invoice(make_order(status="accepted"), "INV-2", [make_invoice()])


class TestWorkflow:
    def test_approve(self):
        approved = invoices.approve_invoice(make_invoice())
        assert approved.status == "approved"

    def test_approve_twice(self):
        with pytest.raises(InvalidTransition):
            invoices.approve_invoice(make_invoice(status="approved"))

    def test_partial_then_full_payment(self):
        invoice = make_invoice(status="approved")

        invoice = invoices.record_payment(invoice, "20000")
        assert invoice.status == "approved"
        assert invoice.amount_paid == Decimal("20000.00")
        assert invoice.amount_due == Decimal("25000.00")

        invoice = invoices.record_payment(invoice, 25000)
        assert invoice.status == "paid"
        assert invoice.amount_due == Decimal("0.00")

    def test_payment_on_pending_invoice(self):
        with pytest.raises(InvalidTransition):
            invoices.record_payment(make_invoice(), "100")

    @pytest.mark.parametrize("amount", ["0", "45000.01", "-1", "ten"])
    def test_payment_bounds(self, amount):
        with pytest.raises(InvalidAmount):
            invoices.record_payment(make_invoice(status="approved"), amount)


class TestAttachments:
    @pytest.mark.parametrize("status", ["pending", "approved", "paid"])
    def test_remove_in_any_status(self, status):
        invoice = make_invoice(
            status=status,
            attachments=[Attachment(id="a-1", filename="bill.pdf"), Attachment(id="a-2", filename="photo.jpg")],
        )
        updated = invoices.remove_attachment(invoice, "a-1")

        assert [a.id for a in updated.attachments] == ["a-2"]
        assert len(invoice.attachments) == 2

    def test_unknown_attachment(self):
        with pytest.raises(UnknownAttachment):
            invoices.remove_attachment(make_invoice(), "a-9")
