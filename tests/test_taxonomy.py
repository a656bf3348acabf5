"""
Tests for the status taxonomy.

Verifies that:
- "sent" is shown as "new" and every other known status maps to itself
- labels and colors come from one table
- unknown statuses fall back to the neutral style instead of raising
"""

import pytest

from orderdesk.core import taxonomy
from orderdesk.core.taxonomy import (
    NEUTRAL_BACKGROUND,
    NEUTRAL_COLOR,
    ORDER_STATUSES,
    display_buckets,
    display_label,
    invoice_label,
    invoice_style,
    status_style,
    to_display_status,
)


class TestDisplayStatus:
    def test_sent_is_shown_as_new(self):
        assert to_display_status("sent") == "new"

    @pytest.mark.parametrize("status", [s for s in ORDER_STATUSES if s != "sent"])
    def test_other_statuses_map_to_themselves(self, status):
        assert to_display_status(status) == status

    def test_unknown_status_passes_through(self):
        assert to_display_status("on_hold") == "on_hold"


class TestLabels:
    @pytest.mark.parametrize(
        "status,label",
        [
            ("sent", "New"),
            ("in_negotiation", "Negotiating"),
            ("accepted", "Accepted"),
            ("rejected", "Rejected"),
            ("completed", "Completed"),
            ("in_progress", "In Progress"),
        ],
    )
    def test_known_labels(self, status, label):
        assert display_label(status) == label

    def test_sent_style_is_blue(self):
        style = status_style("sent")
        assert style.color == "#3B82F6"
        assert style.background == "#DBEAFE"
        assert style.tone == "info"

    def test_unknown_status_gets_neutral_style(self):
        style = status_style("mystery")
        assert style.label == "mystery"
        assert style.tone == "neutral"
        assert (style.color, style.background) == (NEUTRAL_COLOR, NEUTRAL_BACKGROUND)

    def test_none_status_does_not_raise(self):
        assert status_style(None).label == ""

    def test_style_to_dict(self):
        assert status_style("accepted").to_dict() == {
            "label": "Accepted",
            "bucket": "accepted",
            "tone": "success",
            "color": "#10B981",
            "background": "#D1FAE5",
        }


class TestInvoiceLabels:
    def test_invoice_labels(self):
        assert invoice_label("pending") == "Negotiation"
        assert invoice_label("approved") == "Under Review"
        assert invoice_label("paid") == "Paid"

    def test_unknown_invoice_status_is_neutral(self):
        assert invoice_style("void").tone == "neutral"


def test_display_buckets_follow_lifecycle_order():
    buckets = display_buckets()
    assert buckets[0] == "draft"
    assert buckets[1] == "new"
    assert buckets[-1] == "completed"
    assert len(buckets) == len(taxonomy.ORDER_STATUSES)
