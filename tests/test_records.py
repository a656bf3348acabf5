"""
Tests for record parsing at the ingestion boundary.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from orderdesk.core.errors import InvalidAmount
from orderdesk.core.records import (
    ingest_material_requests,
    ingest_orders,
    ingest_payments,
    order_from_mapping,
    parse_amount,
    parse_timestamp,
    ref_id,
    stamp_or_now,
)


class TestParseAmount:
    def test_rounds_half_up_to_cents(self):
        assert parse_amount("10.005") == Decimal("10.01")
        assert parse_amount(7) == Decimal("7.00")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity", "-0.01", ""])
    def test_rejects(self, value):
        with pytest.raises(InvalidAmount):
            parse_amount(value)

    def test_error_names_the_field(self):
        with pytest.raises(InvalidAmount) as exc:
            parse_amount("x", field_name="totalAmount")
        assert exc.value.details["field"] == "totalAmount"


def test_parse_timestamp_normalizes_to_naive_utc():
    assert parse_timestamp("2024-03-01T10:30:00+02:00") == datetime(2024, 3, 1, 8, 30)
    assert parse_timestamp("2024-03-01T08:30:00Z") == datetime(2024, 3, 1, 8, 30)
    assert parse_timestamp(None) is None


@pytest.mark.parametrize(
    "value,expected",
    [("abc", "abc"), (7, "7"), ({"_id": "v-1", "name": "Acme"}, "v-1"), (None, None), ("  ", None)],
)
def test_ref_id(value, expected):
    assert ref_id(value) == expected


def test_order_from_api_mapping():
    order = order_from_mapping(
        {
            "_id": "po-1",
            "purchaseOrderNumber": "PO-0001",
            "status": "accepted",
            "items": [{"materialName": "Cement", "quantity": 100, "unit": "bags"}],
            "totalAmount": 50000,
            "negotiation": {"finalAmount": 45000},
            "vendor": {"_id": "v-1"},
            "project": "p-1",
        }
    )
    assert order.number == "PO-0001"
    assert order.vendor_id == "v-1"
    assert order.project_id == "p-1"
    assert order.final_amount == Decimal("45000.00")
    assert order.items[0].to_dict() == {"materialName": "Cement", "quantity": 100.0, "unit": "bags"}


def test_ingest_passes_records_through():
    order = order_from_mapping({"_id": "po-1", "status": "sent"})
    assert ingest_orders([order])[0] is order


def test_ingest_rejects_non_collections():
    assert ingest_orders({"_id": "po-1"}) == []
    assert ingest_orders("po-1") == []


def test_ingest_payments_retags_without_mutating():
    payables = ingest_payments([{"_id": "p-1", "status": "pending", "amount": 5}], "payable")
    as_receivable = ingest_payments(payables, "receivable")
    assert as_receivable[0].kind == "receivable"
    assert payables[0].kind == "payable"


@pytest.mark.parametrize(
    "overrides",
    [
        {"items": ["cement"]},
        {"items": "cement"},
        {"negotiation": "n/a"},
        {"negotiation": {"events": ["offer"]}},
    ],
)
def test_order_with_malformed_nested_fields_is_rejected(overrides):
    with pytest.raises(ValueError):
        order_from_mapping({"_id": "po-1", "status": "sent", **overrides})
    assert ingest_orders([{"_id": "po-1", "status": "sent", **overrides}]) == []


def test_material_request_with_malformed_lines_is_skipped():
    requests = [
        {"_id": "mr-1", "materials": [None]},
        {"_id": "mr-2", "materials": [{"name": "Cement", "quantity": 5, "unit": "bags"}]},
    ]
    assert [r.id for r in ingest_material_requests(requests)] == ["mr-2"]


def test_stamp_or_now_converts_aware_times():
    aware = datetime.fromisoformat("2024-03-01T14:30:00+05:30")
    assert stamp_or_now(aware) == datetime(2024, 3, 1, 9, 0)
    assert stamp_or_now(None).tzinfo is None
