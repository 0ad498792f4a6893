from __future__ import annotations

from decimal import Decimal

import pytest

from snapreceipt.core.errors import InvalidShape
from snapreceipt.receipt.builder import (
    build_from_structured,
    build_from_text,
    build_receipt,
    calculate_totals,
)
from snapreceipt.receipt.extraction import RawText, StructuredReceipt
from snapreceipt.receipt.model import SourceKind


def test_text_scenario_burger_with_modifier() -> None:
    model = build_from_text("2x BURGER\n  no onions\nTotal: $22.00")

    assert len(model.items) == 1
    item = model.items[0]
    assert item.name == "BURGER"
    assert item.quantity == 2
    assert item.modifiers == ("no onions",)
    assert model.grand_total == Decimal("22.00")
    assert model.subtotal == Decimal("20.00")
    assert model.gst == Decimal("2.00")
    assert model.source_kind is SourceKind.PARSED_TEXT
    assert len(model.summary_lines) == 1


def test_structured_scenario_flags_mismatch(mismatched_model) -> None:
    assert mismatched_model.has_mismatch
    assert mismatched_model.mismatch.item_sum == Decimal("8")
    assert mismatched_model.mismatch.grand_total == Decimal("10")
    assert mismatched_model.mismatch.delta_text == "-2.00"


def test_small_difference_is_within_tolerance() -> None:
    data = StructuredReceipt.from_payload(
        {"items": [{"name": "PIE", "quantity": 1, "price": 9.97}], "total": 10}
    )

    assert not build_from_structured(data).has_mismatch


@pytest.mark.parametrize("total", ["0.01", "0.05", "1.00", "9.99", "22.00", "33.33", "110.00", "1234.56"])
def test_subtotal_plus_gst_within_a_cent(total: str) -> None:
    subtotal, gst = calculate_totals(Decimal(total))

    assert subtotal.as_tuple().exponent == -2
    assert gst.as_tuple().exponent == -2
    assert abs(subtotal + gst - Decimal(total)) <= Decimal("0.01")


def test_totals_are_rounded_independently() -> None:
    assert calculate_totals(Decimal("10.00")) == (Decimal("9.09"), Decimal("0.91"))
    assert calculate_totals(Decimal("22.00")) == (Decimal("20.00"), Decimal("2.00"))
    assert calculate_totals(Decimal("0.01")) == (Decimal("0.01"), Decimal("0.00"))


def test_structured_customer_and_modifiers(model) -> None:
    assert model.source_kind is SourceKind.STRUCTURED
    assert model.customer.name == "Jane Doe"
    assert model.customer.phone == "0400 123 456"
    assert model.items[0].modifiers == ("extra salt",)
    assert model.items[1].modifiers == ()
    assert model.order_number == "101"
    assert model.is_paid


def test_empty_customer_is_dropped() -> None:
    data = StructuredReceipt.from_payload(
        {"items": [{"name": "PIE", "quantity": 1, "price": 5}], "total": 5, "customer": {}}
    )

    assert build_from_structured(data).customer is None


def test_text_without_total_uses_item_sum() -> None:
    model = build_from_text("BURGER $10.00\nFRIES $4.50")

    assert model.grand_total == Decimal("14.50")
    assert not model.has_mismatch


def test_text_uses_last_total_line() -> None:
    model = build_from_text("TOTAL: $12.00\nBURGER $10.00\nFRIES $2.00\nTotal: $12.00")

    assert model.grand_total == Decimal("12.00")
    assert len([line for line in model.summary_lines if line.is_total]) == 1
    assert not model.has_mismatch


def test_total_savings_line_does_not_replace_the_total() -> None:
    model = build_from_text("FISH $10.00\nTotal: $11.00\nTotal savings $1.00")

    assert model.grand_total == Decimal("11.00")
    assert model.subtotal == Decimal("10.00")
    assert model.gst == Decimal("1.00")
    assert [line.price for line in model.summary_lines] == [Decimal("11.00")]
    assert [item.name for item in model.items] == ["FISH", "Total savings"]
    assert not model.has_mismatch


def test_tax_invoice_header_is_kept_as_free_text() -> None:
    model = build_from_text("TAX INVOICE\nFISH $10.00\nTotal: $10.00")

    assert model.summary_lines[0].is_total
    assert len(model.summary_lines) == 1
    assert [(entry.text, entry.position) for entry in model.free_text] == [("TAX INVOICE", 0)]
    assert model.grand_total == Decimal("10.00")


def test_unpriced_lines_become_free_text_in_position() -> None:
    model = build_from_text("Table 4\nBURGER $10.00\nDine in\nFRIES $2.00\nTotal: $12.00")

    assert [item.name for item in model.items] == ["BURGER", "FRIES"]
    assert [(entry.text, entry.position) for entry in model.free_text] == [
        ("Table 4", 0),
        ("Dine in", 1),
    ]


def test_indented_line_without_item_is_free_text() -> None:
    model = build_from_text("  welcome back\nBURGER $10.00")

    assert model.free_text[0].text == "welcome back"
    assert model.free_text[0].is_indented
    assert model.items[0].modifiers == ()


def test_modifier_does_not_attach_across_free_text() -> None:
    model = build_from_text("BURGER $10.00\nTakeaway\n  no onions")

    assert model.items[0].modifiers == ()
    assert [entry.text for entry in model.free_text] == ["Takeaway", "no onions"]


def test_build_receipt_dispatches_on_source() -> None:
    text_model = build_receipt(RawText("BURGER $10.00"))
    structured_model = build_receipt(
        StructuredReceipt.from_payload({"items": [], "total": 0})
    )

    assert text_model.source_kind is SourceKind.PARSED_TEXT
    assert structured_model.source_kind is SourceKind.STRUCTURED
    with pytest.raises(TypeError):
        build_receipt({"items": []})


def test_invalid_structured_payload_raises_invalid_shape() -> None:
    with pytest.raises(InvalidShape):
        StructuredReceipt.from_payload({"items": [{"name": "PIE", "quantity": "one", "price": 5}], "total": 5})


def test_snapshot(model) -> None:
    from datetime import date

    snapshot = model.to_snapshot(on=date(2025, 11, 25))

    assert snapshot["date"] == "2025-11-25"
    assert snapshot["total_price"] == "20.00"
    assert snapshot["order_number"] == "101"
    data = snapshot["receipt_data"]
    assert data["items"][0] == {
        "name": "FISH & CHIPS",
        "quantity": 1,
        "price": "12.50",
        "modifiers": ["extra salt"],
    }
    assert data["source"] == "structured"
    assert data["customer"] == {"name": "Jane Doe", "phone": "0400 123 456"}
    assert "mismatch" not in data
