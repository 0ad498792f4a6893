from __future__ import annotations

from decimal import Decimal

import pytest

from snapreceipt.core.errors import InvalidShape
from snapreceipt.receipt.extraction import (
    RawText,
    StructuredReceipt,
    coerce_extraction,
    parse_extraction_response,
    strip_code_fences,
)


def test_strip_code_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```  ') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_fenced_reply() -> None:
    reply = """```json
{
  "items": [{"name": "BURGER", "quantity": 2, "price": 12.50, "modifiers": ["no onions"]}],
  "total": 12.50
}
```"""

    receipt = parse_extraction_response(reply)

    assert receipt.total == Decimal("12.5")
    assert receipt.items[0].name == "BURGER"
    assert receipt.items[0].quantity == 2
    assert receipt.items[0].modifiers == ["no onions"]
    assert receipt.customer is None


def test_float_prices_keep_their_printed_value() -> None:
    receipt = StructuredReceipt.from_payload({"items": [{"name": "PIE", "quantity": 1, "price": 0.1}], "total": 0.3})

    assert receipt.items[0].price == Decimal("0.1")
    assert receipt.total == Decimal("0.3")


def test_unknown_fields_are_ignored() -> None:
    receipt = StructuredReceipt.from_payload(
        {"items": [{"name": "PIE", "quantity": 1, "price": 5, "sku": "X1"}], "total": 5, "store": "Acme"}
    )

    assert receipt.items[0].name == "PIE"


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"total": 5}, "items"),
        ({"items": [], "total": "5.00"}, "total"),
        ({"items": [{"name": "PIE", "quantity": True, "price": 5}], "total": 5}, "items.0.quantity"),
        ({"items": [{"name": "PIE", "quantity": 0, "price": 5}], "total": 5}, "items.0.quantity"),
        ({"items": [{"name": "PIE", "quantity": 1, "price": "$5"}], "total": 5}, "items.0.price"),
        ({"items": [{"name": "PIE", "quantity": 1, "price": -1}], "total": 5}, "items.0.price"),
        ({"items": [{"name": "", "quantity": 1, "price": 5}], "total": 5}, "items.0.name"),
    ],
)
def test_invalid_payloads_name_the_field(payload: dict, field: str) -> None:
    with pytest.raises(InvalidShape) as excinfo:
        StructuredReceipt.from_payload(payload)

    assert excinfo.value.field == field


def test_root_must_be_an_object() -> None:
    with pytest.raises(InvalidShape):
        StructuredReceipt.from_payload([{"name": "PIE"}])


@pytest.mark.parametrize("reply", ["", "   ", "Sorry, I cannot read this receipt.", "```json\n```"])
def test_unusable_replies_raise_invalid_shape(reply: str) -> None:
    with pytest.raises(InvalidShape):
        parse_extraction_response(reply)


def test_coerce_extraction() -> None:
    assert coerce_extraction("BURGER $10.00") == RawText("BURGER $10.00")
    assert isinstance(coerce_extraction({"items": [], "total": 0}), StructuredReceipt)

    raw = RawText("x")
    assert coerce_extraction(raw) is raw

    with pytest.raises(InvalidShape):
        coerce_extraction(42)
