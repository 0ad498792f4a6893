from __future__ import annotations

import pytest

from snapreceipt.hardware.base import PrintTarget
from snapreceipt.printing.templates import resolve_template
from snapreceipt.receipt.builder import build_from_structured
from snapreceipt.receipt.extraction import StructuredReceipt
from snapreceipt.receipt.model import ReceiptModel


@pytest.fixture
def structured_payload() -> dict:
    return {
        "items": [
            {"name": "FISH & CHIPS", "quantity": 1, "price": 12.5, "modifiers": ["extra salt"]},
            {"name": "COKE", "quantity": 2, "price": 7.5},
        ],
        "total": 20.0,
        "customer": {"name": "Jane Doe", "phone": "0400 123 456"},
    }


@pytest.fixture
def model(structured_payload: dict) -> ReceiptModel:
    data = StructuredReceipt.from_payload(structured_payload)
    return build_from_structured(data, order_number="101", is_paid=True)


@pytest.fixture
def mismatched_model() -> ReceiptModel:
    data = StructuredReceipt.from_payload(
        {
            "items": [
                {"name": "FRIES", "quantity": 1, "price": 5},
                {"name": "COKE", "quantity": 1, "price": 3},
            ],
            "total": 10,
        }
    )
    return build_from_structured(data)


@pytest.fixture
def classic():
    return resolve_template("classic")


@pytest.fixture
def targets() -> list[PrintTarget]:
    return [
        PrintTarget(id="mock:a", display_name="deviceA"),
        PrintTarget(id="mock:b", display_name="deviceB"),
    ]
