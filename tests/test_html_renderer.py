from __future__ import annotations

from snapreceipt.printing.html import render_html
from snapreceipt.printing.templates import resolve_template
from snapreceipt.receipt.builder import build_from_structured, build_from_text
from snapreceipt.receipt.extraction import StructuredReceipt

DATE_TIME = "Wed, 25/11/2025 11:50 AM"


def test_document_contains_items_and_totals(model, classic) -> None:
    html = render_html(model, classic, "Pappa's Ocean Catch", DATE_TIME)

    assert html.startswith("<!DOCTYPE html>")
    assert "FISH &amp; CHIPS" in html
    assert '<span class="qty">2x</span> COKE' in html
    assert '<div class="modifier">extra salt</div>' in html
    assert "$18.18" in html and "$1.82" in html and "$20.00" in html
    assert "Order #: 101" in html
    assert "Customer: Jane Doe" in html
    assert 'class="badge paid">PAID' in html
    assert "Pappa&#x27;s Ocean Catch" in html


def test_user_strings_are_escaped(classic) -> None:
    data = StructuredReceipt.from_payload(
        {
            "items": [
                {
                    "name": "<script>alert(1)</script>",
                    "quantity": 1,
                    "price": 5,
                    "modifiers": ["<b>bold</b>"],
                }
            ],
            "total": 5,
            "customer": {"name": "O'Brien & <Co>", "phone": "<img src=x>"},
        }
    )
    html = render_html(build_from_structured(data, order_number="<1>"), classic, "<Shop>", DATE_TIME)

    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "&lt;b&gt;bold&lt;/b&gt;" in html
    assert "O&#x27;Brien &amp; &lt;Co&gt;" in html
    assert "<img" not in html
    assert "&lt;Shop&gt;" in html
    assert "Order #: &lt;1&gt;" in html


def test_free_text_is_escaped(classic) -> None:
    html = render_html(build_from_text("<i>Table 4</i>\nBURGER $10.00"), classic, "Shop", DATE_TIME)

    assert '<div class="note">&lt;i&gt;Table 4&lt;/i&gt;</div>' in html


def test_template_styles(model) -> None:
    classic_html = render_html(model, resolve_template("classic"), "Shop", DATE_TIME)
    compact_html = render_html(model, resolve_template("compact"), "Shop", DATE_TIME)

    assert "max-width: 42ch" in classic_html
    assert "3px double" in classic_html
    assert "max-width: 40ch" in compact_html
    assert "1px dashed" in compact_html


def test_unpaid_badge(mismatched_model, classic) -> None:
    assert 'class="badge unpaid">Unpaid' in render_html(mismatched_model, classic, "Shop", DATE_TIME)
