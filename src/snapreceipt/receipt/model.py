"""Canonical receipt model.

A ReceiptModel is built once per capture from either structured AI output
or classified OCR text, is read-only afterwards and is what every renderer
consumes. Money is kept as Decimal throughout.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

CENT = Decimal("0.01")


def format_money(amount: Decimal) -> str:
    """Format an amount as ``$D.DD``."""
    return f"${amount.quantize(CENT):.2f}"


class SourceKind(Enum):
    """Where the receipt data came from."""

    STRUCTURED = "structured"
    PARSED_TEXT = "parsed_text"


class SummaryKind(Enum):
    """Summary line labels, in print order."""

    SUBTOTAL = 0
    GST = 1
    TAX = 2
    TOTAL = 3


@dataclass(frozen=True)
class ReceiptLine:
    """One classified line of OCR text."""

    raw_text: str
    text_without_price: str
    price: Optional[Decimal]
    quantity: Optional[int]
    is_indented: bool
    is_summary_line: bool
    has_price: bool
    index: int = 0
    price_text: Optional[str] = None
    summary_kind: Optional[SummaryKind] = None

    @property
    def text(self) -> str:
        """Line text without surrounding whitespace."""
        return self.raw_text.strip()

    @property
    def is_total(self) -> bool:
        return self.summary_kind is SummaryKind.TOTAL


@dataclass(frozen=True)
class ReceiptItem:
    """A purchased item. ``price`` is the printed line amount."""

    name: str
    quantity: int = 1
    price: Optional[Decimal] = None
    modifiers: Tuple[str, ...] = ()

    @property
    def has_modifiers(self) -> bool:
        return bool(self.modifiers)


@dataclass(frozen=True)
class FreeText:
    """Unpriced, non-summary text kept verbatim.

    ``position`` is the number of items printed before it.
    """

    text: str
    position: int
    is_indented: bool = False


@dataclass(frozen=True)
class Customer:
    """Customer details printed on the receipt."""

    name: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.phone)


@dataclass(frozen=True)
class TotalMismatch:
    """Item prices do not add up to the receipt total."""

    item_sum: Decimal
    grand_total: Decimal

    @property
    def delta(self) -> Decimal:
        return (self.item_sum - self.grand_total).quantize(CENT)

    @property
    def delta_text(self) -> str:
        """Signed difference formatted as ``±D.DD``."""
        sign = "-" if self.delta < 0 else "+"
        return f"{sign}{abs(self.delta):.2f}"

    def describe(self) -> str:
        return (
            f"Items add up to {format_money(self.item_sum)} but the total is "
            f"{format_money(self.grand_total)} ({self.delta_text})"
        )


@dataclass(frozen=True)
class ReceiptModel:
    """The canonical receipt."""

    items: Tuple[ReceiptItem, ...]
    grand_total: Decimal
    subtotal: Decimal
    gst: Decimal
    source_kind: SourceKind
    customer: Optional[Customer] = None
    order_number: Optional[str] = None
    is_paid: bool = False
    summary_lines: Tuple[ReceiptLine, ...] = ()
    free_text: Tuple[FreeText, ...] = ()
    mismatch: Optional[TotalMismatch] = None

    @property
    def has_mismatch(self) -> bool:
        return self.mismatch is not None

    @property
    def item_sum(self) -> Decimal:
        return sum((item.price for item in self.items if item.price is not None), Decimal("0"))

    def free_text_at(self, position: int) -> Tuple[FreeText, ...]:
        """Free text lines that follow ``position`` items."""
        return tuple(entry for entry in self.free_text if entry.position == position)

    def to_snapshot(self, on: Optional[date] = None) -> Dict[str, Any]:
        """Serializable snapshot for the caller's persistence layer."""
        items = []
        for item in self.items:
            entry: Dict[str, Any] = {
                "name": item.name,
                "quantity": item.quantity,
                "price": None if item.price is None else str(item.price.quantize(CENT)),
            }
            if item.modifiers:
                entry["modifiers"] = list(item.modifiers)
            items.append(entry)

        receipt_data: Dict[str, Any] = {
            "items": items,
            "total": str(self.grand_total.quantize(CENT)),
            "subtotal": str(self.subtotal),
            "gst": str(self.gst),
            "source": self.source_kind.value,
            "is_paid": self.is_paid,
        }
        if self.customer and not self.customer.is_empty:
            receipt_data["customer"] = {
                key: value
                for key, value in (("name", self.customer.name), ("phone", self.customer.phone))
                if value
            }
        if self.free_text:
            receipt_data["notes"] = [entry.text for entry in self.free_text]
        if self.mismatch:
            receipt_data["mismatch"] = self.mismatch.delta_text

        return {
            "date": (on or date.today()).isoformat(),
            "total_price": str(self.grand_total.quantize(CENT)),
            "order_number": self.order_number,
            "receipt_data": receipt_data,
        }
