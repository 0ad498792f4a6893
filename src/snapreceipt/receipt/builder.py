"""Receipt model builder.

Reconciles structured extraction output or classified OCR text into one
ReceiptModel. Totals are GST-inclusive: subtotal and GST are
back-calculated from the grand total and rounded independently, so
``subtotal + gst`` may differ from the total by a cent.
"""

import logging
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from snapreceipt.receipt.classifier import classify_lines, partition_lines
from snapreceipt.receipt.extraction import (
    ExtractionResult,
    RawText,
    StructuredReceipt,
)
from snapreceipt.receipt.model import (
    CENT,
    Customer,
    FreeText,
    ReceiptItem,
    ReceiptLine,
    ReceiptModel,
    SourceKind,
    TotalMismatch,
)

logger = logging.getLogger(__name__)

GST_RATE_PERCENT = Decimal("10")
MISMATCH_TOLERANCE = Decimal("0.05")


def calculate_totals(total: Decimal) -> Tuple[Decimal, Decimal]:
    """Return (subtotal, gst) for a GST-inclusive total."""
    divisor = Decimal("100") + GST_RATE_PERCENT
    subtotal = (total * Decimal("100") / divisor).quantize(CENT, rounding=ROUND_HALF_UP)
    gst = (total * GST_RATE_PERCENT / divisor).quantize(CENT, rounding=ROUND_HALF_UP)
    return subtotal, gst


def detect_mismatch(items: Tuple[ReceiptItem, ...], grand_total: Decimal) -> Optional[TotalMismatch]:
    """Compare the sum of item prices with the grand total."""
    item_sum = sum((item.price for item in items if item.price is not None), Decimal("0"))
    if abs(item_sum - grand_total) > MISMATCH_TOLERANCE:
        mismatch = TotalMismatch(item_sum=item_sum, grand_total=grand_total)
        logger.warning(f"Total mismatch: {mismatch.describe()}")
        return mismatch
    return None


def build_from_structured(
    data: StructuredReceipt,
    order_number: Optional[str] = None,
    is_paid: bool = False,
) -> ReceiptModel:
    """Build a model from validated structured extraction output."""
    items = tuple(
        ReceiptItem(
            name=item.name,
            quantity=item.quantity,
            price=item.price,
            modifiers=tuple(item.modifiers or ()),
        )
        for item in data.items
    )

    customer = None
    if data.customer is not None:
        customer = Customer(name=data.customer.name, phone=data.customer.phone)
        if customer.is_empty:
            customer = None

    subtotal, gst = calculate_totals(data.total)
    return ReceiptModel(
        items=items,
        grand_total=data.total,
        subtotal=subtotal,
        gst=gst,
        source_kind=SourceKind.STRUCTURED,
        customer=customer,
        order_number=order_number,
        is_paid=is_paid,
        mismatch=detect_mismatch(items, data.total),
    )


def _is_item_line(line: ReceiptLine) -> bool:
    return not line.is_indented and (line.has_price or line.quantity is not None)


def _collect_items(products: List[ReceiptLine]) -> Tuple[List[ReceiptItem], List[FreeText]]:
    items: List[ReceiptItem] = []
    free_text: List[FreeText] = []
    # Modifiers attach only while the current item is the last thing seen
    current: Optional[ReceiptItem] = None

    for line in products:
        if _is_item_line(line):
            if current is not None:
                items.append(current)
            current = ReceiptItem(
                name=line.text_without_price,
                quantity=line.quantity or 1,
                price=line.price,
            )
        elif line.is_indented and current is not None:
            current = replace(current, modifiers=current.modifiers + (line.text,))
        else:
            if current is not None:
                items.append(current)
                current = None
            free_text.append(FreeText(
                text=line.text,
                position=len(items),
                is_indented=line.is_indented,
            ))

    if current is not None:
        items.append(current)
    return items, free_text


def build_from_text(
    text: str,
    order_number: Optional[str] = None,
    is_paid: bool = False,
) -> ReceiptModel:
    """Build a model from raw OCR text.

    The grand total is the last ``Total`` line's amount; without one the
    item sum is used and no mismatch can be flagged.
    """
    lines = classify_lines(text)
    products, summaries = partition_lines(lines)
    items, free_text = _collect_items(products)
    item_tuple = tuple(items)

    total_line = next((line for line in summaries if line.is_total and line.price is not None), None)
    if total_line is not None:
        grand_total = total_line.price
    else:
        grand_total = sum((item.price for item in items if item.price is not None), Decimal("0"))
        logger.info("No total line found, using item sum as grand total")

    subtotal, gst = calculate_totals(grand_total)
    logger.debug(f"Parsed {len(items)} item(s) and {len(summaries)} summary line(s)")
    return ReceiptModel(
        items=item_tuple,
        grand_total=grand_total,
        subtotal=subtotal,
        gst=gst,
        source_kind=SourceKind.PARSED_TEXT,
        order_number=order_number,
        is_paid=is_paid,
        summary_lines=tuple(summaries),
        free_text=tuple(free_text),
        mismatch=detect_mismatch(item_tuple, grand_total),
    )


def build_receipt(
    source: ExtractionResult,
    order_number: Optional[str] = None,
    is_paid: bool = False,
) -> ReceiptModel:
    """Build a model from either branch of the extraction union."""
    if isinstance(source, StructuredReceipt):
        return build_from_structured(source, order_number=order_number, is_paid=is_paid)
    if isinstance(source, RawText):
        return build_from_text(source.text, order_number=order_number, is_paid=is_paid)
    raise TypeError(f"Unsupported extraction result: {type(source).__name__}")
