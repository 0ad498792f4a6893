"""Line classifier for raw OCR receipt text.

Turns a text blob into ordered ReceiptLine records. Indented lines are
modifiers of the item above them, lines with a ``$`` amount are priced,
and lines labelled ``Total:``, ``Subtotal:``, ``GST:`` or ``Tax:`` are
summary lines.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from snapreceipt.receipt.model import ReceiptLine, SummaryKind

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"\$\d[\d,]*\.?\d*")
QUANTITY_PATTERN = re.compile(r"^(\d+)x\s+", re.IGNORECASE)
SUMMARY_PATTERN = re.compile(r"^(subtotal|total|gst|tax)\s*:", re.IGNORECASE)

_SUMMARY_KINDS = {
    "subtotal": SummaryKind.SUBTOTAL,
    "gst": SummaryKind.GST,
    "tax": SummaryKind.TAX,
    "total": SummaryKind.TOTAL,
}


def _parse_amount(price_text: str) -> Optional[Decimal]:
    try:
        return Decimal(price_text.lstrip("$").replace(",", ""))
    except InvalidOperation:
        logger.debug(f"Unparseable amount: {price_text!r}")
        return None


def _is_indented(line: str, stripped: str) -> bool:
    return line != stripped and (line.startswith("  ") or line.startswith("\t"))


def classify_line(line: str, index: int = 0) -> ReceiptLine:
    """Classify a single non-blank line."""
    stripped = line.strip()

    summary_match = SUMMARY_PATTERN.match(stripped)
    summary_kind = _SUMMARY_KINDS[summary_match.group(1).lower()] if summary_match else None

    quantity: Optional[int] = None
    quantity_match = QUANTITY_PATTERN.match(stripped)
    if quantity_match and int(quantity_match.group(1)) >= 1:
        quantity = int(quantity_match.group(1))

    price_match = PRICE_PATTERN.search(stripped)
    price_text = price_match.group(0) if price_match else None
    price = _parse_amount(price_text) if price_text else None

    text_without_price = stripped
    if price_text:
        text_without_price = text_without_price.replace(price_text, "", 1).strip()
    if quantity is not None:
        text_without_price = QUANTITY_PATTERN.sub("", text_without_price, count=1).strip()

    return ReceiptLine(
        raw_text=line,
        text_without_price=text_without_price,
        price=price,
        quantity=quantity,
        is_indented=_is_indented(line, stripped),
        is_summary_line=summary_kind is not None,
        has_price=price is not None,
        index=index,
        price_text=price_text,
        summary_kind=summary_kind,
    )


def classify_lines(text: str) -> List[ReceiptLine]:
    """Classify every non-blank line of ``text``, preserving order.

    ``index`` on each record is the position among non-blank lines.
    """
    lines: List[ReceiptLine] = []
    for raw in text.splitlines():
        if not raw.strip():
            continue
        lines.append(classify_line(raw, index=len(lines)))
    return lines


def dedupe_totals(lines: List[ReceiptLine]) -> List[ReceiptLine]:
    """Keep only the last ``Total`` line when the text repeats it.

    Receipts often print the total at the top and again at the bottom;
    the bottom one is authoritative.
    """
    total_indexes = [i for i, line in enumerate(lines) if line.is_total]
    if len(total_indexes) <= 1:
        return list(lines)

    keep = total_indexes[-1]
    logger.debug(f"Dropping {len(total_indexes) - 1} duplicate total line(s)")
    return [line for i, line in enumerate(lines) if not line.is_total or i == keep]


def sort_summary_lines(lines: List[ReceiptLine]) -> List[ReceiptLine]:
    """Order summary lines Subtotal, GST, Tax, Total; stable within a kind."""
    return sorted(lines, key=lambda line: line.summary_kind.value if line.summary_kind else 0)


def partition_lines(lines: List[ReceiptLine]) -> Tuple[List[ReceiptLine], List[ReceiptLine]]:
    """Split into (product lines, summary lines) after total dedup and sorting."""
    deduped = dedupe_totals(lines)
    products = [line for line in deduped if not line.is_summary_line]
    summaries = sort_summary_lines([line for line in deduped if line.is_summary_line])
    return products, summaries
