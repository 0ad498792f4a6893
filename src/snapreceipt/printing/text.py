"""Fixed-width column text rendering.

Produces the plain-text receipt sent to a thermal printer's text command
when image capture is not available. Every priced row is laid out as
``left + padding + right`` so that the right column ends exactly at the
template's line width; when the two sides do not fit, padding collapses
to one space and the line overflows instead of wrapping.
"""

from typing import List, Optional

from snapreceipt.printing.templates import TemplateParams
from snapreceipt.receipt.model import ReceiptItem, ReceiptModel, format_money

FOOTER_TEXT = "Thank you for your purchase!"
MODIFIER_INDENT = "  "


def format_columns(left: str, right: Optional[str], line_width: int) -> str:
    """Left-align ``left`` and right-align ``right`` within ``line_width``."""
    left = left or ""
    if not right:
        return left
    padding = max(1, line_width - len(left) - len(right))
    return f"{left}{' ' * padding}{right}"


def item_label(item: ReceiptItem) -> str:
    """Item name with a ``Nx`` prefix for quantities above one."""
    prefix = f"{item.quantity}x " if item.quantity > 1 else ""
    return f"{prefix}{item.name}"


def _feed(lines: List[str], count: int) -> None:
    lines.extend([""] * count)


def _header(model: ReceiptModel, params: TemplateParams, shop_name: str, date_time: str) -> List[str]:
    width = params.line_width
    customer = model.customer
    order_text = f"Order #: {model.order_number}" if model.order_number else ""
    customer_name = f"Customer: {customer.name}" if customer and customer.name else ""
    customer_phone = f"Phone: {customer.phone}" if customer and customer.phone else ""

    lines = [shop_name.center(width).rstrip()]
    _feed(lines, 1)
    if order_text or customer_name:
        lines.append(format_columns(order_text, customer_name, width))
    lines.append(format_columns(date_time, customer_phone, width))
    lines.append(format_columns("", "PAID" if model.is_paid else "Unpaid", width))
    return lines


def _body(model: ReceiptModel, params: TemplateParams) -> List[str]:
    width = params.line_width
    lines: List[str] = []

    def add_free_text(position: int) -> None:
        for entry in model.free_text_at(position):
            lines.append(f"{MODIFIER_INDENT}{entry.text}" if entry.is_indented else entry.text)

    add_free_text(0)
    for position, item in enumerate(model.items, start=1):
        price = format_money(item.price) if item.price is not None else None
        lines.append(format_columns(item_label(item), price, width))
        for modifier in item.modifiers:
            lines.append(f"{MODIFIER_INDENT}{modifier}")
        add_free_text(position)
    return lines


def _totals(model: ReceiptModel, params: TemplateParams) -> List[str]:
    width = params.line_width
    return [
        format_columns("Subtotal:", format_money(model.subtotal), width),
        format_columns("GST:", format_money(model.gst), width),
        format_columns("Total:", format_money(model.grand_total), width),
    ]


def render_column_text(
    model: ReceiptModel,
    params: TemplateParams,
    shop_name: str,
    date_time: str,
) -> List[str]:
    """Render a receipt as fixed-width lines.

    Blank strings stand for feed lines. The result depends only on the
    arguments, so rendering the same receipt twice gives identical output.
    """
    lines: List[str] = [params.divider]
    lines.extend(_header(model, params, shop_name, date_time))
    lines.append(params.divider)

    _feed(lines, params.feed_lines_before_items)
    lines.extend(_body(model, params))
    _feed(lines, params.feed_lines_after_items)

    _feed(lines, params.feed_lines_before_totals)
    lines.append(params.short_divider)
    lines.extend(_totals(model, params))
    _feed(lines, params.feed_lines_after_totals)

    _feed(lines, params.feed_lines_before_footer)
    lines.append(params.divider)
    lines.append(FOOTER_TEXT.center(params.line_width).rstrip())
    _feed(lines, params.feed_lines_after_footer)
    return lines


def to_text(lines: List[str]) -> str:
    """Join rendered lines into the newline-terminated text payload."""
    return "".join(f"{line}\n" for line in lines)
