"""HTML invoice rendering for system printers.

Every string that came from OCR or the AI extraction (shop name, item
names, modifiers, customer details, free text) is escaped before it is
interpolated into the document.
"""

from html import escape
from typing import List

from snapreceipt.printing.templates import TemplateParams
from snapreceipt.printing.text import FOOTER_TEXT
from snapreceipt.receipt.model import ReceiptModel, format_money

_STYLE = """
@page { size: A5 portrait; margin: 8mm 10mm; }
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: 'Courier New', monospace; font-size: 11px; line-height: 1.5; }
.receipt { max-width: %(width)dch; margin: 0 auto; }
.header { text-align: center; margin-bottom: 12px; }
.shop-name { font-size: 14px; font-weight: bold; margin-bottom: 6px; }
.order-number { font-size: 12px; font-weight: 600; }
.meta { font-size: 10px; color: #666; }
.badge { display: inline-block; margin-top: 4px; padding: 1px 6px; border-radius: 3px; font-size: 10px; }
.badge.paid { background: #1b7f3b; color: #fff; }
.badge.unpaid { background: #eee; color: #333; }
.divider { border-top: %(divider)s #999; margin: 10px 0; }
.row { display: flex; justify-content: space-between; margin: 3px 0; }
.qty { font-weight: bold; }
.modifier { padding-left: 15px; font-size: 9px; color: #666; font-style: italic; }
.note { margin: 2px 0; }
.note.indented { padding-left: 15px; }
.totals .row.total { font-size: 13px; font-weight: bold; margin-top: 8px; }
.footer { text-align: center; margin-top: 15px; font-size: 9px; color: #666; font-style: italic; }
"""


def _divider_css(params: TemplateParams) -> str:
    return "3px double" if params.divider_char == "=" else "1px dashed"


def _row(left: str, right: str, css_class: str = "row") -> str:
    return f'<div class="{css_class}"><span>{left}</span><span>{right}</span></div>'


def _header_html(model: ReceiptModel, shop_name: str, date_time: str) -> List[str]:
    parts = ['<div class="header">', f'<div class="shop-name">{escape(shop_name)}</div>']
    if model.order_number:
        parts.append(f'<div class="order-number">Order #: {escape(model.order_number)}</div>')
    parts.append(f'<div class="meta">{escape(date_time)}</div>')

    customer = model.customer
    if customer and customer.name:
        parts.append(f'<div class="meta">Customer: {escape(customer.name)}</div>')
    if customer and customer.phone:
        parts.append(f'<div class="meta">Phone: {escape(customer.phone)}</div>')

    if model.is_paid:
        parts.append('<div class="badge paid">PAID</div>')
    else:
        parts.append('<div class="badge unpaid">Unpaid</div>')
    parts.append("</div>")
    return parts


def _items_html(model: ReceiptModel) -> List[str]:
    parts: List[str] = []

    def add_free_text(position: int) -> None:
        for entry in model.free_text_at(position):
            css_class = "note indented" if entry.is_indented else "note"
            parts.append(f'<div class="{css_class}">{escape(entry.text)}</div>')

    add_free_text(0)
    for position, item in enumerate(model.items, start=1):
        quantity = f'<span class="qty">{item.quantity}x</span> ' if item.quantity > 1 else ""
        price = format_money(item.price) if item.price is not None else ""
        parts.append(_row(f"{quantity}{escape(item.name)}", escape(price)))
        for modifier in item.modifiers:
            parts.append(f'<div class="modifier">{escape(modifier)}</div>')
        add_free_text(position)
    return parts


def render_html(
    model: ReceiptModel,
    params: TemplateParams,
    shop_name: str,
    date_time: str,
) -> str:
    """Render a self-contained HTML invoice."""
    style = _STYLE % {"width": params.line_width, "divider": _divider_css(params)}
    body: List[str] = ['<div class="receipt">']
    body.extend(_header_html(model, shop_name, date_time))
    body.append('<div class="divider"></div>')
    body.append('<div class="items">')
    body.extend(_items_html(model))
    body.append("</div>")
    body.append('<div class="divider"></div>')
    body.append('<div class="totals">')
    body.append(_row("Subtotal:", format_money(model.subtotal)))
    body.append(_row("GST:", format_money(model.gst)))
    body.append(_row("Total:", format_money(model.grand_total), css_class="row total"))
    body.append("</div>")
    body.append(f'<div class="footer">{escape(FOOTER_TEXT)}</div>')
    body.append("</div>")

    return "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{escape(shop_name)}</title>",
        f"<style>{style}</style>",
        "</head>",
        "<body>",
        *body,
        "</body>",
        "</html>",
        "",
    ])
