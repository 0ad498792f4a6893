"""Printing module for snapreceipt - receipt rendering and ESC/POS encoding.

The print orchestrator lives in ``snapreceipt.printing.orchestrator``; it
depends on the hardware layer, which in turn uses the encoders here.
"""

from snapreceipt.printing.templates import TemplateId, TemplateParams, resolve_template
from snapreceipt.printing.text import format_columns, render_column_text, to_text
from snapreceipt.printing.html import render_html
from snapreceipt.printing.layout import Alignment, LayoutEngine, mm_to_dots
from snapreceipt.printing.raster import ReceiptView, render_receipt_view

__all__ = [
    # Templates
    "TemplateId",
    "TemplateParams",
    "resolve_template",
    # Renderers
    "format_columns",
    "render_column_text",
    "to_text",
    "render_html",
    "ReceiptView",
    "render_receipt_view",
    # ESC/POS
    "Alignment",
    "LayoutEngine",
    "mm_to_dots",
]
