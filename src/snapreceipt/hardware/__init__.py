"""Hardware abstraction layer for snapreceipt."""

from .base import PrintTarget, PrinterConnection, PrinterTransport

__all__ = [
    "PrintTarget",
    "PrinterConnection",
    "PrinterTransport",
]
