"""snapreceipt - reprint photographed receipts on thermal printers."""

__version__ = "0.1.0"
