"""
Error types for snapreceipt.

Validation errors abort an operation before any I/O. Printer errors are
raised by transports and connections, caught per device by the print
orchestrator and reported in the aggregated result. Each printer error
keeps the original transport text so it can be shown to the operator.
"""

from typing import Optional


class SnapReceiptError(Exception):
    """Base class for all snapreceipt errors."""


class InvalidShape(SnapReceiptError):
    """Structured extraction output failed validation."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NoPrinterFound(SnapReceiptError):
    """No print target was supplied or discovered."""


class PrinterError(SnapReceiptError):
    """Device-level failure reported by a printer transport."""

    reason = "PrinterError"

    def __init__(self, message: str, device: Optional[str] = None) -> None:
        super().__init__(message)
        self.device = device


class ConnectionFailed(PrinterError):
    """Could not open a connection to the device."""

    reason = "ConnectionFailed"


class SendFailed(PrinterError):
    """Device accepted the connection but rejected or dropped data."""

    reason = "SendFailed"


class CaptureUnsupported(PrinterError):
    """No render strategy could produce output for the device."""

    reason = "CaptureUnsupported"


class InvalidParameter(PrinterError):
    """Transport rejected a call parameter (timeout, capture width, ...)."""

    reason = "InvalidParameter"
