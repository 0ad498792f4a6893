"""Core framework components for snapreceipt."""

from .errors import (
    SnapReceiptError,
    InvalidShape,
    NoPrinterFound,
    PrinterError,
    ConnectionFailed,
    SendFailed,
    CaptureUnsupported,
    InvalidParameter,
)
from .state import DeviceState, DeviceStateMachine

__all__ = [
    "SnapReceiptError",
    "InvalidShape",
    "NoPrinterFound",
    "PrinterError",
    "ConnectionFailed",
    "SendFailed",
    "CaptureUnsupported",
    "InvalidParameter",
    "DeviceState",
    "DeviceStateMachine",
]
