"""Printer transports for snapreceipt."""

import logging
from typing import TYPE_CHECKING, Optional

from snapreceipt.hardware.base import PrinterTransport, PrintTarget
from snapreceipt.hardware.printer.mock import MockDevice, MockPrinterTransport
from snapreceipt.hardware.printer.network import NetworkPrinterTransport
from snapreceipt.hardware.printer.serial_escpos import SerialPrinterTransport

if TYPE_CHECKING:
    from snapreceipt.settings import PrinterSettings

logger = logging.getLogger(__name__)

MOCK_TARGET = PrintTarget(id="mock:printer", display_name="Mock Printer")


def create_transport(settings: Optional["PrinterSettings"] = None, mock: bool = False) -> PrinterTransport:
    """Factory function to create the appropriate printer transport.

    Args:
        settings: Printer settings; defaults apply when omitted
        mock: Force mock mode

    Returns:
        Network transport when hosts are configured, serial otherwise
    """
    if mock or settings is None:
        logger.info("Using mock printer transport")
        return MockPrinterTransport(targets=[MOCK_TARGET])

    if settings.network_hosts:
        return NetworkPrinterTransport(
            hosts=settings.network_hosts,
            paper_width_mm=settings.paper_width_mm,
            supports_raster=settings.supports_raster,
            encoding=settings.encoding,
        )

    return SerialPrinterTransport(
        ports=settings.serial_ports,
        baud=settings.serial_baudrate,
        paper_width_mm=settings.paper_width_mm,
        supports_raster=settings.supports_raster,
        encoding=settings.encoding,
    )


__all__ = [
    "MOCK_TARGET",
    "MockDevice",
    "MockPrinterTransport",
    "NetworkPrinterTransport",
    "SerialPrinterTransport",
    "create_transport",
]
