"""Serial ESC/POS thermal printer transport.

Talks to USB/UART receipt printers through pyserial. Most 58mm serial
printers have no raster support over the default baud rate, so image
capture is off unless enabled in settings.

Override the port list with env var: SNAPRECEIPT_PRINTER__SERIAL_PORTS
"""

import asyncio
import glob
import logging
import os
from typing import List, Optional

import serial

from snapreceipt.core.errors import ConnectionFailed, InvalidParameter, SendFailed
from snapreceipt.hardware.base import PrinterConnection, PrinterTransport, PrintTarget

logger = logging.getLogger(__name__)

DEFAULT_BAUD = 9600
SERIAL_PATTERNS = ["/dev/serial0", "/dev/ttyUSB*", "/dev/ttyACM*", "/dev/usb/lp*"]

# Chunked writes keep small printer buffers from overflowing
CHUNK_SIZE = 256


def detect_serial_ports(patterns: Optional[List[str]] = None) -> List[str]:
    """Find candidate printer device paths."""
    ports: List[str] = []
    for pattern in patterns or SERIAL_PATTERNS:
        for path in sorted(glob.glob(pattern)):
            if path not in ports and os.path.exists(path):
                ports.append(path)
    logger.debug(f"Serial printer candidates: {ports}")
    return ports


def _close_abandoned(opening: "asyncio.Future[serial.Serial]") -> None:
    """Close a port whose open finished after its caller gave up."""
    if opening.cancelled() or opening.exception() is not None:
        return
    handle = opening.result()
    handle.close()
    logger.info(f"Closed abandoned serial handle on {handle.port}")


class SerialConnection(PrinterConnection):
    """Open serial port to one printer."""

    def __init__(self, target: PrintTarget, handle: serial.Serial, **kwargs) -> None:
        super().__init__(target, **kwargs)
        self._serial = handle

    async def _write(self, data: bytes) -> None:
        try:
            for i in range(0, len(data), CHUNK_SIZE):
                chunk = data[i:i + CHUNK_SIZE]
                await asyncio.to_thread(self._serial.write, chunk)
                await asyncio.to_thread(self._serial.flush)

                # Small delay between chunks
                await asyncio.sleep(0.01)
        except serial.SerialException as e:
            raise SendFailed(str(e), device=self.target.display_name) from e

    async def _close(self) -> None:
        await asyncio.to_thread(self._serial.close)


class SerialPrinterTransport(PrinterTransport):
    """Transport for printers attached over a serial or USB-serial port."""

    def __init__(
        self,
        ports: Optional[List[str]] = None,
        baud: int = DEFAULT_BAUD,
        paper_width_mm: float = 58.0,
        supports_raster: bool = False,
        encoding: str = "cp437",
    ) -> None:
        self._ports = ports
        self._baud = baud
        self._paper_width_mm = paper_width_mm
        self._supports_raster = supports_raster
        self._encoding = encoding

    async def discover(self) -> List[PrintTarget]:
        ports = self._ports if self._ports is not None else detect_serial_ports()
        targets = [
            PrintTarget(id=f"serial:{port}", display_name=os.path.basename(port), address=port)
            for port in ports
            if os.path.exists(port)
        ]
        logger.info(f"Discovered {len(targets)} serial printer(s)")
        return targets

    async def connect(self, target: PrintTarget, timeout_ms: Optional[int] = None) -> PrinterConnection:
        if timeout_ms is not None and timeout_ms <= 0:
            raise InvalidParameter(f"Invalid timeout: {timeout_ms}", device=target.display_name)

        port = target.address or target.id.removeprefix("serial:")
        timeout = timeout_ms / 1000 if timeout_ms is not None else 2.0
        opening = asyncio.ensure_future(asyncio.to_thread(
            serial.Serial,
            port=port,
            baudrate=self._baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=timeout,
            write_timeout=timeout,
        ))
        try:
            # The open thread cannot be interrupted; late handles are closed
            handle = await asyncio.shield(opening)
        except asyncio.CancelledError:
            opening.add_done_callback(_close_abandoned)
            raise
        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to connect to printer on {port}: {e}")
            raise ConnectionFailed(str(e), device=target.display_name) from e

        logger.info(f"Serial printer connected on {port}")
        return SerialConnection(
            target,
            handle,
            paper_width_mm=self._paper_width_mm,
            supports_raster=self._supports_raster,
            encoding=self._encoding,
        )
