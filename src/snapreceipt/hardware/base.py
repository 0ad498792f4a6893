"""
Abstract base classes for printer transports.

These interfaces define the contract that real printer drivers and the
mock transport must follow. Connections buffer commands the way vendor
printer SDKs do: payload and cut are queued, then ``send`` flushes the
whole copy to the device in one write.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from snapreceipt.core.errors import InvalidParameter
from snapreceipt.printing.layout import LayoutEngine, mm_to_dots
from snapreceipt.printing.raster import ReceiptView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrintTarget:
    """A discovered or saved output device."""

    id: str
    display_name: str
    is_networked: bool = False
    address: Optional[str] = None


class PrinterConnection(ABC):
    """An open, exclusive connection to one printer."""

    def __init__(
        self,
        target: PrintTarget,
        paper_width_mm: float = 80.0,
        supports_raster: bool = True,
        encoding: str = "cp437",
    ) -> None:
        self.target = target
        self.paper_width_mm = paper_width_mm
        self.supports_raster = supports_raster
        self._engine = LayoutEngine(encoding=encoding)
        self._buffer: List[bytes] = [self._engine.cmd_init()]
        self._closed = False

    @property
    def is_connected(self) -> bool:
        return not self._closed

    @property
    def pending_bytes(self) -> int:
        return sum(len(chunk) for chunk in self._buffer)

    async def capture_view(self, view: ReceiptView, width_mm: float) -> bytes:
        """Rasterize a receipt view for this printer.

        Raises:
            InvalidParameter: the device cannot print images, or the
                requested width does not fit its paper
        """
        if not self.supports_raster:
            raise InvalidParameter("Printer does not support image printing", device=self.target.display_name)
        if width_mm <= 0 or width_mm > self.paper_width_mm:
            raise InvalidParameter(
                f"Capture width {width_mm}mm exceeds paper width {self.paper_width_mm}mm",
                device=self.target.display_name,
            )
        return self._engine.encode_image(view.image, mm_to_dots(width_mm))

    def add_text(self, text: str) -> None:
        """Queue text."""
        self._buffer.append(self._engine.encode_text(text))

    def add_raw(self, data: bytes) -> None:
        """Queue raw command bytes."""
        self._buffer.append(data)

    async def send_text(self, text: str) -> None:
        """Queue text and flush immediately."""
        self.add_text(text)
        await self.send()

    async def feed(self, lines: int = 1) -> None:
        """Queue a paper feed."""
        self._buffer.append(self._engine.cmd_feed(lines))

    async def cut(self, partial: bool = True) -> None:
        """Queue a paper cut."""
        self._buffer.append(self._engine.cmd_cut(partial))

    async def send(self) -> None:
        """Flush queued commands to the device.

        Raises:
            SendFailed: the device rejected or dropped the data
        """
        data = b''.join(self._buffer)
        self._buffer = []
        if data:
            await self._write(data)

    async def disconnect(self) -> None:
        """Close the connection; queued but unsent data is discarded."""
        if self._closed:
            return
        self._buffer = []
        self._closed = True
        await self._close()
        logger.info(f"Disconnected from {self.target.display_name}")

    @abstractmethod
    async def _write(self, data: bytes) -> None:
        """Write bytes to the device."""
        ...

    @abstractmethod
    async def _close(self) -> None:
        """Release the underlying device handle."""
        ...


class PrinterTransport(ABC):
    """Discovers printers and opens connections to them."""

    @abstractmethod
    async def discover(self) -> List[PrintTarget]:
        """List reachable printers."""
        ...

    @abstractmethod
    async def connect(self, target: PrintTarget, timeout_ms: Optional[int] = None) -> PrinterConnection:
        """
        Open a connection.

        Raises:
            InvalidParameter: the transport rejected ``timeout_ms``
            ConnectionFailed: the device could not be reached
        """
        ...
