"""Mock printer transport for tests and dry runs.

Keeps everything sent to each device in memory and can be told to fail
at any step of the print sequence for specific target ids.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from snapreceipt.core.errors import ConnectionFailed, InvalidParameter, SendFailed
from snapreceipt.hardware.base import PrinterConnection, PrinterTransport, PrintTarget
from snapreceipt.printing.raster import ReceiptView

logger = logging.getLogger(__name__)


@dataclass
class MockDevice:
    """Everything recorded for one mock target."""

    writes: List[bytes] = field(default_factory=list)
    captures: int = 0
    connects: int = 0
    connect_timeouts: List[Optional[int]] = field(default_factory=list)
    open_connections: int = 0
    max_open_connections: int = 0

    @property
    def data(self) -> bytes:
        return b''.join(self.writes)


class MockConnection(PrinterConnection):
    """In-memory connection."""

    def __init__(self, target: PrintTarget, transport: "MockPrinterTransport", **kwargs) -> None:
        super().__init__(target, **kwargs)
        self._transport = transport
        self._device = transport.devices[target.id]

    async def capture_view(self, view: ReceiptView, width_mm: float) -> bytes:
        self._device.captures += 1
        if self.target.id in self._transport.capture_error:
            raise self._transport.capture_error[self.target.id]
        return await super().capture_view(view, width_mm)

    async def _write(self, data: bytes) -> None:
        if self.target.id in self._transport.fail_send:
            raise SendFailed("Printer is offline", device=self.target.display_name)
        self._device.writes.append(data)

    async def _close(self) -> None:
        self._device.open_connections -= 1


class MockPrinterTransport(PrinterTransport):
    """Transport that prints to memory.

    Args:
        targets: Devices reported by ``discover``
        fail_connect: Target ids whose connect always fails
        reject_timeout: Target ids that reject the timeout parameter
        capture_unsupported: Target ids that cannot print images
        fail_send: Target ids whose writes fail
        stall_connect: Target ids whose connect never completes
    """

    def __init__(
        self,
        targets: Iterable[PrintTarget] = (),
        fail_connect: Iterable[str] = (),
        reject_timeout: Iterable[str] = (),
        capture_unsupported: Iterable[str] = (),
        fail_send: Iterable[str] = (),
        stall_connect: Iterable[str] = (),
        paper_width_mm: float = 80.0,
    ) -> None:
        self.targets = list(targets)
        self.fail_connect: Set[str] = set(fail_connect)
        self.reject_timeout: Set[str] = set(reject_timeout)
        self.fail_send: Set[str] = set(fail_send)
        self.stall_connect: Set[str] = set(stall_connect)
        self.capture_error: Dict[str, Exception] = {
            target_id: InvalidParameter("addViewShot: invalid parameter") for target_id in capture_unsupported
        }
        self.paper_width_mm = paper_width_mm
        self.devices: Dict[str, MockDevice] = {}

    def device(self, target_id: str) -> MockDevice:
        return self.devices.setdefault(target_id, MockDevice())

    async def discover(self) -> List[PrintTarget]:
        return list(self.targets)

    async def connect(self, target: PrintTarget, timeout_ms: Optional[int] = None) -> PrinterConnection:
        device = self.device(target.id)
        device.connects += 1
        device.connect_timeouts.append(timeout_ms)

        if target.id in self.stall_connect:
            await asyncio.Event().wait()
        if timeout_ms is not None and target.id in self.reject_timeout:
            raise InvalidParameter("Invalid parameter: timeout", device=target.display_name)
        if target.id in self.fail_connect:
            raise ConnectionFailed("Device not found", device=target.display_name)

        device.open_connections += 1
        device.max_open_connections = max(device.max_open_connections, device.open_connections)
        logger.info(f"Mock printer connected: {target.display_name}")
        return MockConnection(target, self, paper_width_mm=self.paper_width_mm)
