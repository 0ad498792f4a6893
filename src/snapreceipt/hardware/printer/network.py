"""Network ESC/POS printer transport.

Most LAN receipt printers accept raw ESC/POS on TCP port 9100. Discovery
probes a configured host list; each reachable host becomes a target.

Hosts are given as "address" or "address:port".
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from snapreceipt.core.errors import ConnectionFailed, InvalidParameter, SendFailed
from snapreceipt.hardware.base import PrinterConnection, PrinterTransport, PrintTarget

logger = logging.getLogger(__name__)

RAW_PORT = 9100
PROBE_TIMEOUT = 1.0


def parse_host(host: str) -> Tuple[str, int]:
    """Split "address[:port]" into its parts."""
    address, _, port = host.strip().rpartition(":")
    if not address:
        return port, RAW_PORT
    return address, int(port)


class NetworkConnection(PrinterConnection):
    """Open TCP stream to one printer."""

    def __init__(
        self,
        target: PrintTarget,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        **kwargs,
    ) -> None:
        super().__init__(target, **kwargs)
        self._reader = reader
        self._writer = writer

    async def _write(self, data: bytes) -> None:
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            raise SendFailed(str(e), device=self.target.display_name) from e

    async def _close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Close error on {self.target.display_name}: {e}")


class NetworkPrinterTransport(PrinterTransport):
    """Transport for printers reachable over TCP."""

    def __init__(
        self,
        hosts: List[str],
        paper_width_mm: float = 80.0,
        supports_raster: bool = True,
        encoding: str = "cp437",
    ) -> None:
        self._hosts = hosts
        self._paper_width_mm = paper_width_mm
        self._supports_raster = supports_raster
        self._encoding = encoding

    async def _probe(self, host: str) -> Optional[PrintTarget]:
        address, port = parse_host(host)
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(address, port), timeout=PROBE_TIMEOUT)
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Printer probe {address}:{port} failed: {e}")
            return None
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Printer probe {address}:{port} close error: {e}")
        return PrintTarget(
            id=f"tcp:{address}:{port}",
            display_name=f"{address}:{port}",
            is_networked=True,
            address=f"{address}:{port}",
        )

    async def discover(self) -> List[PrintTarget]:
        results = await asyncio.gather(*(self._probe(host) for host in self._hosts))
        targets = [target for target in results if target is not None]
        logger.info(f"Discovered {len(targets)} of {len(self._hosts)} network printer(s)")
        return targets

    async def connect(self, target: PrintTarget, timeout_ms: Optional[int] = None) -> PrinterConnection:
        if timeout_ms is not None and timeout_ms <= 0:
            raise InvalidParameter(f"Invalid timeout: {timeout_ms}", device=target.display_name)

        address, port = parse_host(target.address or target.id.removeprefix("tcp:"))
        try:
            opening = asyncio.open_connection(address, port)
            if timeout_ms is not None:
                reader, writer = await asyncio.wait_for(opening, timeout=timeout_ms / 1000)
            else:
                reader, writer = await opening
        except asyncio.TimeoutError as e:
            raise ConnectionFailed(f"Timed out connecting to {address}:{port}", device=target.display_name) from e
        except OSError as e:
            raise ConnectionFailed(str(e), device=target.display_name) from e

        logger.info(f"Network printer connected at {address}:{port}")
        return NetworkConnection(
            target,
            reader,
            writer,
            paper_width_mm=self._paper_width_mm,
            supports_raster=self._supports_raster,
            encoding=self._encoding,
        )
