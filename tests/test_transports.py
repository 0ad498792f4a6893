from __future__ import annotations

import asyncio
import threading

import pytest

from snapreceipt.core.errors import ConnectionFailed, InvalidParameter
from snapreceipt.hardware.base import PrintTarget
from snapreceipt.hardware.printer import serial_escpos
from snapreceipt.hardware.printer.network import RAW_PORT, NetworkPrinterTransport, parse_host
from snapreceipt.hardware.printer.serial_escpos import SerialPrinterTransport, detect_serial_ports
from snapreceipt.printing.orchestrator import PrintOptions, PrintOrchestrator
from snapreceipt.printing.templates import resolve_template


def test_parse_host() -> None:
    assert parse_host("192.168.1.50") == ("192.168.1.50", RAW_PORT)
    assert parse_host(" printer.local:9101 ") == ("printer.local", 9101)


def test_network_print_end_to_end(model) -> None:
    async def scenario():
        received = bytearray()
        done = asyncio.Event()

        async def handle(reader, writer):
            data = await reader.read()
            if data:
                received.extend(data)
                done.set()
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            transport = NetworkPrinterTransport([f"127.0.0.1:{port}", "127.0.0.1:1"])
            targets = await transport.discover()
            report = await PrintOrchestrator(transport).print_receipt(
                targets,
                model,
                resolve_template("classic"),
                PrintOptions(use_image_capture=False),
                date_time="Wed, 25/11/2025 11:50 AM",
            )
            await asyncio.wait_for(done.wait(), timeout=2)
        return targets, report, bytes(received)

    targets, report, received = asyncio.run(scenario())

    assert [target.id for target in targets][0].startswith("tcp:127.0.0.1:")
    assert len(targets) == 1
    assert report.ok
    assert received.startswith(b"\x1b@")
    assert b"FISH & CHIPS" in received
    assert received.endswith(b"\x1dV\x01")


def test_network_connect_errors() -> None:
    transport = NetworkPrinterTransport([])
    target = PrintTarget(id="tcp:127.0.0.1:1", display_name="nowhere", is_networked=True, address="127.0.0.1:1")

    with pytest.raises(InvalidParameter):
        asyncio.run(transport.connect(target, timeout_ms=0))
    with pytest.raises(ConnectionFailed):
        asyncio.run(transport.connect(target, timeout_ms=500))


def test_detect_serial_ports(tmp_path) -> None:
    (tmp_path / "ttyUSB0").write_text("")
    (tmp_path / "ttyUSB1").write_text("")

    ports = detect_serial_ports([str(tmp_path / "ttyUSB*"), str(tmp_path / "ttyUSB0")])

    assert ports == [str(tmp_path / "ttyUSB0"), str(tmp_path / "ttyUSB1")]


def test_serial_discover_and_connect_errors(tmp_path) -> None:
    port = tmp_path / "ttyUSB0"
    port.write_text("")
    transport = SerialPrinterTransport(ports=[str(port), str(tmp_path / "missing")])

    targets = asyncio.run(transport.discover())

    assert targets == [PrintTarget(id=f"serial:{port}", display_name="ttyUSB0", address=str(port))]
    with pytest.raises(InvalidParameter):
        asyncio.run(transport.connect(targets[0], timeout_ms=-1))
    with pytest.raises(ConnectionFailed):
        asyncio.run(transport.connect(PrintTarget(id="serial:/dev/does-not-exist", display_name="x")))


def test_network_discover_waits_for_socket_close(monkeypatch) -> None:
    waited = []
    wait_closed = asyncio.StreamWriter.wait_closed

    async def recording_wait_closed(self):
        waited.append(self)
        await wait_closed(self)

    monkeypatch.setattr(asyncio.StreamWriter, "wait_closed", recording_wait_closed)

    async def scenario():
        server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            return await NetworkPrinterTransport([f"127.0.0.1:{port}"]).discover()

    targets = asyncio.run(scenario())

    assert len(targets) == 1
    assert len(waited) >= 1


def test_serial_handle_opened_after_timeout_is_closed(monkeypatch) -> None:
    release = threading.Event()
    opened = []

    class SlowSerial:
        def __init__(self, port, **kwargs):
            release.wait(timeout=5)
            self.port = port
            self.closed = False
            opened.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr(serial_escpos.serial, "Serial", SlowSerial)
    transport = SerialPrinterTransport(ports=[])
    target = PrintTarget(id="serial:/dev/ttyUSB9", display_name="ttyUSB9", address="/dev/ttyUSB9")

    async def scenario():
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(transport.connect(target, timeout_ms=50), timeout=0.05)
        release.set()
        for _ in range(200):
            if opened and opened[0].closed:
                break
            await asyncio.sleep(0.01)

    asyncio.run(scenario())

    assert len(opened) == 1
    assert opened[0].closed
