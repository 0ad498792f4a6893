"""Print orchestrator for thermal receipts.

Drives every target through connect, render, cut, send and disconnect,
``copies`` times per target. Render strategies are tried in order (image
capture first, column text second); a strategy that reports Unsupported
hands over to the next one instead of failing the device. One device's
failure never stops the others; all outcomes end up in a PrintReport.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from snapreceipt.core.errors import (
    CaptureUnsupported,
    ConnectionFailed,
    InvalidParameter,
    NoPrinterFound,
    PrinterError,
)
from snapreceipt.core.state import DeviceState, DeviceStateMachine
from snapreceipt.hardware.base import PrinterConnection, PrinterTransport, PrintTarget
from snapreceipt.printing.raster import ReceiptView, render_receipt_view
from snapreceipt.printing.templates import TemplateParams
from snapreceipt.printing.text import render_column_text, to_text
from snapreceipt.receipt.model import ReceiptModel

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_MS = 5000
COPY_FEED_LINES = 1


def format_date_time(moment: Optional[datetime] = None) -> str:
    """Printable timestamp, e.g. ``Wed, 25/11/2025 11:50 AM``."""
    moment = moment or datetime.now()
    return moment.strftime("%a, %d/%m/%Y %I:%M %p")


@dataclass(frozen=True)
class PrintOptions:
    """Per-call print configuration."""

    shop_name: str = "Snap Receipt"
    copies: int = 1
    capture_width_mm: float = 72.0
    connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS
    use_image_capture: bool = True
    concurrent: bool = True


@dataclass(frozen=True)
class PrintFailure:
    """Why one device did not print."""

    device_name: str
    reason: str
    detail: str = ""


@dataclass
class PrintReport:
    """Aggregated outcome of one print call."""

    succeeded: List[str] = field(default_factory=list)
    failed: List[PrintFailure] = field(default_factory=list)
    warnings: List[PrintFailure] = field(default_factory=list)
    skipped: bool = False
    skip_reason: Optional[str] = None
    # Per-device detail (state history, strategies used); not serialized
    devices: List[DeviceResult] = field(default_factory=list, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return not self.skipped and not self.failed and bool(self.succeeded)

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "succeeded": list(self.succeeded),
            "failed": [
                {"deviceName": failure.device_name, "reason": failure.reason, "detail": failure.detail}
                for failure in self.failed
            ],
        }
        if self.warnings:
            data["warnings"] = [
                {"deviceName": warning.device_name, "reason": warning.reason, "detail": warning.detail}
                for warning in self.warnings
            ]
        if self.skipped:
            data["skipped"] = True
            data["skipReason"] = self.skip_reason
        return data


@dataclass(frozen=True)
class RenderJob:
    """Everything a render strategy may need, rendered once per call."""

    text: str
    view: Optional[ReceiptView]
    width_mm: float


@dataclass(frozen=True)
class Rendered:
    strategy: str


@dataclass(frozen=True)
class Unsupported:
    strategy: str
    reason: str


RenderOutcome = Union[Rendered, Unsupported]


class RenderStrategy(ABC):
    """One way of putting a receipt into a connection's buffer."""

    name = "strategy"

    @abstractmethod
    async def render(self, connection: PrinterConnection, job: RenderJob) -> RenderOutcome:
        ...


class ImageCaptureStrategy(RenderStrategy):
    """Rasterize the receipt view and queue it as a bit image."""

    name = "image"

    async def render(self, connection: PrinterConnection, job: RenderJob) -> RenderOutcome:
        if job.view is None:
            return Unsupported(self.name, "no receipt view available")
        try:
            data = await connection.capture_view(job.view, job.width_mm)
        except InvalidParameter as e:
            return Unsupported(self.name, str(e))
        connection.add_raw(data)
        return Rendered(self.name)


class ColumnTextStrategy(RenderStrategy):
    """Queue the fixed-width text layout."""

    name = "text"

    async def render(self, connection: PrinterConnection, job: RenderJob) -> RenderOutcome:
        connection.add_text(job.text)
        return Rendered(self.name)


@dataclass
class DeviceResult:
    """Outcome for one target."""

    target: PrintTarget
    machine: DeviceStateMachine
    copies_sent: int = 0
    strategies_used: List[str] = field(default_factory=list)
    failure: Optional[PrintFailure] = None
    warning: Optional[PrintFailure] = None


class PrintOrchestrator:
    """Prints one receipt to one or many printers."""

    def __init__(
        self,
        transport: PrinterTransport,
        strategies: Optional[Sequence[RenderStrategy]] = None,
    ) -> None:
        self._transport = transport
        self._strategies = list(strategies) if strategies is not None else [
            ImageCaptureStrategy(),
            ColumnTextStrategy(),
        ]

    def build_job(
        self,
        model: ReceiptModel,
        params: TemplateParams,
        options: PrintOptions,
        date_time: str,
    ) -> RenderJob:
        lines = render_column_text(model, params, options.shop_name, date_time)
        view = render_receipt_view(lines, params) if options.use_image_capture else None
        return RenderJob(text=to_text(lines), view=view, width_mm=options.capture_width_mm)

    async def print_receipt(
        self,
        targets: Optional[Sequence[PrintTarget]],
        model: ReceiptModel,
        params: TemplateParams,
        options: Optional[PrintOptions] = None,
        *,
        auto_print: bool = False,
        date_time: Optional[str] = None,
    ) -> PrintReport:
        """Print ``options.copies`` copies of the receipt to every target.

        Raises:
            NoPrinterFound: ``targets`` is missing or empty
            ValueError: ``options.copies`` is below one
        """
        options = options or PrintOptions()

        if auto_print and model.has_mismatch:
            logger.warning(f"Auto-print skipped: {model.mismatch.describe()}")
            return PrintReport(skipped=True, skip_reason=model.mismatch.describe())
        if not targets:
            raise NoPrinterFound("No printer found")
        if options.copies < 1:
            raise ValueError(f"copies must be at least 1, got {options.copies}")

        unique: Dict[str, PrintTarget] = {}
        for target in targets:
            unique.setdefault(target.id, target)

        job = self.build_job(model, params, options, date_time or format_date_time())
        logger.info(f"Printing {options.copies} cop{'y' if options.copies == 1 else 'ies'} to {len(unique)} printer(s)")

        if options.concurrent:
            results = await asyncio.gather(
                *(self._print_to_target(target, job, options) for target in unique.values())
            )
        else:
            results = [await self._print_to_target(target, job, options) for target in unique.values()]

        report = PrintReport(devices=list(results))
        for result in results:
            if result.failure is None:
                report.succeeded.append(result.target.display_name)
            else:
                report.failed.append(result.failure)
            if result.warning is not None:
                report.warnings.append(result.warning)

        if report.failed:
            logger.warning(f"Printed on {len(report.succeeded)}, failed on {len(report.failed)} printer(s)")
        return report

    async def print_discovered(
        self,
        model: ReceiptModel,
        params: TemplateParams,
        options: Optional[PrintOptions] = None,
        *,
        auto_print: bool = False,
        date_time: Optional[str] = None,
        printer_id: Optional[str] = None,
    ) -> PrintReport:
        """Discover printers, then print to all of them.

        The auto-print check runs before discovery, so a skipped receipt
        never touches the transport. ``printer_id`` narrows the discovered
        printers to that one id.
        """
        if auto_print and model.has_mismatch:
            logger.warning(f"Auto-print skipped: {model.mismatch.describe()}")
            return PrintReport(skipped=True, skip_reason=model.mismatch.describe())

        targets = await self._transport.discover()
        if printer_id:
            targets = [target for target in targets if target.id == printer_id]
        return await self.print_receipt(
            targets, model, params, options, auto_print=auto_print, date_time=date_time
        )

    async def _connect(self, target: PrintTarget, timeout_ms: int) -> PrinterConnection:
        """Connect with a bounded wait, retrying once without the timeout parameter."""
        deadline = timeout_ms / 1000
        try:
            try:
                return await asyncio.wait_for(self._transport.connect(target, timeout_ms=timeout_ms), deadline)
            except InvalidParameter as e:
                logger.info(f"{target.display_name} rejected connect timeout ({e}), retrying without it")
                return await asyncio.wait_for(self._transport.connect(target), deadline)
        except asyncio.TimeoutError as e:
            raise ConnectionFailed(
                f"Timed out after {timeout_ms}ms connecting to {target.display_name}",
                device=target.display_name,
            ) from e
        except ConnectionFailed:
            raise
        except PrinterError as e:
            raise ConnectionFailed(str(e), device=target.display_name) from e

    async def _render(
        self,
        connection: PrinterConnection,
        job: RenderJob,
        strategies: List[RenderStrategy],
    ) -> str:
        """Run strategies in order; drop the ones that report Unsupported."""
        while strategies:
            outcome = await strategies[0].render(connection, job)
            if isinstance(outcome, Rendered):
                return outcome.strategy
            logger.info(
                f"{connection.target.display_name}: {outcome.strategy} render unsupported "
                f"({outcome.reason}), falling back"
            )
            strategies.pop(0)
        raise CaptureUnsupported("No render strategy is supported", device=connection.target.display_name)

    async def _print_to_target(
        self,
        target: PrintTarget,
        job: RenderJob,
        options: PrintOptions,
    ) -> DeviceResult:
        name = target.display_name
        machine = DeviceStateMachine(name)
        result = DeviceResult(target=target, machine=machine)
        connection: Optional[PrinterConnection] = None
        strategies = list(self._strategies)

        try:
            machine.transition(DeviceState.CONNECTING)
            connection = await self._connect(target, options.connect_timeout_ms)

            for copy in range(1, options.copies + 1):
                machine.transition(DeviceState.RENDERING)
                if copy > 1:
                    await connection.feed(COPY_FEED_LINES)
                result.strategies_used.append(await self._render(connection, job, strategies))

                machine.transition(DeviceState.CUTTING)
                await connection.cut()

                machine.transition(DeviceState.SENDING)
                await connection.send()
                result.copies_sent = copy
                logger.debug(f"{name}: copy {copy}/{options.copies} sent")

        except PrinterError as e:
            logger.error(f"Print failed on {name}: {e}")
            machine.fail(e.reason)
            result.failure = PrintFailure(name, e.reason, self._detail(e, result, options))
        except Exception as e:
            logger.exception(f"Unexpected print error on {name}: {e}")
            machine.fail(PrinterError.reason)
            result.failure = PrintFailure(name, PrinterError.reason, self._detail(e, result, options))
        finally:
            if connection is not None:
                try:
                    await connection.disconnect()
                except Exception as e:
                    logger.warning(f"Disconnect failed on {name}: {e}")
                    result.warning = PrintFailure(name, "DisconnectFailed", str(e))

        if result.failure is None:
            machine.transition(DeviceState.DISCONNECTED)
            logger.info(f"Printed {result.copies_sent} cop{'y' if result.copies_sent == 1 else 'ies'} on {name}")
        return result

    @staticmethod
    def _detail(error: Exception, result: DeviceResult, options: PrintOptions) -> str:
        detail = str(error) or type(error).__name__
        if result.copies_sent:
            detail = f"{detail} (after {result.copies_sent} of {options.copies} copies)"
        return detail
