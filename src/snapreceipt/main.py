"""
Main entry point for snapreceipt.

Turns an extraction result (structured JSON or raw OCR text) into a
reprinted receipt: rendered to a file or sent to thermal printers.

Commands:
    render SOURCE      Render to text, HTML or PNG
    print SOURCE       Print to discovered printers (or the mock printer)
    extract IMAGE...   Extract a structured receipt from photos with Gemini
    templates          List available receipt templates
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from snapreceipt.core.errors import InvalidShape, NoPrinterFound, SnapReceiptError
from snapreceipt.printing.html import render_html
from snapreceipt.printing.orchestrator import PrintOrchestrator, format_date_time
from snapreceipt.printing.raster import render_receipt_view
from snapreceipt.printing.templates import TemplateId, resolve_template
from snapreceipt.printing.text import render_column_text, to_text
from snapreceipt.receipt.builder import build_receipt
from snapreceipt.receipt.extraction import ExtractionResult, RawText, coerce_extraction
from snapreceipt.receipt.model import ReceiptModel
from snapreceipt.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def load_source(path: Path) -> ExtractionResult:
    """Read an extraction result from disk.

    ``.json`` files are validated as structured receipts; anything else
    is treated as raw OCR text.
    """
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidShape(f"{path.name} is not valid JSON: {e}") from e
        return coerce_extraction(payload)
    return RawText(content)


async def resolve_order_number(args: argparse.Namespace, settings: Settings) -> Optional[str]:
    if args.order_number:
        return args.order_number
    if not args.next_order:
        return None

    from snapreceipt.services.order_counter import UpstashOrderCounter

    counter = UpstashOrderCounter(
        url=settings.counter.redis_url,
        token=settings.counter.redis_token,
        prefix=settings.counter.prefix,
        start=settings.counter.start,
    )
    try:
        return str(await counter.next_order_number())
    finally:
        await counter.close()


async def build_model(args: argparse.Namespace, settings: Settings) -> ReceiptModel:
    source = load_source(Path(args.source))
    order_number = await resolve_order_number(args, settings)
    model = build_receipt(source, order_number=order_number, is_paid=args.paid)
    if model.has_mismatch:
        print(f"Warning: {model.mismatch.describe()}", file=sys.stderr)
    return model


def cmd_render(args: argparse.Namespace, settings: Settings) -> int:
    model = asyncio.run(build_model(args, settings))
    params = resolve_template(args.template or settings.printer.template)
    shop_name = args.shop_name or settings.shop_name
    date_time = format_date_time()

    if args.format == "html":
        output = render_html(model, params, shop_name, date_time)
    else:
        lines = render_column_text(model, params, shop_name, date_time)
        if args.format == "png":
            if not args.output:
                print("Error: --output is required for png", file=sys.stderr)
                return 2
            render_receipt_view(lines, params).image.save(args.output)
            logger.info(f"Receipt image written to {args.output}")
            return 0
        output = to_text(lines)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info(f"Receipt written to {args.output}")
    else:
        sys.stdout.write(output)
    return 0


async def run_print(args: argparse.Namespace, settings: Settings) -> int:
    from snapreceipt.hardware.printer import create_transport

    model = await build_model(args, settings)
    params = resolve_template(args.template or settings.printer.template)
    options = settings.print_options(copies=args.copies)
    if args.shop_name:
        options = replace(options, shop_name=args.shop_name)

    transport = create_transport(settings.printer, mock=args.mock)
    orchestrator = PrintOrchestrator(transport)
    auto_print = args.auto or settings.printer.auto_print

    report = await orchestrator.print_discovered(
        model,
        params,
        options,
        auto_print=auto_print,
        printer_id=args.printer or settings.printer.default_printer_id,
    )

    print(json.dumps(report.to_dict(), indent=2))
    if report.skipped:
        return 3
    return 0 if report.ok else 1


def cmd_print(args: argparse.Namespace, settings: Settings) -> int:
    try:
        return asyncio.run(run_print(args, settings))
    except NoPrinterFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def run_extract(args: argparse.Namespace, settings: Settings) -> int:
    from snapreceipt.ai.extractor import ExtractorConfig, GeminiReceiptExtractor

    config = ExtractorConfig(
        api_key=settings.extraction.gemini_api_key,
        model=settings.extraction.model,
        timeout=settings.extraction.timeout,
        max_retries=settings.extraction.max_retries,
        retry_delay=settings.extraction.retry_delay,
    )
    extractor = GeminiReceiptExtractor(config)
    images = []
    for image_path in args.images:
        path = Path(image_path)
        mime_type = "image/png" if path.suffix.lower() == ".png" else "image/jpeg"
        images.append((path.read_bytes(), mime_type))

    receipt = await extractor.extract(images)
    output = receipt.model_dump_json(indent=2, exclude_none=True)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info(f"Extraction written to {args.output}")
    else:
        print(output)
    return 0


def cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    return asyncio.run(run_extract(args, settings))


def cmd_templates(args: argparse.Namespace, settings: Settings) -> int:
    for template_id in TemplateId:
        params = resolve_template(template_id)
        print(f"{template_id.value:<10} width={params.line_width:<3} divider={params.divider_char!r}")
    return 0


def add_receipt_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("source", help="Extraction result: .json for structured, anything else is raw text")
    parser.add_argument("--template", help="Template id (classic, compact, kitchen)")
    parser.add_argument("--shop-name", help="Shop name printed in the header")
    parser.add_argument("--order-number", help="Order number printed in the header")
    parser.add_argument("--next-order", action="store_true", help="Take the next number from the order counter")
    parser.add_argument("--paid", action="store_true", help="Mark the order as paid")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapreceipt",
        description="Reprint photographed receipts on thermal printers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # render command
    p_render = subparsers.add_parser("render", help="Render a receipt to a file or stdout")
    add_receipt_arguments(p_render)
    p_render.add_argument("--format", choices=["text", "html", "png"], default="text")
    p_render.add_argument("--output", "-o", help="Output path (stdout when omitted)")
    p_render.set_defaults(func=cmd_render)

    # print command
    p_print = subparsers.add_parser("print", help="Print a receipt")
    add_receipt_arguments(p_print)
    p_print.add_argument("--copies", type=int, help="Copies per printer")
    p_print.add_argument("--printer", help="Only print to this printer id")
    p_print.add_argument("--auto", action="store_true", help="Auto-print: skip when totals disagree")
    p_print.add_argument("--mock", action="store_true", help="Use the mock printer")
    p_print.set_defaults(func=cmd_print)

    # extract command
    p_extract = subparsers.add_parser("extract", help="Extract a receipt from photos with Gemini")
    p_extract.add_argument("images", nargs="+", help="Receipt photo paths")
    p_extract.add_argument("--output", "-o", help="Output JSON path (stdout when omitted)")
    p_extract.set_defaults(func=cmd_extract)

    # templates command
    p_templates = subparsers.add_parser("templates", help="List receipt templates")
    p_templates.set_defaults(func=cmd_templates)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(args.debug or settings.debug)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args, settings)
    except (InvalidShape, ValueError) as e:
        logger.error(f"Invalid input: {e}")
        return 2
    except SnapReceiptError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
