"""Receipt parsing and normalization for snapreceipt."""

from snapreceipt.receipt.model import (
    Customer,
    FreeText,
    ReceiptItem,
    ReceiptLine,
    ReceiptModel,
    SourceKind,
    SummaryKind,
    TotalMismatch,
    format_money,
)
from snapreceipt.receipt.classifier import classify_lines, partition_lines
from snapreceipt.receipt.extraction import (
    ExtractionResult,
    RawText,
    StructuredReceipt,
    coerce_extraction,
    parse_extraction_response,
)
from snapreceipt.receipt.builder import (
    build_from_structured,
    build_from_text,
    build_receipt,
    calculate_totals,
)

__all__ = [
    # Model
    "Customer",
    "FreeText",
    "ReceiptItem",
    "ReceiptLine",
    "ReceiptModel",
    "SourceKind",
    "SummaryKind",
    "TotalMismatch",
    "format_money",
    # Classifier
    "classify_lines",
    "partition_lines",
    # Extraction boundary
    "ExtractionResult",
    "RawText",
    "StructuredReceipt",
    "coerce_extraction",
    "parse_extraction_response",
    # Builder
    "build_from_structured",
    "build_from_text",
    "build_receipt",
    "calculate_totals",
]
