"""Vision-model receipt extraction."""

from snapreceipt.ai.extractor import (
    EXTRACTION_PROMPT,
    ExtractionFailed,
    ExtractorConfig,
    GeminiReceiptExtractor,
)

__all__ = ["EXTRACTION_PROMPT", "ExtractionFailed", "ExtractorConfig", "GeminiReceiptExtractor"]
