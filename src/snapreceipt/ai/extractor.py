"""Receipt extraction with Gemini vision.

Sends one or more receipt photos to Gemini with a strict extraction
prompt and validates the JSON reply into a StructuredReceipt.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from google import genai
from google.genai import types

from snapreceipt.core.errors import InvalidShape
from snapreceipt.receipt.extraction import StructuredReceipt, parse_extraction_response

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, Tuple[bytes, str]]

EXTRACTION_PROMPT = """You are a receipt parsing assistant. Analyze the receipt image(s) and return the purchased items as JSON.

STRICT PARSING ONLY:
- Extract only what is explicitly visible. Never add, infer or rename anything.
- Ignore store name, address, date and time.

TOTAL:
- The "Total" line is a summary line, not an item. It already includes 10% GST.
- Return its numeric value (e.g. "Total: $110.00" -> 110.00).

ITEMS:
- One entry per purchased line. Quantity comes from a "2x" style prefix, 1 if absent.
- Name exactly as printed, without the quantity prefix.
- Price is the printed line amount (already multiplied by quantity). Never compute unit prices.
- The same product with different modifiers or prices is a separate item.
- Ignore reference menus or side panels that are not part of the purchase.

MODIFIERS:
- Text printed below or beside an item without its own price belongs to that item as a modifier.
- Keep quantity-style modifiers as printed (e.g. "2 X Grilled Flake").
- Omit the "modifiers" field entirely when an item has none.

CUSTOMER (optional):
- Only when a customer name and/or phone is clearly printed. Omit the object otherwise.

Before answering, check that the item prices add up to the total (within $0.01) and fix mistakes.

Return ONLY JSON with this structure, no commentary:
{
  "items": [
    {"name": "BURGER", "quantity": 1, "price": 10.99, "modifiers": ["No onions"]},
    {"name": "FRIES", "quantity": 3, "price": 15.50}
  ],
  "total": 26.49,
  "customer": {"name": "Jane Doe", "phone": "0400 123 456"}
}
Prices and quantities are numbers, not strings.

JSON response:"""


@dataclass
class ExtractorConfig:
    """Configuration for the Gemini extractor."""

    api_key: str
    model: str = "gemini-2.5-flash"
    timeout: float = 120.0
    max_retries: int = 3
    retry_delay: float = 1.0
    temperature: float = 0.0
    max_output_tokens: int = 4096


class ExtractionFailed(RuntimeError):
    """The model gave no usable reply."""


class GeminiReceiptExtractor:
    """Structured receipt extractor backed by Gemini.

    Implements the ReceiptExtractor protocol: ``extract`` returns a
    validated StructuredReceipt or raises.
    """

    def __init__(self, config: ExtractorConfig, client: Optional[genai.Client] = None):
        if not config.api_key and client is None:
            raise ValueError("Gemini API key not configured. Set SNAPRECEIPT_EXTRACTION__GEMINI_API_KEY")
        self.config = config
        self._client = client or genai.Client(api_key=config.api_key)

    def _build_contents(self, images: Sequence[ImageInput]) -> List[types.Part]:
        parts = [types.Part.from_text(text=EXTRACTION_PROMPT)]
        for image in images:
            data, mime_type = image if isinstance(image, tuple) else (image, "image/jpeg")
            parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        return parts

    async def _generate(self, images: Sequence[ImageInput]) -> str:
        contents = self._build_contents(images)
        config = types.GenerateContentConfig(
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            response_mime_type="application/json",
        )

        for attempt in range(self.config.max_retries):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(
                        self._client.models.generate_content,
                        model=self.config.model,
                        contents=contents,
                        config=config,
                    ),
                    timeout=self.config.timeout,
                )
                if response and response.text:
                    return response.text
                logger.warning(f"Empty extraction reply, attempt {attempt + 1}")

            except asyncio.TimeoutError:
                logger.warning(f"Extraction timeout, attempt {attempt + 1}")
            except Exception as e:
                if "503" in str(e) or "overloaded" in str(e).lower():
                    logger.warning(f"Service overloaded, retry {attempt + 1}")
                    await asyncio.sleep(self.config.retry_delay * (attempt + 1))
                else:
                    raise

        raise ExtractionFailed(f"No extraction reply after {self.config.max_retries} attempts")

    async def extract(self, images: Sequence[ImageInput]) -> StructuredReceipt:
        """Extract a structured receipt from one or more photos.

        Args:
            images: Raw JPEG bytes, or ``(bytes, mime_type)`` pairs

        Returns:
            The validated receipt

        Raises:
            ValueError: no images given
            ExtractionFailed: every attempt timed out or came back empty
            InvalidShape: the reply is not a valid receipt
        """
        if not images:
            raise ValueError("At least one image is required")

        logger.info(f"Extracting receipt from {len(images)} image(s) with {self.config.model}")
        text = await self._generate(images)
        try:
            receipt = parse_extraction_response(text)
        except InvalidShape as e:
            logger.error(f"Extraction reply rejected: {e}")
            raise
        logger.info(f"Extracted {len(receipt.items)} item(s), total {receipt.total}")
        return receipt
