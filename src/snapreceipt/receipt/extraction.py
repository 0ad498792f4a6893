"""Extraction results at the service boundary.

The extraction service returns either structured JSON (items + total,
optional customer) or raw OCR text. Both are normalized here into a
tagged union, ``StructuredReceipt | RawText``, validated exactly once;
the builder trusts whatever it receives from this module.
"""

import json
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional, Protocol, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from snapreceipt.core.errors import InvalidShape

logger = logging.getLogger(__name__)

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"\n?```\s*$")


def _require_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError("must be a number")
    return value


def _require_amount(value: Any) -> Any:
    value = _require_number(value)
    if isinstance(value, float):
        # str() keeps 12.5 as 12.5 instead of its binary expansion
        return Decimal(str(value))
    return value


class StructuredCustomer(BaseModel):
    """Customer block as returned by the extraction service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None


class StructuredItem(BaseModel):
    """One item as returned by the extraction service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    modifiers: Optional[List[str]] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_is_number(cls, value: Any) -> Any:
        return _require_number(value)

    @field_validator("price", mode="before")
    @classmethod
    def _price_is_number(cls, value: Any) -> Any:
        return _require_amount(value)


class StructuredReceipt(BaseModel):
    """Validated structured extraction output."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    items: List[StructuredItem]
    total: Decimal
    customer: Optional[StructuredCustomer] = None

    @field_validator("total", mode="before")
    @classmethod
    def _total_is_number(cls, value: Any) -> Any:
        return _require_amount(value)

    @classmethod
    def from_payload(cls, payload: Any) -> "StructuredReceipt":
        """Validate a decoded JSON payload.

        Raises:
            InvalidShape: naming the first offending field
        """
        if not isinstance(payload, dict):
            raise InvalidShape("Invalid JSON structure: root is not an object")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            error = exc.errors()[0]
            location = ".".join(str(part) for part in error["loc"])
            raise InvalidShape(
                f"Invalid JSON structure: {location}: {error['msg']}",
                field=location,
            ) from exc


@dataclass(frozen=True)
class RawText:
    """Unstructured OCR text."""

    text: str


ExtractionResult = Union[StructuredReceipt, RawText]


class ReceiptExtractor(Protocol):
    """Extraction service collaborator."""

    async def extract(self, images: Sequence[bytes]) -> ExtractionResult:
        ...


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence from a model reply."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _CODE_FENCE_START.sub("", cleaned)
        cleaned = _CODE_FENCE_END.sub("", cleaned)
    return cleaned.strip()


def parse_extraction_response(text: str) -> StructuredReceipt:
    """Parse a generative model reply into a StructuredReceipt.

    Raises:
        InvalidShape: when the reply is empty, not JSON or fails validation
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise InvalidShape("Empty extraction response")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error(f"Failed to parse extraction response: {exc}")
        raise InvalidShape(f"Extraction response is not JSON: {exc}") from exc
    return StructuredReceipt.from_payload(payload)


def coerce_extraction(value: Union[ExtractionResult, dict, str]) -> ExtractionResult:
    """Normalize loose extraction output into the tagged union.

    Dicts are validated as structured receipts, strings become RawText.
    """
    if isinstance(value, (StructuredReceipt, RawText)):
        return value
    if isinstance(value, dict):
        return StructuredReceipt.from_payload(value)
    if isinstance(value, str):
        return RawText(value)
    raise InvalidShape(f"Unsupported extraction result type: {type(value).__name__}")
