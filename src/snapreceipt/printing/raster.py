"""Receipt view rasterization.

Draws the column text layout onto a white image so image-capable thermal
printers can print it as a bitmap. The view is what a printer connection
captures; scaling to the device's dot width happens at capture time.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple, Union

from PIL import Image, ImageDraw, ImageFont

from snapreceipt.printing.templates import TemplateParams

logger = logging.getLogger(__name__)

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

# Rendered at 80mm width (576 dots); narrower printers scale down
VIEW_WIDTH = 576
MARGIN_X = 8
MARGIN_Y = 12
LINE_SPACING = 4

FONT_PATHS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/System/Library/Fonts/Menlo.ttc",
    "/System/Library/Fonts/Monaco.ttf",
    "C:/Windows/Fonts/consola.ttf",
]


@dataclass(frozen=True)
class ReceiptView:
    """A rasterized receipt ready to be captured by a printer connection."""

    image: Image.Image
    line_width: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


@lru_cache(maxsize=16)
def _load_font(line_width: int, width: int) -> FontType:
    """Largest monospace font that fits ``line_width`` characters in ``width``."""
    usable = width - 2 * MARGIN_X
    for path in FONT_PATHS:
        for size in range(32, 7, -1):
            try:
                font = ImageFont.truetype(path, size)
            except OSError:
                break
            if font.getlength("M" * line_width) <= usable:
                return font
    logger.info("No monospace TrueType font found, using Pillow default font")
    return ImageFont.load_default()


def _line_height(font: FontType) -> int:
    left, top, right, bottom = font.getbbox("Ag")
    return int(bottom) + LINE_SPACING


def render_receipt_view(lines: List[str], params: TemplateParams, width: int = VIEW_WIDTH) -> ReceiptView:
    """Render column text lines to a grayscale receipt image."""
    font = _load_font(params.line_width, width)
    line_height = _line_height(font)
    height = 2 * MARGIN_Y + line_height * max(1, len(lines))

    image = Image.new("L", (width, height), 255)
    draw = ImageDraw.Draw(image)
    y = MARGIN_Y
    for line in lines:
        if line:
            draw.text((MARGIN_X, y), line, fill=0, font=font)
        y += line_height

    return ReceiptView(image=image, line_width=params.line_width)
