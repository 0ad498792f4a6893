"""ESC/POS encoding for thermal receipt printers.

Converts rendered receipt text and receipt view images into the raw
command bytes understood by ESC/POS printers (58mm and 80mm paper,
203 DPI, i.e. 8 dots per mm).
"""

import logging
from enum import Enum

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

DOTS_PER_MM = 8


def mm_to_dots(width_mm: float) -> int:
    """Printable width in dots, rounded down to a whole byte."""
    return int(width_mm * DOTS_PER_MM) // 8 * 8


class Alignment(Enum):
    """Text alignment options."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class LayoutEngine:
    """Engine for encoding receipt output as ESC/POS commands.

    Text is encoded with a single-byte code page (CP437 by default);
    characters outside it are replaced rather than failing the print.
    """

    # ESC/POS command constants
    ESC = b'\x1b'
    GS = b'\x1d'
    LF = b'\x0a'

    def __init__(self, encoding: str = "cp437"):
        self.encoding = encoding

    def cmd_init(self) -> bytes:
        """Initialize printer command."""
        return self.ESC + b'@'

    def cmd_cut(self, partial: bool = True) -> bytes:
        """Paper cut command (GS V m, m=1 partial, m=0 full)."""
        return self.GS + b'V' + (b'\x01' if partial else b'\x00')

    def cmd_feed(self, lines: int) -> bytes:
        """Feed n lines (ESC d n)."""
        lines = max(0, min(lines, 255))
        return self.ESC + b'd' + bytes([lines])

    def cmd_align(self, alignment: Alignment) -> bytes:
        """Set text alignment."""
        align_byte = {
            Alignment.LEFT: b'\x00',
            Alignment.CENTER: b'\x01',
            Alignment.RIGHT: b'\x02',
        }
        return self.ESC + b'a' + align_byte.get(alignment, b'\x00')

    def encode_text(self, text: str) -> bytes:
        """Encode text for the printer, left aligned."""
        return self.cmd_align(Alignment.LEFT) + text.encode(self.encoding, errors='replace')

    def encode_image(
        self,
        image: Image.Image,
        width_dots: int,
        alignment: Alignment = Alignment.CENTER,
    ) -> bytes:
        """Encode an image as a raster bit image (GS v 0).

        The image is scaled to ``width_dots`` and dithered to 1 bit.
        """
        if width_dots <= 0 or width_dots % 8 != 0:
            raise ValueError(f"Raster width must be a positive multiple of 8, got {width_dots}")

        aspect = image.height / image.width
        target_height = max(1, int(width_dots * aspect))
        img = image.convert('L').resize((width_dots, target_height), Image.Resampling.LANCZOS)
        img = img.convert('1', dither=Image.Dither.FLOYDSTEINBERG)
        return self._image_to_raster(img, alignment)

    def _image_to_raster(self, img: Image.Image, alignment: Alignment) -> bytes:
        """Convert a 1-bit PIL image to ESC/POS raster commands."""
        width, height = img.size
        bytes_per_line = width // 8

        # Mode "1" pixels are 0 for black; the printer wants 1 for a burnt dot
        pixels = np.asarray(img, dtype=bool)
        raster_data = np.packbits(~pixels, axis=1).tobytes()

        # GS v 0 m xL xH yL yH data
        commands = [
            self.cmd_align(alignment),
            self.GS + b'v0',
            b'\x00',
            bytes([bytes_per_line & 0xFF, (bytes_per_line >> 8) & 0xFF]),
            bytes([height & 0xFF, (height >> 8) & 0xFF]),
            raster_data,
        ]
        return b''.join(commands)

