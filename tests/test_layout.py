from __future__ import annotations

import pytest
from PIL import Image

from snapreceipt.printing.layout import LayoutEngine, mm_to_dots
from snapreceipt.printing.raster import render_receipt_view
from snapreceipt.printing.text import render_column_text

DATE_TIME = "Wed, 25/11/2025 11:50 AM"


def test_mm_to_dots_rounds_down_to_whole_bytes() -> None:
    assert mm_to_dots(72) == 576
    assert mm_to_dots(48) == 384
    assert mm_to_dots(47.9) == 376


def test_commands() -> None:
    engine = LayoutEngine()

    assert engine.cmd_init() == b"\x1b@"
    assert engine.cmd_cut() == b"\x1dV\x01"
    assert engine.cmd_cut(partial=False) == b"\x1dV\x00"
    assert engine.cmd_feed(3) == b"\x1bd\x03"
    assert engine.cmd_feed(1000) == b"\x1bd\xff"


def test_encode_text_replaces_unsupported_characters() -> None:
    data = LayoutEngine().encode_text("Café ☃\n")

    assert data.endswith(b"Caf\x82 ?\n")


def test_encode_image_packs_raster_rows() -> None:
    image = Image.new("L", (16, 2), 255)
    image.putpixel((0, 0), 0)

    data = LayoutEngine().encode_image(image, 16)

    header = b"\x1dv0\x00" + bytes([2, 0]) + bytes([2, 0])
    assert header in data
    raster = data[data.index(header) + len(header):]
    assert len(raster) == 4
    assert raster[0] & 0x80
    assert raster[2:] == b"\x00\x00"


def test_encode_image_rejects_bad_width() -> None:
    with pytest.raises(ValueError):
        LayoutEngine().encode_image(Image.new("L", (8, 8), 255), 12)


def test_receipt_view(model, classic) -> None:
    lines = render_column_text(model, classic, "Shop", DATE_TIME)

    view = render_receipt_view(lines, classic)

    assert view.line_width == 42
    assert view.image.mode == "L"
    assert view.size[0] == 576
    assert view.size[1] > len(lines)
    assert view.image.getextrema()[0] < 128
