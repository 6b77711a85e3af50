"""
raster.py — SVG → PNG / ICO conversion.

The variants stage takes any Rasterizer; CairoRasterizer is the default.
"""

from __future__ import annotations

import io
import logging
from typing import Protocol

from PIL import Image

from .errors import ConversionError

logger = logging.getLogger(__name__)


class Rasterizer(Protocol):
    def render_png(self, svg: str, size: int) -> bytes:
        ...


class CairoRasterizer:
    """Renders with cairosvg. External resources are never fetched."""

    def render_png(self, svg: str, size: int) -> bytes:
        import cairosvg  # needs the native cairo library; loaded on first render

        try:
            return cairosvg.svg2png(
                bytestring=svg.encode("utf-8"),
                output_width=size,
                output_height=size,
                unsafe=False,
            )
        except Exception as e:
            raise ConversionError(f"PNG rendering failed at {size}px: {e}") from e


def png_to_ico(png_bytes: bytes, size: int = 32) -> bytes:
    """Single-image ICO from a PNG (Pillow)."""
    try:
        with Image.open(io.BytesIO(png_bytes)) as img:
            buf = io.BytesIO()
            img.convert("RGBA").save(buf, format="ICO", sizes=[(size, size)])
            return buf.getvalue()
    except Exception as e:
        raise ConversionError(f"ICO conversion failed: {e}") from e
