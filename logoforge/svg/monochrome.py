"""
monochrome.py — Rule-based black / white / favicon conversions.

Used by the variants stage whenever the AI path fails or returns something
that does not validate.
"""

from __future__ import annotations

import re

from .analysis import dimensions, root_tag, viewbox
from .repair import SVG_NAMESPACE

BLACK = "#000000"
WHITE = "#FFFFFF"

_KEEP_PAINT = ("none", "transparent", "currentcolor", "inherit")


def _paint(match: "re.Match[str]", color: str) -> str:
    attr, quote, value = match.group(1), match.group(2), match.group(3)
    if value.strip().lower() in _KEEP_PAINT:
        return match.group(0)
    return f"{attr}={quote}{color}{quote}"


def _style_paint(match: "re.Match[str]", color: str) -> str:
    prop, value = match.group(1), match.group(2)
    if value.strip().lower() in _KEEP_PAINT:
        return match.group(0)
    return f"{prop}:{color}"


class MonochromeConverter:
    """Deterministic colour flattening; every method returns a new string."""

    @staticmethod
    def ensure_namespace(svg: str) -> str:
        root = root_tag(svg)
        if not root or "xmlns=" in root:
            return svg
        return svg.replace(root, root.replace("<svg", f'<svg xmlns="{SVG_NAMESPACE}"', 1), 1)

    def to_color(self, svg: str, color: str) -> str:
        svg = self.ensure_namespace(svg)
        svg = re.sub(r"<style[\s\S]*?</style>", "", svg, flags=re.IGNORECASE)
        svg = re.sub(r"<(linearGradient|radialGradient)\b[\s\S]*?</\1>", "", svg)
        svg = re.sub(r"<(linearGradient|radialGradient)\b[^>]*/>", "", svg)
        svg = re.sub(r"url\(#[^)]*\)", color, svg)
        svg = re.sub(
            r"\b(fill|stroke|stop-color)=([\"'])(.*?)\2",
            lambda m: _paint(m, color),
            svg,
        )
        svg = re.sub(
            r"\b(fill|stroke|stop-color)\s*:\s*([^;\"']+)",
            lambda m: _style_paint(m, color),
            svg,
        )
        return svg

    def to_black(self, svg: str) -> str:
        return self.to_color(svg, BLACK)

    def to_white(self, svg: str) -> str:
        return self.to_black(svg).replace(BLACK, WHITE)

    def to_favicon(self, svg: str) -> str:
        """Square, centred viewBox on the larger dimension, titled 'Favicon'."""
        svg = self.ensure_namespace(svg)
        root = root_tag(svg)
        if not root:
            return svg

        vb = viewbox(svg)
        min_x, min_y = (vb[0], vb[1]) if vb else (0.0, 0.0)
        width, height = dimensions(svg)
        size = max(width, height)
        min_x -= (size - width) / 2
        min_y -= (size - height) / 2
        square = f"{min_x:g} {min_y:g} {size:g} {size:g}"

        new_root = re.sub(r"\s(viewBox|width|height)\s*=\s*([\"']).*?\2", "", root)
        new_root = re.sub(r"^<svg", f'<svg viewBox="{square}"', new_root)
        svg = svg.replace(root, new_root, 1)

        svg = re.sub(r"<title[\s\S]*?</title>", "", svg, flags=re.IGNORECASE)
        return svg.replace(new_root, f"{new_root}<title>Favicon</title>", 1)
