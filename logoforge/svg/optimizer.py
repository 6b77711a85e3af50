"""
optimizer.py — SVG minification.

The engine accepts any object with `optimize(svg) -> str`; MinifyingOptimizer
is the built-in one. Its output is always re-validated by the engine.
"""

from __future__ import annotations

import re
from typing import Callable, List, Protocol, Tuple


class SvgOptimizer(Protocol):
    def optimize(self, svg: str) -> str:
        ...


class MinifyingOptimizer:
    """Text-level minifier: comments, metadata, editor cruft, whitespace, precision."""

    def __init__(self, precision: int = 2) -> None:
        self.precision = precision
        self.applied: List[str] = []

    def optimize(self, svg: str) -> str:
        self.applied = []
        for label, fn in self._passes():
            before = svg
            svg = fn(svg)
            if svg != before:
                self.applied.append(label)
        return svg.strip()

    def _passes(self) -> List[Tuple[str, Callable[[str], str]]]:
        return [
            ("removed comments", lambda s: re.sub(r"<!--[\s\S]*?-->", "", s)),
            ("removed metadata", lambda s: re.sub(r"<metadata[\s\S]*?</metadata>", "", s, flags=re.IGNORECASE)),
            ("removed editor data", self._strip_editor_data),
            ("trimmed decimals", self._trim_decimals),
            ("removed empty attributes", lambda s: re.sub(r"\s[\w:-]+=\"\"", "", s)),
            ("removed empty groups", self._strip_empty_groups),
            ("collapsed whitespace", self._collapse_whitespace),
        ]

    @staticmethod
    def _strip_editor_data(svg: str) -> str:
        svg = re.sub(r"<(sodipodi|inkscape):[\w-]+[^>]*/>", "", svg)
        svg = re.sub(r"<(sodipodi|inkscape):([\w-]+)[^>]*>[\s\S]*?</\1:\2>", "", svg)
        return re.sub(r"\s(xmlns:)?(inkscape|sodipodi|sketch)(:[\w-]+)?=\"[^\"]*\"", "", svg)

    def _trim_decimals(self, svg: str) -> str:
        pattern = re.compile(rf"(\d+\.\d{{{self.precision}}})\d+")
        return pattern.sub(r"\1", svg)

    @staticmethod
    def _strip_empty_groups(svg: str) -> str:
        previous = None
        while previous != svg:
            previous = svg
            svg = re.sub(r"<g(\s[^>]*)?>\s*</g>|<g(\s[^>]*)?/>", "", svg)
        return svg

    @staticmethod
    def _collapse_whitespace(svg: str) -> str:
        svg = re.sub(r">\s+<", "><", svg)
        return re.sub(r"[ \t\r\n]{2,}", " ", svg)
