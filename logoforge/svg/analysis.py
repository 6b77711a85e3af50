"""
analysis.py — Coarse structural reads of an SVG string.

Regex-level only: element counts, root attributes, nesting. Enough for
metadata, heuristics and the validator's balance/depth checks without a
full XML parse of untrusted input.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterator, Optional, Tuple

from ..models import SvgMetadata

DEFAULT_SIZE = 300

SHAPE_ELEMENTS = ("path", "circle", "rect", "polygon", "polyline", "text", "g", "line", "ellipse")

_TAG = re.compile(r"<(/?)([a-zA-Z][\w:.-]*)((?:\"[^\"]*\"|'[^']*'|[^'\">])*?)(/?)>")
_ROOT = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_NUMBER = re.compile(r"-?\d*\.?\d+(?:e-?\d+)?", re.IGNORECASE)
_ATTRIBUTE = re.compile(
    r"(?P<sep>[\s/]*)(?P<name>[^\s\"'<>/=]+)\s*=\s*(?P<value>\"[^\"]*\"|'[^']*'|[^\s\"'>]+)"
)


def iter_tags(svg: str) -> Iterator[Tuple[str, str, bool]]:
    """Yield (kind, name, self_closing) with kind 'open' or 'close'."""
    for m in _TAG.finditer(svg or ""):
        closing, name, _attrs, self_closing = m.groups()
        yield ("close" if closing else "open", name, bool(self_closing))


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def iter_attributes(svg: str) -> Iterator[Tuple[str, str]]:
    """
    Yield (name, raw value) for every attribute of every opening tag.

    Names are read per tag, so text inside a quoted value is never taken for
    an attribute, while `height="1"onclick=..` and `<rect/onclick=..` still are.
    Values are returned undecoded (character references intact).
    """
    for m in _TAG.finditer(svg or ""):
        if m.group(1):
            continue
        for attr in _ATTRIBUTE.finditer(m.group(3)):
            yield attr.group("name"), _unquote(attr.group("value"))


def rewrite_attributes(svg: str, fn: Callable[[str, str], Optional[str]]) -> str:
    """
    Rebuild every opening tag, asking fn(name, raw value) about each attribute.

    fn returns None to keep the attribute, "" to drop it, or replacement
    attribute text such as 'href="removed:"'.
    """
    def _attribute(attr: "re.Match[str]") -> str:
        replacement = fn(attr.group("name"), _unquote(attr.group("value")))
        if replacement is None:
            return attr.group(0)
        return f" {replacement}" if replacement else " "

    def _tag(m: "re.Match[str]") -> str:
        closing, name, attrs, self_closing = m.groups()
        if closing:
            return m.group(0)
        return f"<{name}{_ATTRIBUTE.sub(_attribute, attrs)}{self_closing}>"

    return _TAG.sub(_tag, svg)


def root_tag(svg: str) -> Optional[str]:
    match = _ROOT.search(svg or "")
    return match.group(0) if match else None


def get_attr(tag: str, name: str) -> Optional[str]:
    match = re.search(rf"\s{re.escape(name)}\s*=\s*([\"'])(.*?)\1", tag or "", re.IGNORECASE)
    return match.group(2) if match else None


def parse_number(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = _NUMBER.search(value)
    return float(match.group(0)) if match else None


def viewbox(svg: str) -> Optional[Tuple[float, float, float, float]]:
    """(min_x, min_y, width, height) from the root viewBox, or None."""
    raw = get_attr(root_tag(svg) or "", "viewBox")
    if not raw:
        return None
    parts = [float(p) for p in _NUMBER.findall(raw)]
    if len(parts) != 4:
        return None
    return parts[0], parts[1], parts[2], parts[3]


def dimensions(svg: str) -> Tuple[float, float]:
    """Width/height from viewBox, then width/height attributes, else 300×300."""
    vb = viewbox(svg)
    if vb and vb[2] > 0 and vb[3] > 0:
        return vb[2], vb[3]
    root = root_tag(svg) or ""
    width = parse_number(get_attr(root, "width"))
    height = parse_number(get_attr(root, "height"))
    width = width or height or DEFAULT_SIZE
    height = height or width
    return width, height


def count_elements(svg: str, names: Tuple[str, ...] = SHAPE_ELEMENTS) -> Dict[str, int]:
    counts = {name: 0 for name in names}
    for kind, name, _ in iter_tags(svg):
        if kind == "open" and name in counts:
            counts[name] += 1
    return counts


def total_elements(svg: str) -> int:
    return sum(1 for kind, _, _ in iter_tags(svg) if kind == "open")


def has_gradients(svg: str) -> bool:
    return bool(re.search(r"<(linear|radial)Gradient\b", svg or "", re.IGNORECASE))


def max_depth(svg: str) -> int:
    depth = deepest = 0
    for kind, _, self_closing in iter_tags(svg):
        if kind == "open" and not self_closing:
            depth += 1
            deepest = max(deepest, depth)
        elif kind == "close":
            depth = max(0, depth - 1)
    return deepest


def top_level_tag_count(svg: str) -> int:
    """Number of direct children of the root <svg> element (title/desc excluded)."""
    depth = 0
    count = 0
    for kind, name, self_closing in iter_tags(svg):
        if kind == "open":
            if depth == 1 and name not in ("title", "desc", "defs", "metadata", "style"):
                count += 1
            if not self_closing:
                depth += 1
        else:
            depth = max(0, depth - 1)
    return count


def parse_svg_metadata(svg: str) -> SvgMetadata:
    width, height = dimensions(svg)
    return SvgMetadata(
        width=int(width),
        height=int(height),
        element_count=sum(count_elements(svg).values()),
        has_gradients=has_gradients(svg),
    )
