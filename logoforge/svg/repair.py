"""
repair.py — Deterministic, idempotent fixes for common SVG problems.

  • XML declaration, xmlns and viewBox are injected when missing
  • <title>/<desc> are added using the brand name
  • deny-listed elements are replaced with inert comments (content included)
  • deny-listed attributes are stripped
  • deny-listed URL schemes are rewritten to "removed:"

repair_svg(repair_svg(x).svg).svg == repair_svg(x).svg
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import List, Optional

from .analysis import DEFAULT_SIZE, get_attr, parse_number, rewrite_attributes, root_tag
from .validator import (
    DISALLOWED_ATTRIBUTES,
    DISALLOWED_ELEMENTS,
    DISALLOWED_PROTOCOLS,
    ELEMENT_PREFIX,
    is_disallowed_attribute,
    unsafe_protocol,
)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
SVG_NAMESPACE = "http://www.w3.org/2000/svg"

REMOVED_ELEMENT = "<!-- removed disallowed element -->"
REMOVED_END = "<!-- end removed element -->"
NEUTRAL_PROTOCOL = "removed:"

_ATTR_VALUE = r"""\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)"""


@dataclass
class RepairResult:
    svg: str
    modifications: List[str] = field(default_factory=list)


def _format_size(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _replace_root(svg: str, new_root: str) -> str:
    old = root_tag(svg)
    return svg.replace(old, new_root, 1) if old else svg


def _ensure_declaration(svg: str, mods: List[str]) -> str:
    if svg.lstrip().startswith("<?xml"):
        return svg
    mods.append("Added XML declaration")
    return f"{XML_DECLARATION}\n{svg.lstrip()}"


def _ensure_namespace(svg: str, mods: List[str]) -> str:
    root = root_tag(svg)
    if not root or get_attr(root, "xmlns"):
        return svg
    mods.append("Added xmlns attribute")
    return _replace_root(svg, re.sub(r"^<svg", f'<svg xmlns="{SVG_NAMESPACE}"', root, flags=re.IGNORECASE))


def _ensure_viewbox(svg: str, mods: List[str]) -> str:
    root = root_tag(svg)
    if not root or get_attr(root, "viewBox"):
        return svg
    width = parse_number(get_attr(root, "width"))
    height = parse_number(get_attr(root, "height"))
    width = width or height or DEFAULT_SIZE
    height = height or width
    vb = f"0 0 {_format_size(width)} {_format_size(height)}"
    mods.append(f'Added viewBox="{vb}"')
    return _replace_root(svg, re.sub(r"^<svg", f'<svg viewBox="{vb}"', root, flags=re.IGNORECASE))


def _ensure_accessibility(svg: str, brand_name: str, mods: List[str]) -> str:
    root = root_tag(svg)
    if not root or root.endswith("/>"):
        return svg
    brand = html.escape(brand_name.strip() or "Brand", quote=False)
    inserts = ""
    if not re.search(r"<title[\s>]", svg, re.IGNORECASE):
        inserts += f"<title>{brand} Logo</title>"
        mods.append("Added <title>")
    if not re.search(r"<desc[\s>]", svg, re.IGNORECASE):
        inserts += f"<desc>Logo for {brand}</desc>"
        mods.append("Added <desc>")
    return _replace_root(svg, root + inserts) if inserts else svg


def _strip_elements(svg: str, mods: List[str]) -> str:
    for name in DISALLOWED_ELEMENTS:
        tag = ELEMENT_PREFIX + re.escape(name)
        # paired element with its content, then self-closing, then stray tags
        patterns = [
            (rf"<{tag}(?=[\s>/])[^>]*(?<!/)>[\s\S]*?</{tag}\s*>", REMOVED_ELEMENT),
            (rf"<{tag}(?=[\s>/])[^>]*/>", REMOVED_ELEMENT),
            (rf"<{tag}(?=[\s>/])[^>]*>", REMOVED_ELEMENT),
            (rf"</{tag}\s*>", REMOVED_END),
        ]
        removed = 0
        for pattern, replacement in patterns:
            svg, n = re.subn(pattern, replacement, svg, flags=re.IGNORECASE)
            removed += n
        if removed:
            mods.append(f"Removed disallowed element <{name}> ({removed}x)")
    return svg


def _strip_attributes(svg: str, mods: List[str]) -> str:
    for name in DISALLOWED_ATTRIBUTES:
        svg, n = re.subn(rf"\s{re.escape(name)}{_ATTR_VALUE}", "", svg, flags=re.IGNORECASE)
        if n:
            mods.append(f"Removed disallowed attribute {name} ({n}x)")
    svg, n = re.subn(rf"\son[a-z]+{_ATTR_VALUE}", "", svg, flags=re.IGNORECASE)
    if n:
        mods.append(f"Removed event handler attributes ({n}x)")

    # handlers with no whitespace before them: height="1"onclick=.. or <rect/onclick=..
    dropped: List[str] = []

    def _drop(name: str, value: str) -> Optional[str]:
        if is_disallowed_attribute(name):
            dropped.append(name.lower())
            return ""
        return None

    svg = rewrite_attributes(svg, _drop)
    if dropped:
        mods.append(f"Removed disallowed attributes {', '.join(sorted(set(dropped)))} ({len(dropped)}x)")
    return svg


def _neutralize_protocols(svg: str, mods: List[str]) -> str:
    for protocol in DISALLOWED_PROTOCOLS:
        svg, n = re.subn(re.escape(protocol), NEUTRAL_PROTOCOL, svg, flags=re.IGNORECASE)
        if n:
            mods.append(f"Neutralized {protocol} URLs ({n}x)")

    # schemes hidden behind character references or embedded whitespace
    encoded: List[str] = []

    def _neutralize(name: str, value: str) -> Optional[str]:
        protocol = unsafe_protocol(value)
        if protocol is None:
            return None
        encoded.append(protocol)
        return f'{name}="{NEUTRAL_PROTOCOL}"'

    svg = rewrite_attributes(svg, _neutralize)
    if encoded:
        mods.append(f"Neutralized encoded {', '.join(sorted(set(encoded)))} URLs ({len(encoded)}x)")
    return svg


def repair_svg(svg: str, brand_name: str = "") -> RepairResult:
    """Apply every fix that applies; no-op (empty modifications) on clean input."""
    mods: List[str] = []
    if not svg or root_tag(svg) is None:
        return RepairResult(svg or "", mods)

    svg = _ensure_declaration(svg, mods)
    svg = _ensure_namespace(svg, mods)
    svg = _ensure_viewbox(svg, mods)
    # injected text goes through the same filters below
    svg = _ensure_accessibility(svg, brand_name, mods)
    svg = _strip_elements(svg, mods)
    svg = _strip_attributes(svg, mods)
    svg = _neutralize_protocols(svg, mods)
    return RepairResult(svg, mods)
