"""
validator.py — Structural, security, size and accessibility checks for SVG.

validate_svg() is pure: it never touches the input. A warning is critical
(forces is_valid=False) iff it mentions "disallowed", "Missing <svg>" or
"suspiciously small"; every other warning is advisory.

Checks, in order:
  1. empty string
  2. size within [MIN_SVG_SIZE, MAX_SVG_SIZE]
  3. <svg present (stops here if not)
  4. viewBox or width+height
  5. deny-listed elements
  6. deny-listed attributes (every on* handler, read tag by tag)
  7. deny-listed URL schemes, raw and after decoding attribute values
  8. tag balance
  9. xmlns on the root
 10. <title>/<desc>
"""

from __future__ import annotations

import html
import re
from typing import List, Optional

from ..models import ValidationResult
from .analysis import get_attr, iter_attributes, iter_tags, max_depth, root_tag, total_elements

MAX_SVG_SIZE = 15 * 1024
MIN_SVG_SIZE = 50
MAX_NESTING_DEPTH = 20
MAX_ELEMENTS = 1000

DISALLOWED_ELEMENTS = (
    "script", "foreignObject", "iframe", "image", "embed", "video", "audio", "canvas",
    "object", "animate", "set", "animateMotion", "animateTransform", "animateColor",
)

DISALLOWED_ATTRIBUTES = (
    "onabort", "onactivate", "onbegin", "oncancel", "oncanplay", "oncanplaythrough",
    "onchange", "onclick", "onclose", "oncuechange", "ondblclick", "ondrag", "ondragend",
    "ondragenter", "ondragleave", "ondragover", "ondragstart", "ondrop", "ondurationchange",
    "onemptied", "onend", "onended", "onerror", "onfocus", "onfocusin", "onfocusout",
    "oninput", "oninvalid", "onkeydown", "onkeypress", "onkeyup", "onload", "onloadeddata",
    "onloadedmetadata", "onloadstart", "onmousedown", "onmouseenter", "onmouseleave",
    "onmousemove", "onmouseout", "onmouseover", "onmouseup", "onmousewheel", "onpause",
    "onplay", "onplaying", "onprogress", "onratechange", "onrepeat", "onreset", "onresize",
    "onscroll", "onseeked", "onseeking", "onselect", "onshow", "onstalled", "onsubmit",
    "onsuspend", "ontimeupdate", "ontoggle", "onunload", "onvolumechange", "onwaiting",
    "onzoom", "eval", "javascript",
)

DISALLOWED_PROTOCOLS = ("javascript:", "data:text/html", "vbscript:")

CRITICAL_MARKERS = ("disallowed", "Missing <svg>", "suspiciously small")

# optional namespace prefix: <svg:script> is a script element too
ELEMENT_PREFIX = r"(?:[\w.-]+:)?"

_ANY_HANDLER = re.compile(r"\s(on[a-z]+)\s*=", re.IGNORECASE)
_HANDLER_NAME = re.compile(r"on[a-z]+")
_EXTERNAL_HREF = re.compile(r"href\s*=\s*[\"']\s*(https?:)?//", re.IGNORECASE)
# URL parsers drop these before reading the scheme
_URL_NOISE = re.compile(r"[\x00-\x20\x7f]+")


def element_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf"<{ELEMENT_PREFIX}{re.escape(name)}(?=[\s>/])", re.IGNORECASE)


def attribute_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf"\s{re.escape(name)}\s*=", re.IGNORECASE)


def is_disallowed_attribute(name: str) -> bool:
    local = name.rsplit(":", 1)[-1].lower()
    return local in DISALLOWED_ATTRIBUTES or bool(_HANDLER_NAME.fullmatch(local))


def decode_url(value: str) -> str:
    """Attribute value as the browser reads it: references decoded, blanks and controls gone."""
    return _URL_NOISE.sub("", html.unescape(value)).lower()


def unsafe_protocol(value: str) -> Optional[str]:
    decoded = decode_url(value)
    return next((p for p in DISALLOWED_PROTOCOLS if p in decoded), None)


def is_critical(warning: str) -> bool:
    lowered = warning.lower()
    return any(marker.lower() in lowered for marker in CRITICAL_MARKERS)


def size_of(svg: str) -> int:
    return len(svg.encode("utf-8"))


# ── Individual checks ─────────────────────────────────────────────────────────

def find_disallowed_elements(svg: str) -> List[str]:
    return [name for name in DISALLOWED_ELEMENTS if element_pattern(name).search(svg)]


def find_disallowed_attributes(svg: str) -> List[str]:
    found = [name for name in DISALLOWED_ATTRIBUTES if attribute_pattern(name).search(svg)]
    # any handler the enumerated list doesn't cover, including ones glued to a quote or slash
    handlers = [m.group(1) for m in _ANY_HANDLER.finditer(svg)]
    handlers += [name for name, _ in iter_attributes(svg) if is_disallowed_attribute(name)]
    for name in handlers:
        local = name.rsplit(":", 1)[-1].lower()
        if local not in found:
            found.append(local)
    return found


def find_disallowed_protocols(svg: str) -> List[str]:
    lowered = svg.lower()
    found = [p for p in DISALLOWED_PROTOCOLS if p in lowered]
    # entity-encoded or whitespace-split schemes only show up once decoded
    for _, value in iter_attributes(svg):
        protocol = unsafe_protocol(value)
        if protocol and protocol not in found:
            found.append(protocol)
    return found


def _tag_balance(svg: str) -> int:
    opened = closed = 0
    for kind, _, self_closing in iter_tags(svg):
        if kind == "close":
            closed += 1
        elif not self_closing:
            opened += 1
    return opened - closed


# ── Scores ────────────────────────────────────────────────────────────────────

def _security_score(svg: str, elements: List[str], attributes: List[str], protocols: List[str]) -> int:
    score = 100
    if "script" in elements:
        score -= 25
    if any(e != "script" for e in elements):
        score -= 25
    if attributes:
        score -= 25
    if protocols:
        score -= 25
    if _EXTERNAL_HREF.search(svg):
        score -= 10
    if size_of(svg) > MAX_SVG_SIZE:
        score -= 10
    if total_elements(svg) > MAX_ELEMENTS:
        score -= 10
    return max(0, score)


def _accessibility_score(svg: str) -> int:
    score = 100
    if not re.search(r"<title[\s>]", svg, re.IGNORECASE) and not re.search(r"<desc[\s>]", svg, re.IGNORECASE):
        score -= 50
    root = root_tag(svg) or ""
    if not get_attr(root, "viewBox") and not (get_attr(root, "width") and get_attr(root, "height")):
        score -= 20
    return max(0, score)


def _optimization_score(svg: str) -> int:
    score = 100
    if re.search(r">\s{2,}<|\n\s*\n", svg):
        score -= 10
    if "<!--" in svg:
        score -= 5
    if re.search(r"<g[^>]*>\s*</g>", svg):
        score -= 5
    if re.search(r"<metadata[\s>]", svg, re.IGNORECASE):
        score -= 5
    if re.search(r"(inkscape|sodipodi|sketch):", svg):
        score -= 10
    long_decimals = len(re.findall(r"\d+\.\d{4,}", svg))
    score -= min(20, long_decimals)
    size = size_of(svg)
    if size > 10 * 1024:
        score -= 15
    elif size > 5 * 1024:
        score -= 5
    return max(0, score)


# ── Entry point ───────────────────────────────────────────────────────────────

def _result(issues: List[str], svg: Optional[str] = None, security: int = 0) -> ValidationResult:
    critical = [w for w in issues if is_critical(w)]
    if svg is None:
        # nothing usable to score
        return ValidationResult(False, issues, critical, 0, 0, 0)
    return ValidationResult(
        is_valid=not critical,
        issues=issues,
        critical_issues=critical,
        security_score=security,
        accessibility_score=_accessibility_score(svg),
        optimization_score=_optimization_score(svg),
    )


def validate_svg(svg: str, max_size: int = MAX_SVG_SIZE, min_size: int = MIN_SVG_SIZE) -> ValidationResult:
    """Run every check and return the collected warnings plus scores."""
    if not svg or not svg.strip():
        return _result(["Missing <svg> element: SVG content is empty"])

    issues: List[str] = []
    size = size_of(svg)
    if size > max_size:
        issues.append(f"SVG exceeds maximum size of {max_size // 1024}KB ({size} bytes)")
    if size < min_size:
        issues.append(f"SVG is suspiciously small ({size} bytes)")

    root = root_tag(svg)
    if root is None:
        issues.append("Missing <svg> element")
        return _result(issues)

    if not get_attr(root, "viewBox") and not (get_attr(root, "width") and get_attr(root, "height")):
        issues.append("Missing viewBox or width/height attributes")

    elements = find_disallowed_elements(svg)
    issues += [f"Contains disallowed element: <{name}>" for name in elements]

    attributes = find_disallowed_attributes(svg)
    issues += [f"Contains disallowed attribute: {name}" for name in attributes]

    protocols = find_disallowed_protocols(svg)
    issues += [f"Contains disallowed protocol: {p}" for p in protocols]

    balance = _tag_balance(svg)
    if balance:
        issues.append(f"Unbalanced tags: {abs(balance)} {'unclosed' if balance > 0 else 'extra closing'} tag(s)")

    depth = max_depth(svg)
    if depth > MAX_NESTING_DEPTH:
        issues.append(f"Excessive nesting depth ({depth} levels)")

    if not get_attr(root, "xmlns"):
        issues.append("Missing xmlns attribute on root <svg>")

    if not re.search(r"<(title|desc)[\s>]", svg, re.IGNORECASE):
        issues.append("Missing <title> or <desc> element for accessibility")

    return _result(issues, svg, security=_security_score(svg, elements, attributes, protocols))
