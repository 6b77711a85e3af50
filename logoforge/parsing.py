"""
parsing.py — Pull structured data out of free-form model text.

Model output is untrusted: JSON may be bare, fenced, or surrounded by
chatter; SVG may be fenced or inline.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from .errors import AIResponseError

_FENCE = r"```{lang}[ \t]*\r?\n?([\s\S]*?)```"
_SVG_INLINE = re.compile(r"<svg[\s\S]*?</svg>", re.IGNORECASE)


def extract_fenced(text: str, lang: str = "") -> Optional[str]:
    """Body of the first ```lang block, or None. lang='' matches any block."""
    if lang:
        pattern = _FENCE.format(lang=re.escape(lang) + r"(?![\w-])")
    else:
        pattern = _FENCE.format(lang=r"[\w-]*")
    match = re.search(pattern, text or "", re.IGNORECASE)
    return match.group(1).strip() if match else None


def extract_json(text: str) -> Any:
    """
    Locate and decode JSON in a model response.

    Order: ```json block → any fenced block → outermost {...} → whole text.
    """
    if not text or not text.strip():
        raise AIResponseError("Empty response from AI model")

    candidates = []
    fenced = extract_fenced(text, "json")
    if fenced is not None:
        candidates.append(fenced)
    any_fenced = extract_fenced(text)
    if any_fenced is not None:
        candidates.append(any_fenced)
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start:end + 1])
    candidates.append(text.strip())

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    raise AIResponseError(f"Failed to parse JSON from AI response: {text[:120]!r}")


def extract_svg(text: str) -> Optional[str]:
    """SVG markup from a ```svg block, else the first inline <svg>...</svg>."""
    fenced = extract_fenced(text, "svg")
    if fenced and "<svg" in fenced.lower():
        return fenced
    match = _SVG_INLINE.search(text or "")
    return match.group(0).strip() if match else None
