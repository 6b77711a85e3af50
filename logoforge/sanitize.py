"""
sanitize.py — Scrub user-supplied brief text before it reaches a prompt.

Known prompt-injection phrases, script fragments and template syntax are
replaced with [FILTERED]; everything is length-capped.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .errors import InputValidationError
from .models import FILTERED

MAX_BRIEF_LENGTH = 2000
MIN_BRIEF_LENGTH = 10
MAX_DESC_LENGTH = 500
MAX_DESCRIPTIONS = 3

DANGEROUS_PATTERNS = [
    re.compile(r"ignore\s+(all\s+)?previous\s+instructions", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"assistant\s*:", re.IGNORECASE),
    re.compile(r"<script.*?>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<script.*?>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"onerror\s*=", re.IGNORECASE),
    re.compile(r"onload\s*=", re.IGNORECASE),
    re.compile(r"\{\{.*?\}\}"),
    re.compile(r"\$\{[^}]*\}"),
    re.compile(r"```[\s\S]*?```"),
    re.compile(r"prompt\s*injection", re.IGNORECASE),
    re.compile(r"jailbreak", re.IGNORECASE),
    re.compile(r"override\s+instructions", re.IGNORECASE),
]


def sanitize_text(value: str, max_length: int, field_name: str = "input") -> str:
    """Trim, filter dangerous patterns, then truncate with '...'."""
    if not isinstance(value, str):
        raise InputValidationError(f"Invalid {field_name}: must be a string, got {type(value).__name__}")

    cleaned = value.strip()
    for pattern in DANGEROUS_PATTERNS:
        cleaned = pattern.sub(FILTERED, cleaned)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."
    return cleaned


def sanitize_brief(text: str) -> str:
    if not text or not text.strip():
        raise InputValidationError("Invalid input: brief cannot be empty.")
    cleaned = sanitize_text(text, MAX_BRIEF_LENGTH, "brief")
    if len(cleaned) < MIN_BRIEF_LENGTH:
        raise InputValidationError(
            "Brief is too short. Please provide more details about your logo requirements."
        )
    return cleaned


def sanitize_image_descriptions(descriptions: Optional[List[str]]) -> List[str]:
    if not descriptions:
        return []
    cleaned = [
        sanitize_text(desc, MAX_DESC_LENGTH, f"image description {i + 1}")
        for i, desc in enumerate(descriptions)
    ]
    return [d for d in cleaned if d and d != FILTERED][:MAX_DESCRIPTIONS]
