"""
Stage D — SVG logo generation.

Prompts for the selected concept as a hand-written SVG. The response is a
```svg block followed by an optional ```json block of design notes. Output
is checked for shape and forbidden elements here; full validation and
repair happen in Stage E.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

from ..ai_client import TextGenerator, call_model
from ..config import STAGE_D
from ..errors import SvgError
from ..industry import design_principles
from ..models import DesignSpec, GeneratedSvg, Selection, StageResult
from ..parsing import extract_fenced, extract_svg
from ..retry import SleepFn
from ..svg.analysis import parse_svg_metadata
from ..svg.validator import element_pattern, size_of
from .common import elapsed_ms, failure, require

logger = logging.getLogger(__name__)

MAX_SVG_SIZE = 20 * 1024
VIEWBOX = "0 0 300 300"

ALLOWED_ELEMENTS = (
    "svg", "g", "path", "circle", "rect", "ellipse", "line", "polyline", "polygon",
    "text", "tspan", "defs", "linearGradient", "radialGradient", "stop", "title", "desc",
    "clipPath", "mask",
)
FORBIDDEN_ELEMENTS = (
    "script", "foreignObject", "iframe", "image", "embed", "video", "audio", "canvas",
    "object", "animate", "set", "animateMotion", "animateTransform", "a",
)

SYSTEM_PROMPT = f"""\
You are an expert vector logo designer who writes production-ready SVG by hand.

SVG REQUIREMENTS:
- Root element: <svg xmlns="http://www.w3.org/2000/svg" viewBox="{VIEWBOX}">
- Allowed elements: {", ".join(ALLOWED_ELEMENTS)}
- Forbidden elements: {", ".join(FORBIDDEN_ELEMENTS)}
- No event handlers, no external references, no embedded raster images
- Include a <title> with the brand name
- Keep it under 15KB, flat colors preferred, gradients only if essential
- Must read clearly at 32px and at 1024px

OUTPUT FORMAT:
```svg
<svg ...>...</svg>
```
```json
{{"design_notes": "2-3 sentences on form, color and typography choices"}}
```
"""


def build_user_prompt(spec: DesignSpec, selection: Selection) -> str:
    concept = selection.selected_concept
    return (
        f"Brand: {spec.brand_name}\n"
        f"Description: {spec.brand_description}\n"
        f"Audience: {spec.target_audience}\n"
        f"Additional requests: {spec.additional_requests}\n\n"
        f"Concept: {concept.name}\n"
        f"{concept.description}\n"
        f"Style: {concept.style_approach}\n"
        f"Colors: {', '.join(concept.primary_colors)}\n"
        f"Typography: {concept.typography_style}\n"
        f"Imagery: {concept.imagery_elements}\n\n"
        f"Industry guidance ({spec.industry or 'general'}):\n"
        f"{design_principles(spec.industry or '')}"
    )


def parse_generated_svg(text: str) -> GeneratedSvg:
    svg = extract_svg(text)
    if not svg:
        raise SvgError("No SVG found in AI response")
    svg = svg.strip()
    if not svg.lower().startswith("<svg") or not svg.lower().endswith("</svg>"):
        raise SvgError("SVG must start with <svg and end with </svg>")
    size = size_of(svg)
    if size > MAX_SVG_SIZE:
        raise SvgError(f"Generated SVG is too large ({size} bytes, max {MAX_SVG_SIZE})")
    forbidden = [name for name in FORBIDDEN_ELEMENTS if element_pattern(name).search(svg)]
    if forbidden:
        raise SvgError(f"Generated SVG contains forbidden elements: {', '.join(forbidden)}")

    notes = ""
    raw_notes = extract_fenced(text, "json")
    if raw_notes:
        try:
            notes = str(json.loads(raw_notes).get("design_notes", ""))
        except (json.JSONDecodeError, AttributeError):
            notes = raw_notes
    return GeneratedSvg(svg=svg, metadata=parse_svg_metadata(svg), design_notes=notes)


async def run(
    spec: Optional[DesignSpec],
    selection: Optional[Selection],
    *,
    ai: TextGenerator,
    sleep: Optional[SleepFn] = None,
) -> StageResult[GeneratedSvg]:
    started = time.perf_counter()
    tokens = 0
    try:
        require(spec, "Invalid input: design spec is required")
        require(selection, "Invalid input: concept selection is required")

        response = await call_model(
            ai, STAGE_D, SYSTEM_PROMPT, build_user_prompt(spec, selection), sleep=sleep, label="Stage D generation"
        )
        tokens = response.total_tokens
        generated = parse_generated_svg(response.text)
        meta = generated.metadata
        logger.info(
            f"Stage D: {size_of(generated.svg)} bytes, {meta.element_count} elements, "
            f"{meta.width}×{meta.height}"
        )
        return StageResult.ok(generated, tokens, elapsed_ms(started))
    except Exception as e:
        return failure("D", e, started, tokens)
