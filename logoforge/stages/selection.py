"""
Stage C — Concept selection.

The model scores the three concepts against the DesignSpec and picks one.
manual_selection() bypasses the model when the caller already chose.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from ..ai_client import TextGenerator, call_model
from ..config import STAGE_C
from ..errors import AIResponseError, InputValidationError
from ..models import Concept, DesignSpec, Selection, StageResult
from ..parsing import extract_json
from ..retry import SleepFn
from .common import elapsed_ms, failure, require, require_text

logger = logging.getLogger(__name__)

MANUAL_RATIONALE = "Manually selected by user."
MANUAL_SCORE = 100

SYSTEM_PROMPT = """\
You are a senior creative director choosing which logo concept goes to production.

Score each concept against the brand requirements with these weights:
- Alignment with brand description and audience: 30
- Fit with requested style and colors: 25
- Distinctiveness / memorability: 20
- Scalability and simplicity (works at favicon size): 15
- Feasibility as a clean vector SVG: 10

Return ONLY JSON:
{
  "selected_concept_index": <0-based integer>,
  "selection_rationale": "at least one full sentence explaining the choice",
  "score": <number 0-100>
}
"""


def build_user_prompt(spec: DesignSpec, concepts: List[Concept]) -> str:
    lines = [
        f"Brand: {spec.brand_name}",
        f"Description: {spec.brand_description}",
        f"Style preferences: {spec.style_preferences}",
        f"Colors: {spec.color_palette}",
        f"Audience: {spec.target_audience}",
        "",
        "Concepts:",
    ]
    for i, c in enumerate(concepts):
        lines += [
            f"[{i}] {c.name} — {c.style_approach}",
            f"    {c.description}",
            f"    Colors: {', '.join(c.primary_colors)} | Type: {c.typography_style}",
            f"    Imagery: {c.imagery_elements}",
        ]
    return "\n".join(lines)


def parse_selection(text: str, concepts: List[Concept]) -> Selection:
    data = extract_json(text)
    if not isinstance(data, dict):
        raise AIResponseError("AI response is not a JSON object")

    index = data.get("selected_concept_index")
    if isinstance(index, bool) or not isinstance(index, int):
        raise AIResponseError("selected_concept_index must be an integer")
    if not 0 <= index < len(concepts):
        raise AIResponseError(f"selected_concept_index {index} is out of range")

    rationale = require_text(data, "selection_rationale", 20)

    score = data.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise AIResponseError("score must be a number")

    return Selection(
        selected_concept=concepts[index],
        selected_index=index,
        rationale=rationale,
        score=score,
    )


def manual_selection(concepts: List[Concept], index: int) -> Selection:
    """Caller-forced choice: fixed rationale, maximal score, no model call."""
    if not concepts or isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(concepts):
        raise InputValidationError("Invalid manual concept selection index")
    return Selection(
        selected_concept=concepts[index],
        selected_index=index,
        rationale=MANUAL_RATIONALE,
        score=MANUAL_SCORE,
    )


async def run(
    spec: Optional[DesignSpec],
    concepts: Optional[List[Concept]],
    *,
    ai: TextGenerator,
    sleep: Optional[SleepFn] = None,
) -> StageResult[Selection]:
    started = time.perf_counter()
    tokens = 0
    try:
        require(spec, "Invalid input: design spec is required")
        require(concepts, "Invalid input: concepts are required")

        response = await call_model(
            ai, STAGE_C, SYSTEM_PROMPT, build_user_prompt(spec, concepts), sleep=sleep, label="Stage C selection"
        )
        tokens = response.total_tokens
        selection = parse_selection(response.text, concepts)
        logger.info(f"Stage C: selected [{selection.selected_index}] {selection.selected_concept.name} ({selection.score:.0f})")
        return StageResult.ok(selection, tokens, elapsed_ms(started))
    except Exception as e:
        return failure("C", e, started, tokens)
