"""
Stage B — Moodboard / concept generation.

Asks for exactly three distinct creative directions for the DesignSpec and
validates each one field by field. analyze_concepts() adds advisory
diversity / originality / quality notes that are logged but never fatal.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..ai_client import TextGenerator, call_model
from ..config import STAGE_B
from ..errors import AIResponseError
from ..models import Concept, DesignSpec, StageResult
from ..parsing import extract_json
from ..retry import SleepFn
from .common import elapsed_ms, failure, require, require_text

logger = logging.getLogger(__name__)

CONCEPT_COUNT = 3

SYSTEM_PROMPT = """\
You are an award-winning brand identity designer. From the design requirements
you are given, propose THREE clearly different logo concepts.

Each concept must take a different creative route (e.g. one geometric / abstract,
one illustrative / symbolic, one typographic). Avoid clichés: swooshes, globes,
handshakes, lightbulbs for ideas, arrows going up for growth.

Return ONLY JSON in this exact shape:
{
  "concepts": [
    {
      "name": "short evocative concept name",
      "description": "2-4 sentences describing the mark, its form and composition",
      "style_approach": "e.g. minimal geometric, organic hand-drawn",
      "primary_colors": ["#RRGGBB", "#RRGGBB"],
      "typography_style": "type direction for any lettering",
      "imagery_elements": "the shapes and symbols used in the mark",
      "rationale": "why this direction fits the brand and audience"
    }
  ]
}
"""

# Minimum lengths per concept field
MIN_LENGTHS = {
    "name": 3,
    "description": 50,
    "style_approach": 3,
    "typography_style": 5,
    "imagery_elements": 5,
    "rationale": 20,
}

CLICHE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"swoosh", r"globe.*world", r"handshake", r"lightbulb.*idea", r"arrow.*up.*growth", r"generic.*symbol")
]


def build_user_prompt(spec: DesignSpec) -> str:
    return (
        "Design requirements:\n"
        f"- Brand name: {spec.brand_name}\n"
        f"- Description: {spec.brand_description}\n"
        f"- Industry: {spec.industry or 'general'}\n"
        f"- Style preferences: {spec.style_preferences}\n"
        f"- Color palette: {spec.color_palette}\n"
        f"- Imagery: {spec.imagery}\n"
        f"- Target audience: {spec.target_audience}\n"
        f"- Additional requests: {spec.additional_requests}\n\n"
        f"Generate exactly {CONCEPT_COUNT} concepts."
    )


def parse_concept(data: object, index: int) -> Concept:
    if not isinstance(data, dict):
        raise AIResponseError(f"Concept {index + 1} is not a JSON object")
    fields = {
        key: require_text(data, key, minimum, f"Concept {index + 1} {key}")
        for key, minimum in MIN_LENGTHS.items()
    }
    colors = data.get("primary_colors")
    if not isinstance(colors, list) or not colors:
        raise AIResponseError(f"Concept {index + 1} primary_colors must be a non-empty list")
    if any(not isinstance(c, str) or len(c.strip()) < 3 for c in colors):
        raise AIResponseError(f"Concept {index + 1} has an invalid color entry")
    return Concept(primary_colors=[c.strip() for c in colors], **fields)


def parse_concepts(text: str) -> List[Concept]:
    data = extract_json(text)
    raw = data.get("concepts") if isinstance(data, dict) else data
    if not isinstance(raw, list):
        raise AIResponseError("AI response does not contain a concepts list")
    if len(raw) != CONCEPT_COUNT:
        raise AIResponseError(f"Expected exactly {CONCEPT_COUNT} concepts, got {len(raw)}")
    return [parse_concept(item, i) for i, item in enumerate(raw)]


# ── Advisory analysis ─────────────────────────────────────────────────────────

@dataclass
class ConceptAnalysis:
    quality_scores: List[int] = field(default_factory=list)
    cliches: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


def score_concept_quality(concept: Concept) -> int:
    score = 100
    if len(concept.description) < 100:
        score -= 20
    if len(concept.description) < 50:
        score -= 30
    if re.search(r"logo|design", concept.name, re.IGNORECASE):
        score -= 10
    if len(concept.primary_colors) < 2:
        score -= 15
    if len(concept.imagery_elements) < 20:
        score -= 20
    if len(concept.rationale) < 30:
        score -= 15
    return max(0, score)


def analyze_concepts(concepts: List[Concept]) -> ConceptAnalysis:
    analysis = ConceptAnalysis(quality_scores=[score_concept_quality(c) for c in concepts])

    approaches = {c.style_approach.strip().lower() for c in concepts}
    if len(approaches) < len(concepts):
        analysis.notes.append("Concepts share a style approach — low diversity")
    palettes = [tuple(sorted(x.lower() for x in c.primary_colors)) for c in concepts]
    if len(set(palettes)) < len(palettes):
        analysis.notes.append("Concepts reuse an identical color palette")

    for concept in concepts:
        text = f"{concept.description} {concept.imagery_elements}"
        for pattern in CLICHE_PATTERNS:
            if pattern.search(text):
                analysis.cliches.append(f"{concept.name}: {pattern.pattern}")
    return analysis


async def run(
    spec: Optional[DesignSpec],
    *,
    ai: TextGenerator,
    sleep: Optional[SleepFn] = None,
) -> StageResult[List[Concept]]:
    started = time.perf_counter()
    tokens = 0
    try:
        require(spec, "Invalid input: design spec is required")

        response = await call_model(
            ai, STAGE_B, SYSTEM_PROMPT, build_user_prompt(spec), sleep=sleep, label="Stage B moodboard"
        )
        tokens = response.total_tokens
        concepts = parse_concepts(response.text)

        analysis = analyze_concepts(concepts)
        for note in analysis.notes + [f"cliché — {c}" for c in analysis.cliches]:
            logger.warning(f"Stage B advisory: {note}")
        logger.info(f"Stage B: {len(concepts)} concepts, quality {analysis.quality_scores}")
        return StageResult.ok(concepts, tokens, elapsed_ms(started))
    except Exception as e:
        return failure("B", e, started, tokens)
