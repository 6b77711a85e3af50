"""
animation.py — Pick an entrance animation for the finished logo.

The model is asked first; anything it gets wrong (call failure, unparseable
reply, unknown type) falls back to a structure heuristic. select_animation()
never raises.

Heuristic, first match wins:
  > 5 top-level elements        → sequential
  paths and no text             → draw
  > 3 top-level elements        → sequential
  text and no paths             → typewriter
  brand says tech/digital/data  → zoom_in
  brand says fun/kids/play      → bounce
  otherwise                     → fade_in
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ai_client import TextGenerator, call_model
from .config import ANIMATION
from .parsing import extract_json
from .retry import SleepFn
from .svg.analysis import count_elements, top_level_tag_count

logger = logging.getLogger(__name__)


class AnimationType(str, Enum):
    FADE_IN = "fade_in"
    SEQUENTIAL = "sequential"
    DRAW = "draw"
    TYPEWRITER = "typewriter"
    ZOOM_IN = "zoom_in"
    BOUNCE = "bounce"


@dataclass
class AnimationChoice:
    type: AnimationType
    duration_ms: int
    easing: str
    stagger_ms: int = 0
    source: str = "heuristic"      # "ai" | "heuristic"
    tokens_used: int = 0


PRESETS = {
    AnimationType.FADE_IN: (1000, "ease-in-out", 0),
    AnimationType.SEQUENTIAL: (1500, "ease-out", 150),
    AnimationType.DRAW: (2000, "ease-in-out", 0),
    AnimationType.TYPEWRITER: (2500, "steps(20, end)", 0),
    AnimationType.ZOOM_IN: (1200, "cubic-bezier(0.2, 0.8, 0.2, 1)", 0),
    AnimationType.BOUNCE: (1200, "cubic-bezier(0.34, 1.56, 0.64, 1)", 0),
}

SYSTEM_PROMPT = """\
Pick the single best entrance animation for a logo.
Options: fade_in, sequential, draw, typewriter, zoom_in, bounce.
Return ONLY JSON: {"animation": "<option>"}
"""


def choice_for(kind: AnimationType, source: str = "heuristic") -> AnimationChoice:
    duration, easing, stagger = PRESETS[kind]
    return AnimationChoice(kind, duration, easing, stagger, source)


def _heuristic_type(svg: str, brand_name: str) -> AnimationType:
    top_level = top_level_tag_count(svg)
    counts = count_elements(svg, ("path", "text"))
    has_paths, has_text = counts["path"] > 0, counts["text"] > 0
    brand = (brand_name or "").lower()

    if top_level > 5:
        return AnimationType.SEQUENTIAL
    if has_paths and not has_text:
        return AnimationType.DRAW
    if top_level > 3:
        return AnimationType.SEQUENTIAL
    if has_text and not has_paths:
        return AnimationType.TYPEWRITER
    if any(word in brand for word in ("tech", "digital", "data")):
        return AnimationType.ZOOM_IN
    if any(word in brand for word in ("fun", "kids", "play")):
        return AnimationType.BOUNCE
    return AnimationType.FADE_IN


def heuristic_animation(svg: str, brand_name: str = "") -> AnimationChoice:
    try:
        return choice_for(_heuristic_type(svg, brand_name))
    except Exception as e:
        logger.warning(f"Animation heuristic failed ({e}) — defaulting to fade_in")
        return choice_for(AnimationType.FADE_IN)


async def select_animation(
    svg: str,
    brand_name: str = "",
    *,
    ai: Optional[TextGenerator] = None,
    sleep: Optional[SleepFn] = None,
) -> AnimationChoice:
    tokens = 0
    if ai is not None:
        try:
            response = await call_model(
                ai,
                ANIMATION,
                SYSTEM_PROMPT,
                f"Brand: {brand_name}\n\nLogo SVG:\n{svg[:4000]}",
                sleep=sleep,
                label="Animation selection",
            )
            tokens = response.total_tokens
            data = extract_json(response.text)
            choice = choice_for(AnimationType(str(data["animation"]).strip().lower()), source="ai")
            choice.tokens_used = tokens
            return choice
        except Exception as e:
            logger.info(f"AI animation selection unavailable ({e}) — using heuristic")
    choice = heuristic_animation(svg, brand_name)
    # tokens of an unusable reply still count
    choice.tokens_used = tokens
    return choice


def render_animation_css(choice: AnimationChoice, selector: str = ".logo") -> str:
    """CSS keyframes + rule for the chosen animation."""
    keyframes = {
        AnimationType.FADE_IN: "from { opacity: 0; } to { opacity: 1; }",
        AnimationType.SEQUENTIAL: "from { opacity: 0; transform: translateY(8px); } to { opacity: 1; transform: none; }",
        AnimationType.DRAW: "from { stroke-dashoffset: 1000; } to { stroke-dashoffset: 0; }",
        AnimationType.TYPEWRITER: "from { clip-path: inset(0 100% 0 0); } to { clip-path: inset(0 0 0 0); }",
        AnimationType.ZOOM_IN: "from { opacity: 0; transform: scale(0.6); } to { opacity: 1; transform: scale(1); }",
        AnimationType.BOUNCE: "0% { transform: scale(0.3); } 60% { transform: scale(1.1); } 100% { transform: scale(1); }",
    }[choice.type]
    name = f"logo-{choice.type.value.replace('_', '-')}"
    target = f"{selector} > *" if choice.stagger_ms else selector
    css = (
        f"@keyframes {name} {{ {keyframes} }}\n"
        f"{target} {{ animation: {name} {choice.duration_ms}ms {choice.easing} both; }}\n"
    )
    if choice.type is AnimationType.DRAW:
        css += f"{selector} path {{ stroke-dasharray: 1000; }}\n"
    if choice.stagger_ms:
        css += "".join(
            f"{selector} > *:nth-child({i}) {{ animation-delay: {(i - 1) * choice.stagger_ms}ms; }}\n"
            for i in range(1, 11)
        )
    return css
