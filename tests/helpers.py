"""
Scripted collaborators and canned model responses shared by the tests.
"""

from __future__ import annotations

import io
import json
from typing import Dict, List, Union

from PIL import Image

from logoforge.ai_client import AIResponse
from logoforge.errors import ConfigurationError, ConversionError

Scripted = Union[str, BaseException]


class FakeAI:
    """
    TextGenerator that replays canned replies per system prompt.

    A value may be a single reply (reused forever) or a list consumed in
    order. Exceptions are raised instead of returned. Unscripted prompts
    raise ConfigurationError, which is never retried.
    """

    def __init__(self, script: Dict[str, Union[Scripted, List[Scripted]]], input_tokens: int = 10, output_tokens: int = 5):
        self.script = {k: (list(v) if isinstance(v, list) else v) for k, v in script.items()}
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls: List[Dict[str, object]] = []

    def calls_for(self, system_prompt: str) -> int:
        return sum(1 for c in self.calls if c["system_prompt"] == system_prompt)

    async def generate(self, system_prompt, user_prompt, *, model, temperature, max_tokens, timeout):
        self.calls.append(
            {"system_prompt": system_prompt, "user_prompt": user_prompt, "model": model, "temperature": temperature}
        )
        if system_prompt not in self.script:
            raise ConfigurationError("no scripted reply for this prompt")
        entry = self.script[system_prompt]
        if isinstance(entry, list):
            entry = entry.pop(0) if len(entry) > 1 else entry[0]
        if isinstance(entry, BaseException):
            raise entry
        return AIResponse(entry, self.input_tokens, self.output_tokens)


class FakeRasterizer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sizes: List[int] = []

    def render_png(self, svg: str, size: int) -> bytes:
        if self.fail:
            raise ConversionError(f"PNG rendering failed at {size}px: no cairo")
        self.sizes.append(size)
        buf = io.BytesIO()
        Image.new("RGBA", (size, size), (200, 85, 61, 255)).save(buf, format="PNG")
        return buf.getvalue()


class RecordedSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ── Canned replies ────────────────────────────────────────────────────────────

SPEC = {
    "brand_name": "Flour & Joy",
    "brand_description": "A family bakery in Lisbon baking sourdough bread and pastries",
    "style_preferences": "warm, hand-crafted, modern",
    "color_palette": "warm browns and cream",
    "imagery": "wheat ear, bread loaf",
    "target_audience": "local families and food lovers",
    "additional_requests": "unspecified",
}
SPEC_REPLY = "Here is the analysis:\n```json\n" + json.dumps(SPEC) + "\n```"

CONCEPTS = [
    {
        "name": "Golden Crust",
        "description": "A round seal shaped like a loaf seen from above, with a single scored line that doubles as a smile.",
        "style_approach": "minimal geometric",
        "primary_colors": ["#8B5E3C", "#F5E6CC"],
        "typography_style": "rounded geometric sans",
        "imagery_elements": "circle, scored loaf line",
        "rationale": "Simple and friendly, it reads at favicon size and feels local.",
    },
    {
        "name": "Wheat Monogram",
        "description": "An F and a J drawn from two wheat ears leaning into each other, forming a compact monogram.",
        "style_approach": "illustrative symbolic",
        "primary_colors": ["#C8553D", "#F2D0A4"],
        "typography_style": "warm humanist serif",
        "imagery_elements": "wheat ears, monogram letters",
        "rationale": "Ties the name to the craft and gives a distinctive ownable mark.",
    },
    {
        "name": "Morning Script",
        "description": "A hand-lettered wordmark with a flour-dust flourish under the ampersand, evoking early bakes.",
        "style_approach": "typographic hand-drawn",
        "primary_colors": ["#3D2B1F", "#E8C07D"],
        "typography_style": "hand-lettered script",
        "imagery_elements": "flourish, dusting texture",
        "rationale": "Personal and artisanal, it speaks to regulars who know the bakers.",
    },
]
CONCEPTS_REPLY = json.dumps({"concepts": CONCEPTS})

SELECTION_REPLY = json.dumps(
    {
        "selected_concept_index": 1,
        "selection_rationale": "The wheat monogram is the most distinctive and scales well.",
        "score": 87,
    }
)

LOGO_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 300 300">'
    "<title>Flour &amp; Joy</title>"
    '<circle cx="150" cy="150" r="120" fill="#8B5E3C"/>'
    '<path d="M150 60 L180 240 L120 240 Z" fill="#F5E6CC"/>'
    "</svg>"
)
SVG_REPLY = (
    f"```svg\n{LOGO_SVG}\n```\n"
    '```json\n{"design_notes": "A warm circle holding a stylised wheat ear."}\n```'
)

# Generated without title/xmlns: Stage E has to fix it
BARE_SVG = '<svg width="300" height="300"><rect x="10" y="10" width="100" height="100" fill="#C8553D"/></svg>'
BARE_SVG_REPLY = f"```svg\n{BARE_SVG}\n```"

BRIEF_TEXT = "Logo for Flour & Joy, a family bakery in Lisbon. Warm, hand-crafted, modern."


def pipeline_script(**overrides: Union[Scripted, List[Scripted]]) -> Dict[str, Union[Scripted, List[Scripted]]]:
    """Replies for stages A–D keyed by their system prompts."""
    from logoforge.stages import distillation, moodboard, selection, svg_generation

    script: Dict[str, Union[Scripted, List[Scripted]]] = {
        distillation.SYSTEM_PROMPT: SPEC_REPLY,
        moodboard.SYSTEM_PROMPT: CONCEPTS_REPLY,
        selection.SYSTEM_PROMPT: SELECTION_REPLY,
        svg_generation.SYSTEM_PROMPT: SVG_REPLY,
    }
    names = {
        "a": distillation.SYSTEM_PROMPT,
        "b": moodboard.SYSTEM_PROMPT,
        "c": selection.SYSTEM_PROMPT,
        "d": svg_generation.SYSTEM_PROMPT,
    }
    for key, value in overrides.items():
        script[names[key]] = value
    return script
