"""
Stage G — Brand guidelines document.

Builds an HTML guide (and a plain-text twin) from the selected concept, the
validated SVG and its variants: overview, logo usage, palette with RGB/CMYK,
typography, clear space, usage examples, do's and don'ts.

The document itself is deterministic; only the short overview paragraph is
optionally written by the model, with a template fallback. The orchestrator
treats a failure here as non-fatal.
"""

from __future__ import annotations

import html
import logging
import re
import time
from typing import Dict, List, Optional, Tuple

from ..ai_client import TextGenerator, call_model
from ..config import STAGE_G
from ..models import ColorSpec, Concept, DesignSpec, Guidelines, StageResult, Variants
from ..retry import SleepFn
from .common import elapsed_ms, failure, require

logger = logging.getLogger(__name__)

_HEX = re.compile(r"#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")

OVERVIEW_PROMPT = """\
You write the opening paragraph of a brand guidelines document.
Two or three sentences, confident and specific, plain text only. No markdown.
"""

TYPOGRAPHY_PRESETS = [
    (re.compile(r"modern|tech|minimal|geometric|sans", re.IGNORECASE),
     {"primary": "Inter, Arial, sans-serif", "secondary": "Roboto, Arial, sans-serif",
      "usage": "Use Inter for headings, Roboto for body text."}),
    (re.compile(r"serif|classic|elegant|luxury|heritage", re.IGNORECASE),
     {"primary": "Merriweather, 'Times New Roman', serif", "secondary": "Lora, Georgia, serif",
      "usage": "Use Merriweather for headings, Lora for body text."}),
]
DEFAULT_TYPOGRAPHY = {
    "primary": "Montserrat, Arial, sans-serif",
    "secondary": "'Open Sans', Arial, sans-serif",
    "usage": "Use Montserrat for headings, Open Sans for body text.",
}


# ── Color helpers ─────────────────────────────────────────────────────────────

def normalize_hex(value: str) -> str:
    value = value.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    return f"#{value.upper()}"


def hex_to_rgb(value: str) -> str:
    n = int(normalize_hex(value)[1:], 16)
    return f"rgb({(n >> 16) & 255}, {(n >> 8) & 255}, {n & 255})"


def hex_to_cmyk(value: str) -> str:
    n = int(normalize_hex(value)[1:], 16)
    r, g, b = ((n >> 16) & 255) / 255, ((n >> 8) & 255) / 255, (n & 255) / 255
    k = 1 - max(r, g, b)
    if k >= 1:
        return "cmyk(0%, 0%, 0%, 100%)"
    c, m, y = ((1 - ch - k) / (1 - k) for ch in (r, g, b))
    return f"cmyk({c * 100:.0f}%, {m * 100:.0f}%, {y * 100:.0f}%, {k * 100:.0f}%)"


def extract_colors(svg: str, concept: Optional[Concept] = None) -> List[ColorSpec]:
    """Unique colors from the SVG first, then from the concept palette."""
    found = [normalize_hex(h) for h in _HEX.findall(svg or "")]
    if concept:
        found += [normalize_hex(h) for c in concept.primary_colors for h in _HEX.findall(c)]
    unique = list(dict.fromkeys(found))
    return [ColorSpec(hex=h, rgb=hex_to_rgb(h), cmyk=hex_to_cmyk(h)) for h in unique]


def pick_typography(style: str) -> Dict[str, str]:
    for pattern, preset in TYPOGRAPHY_PRESETS:
        if pattern.search(style or ""):
            return dict(preset)
    return dict(DEFAULT_TYPOGRAPHY)


# ── Rendering ─────────────────────────────────────────────────────────────────

def _inline(svg: str) -> str:
    """SVG markup ready to embed in HTML (no XML declaration)."""
    return re.sub(r"<\?xml[^?]*\?>\s*", "", svg or "")


def default_overview(brand_name: str, concept: Concept, spec: Optional[DesignSpec]) -> str:
    text = f"{brand_name}: {concept.description}"
    if spec and spec.industry and spec.industry != "general":
        text += f" Industry: {spec.industry}."
    if spec and spec.target_audience and spec.target_audience != "unspecified":
        text += f" Audience: {spec.target_audience}."
    return text


def render_html(
    brand_name: str,
    overview: str,
    svg: str,
    variants: Variants,
    colors: List[ColorSpec],
    typography: Dict[str, str],
) -> str:
    e = html.escape
    initial = e(brand_name[:1].upper() or "X")
    swatches = "".join(
        f'<div class="swatch"><div class="chip" style="background:{c.hex}"></div>'
        f"<div>{c.hex}</div><div>{c.rgb}</div><div>{c.cmyk}</div></div>"
        for c in colors
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{e(brand_name)} Brand Guidelines</title>
<style>
  body {{ font-family: {e(typography['secondary'])}; margin: 0; color: #222; background: #fff; }}
  main {{ max-width: 880px; margin: 0 auto; padding: 40px 24px; }}
  h1, h2 {{ font-family: {e(typography['primary'])}; }}
  .logos {{ display: flex; gap: 24px; align-items: center; }}
  .logos > div {{ width: 160px; padding: 12px; border: 1px solid #eee; }}
  .dark {{ background: #111; }}
  .palette {{ display: flex; gap: 16px; flex-wrap: wrap; }}
  .swatch {{ border: 1px solid #ccc; padding: 8px; text-align: center; font-size: 12px; }}
  .chip {{ width: 48px; height: 48px; margin: auto; border-radius: 6px; }}
</style>
</head>
<body>
<main>
<h1>{e(brand_name)} Brand Guidelines</h1>
<section><h2>Brand Overview</h2><p>{e(overview)}</p></section>
<section><h2>Logo Usage</h2>
<p>Use the primary logo for most applications, the monochrome versions for single-color
print or busy backgrounds, and the favicon for browser tabs and app icons.</p>
<div class="logos">
<div>{_inline(svg)}</div>
<div>{_inline(variants.monochrome_black)}</div>
<div class="dark">{_inline(variants.monochrome_white)}</div>
<div>{_inline(variants.favicon_svg)}</div>
</div></section>
<section><h2>Color Palette</h2><div class="palette">{swatches}</div></section>
<section><h2>Typography</h2>
<p><strong>Primary:</strong> {e(typography['primary'])}<br>
<strong>Secondary:</strong> {e(typography['secondary'])}<br>
{e(typography['usage'])}</p></section>
<section><h2>Logo Spacing &amp; Sizing</h2>
<p>Keep clear space around the logo equal to the height of the letter "{initial}".
Minimum size: 32px high on screen, 10mm in print.</p></section>
<section><h2>Usage Examples</h2>
<ul><li>On white or light backgrounds</li><li>On brand color backgrounds</li><li>As app icon or favicon</li></ul></section>
<section><h2>Do's and Don'ts</h2>
<ul><li>Do use the provided logo files only</li><li>Do keep the aspect ratio</li>
<li>Don't alter colors or proportions</li><li>Don't add effects, shadows or outlines</li></ul></section>
</main>
</body>
</html>
"""


def render_text(brand_name: str, overview: str, colors: List[ColorSpec], typography: Dict[str, str]) -> str:
    lines = [
        f"{brand_name.upper()} BRAND GUIDELINES",
        "=" * 40,
        "",
        "OVERVIEW",
        overview,
        "",
        "LOGO FILES",
        "- logo.svg: primary logo",
        "- logo-black.svg / logo-white.svg: monochrome versions",
        "- favicon.svg / favicon.ico: browser tabs and app icons",
        "",
        "COLOR PALETTE",
    ]
    lines += [f"- {c.hex}  {c.rgb}  {c.cmyk}" for c in colors] or ["- (monochrome)"]
    lines += [
        "",
        "TYPOGRAPHY",
        f"- Primary: {typography['primary']}",
        f"- Secondary: {typography['secondary']}",
        f"- {typography['usage']}",
        "",
        "SPACING & SIZING",
        f"- Clear space equal to the height of the letter \"{brand_name[:1].upper() or 'X'}\"",
        "- Minimum size: 32px on screen, 10mm in print",
        "",
        "DO'S AND DON'TS",
        "- Do use the provided logo files only",
        "- Do keep the aspect ratio",
        "- Don't alter colors or proportions",
        "- Don't add effects, shadows or outlines",
    ]
    return "\n".join(lines) + "\n"


async def _write_overview(
    brand_name: str, concept: Concept, spec: Optional[DesignSpec], ai: TextGenerator, sleep: Optional[SleepFn]
) -> Tuple[str, int]:
    prompt = (
        f"Brand: {brand_name}\nConcept: {concept.name}\n{concept.description}\n"
        f"Rationale: {concept.rationale}\n"
        + (f"Audience: {spec.target_audience}\n" if spec else "")
    )
    try:
        response = await call_model(ai, STAGE_G, OVERVIEW_PROMPT, prompt, sleep=sleep, label="Stage G overview")
    except Exception as e:
        logger.warning(f"Stage G: overview generation failed ({e}) — using template")
        return default_overview(brand_name, concept, spec), 0
    return response.text.strip(), response.total_tokens


async def run(
    brand_name: Optional[str],
    concept: Optional[Concept],
    svg: Optional[str],
    variants: Optional[Variants],
    *,
    spec: Optional[DesignSpec] = None,
    ai: Optional[TextGenerator] = None,
    sleep: Optional[SleepFn] = None,
) -> StageResult[Guidelines]:
    started = time.perf_counter()
    tokens = 0
    try:
        require(brand_name, "Invalid input: brand name is required")
        require(concept, "Invalid input: selected concept is required")
        require(svg, "Invalid input: SVG is required")
        require(variants, "Invalid input: variants are required")

        if ai is not None:
            overview, tokens = await _write_overview(brand_name, concept, spec, ai, sleep)
        else:
            overview = default_overview(brand_name, concept, spec)

        colors = extract_colors(svg, concept)
        typography = pick_typography(f"{concept.typography_style} {concept.style_approach}")
        guidelines = Guidelines(
            html=render_html(brand_name, overview, svg, variants, colors, typography),
            plain_text=render_text(brand_name, overview, colors, typography),
            colors=colors,
            typography=typography,
        )
        logger.info(f"Stage G: guidelines with {len(colors)} colors ({typography['primary'].split(',')[0]})")
        return StageResult.ok(guidelines, tokens, elapsed_ms(started))
    except Exception as e:
        return failure("G", e, started, tokens)
