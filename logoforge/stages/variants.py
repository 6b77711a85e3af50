"""
Stage F — Logo variants.

  logo-black.svg / logo-white.svg  monochrome versions
  favicon.svg                      square, simplified
  logo-{256,512,1024}.png          raster exports
  favicon.ico                      from the 32px render

The AI path is best-effort: any failure, or any candidate that does not
validate, falls back to MonochromeConverter. Only rasterization can fail
this stage.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Tuple

from ..ai_client import TextGenerator, call_model
from ..config import FAVICON_SIZE, PNG_SIZES, STAGE_F
from ..errors import CONVERSION_ERROR, ConversionError
from ..models import StageResult, Variants
from ..parsing import extract_fenced
from ..raster import Rasterizer, png_to_ico
from ..retry import SleepFn
from ..svg.monochrome import MonochromeConverter
from ..svg.validator import validate_svg
from .common import elapsed_ms, failure, require

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You produce production variants of an SVG logo.

Return exactly three fenced blocks and nothing else:
```svg-black
<svg ...> the logo in solid #000000 only, no gradients </svg>
```
```svg-white
<svg ...> the logo in solid #FFFFFF only, no gradients </svg>
```
```svg-favicon
<svg ...> a simplified square version that reads at 32x32 </svg>
```
Keep xmlns and a viewBox on every root element. No scripts, no event handlers,
no external references.
"""

_converter = MonochromeConverter()


def _valid(svg: Optional[str]) -> bool:
    return bool(svg) and validate_svg(svg).is_valid


def parse_variant_blocks(text: str) -> Dict[str, Optional[str]]:
    return {
        "black": extract_fenced(text, "svg-black"),
        "white": extract_fenced(text, "svg-white"),
        "favicon": extract_fenced(text, "svg-favicon"),
    }


def fallback_variants(svg: str) -> Tuple[str, str, str]:
    return _converter.to_black(svg), _converter.to_white(svg), _converter.to_favicon(svg)


async def _ai_variants(
    svg: str, brand_name: str, ai: TextGenerator, sleep: Optional[SleepFn]
) -> Tuple[Dict[str, Optional[str]], int]:
    try:
        response = await call_model(
            ai,
            STAGE_F,
            SYSTEM_PROMPT,
            f'Brand: {brand_name}\n\nSource logo:\n```svg\n{svg}\n```',
            sleep=sleep,
            label="Stage F variants",
        )
    except Exception as e:
        logger.warning(f"Stage F: AI variants failed ({e}) — using rule-based conversion")
        return {}, 0
    return parse_variant_blocks(response.text), response.total_tokens


def render_rasters(svg: str, favicon_svg: str, rasterizer: Rasterizer) -> Tuple[Dict[int, bytes], bytes, bytes]:
    pngs = {size: rasterizer.render_png(svg, size) for size in PNG_SIZES}
    favicon_png = rasterizer.render_png(favicon_svg, FAVICON_SIZE)
    return pngs, favicon_png, png_to_ico(favicon_png, FAVICON_SIZE)


async def run(
    svg: Optional[str],
    brand_name: Optional[str],
    *,
    rasterizer: Rasterizer,
    ai: Optional[TextGenerator] = None,
    sleep: Optional[SleepFn] = None,
) -> StageResult[Variants]:
    started = time.perf_counter()
    tokens = 0
    try:
        require(svg, "Invalid input: validated SVG is required")
        require(brand_name, "Invalid input: brand name is required")

        candidates: Dict[str, Optional[str]] = {}
        if ai is not None:
            candidates, tokens = await _ai_variants(svg, brand_name, ai, sleep)

        black, white, favicon = fallback_variants(svg)
        used_fallback = False
        picked = {"black": black, "white": white, "favicon": favicon}
        for key in picked:
            if _valid(candidates.get(key)):
                picked[key] = candidates[key]
            else:
                used_fallback = True
        if used_fallback:
            logger.info("Stage F: rule-based conversion used for one or more variants")

        try:
            pngs, favicon_png, ico = render_rasters(svg, picked["favicon"], rasterizer)
        except ConversionError as e:
            return StageResult.fail(
                CONVERSION_ERROR, str(e), tokens_used=tokens, processing_time_ms=elapsed_ms(started)
            )

        variants = Variants(
            monochrome_black=picked["black"],
            monochrome_white=picked["white"],
            favicon_svg=picked["favicon"],
            png_variants=pngs,
            favicon_png=favicon_png,
            favicon_ico=ico,
            used_fallback=used_fallback,
        )
        logger.info(f"Stage F: variants ready, PNG sizes {sorted(pngs)}")
        return StageResult.ok(variants, tokens, elapsed_ms(started))
    except Exception as e:
        return failure("F", e, started, tokens)
