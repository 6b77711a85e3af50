"""
engine.py — SVG validation & repair engine.

Tiers, applied in order and only as far as needed:
  1. validate   — pure checks (validator.validate_svg)
  2. repair     — deterministic text fixes (repair.repair_svg), caller opt-in
  2b. AI repair — last resort when critical issues survive tier 2; the
                  candidate is kept only if it validates cleanly
  3. optimize   — minify a valid SVG; reverted if the result stops validating

The closing validate_svg() call is the only source of truth for is_valid.

Usage:
  engine = SvgValidationEngine(ai=service)
  result = await engine.process(svg, "Flour & Joy")
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..ai_client import TextGenerator, call_model
from ..config import SVG_REPAIR, StageSettings
from ..models import OptimizationResult, ValidatedSvg
from ..parsing import extract_svg
from ..retry import SleepFn
from .optimizer import MinifyingOptimizer, SvgOptimizer
from .repair import repair_svg
from .validator import size_of, validate_svg

logger = logging.getLogger(__name__)

AI_REPAIR_MODIFICATION = "AI-assisted repair"

AI_REPAIR_SYSTEM_PROMPT = """\
You are an SVG repair specialist for a logo generator.
Fix the SVG you are given so that it is valid, secure and self-contained:
- proper XML structure with xmlns="http://www.w3.org/2000/svg" and a viewBox
- no script, foreignObject, iframe, image, embed, video, audio, canvas, object
  or animation elements
- no event handler attributes (onclick, onload, ...) and no javascript:, vbscript:
  or data:text/html URLs
- keep the original design intent, shapes and colors
Return ONLY the fixed SVG inside a ```svg code block. No explanations.
"""


def optimize_svg(svg: str, optimizer: SvgOptimizer) -> Tuple[str, OptimizationResult, bool]:
    """
    Minify `svg`, keeping the result only if it still validates.

    Returns:
        (svg, OptimizationResult, applied). When the optimized output breaks
        validity the original svg is returned with applied=False.
    """
    original_size = size_of(svg)
    try:
        candidate = optimizer.optimize(svg)
    except Exception as e:
        logger.warning(f"SVG optimizer failed, keeping unoptimized SVG: {e}")
        return svg, OptimizationResult(original_size, original_size, 0), False

    if not candidate or not validate_svg(candidate).is_valid:
        logger.warning("Optimized SVG failed validation — reverting to pre-optimization SVG")
        return svg, OptimizationResult(original_size, original_size, 0), False

    optimized_size = size_of(candidate)
    reduction = round((1 - optimized_size / original_size) * 100) if original_size else 0
    return candidate, OptimizationResult(original_size, optimized_size, reduction), True


class SvgValidationEngine:
    """Validate → repair → (AI repair) → optimize, for one SVG at a time."""

    def __init__(
        self,
        optimizer: Optional[SvgOptimizer] = None,
        ai: Optional[TextGenerator] = None,
        settings: StageSettings = SVG_REPAIR,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self.optimizer = optimizer or MinifyingOptimizer()
        self.ai = ai
        self.settings = settings
        self.sleep = sleep

    async def process(
        self,
        svg: str,
        brand_name: str = "",
        *,
        repair: bool = True,
        optimize: bool = True,
        allow_ai_repair: bool = True,
    ) -> ValidatedSvg:
        modifications: List[str] = []
        tokens = 0
        current = svg or ""
        result = validate_svg(current)

        # Tier 2 — deterministic repair
        if repair and result.issues:
            repaired = repair_svg(current, brand_name)
            if repaired.modifications:
                current = repaired.svg
                modifications += repaired.modifications
                result = validate_svg(current)
                logger.info(f"SVG repaired ({len(repaired.modifications)} change(s)), valid={result.is_valid}")

        # Tier 2b — AI-assisted, only once deterministic repair is exhausted
        if repair and result.critical_issues and allow_ai_repair and self.ai is not None:
            candidate, tokens = await self._ai_repair(current, result.issues, brand_name)
            if candidate is not None:
                candidate_result = validate_svg(candidate)
                if candidate_result.is_valid:
                    logger.info("Using AI-assisted SVG repair")
                    current, result = candidate, candidate_result
                    modifications.append(AI_REPAIR_MODIFICATION)
                else:
                    logger.warning("AI-assisted repair was also invalid — keeping deterministic result")

        if not result.is_valid:
            return ValidatedSvg(
                svg=current,
                is_valid=False,
                warnings=result.issues,
                modifications=modifications,
                scores=result.scores,
                tokens_used=tokens,
            )

        # Tier 3 — optimization with revert
        optimization = None
        optimized = False
        if optimize:
            current, optimization, optimized = optimize_svg(current, self.optimizer)
            if optimized:
                applied = getattr(self.optimizer, "applied", ["optimized"])
                modifications += [f"Optimization: {step}" for step in applied]

        final = validate_svg(current)
        return ValidatedSvg(
            svg=current,
            is_valid=final.is_valid,
            warnings=final.issues,
            modifications=modifications,
            optimized=optimized,
            optimization=optimization,
            scores=final.scores,
            tokens_used=tokens,
        )

    async def _ai_repair(self, svg: str, issues: List[str], brand_name: str) -> Tuple[Optional[str], int]:
        unique = list(dict.fromkeys(issues))
        user_prompt = (
            f'Fix the following SVG logo for "{brand_name or "the brand"}".\n\n'
            "Issues detected:\n"
            + "\n".join(f"- {issue}" for issue in unique)
            + f"\n\n```svg\n{svg}\n```"
        )
        logger.warning(f"Deterministic repair left {len(unique)} issue(s) — escalating to AI-assisted repair")
        try:
            response = await call_model(
                self.ai,
                self.settings,
                AI_REPAIR_SYSTEM_PROMPT,
                user_prompt,
                sleep=self.sleep,
                label="AI-assisted SVG repair",
            )
        except Exception as e:
            logger.warning(f"AI-assisted repair failed: {e}")
            return None, 0
        return extract_svg(response.text), response.total_tokens
