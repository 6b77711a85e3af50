"""
Stage E — SVG validation, repair and optimization.

Thin stage wrapper around SvgValidationEngine. A result that is still
invalid after every tier is a terminal svg_error.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..errors import SVG_ERROR
from ..models import StageResult, ValidatedSvg
from ..svg.engine import SvgValidationEngine
from .common import elapsed_ms, failure, require

logger = logging.getLogger(__name__)


async def run(
    svg: Optional[str],
    brand_name: Optional[str],
    *,
    engine: SvgValidationEngine,
    repair: bool = True,
    optimize: bool = True,
) -> StageResult[ValidatedSvg]:
    started = time.perf_counter()
    try:
        require(svg, "Invalid input: SVG content is required")
        require(brand_name, "Invalid input: brand name is required")

        result = await engine.process(svg, brand_name, repair=repair, optimize=optimize)
        if not result.is_valid:
            return StageResult.fail(
                SVG_ERROR,
                "SVG validation failed: " + "; ".join(result.warnings),
                details={"issues": result.warnings, "modifications": result.modifications},
                tokens_used=result.tokens_used,
                processing_time_ms=elapsed_ms(started),
            )

        if result.optimization:
            logger.info(
                f"Stage E: valid, {result.optimization.original_size}→{result.optimization.optimized_size} bytes "
                f"(-{result.optimization.reduction_percent}%), scores {result.scores}"
            )
        return StageResult.ok(result, result.tokens_used, elapsed_ms(started))
    except Exception as e:
        return failure("E", e, started)
