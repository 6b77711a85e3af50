"""
common.py — Helpers shared by the stage functions.
"""

from __future__ import annotations

import logging
import time
import traceback
from typing import Any, Optional

from ..errors import AIResponseError, InputValidationError, RetryExhaustedError, classify_error
from ..models import StageResult

logger = logging.getLogger(__name__)


def elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def require(value: Any, message: str) -> None:
    """Raise InputValidationError when a required input is missing or empty."""
    if value is None or (hasattr(value, "__len__") and len(value) == 0):
        raise InputValidationError(message)


def require_text(data: dict, key: str, min_length: int, label: Optional[str] = None) -> str:
    """String field of a parsed model response with a minimum length."""
    value = data.get(key)
    if not isinstance(value, str) or len(value.strip()) < min_length:
        raise AIResponseError(
            f"{label or key} is missing or too short (minimum {min_length} characters)"
        )
    return value.strip()


def failure(stage: str, exc: BaseException, started: float, tokens: int = 0) -> StageResult:
    """Turn an exception caught at stage level into a failed StageResult."""
    cause = exc.last_error if isinstance(exc, RetryExhaustedError) and exc.last_error else exc
    error_type = classify_error(exc)
    logger.error(f"Stage {stage} failed ({error_type}): {exc}")
    return StageResult.fail(
        error_type,
        str(exc),
        details={"exception": type(cause).__name__, "traceback": traceback.format_exc()},
        tokens_used=tokens,
        processing_time_ms=elapsed_ms(started),
    )
