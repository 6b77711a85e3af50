"""
errors.py — Error taxonomy shared by every stage.

  validation_error  bad caller input, never retried
  ai_error          model produced unusable output, retried per call
  system_error      missing credentials / configuration, never retried
  svg_error         SVG-specific failure (generation, validation)
  conversion_error  raster / format conversion failure
  dependency_error  a stage ran without the outputs it needs
"""

from __future__ import annotations

from typing import Optional

VALIDATION_ERROR = "validation_error"
AI_ERROR = "ai_error"
SYSTEM_ERROR = "system_error"
SVG_ERROR = "svg_error"
CONVERSION_ERROR = "conversion_error"
DEPENDENCY_ERROR = "dependency_error"


class LogoForgeError(Exception):
    """Base class; subclasses pin error_type and whether retrying can help."""
    error_type = AI_ERROR
    retryable = True


class InputValidationError(LogoForgeError):
    error_type = VALIDATION_ERROR
    retryable = False


class AIResponseError(LogoForgeError):
    error_type = AI_ERROR
    retryable = True


class AITimeoutError(AIResponseError):
    pass


class ConfigurationError(LogoForgeError):
    error_type = SYSTEM_ERROR
    retryable = False


class SvgError(LogoForgeError):
    error_type = SVG_ERROR
    retryable = True


class ConversionError(LogoForgeError):
    error_type = CONVERSION_ERROR
    retryable = False


class StageDependencyError(LogoForgeError):
    error_type = DEPENDENCY_ERROR
    retryable = False

    def __init__(self, stage: str, missing: str) -> None:
        super().__init__(f"Stage {stage} requires output from Stage {missing}")
        self.stage = stage
        self.missing = missing


class RetryExhaustedError(LogoForgeError):
    """Raised by with_retry once the attempt budget is spent."""
    retryable = False

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
        if isinstance(last_error, LogoForgeError):
            self.error_type = last_error.error_type


# ── Classification ────────────────────────────────────────────────────────────

_SYSTEM_HINTS = ("api key", "api_key", "credential", "not configured")
_VALIDATION_HINTS = ("invalid input", "required field", "too short", "cannot be empty", "must be")


def classify_error(exc: BaseException) -> str:
    """Map any exception onto the taxonomy above."""
    if isinstance(exc, LogoForgeError):
        return exc.error_type

    message = str(exc).lower()
    if any(hint in message for hint in _SYSTEM_HINTS):
        return SYSTEM_ERROR
    if any(hint in message for hint in _VALIDATION_HINTS):
        return VALIDATION_ERROR
    if "svg" in message:
        return SVG_ERROR
    return AI_ERROR
