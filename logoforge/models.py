"""
models.py — Data passed between pipeline stages.

pydantic models hold anything parsed out of model responses (validated on
construction); plain dataclasses hold derived results.

  Brief → DesignSpec (A) → Concept ×3 (B) → Selection (C) → GeneratedSvg (D)
        → ValidatedSvg (E) → Variants (F) → Guidelines (G) → PackageResult (H)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNSPECIFIED = "unspecified"
FILTERED = "[FILTERED]"


# ── Input ─────────────────────────────────────────────────────────────────────

class Brief(BaseModel):
    """Raw request. Never mutated once created."""
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(description="Free-text description of the desired logo")
    image_descriptions: List[str] = Field(
        default_factory=list,
        description="Optional text descriptions of reference images",
    )


# ── Stage A ───────────────────────────────────────────────────────────────────

class DesignSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    brand_name: str = Field(description="Exact brand name as written in the brief")
    brand_description: str = Field(description="What the brand does / stands for")
    style_preferences: str = Field(description="Visual style keywords")
    color_palette: str = Field(description="Requested colors or color mood")
    imagery: str = Field(description="Symbols, shapes or imagery to include")
    target_audience: str = Field(description="Who the brand speaks to")
    additional_requests: str = Field(description="Anything else the client asked for")
    industry: Optional[str] = None
    industry_confidence: Optional[float] = None

    @model_validator(mode="after")
    def _check_fields(self) -> "DesignSpec":
        for name in (
            "brand_name", "brand_description", "style_preferences", "color_palette",
            "imagery", "target_audience", "additional_requests",
        ):
            if not getattr(self, name).strip():
                raise ValueError(f"{name} must be a non-empty string")
        if not is_valid_brand_name(self.brand_name):
            raise ValueError(f"brand_name is unusable: {self.brand_name!r}")
        return self


def is_valid_brand_name(name: str) -> bool:
    name = (name or "").strip()
    return len(name) >= 2 and name.lower() != UNSPECIFIED and name != FILTERED


# ── Stage B / C ───────────────────────────────────────────────────────────────

class Concept(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Short evocative concept name")
    description: str = Field(description="2–4 sentences describing the logo idea")
    style_approach: str = Field(description="e.g. 'minimal geometric', 'hand-drawn organic'")
    primary_colors: List[str] = Field(description="Hex codes, most important first")
    typography_style: str = Field(description="Type direction for any lettering")
    imagery_elements: str = Field(description="Shapes / symbols used in the mark")
    rationale: str = Field(description="Why this direction fits the brief")


class Selection(BaseModel):
    model_config = ConfigDict(frozen=True)

    selected_concept: Concept
    selected_index: int
    rationale: str
    score: float = Field(description="0–100, clamped")

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v: Any) -> float:
        return max(0.0, min(100.0, float(v)))


# ── Stage D / E ───────────────────────────────────────────────────────────────

@dataclass
class SvgMetadata:
    width: int = 300
    height: int = 300
    element_count: int = 0
    has_gradients: bool = False


@dataclass
class GeneratedSvg:
    svg: str
    metadata: SvgMetadata = field(default_factory=SvgMetadata)
    design_notes: str = ""


@dataclass
class ValidationResult:
    is_valid: bool
    issues: List[str] = field(default_factory=list)
    critical_issues: List[str] = field(default_factory=list)
    security_score: int = 100
    accessibility_score: int = 100
    optimization_score: int = 100

    @property
    def scores(self) -> Dict[str, int]:
        return {
            "security": self.security_score,
            "accessibility": self.accessibility_score,
            "optimization": self.optimization_score,
        }


@dataclass
class OptimizationResult:
    original_size: int
    optimized_size: int
    reduction_percent: int


@dataclass
class ValidatedSvg:
    svg: str
    is_valid: bool
    warnings: List[str] = field(default_factory=list)
    modifications: List[str] = field(default_factory=list)
    optimized: bool = False
    optimization: Optional[OptimizationResult] = None
    scores: Dict[str, int] = field(default_factory=dict)
    tokens_used: int = 0        # only the AI-assisted repair tier spends tokens


# ── Stage F / G / H ───────────────────────────────────────────────────────────

@dataclass
class Variants:
    monochrome_black: str
    monochrome_white: str
    favicon_svg: str
    png_variants: Dict[int, bytes] = field(default_factory=dict)   # size px → PNG bytes
    favicon_png: Optional[bytes] = None
    favicon_ico: Optional[bytes] = None
    used_fallback: bool = False


@dataclass
class ColorSpec:
    hex: str
    rgb: str
    cmyk: str


@dataclass
class Guidelines:
    html: str
    plain_text: str
    colors: List[ColorSpec] = field(default_factory=list)
    typography: Dict[str, str] = field(default_factory=dict)


@dataclass
class PackageResult:
    file_name: str
    download_url: str
    size_bytes: int
    files: List[str] = field(default_factory=list)


# ── Stage result envelope ─────────────────────────────────────────────────────

T = TypeVar("T")


@dataclass
class StageFailure:
    error_type: str
    message: str
    details: Optional[Dict[str, Any]] = None


@dataclass
class StageResult(Generic[T]):
    """What every stage function returns — never raises for expected failures."""
    success: bool
    result: Optional[T] = None
    error: Optional[StageFailure] = None
    tokens_used: int = 0
    processing_time_ms: int = 0

    @classmethod
    def ok(cls, result: T, tokens_used: int = 0, processing_time_ms: int = 0) -> "StageResult[T]":
        return cls(True, result=result, tokens_used=tokens_used, processing_time_ms=processing_time_ms)

    @classmethod
    def fail(
        cls,
        error_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        tokens_used: int = 0,
        processing_time_ms: int = 0,
    ) -> "StageResult[T]":
        return cls(
            False,
            error=StageFailure(error_type, message, details),
            tokens_used=tokens_used,
            processing_time_ms=processing_time_ms,
        )
