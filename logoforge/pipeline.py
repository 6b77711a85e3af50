"""
pipeline.py — Runs the logo pipeline end to end.

Stages, each gated on the outputs of the ones it depends on:
  A  Design spec distillation      (brief → DesignSpec)
  B  Moodboard                     (spec → 3 concepts)
  C  Concept selection             (AI pick, or manual override)
  D  SVG generation
  E  SVG validation & repair       (overwrites D's svg)
  F  Variants                      (monochrome, favicon, PNG, ICO)
  G  Brand guidelines              (failure is logged, run continues)
  H  Packaging                     (ZIP → FileStore)

Usage:
  pipeline = LogoPipeline(GeminiTextService(), rasterizer=CairoRasterizer(), store=LocalFileStore(out))
  result = await pipeline.execute(Brief(prompt="..."), PipelineOptions(), on_progress=print)

Progress is reported through an optional callback with a ProgressUpdate;
every stage is worth 12.5% of the run. Callback errors never abort a run.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from .ai_client import TextGenerator
from .animation import AnimationChoice, select_animation
from .cache import ResultCache, SingleFlight, brief_fingerprint
from .errors import DEPENDENCY_ERROR, StageDependencyError
from .models import (
    Brief,
    Concept,
    DesignSpec,
    GeneratedSvg,
    Guidelines,
    PackageResult,
    Selection,
    StageResult,
    ValidatedSvg,
    Variants,
)
from .raster import Rasterizer
from .retry import SleepFn
from .stages import distillation, guidelines, moodboard, packaging, selection, svg_generation, validation, variants
from .stages.common import elapsed_ms, failure
from .storage import FileStore
from .svg.analysis import parse_svg_metadata
from .svg.engine import SvgValidationEngine
from .svg.optimizer import SvgOptimizer

logger = logging.getLogger(__name__)


# ── Stage graph ───────────────────────────────────────────────────────────────

class StageId(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    H = "H"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]


STAGE_LABELS = {
    StageId.A: "Design spec distillation",
    StageId.B: "Moodboard concepts",
    StageId.C: "Concept selection",
    StageId.D: "SVG generation",
    StageId.E: "SVG validation",
    StageId.F: "Logo variants",
    StageId.G: "Brand guidelines",
    StageId.H: "Packaging",
}

STAGE_ORDER: Tuple[StageId, ...] = tuple(StageId)

DEPENDENCIES: Dict[StageId, Tuple[StageId, ...]] = {
    StageId.A: (),
    StageId.B: (StageId.A,),
    StageId.C: (StageId.A, StageId.B),
    StageId.D: (StageId.A, StageId.C),
    StageId.E: (StageId.A, StageId.D),
    StageId.F: (StageId.A, StageId.D),
    StageId.G: (StageId.A, StageId.C, StageId.D, StageId.F),
    StageId.H: (StageId.A, StageId.D, StageId.F, StageId.G),
}

# Stages whose failure is logged without aborting the run
SOFT_STAGES = frozenset({StageId.G})

STAGE_WEIGHT = 100.0 / len(STAGE_ORDER)   # 12.5

STATUS_INITIALIZING = "initializing"
STATUS_COMPLETE = "complete"
STATUS_ERROR = "error"


# ── Options / progress ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PipelineOptions:
    skip_stages: FrozenSet[str] = frozenset()
    debug_mode: bool = False
    manual_concept_selection: Optional[int] = None

    def skips(self, stage: StageId) -> bool:
        return stage.value in {s.upper() for s in self.skip_stages}


@dataclass
class ProgressUpdate:
    stage: str                       # "initializing" | "A".."H" | "complete" | "error"
    stage_progress: float            # 0–100
    overall_progress: float          # 0–100
    status_message: str
    error: Optional[str] = None


ProgressCallback = Callable[[ProgressUpdate], Any]


@dataclass
class PipelineState:
    """Mutable per-run bookkeeping. Never shared between runs."""
    stage_outputs: Dict[StageId, Any] = field(default_factory=dict)
    execution_time_ms: Dict[StageId, int] = field(default_factory=dict)
    tokens_used: Dict[StageId, int] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)
    progress: float = 0.0
    completed: int = 0

    def log(self, message: str) -> None:
        self.logs.append(f"[{datetime.now().isoformat(timespec='milliseconds')}] {message}")

    def missing_dependency(self, stage: StageId) -> Optional[StageId]:
        for dep in DEPENDENCIES[stage]:
            if dep not in self.stage_outputs:
                return dep
        return None


# ── Result ────────────────────────────────────────────────────────────────────

@dataclass
class PipelineError:
    stage: str
    message: str
    error_type: str
    details: Optional[Dict[str, Any]] = None     # debug mode only


@dataclass
class PipelineResult:
    """Terminal outcome of one run: success, or the first load-bearing failure."""
    success: bool
    brief: Optional[Brief] = None
    design_spec: Optional[DesignSpec] = None
    concepts: List[Concept] = field(default_factory=list)
    selection: Optional[Selection] = None
    svg: Optional[str] = None
    validation: Optional[ValidatedSvg] = None
    variants: Optional[Variants] = None
    guidelines: Optional[Guidelines] = None
    package: Optional[PackageResult] = None
    animation: Optional[AnimationChoice] = None
    error: Optional[PipelineError] = None
    execution_time: Dict[str, Any] = field(default_factory=dict)   # {"total": ms, "stages": {id: ms}}
    tokens_used: Dict[str, Any] = field(default_factory=dict)      # {"total": n, "stages": {id: n}}
    logs: List[str] = field(default_factory=list)
    stage_outputs: Dict[str, Any] = field(default_factory=dict)
    cached: bool = False


# ── Orchestrator ──────────────────────────────────────────────────────────────

class LogoPipeline:
    """Sequences stages A→H over injected collaborators."""

    def __init__(
        self,
        ai: TextGenerator,
        *,
        rasterizer: Rasterizer,
        store: FileStore,
        optimizer: Optional[SvgOptimizer] = None,
        sleep: Optional[SleepFn] = None,
        auto_animation: bool = True,
    ) -> None:
        self.ai = ai
        self.rasterizer = rasterizer
        self.store = store
        self.sleep = sleep
        self.auto_animation = auto_animation
        self.engine = SvgValidationEngine(optimizer=optimizer, ai=ai, sleep=sleep)

    # ── Progress ──────────────────────────────────────────────────────────────

    def _emit(
        self,
        state: PipelineState,
        on_progress: Optional[ProgressCallback],
        stage: str,
        stage_progress: float,
        message: str,
        error: Optional[str] = None,
    ) -> None:
        overall = state.completed * STAGE_WEIGHT + stage_progress * STAGE_WEIGHT / 100
        if stage == STATUS_COMPLETE:
            overall = 100.0
        # Never report less than what was already reported
        state.progress = max(state.progress, min(100.0, overall))
        if on_progress is None:
            return
        update = ProgressUpdate(stage, stage_progress, round(state.progress, 2), message, error)
        try:
            on_progress(update)
        except Exception as e:
            logger.warning(f"Progress callback raised, ignoring: {e}")

    # ── Stage dispatch ────────────────────────────────────────────────────────

    async def _run_stage(
        self, stage: StageId, brief: Brief, options: PipelineOptions, state: PipelineState
    ) -> StageResult:
        out = state.stage_outputs
        spec: Optional[DesignSpec] = out.get(StageId.A)
        generated: Optional[GeneratedSvg] = out.get(StageId.D)
        svg = generated.svg if generated else None
        brand = spec.brand_name if spec else None

        if stage is StageId.A:
            return await distillation.run(brief, ai=self.ai, sleep=self.sleep)
        if stage is StageId.B:
            return await moodboard.run(spec, ai=self.ai, sleep=self.sleep)
        if stage is StageId.C:
            if options.manual_concept_selection is not None:
                return self._manual_selection(out.get(StageId.B), options.manual_concept_selection)
            return await selection.run(spec, out.get(StageId.B), ai=self.ai, sleep=self.sleep)
        if stage is StageId.D:
            return await svg_generation.run(spec, out.get(StageId.C), ai=self.ai, sleep=self.sleep)
        if stage is StageId.E:
            return await validation.run(svg, brand, engine=self.engine)
        if stage is StageId.F:
            return await variants.run(svg, brand, rasterizer=self.rasterizer, ai=self.ai, sleep=self.sleep)
        if stage is StageId.G:
            chosen: Selection = out[StageId.C]
            return await guidelines.run(
                brand, chosen.selected_concept, svg, out.get(StageId.F), spec=spec, ai=self.ai, sleep=self.sleep
            )
        return await packaging.run(brand, svg, out.get(StageId.F), out.get(StageId.G), store=self.store)

    @staticmethod
    def _manual_selection(concepts: Optional[List[Concept]], index: int) -> StageResult:
        started = time.perf_counter()
        try:
            chosen = selection.manual_selection(concepts or [], index)
        except Exception as e:
            return failure("C", e, started)
        logger.info(f"Stage C: manual override → [{index}] {chosen.selected_concept.name}")
        # Manual selection spends neither tokens nor time
        return StageResult.ok(chosen, tokens_used=0, processing_time_ms=0)

    def _store_output(self, stage: StageId, result: Any, state: PipelineState) -> None:
        state.stage_outputs[stage] = result
        if stage is StageId.E:
            # Downstream stages must only ever see the validated SVG
            raw: GeneratedSvg = state.stage_outputs[StageId.D]
            state.stage_outputs[StageId.D] = GeneratedSvg(
                svg=result.svg, metadata=parse_svg_metadata(result.svg), design_notes=raw.design_notes
            )

    # ── Run ───────────────────────────────────────────────────────────────────

    async def execute(
        self,
        brief: Brief,
        options: Optional[PipelineOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        options = options or PipelineOptions()
        state = PipelineState()
        t0 = time.perf_counter()

        state.log("Pipeline started")
        self._emit(state, on_progress, STATUS_INITIALIZING, 0, "Starting logo generation")

        for stage in STAGE_ORDER:
            if options.skips(stage):
                logger.info(f"Stage {stage.value} ({stage.label}) skipped")
                state.log(f"Stage {stage.value} skipped")
                state.completed += 1
                continue

            missing = state.missing_dependency(stage)
            if missing is not None:
                dep_error = StageDependencyError(stage.value, missing.value)
                logger.error(str(dep_error))
                result = StageResult.fail(DEPENDENCY_ERROR, str(dep_error))
            else:
                self._emit(state, on_progress, stage.value, 0, f"{stage.label}...")
                state.log(f"Stage {stage.value} started")
                try:
                    result = await self._run_stage(stage, brief, options, state)
                except Exception as e:
                    result = failure(stage.value, e, time.perf_counter())

            state.execution_time_ms[stage] = result.processing_time_ms
            state.tokens_used[stage] = result.tokens_used

            if not result.success:
                message = result.error.message if result.error else "Unknown error"
                state.log(f"Stage {stage.value} failed: {message}")
                if stage in SOFT_STAGES and missing is None:
                    logger.warning(f"Stage {stage.value} failed, continuing without it: {message}")
                    self._emit(state, on_progress, stage.value, 100, f"{stage.label} unavailable", message)
                    state.completed += 1
                    continue
                return self._failed(stage, result, brief, options, state, t0, on_progress)

            self._store_output(stage, result.result, state)
            state.log(f"Stage {stage.value} completed in {result.processing_time_ms}ms ({result.tokens_used} tokens)")
            self._emit(state, on_progress, stage.value, 100, f"{stage.label} complete")
            state.completed += 1

        pipeline_result = self._assemble(True, brief, options, state, t0)
        if self.auto_animation and pipeline_result.svg:
            brand = pipeline_result.design_spec.brand_name if pipeline_result.design_spec else ""
            choice = await select_animation(pipeline_result.svg, brand, ai=self.ai, sleep=self.sleep)
            pipeline_result.animation = choice
            pipeline_result.tokens_used["stages"]["animation"] = choice.tokens_used
            pipeline_result.tokens_used["total"] += choice.tokens_used
            logger.info(f"Animation: {pipeline_result.animation.type.value} ({pipeline_result.animation.source})")

        state.log("Pipeline completed")
        if options.debug_mode:
            pipeline_result.logs = list(state.logs)
        logger.info(
            f"Pipeline complete in {pipeline_result.execution_time['total']}ms, "
            f"{pipeline_result.tokens_used['total']} tokens"
        )
        self._emit(state, on_progress, STATUS_COMPLETE, 100, "Logo generation complete")
        return pipeline_result

    def _failed(
        self,
        stage: StageId,
        result: StageResult,
        brief: Brief,
        options: PipelineOptions,
        state: PipelineState,
        t0: float,
        on_progress: Optional[ProgressCallback],
    ) -> PipelineResult:
        err = result.error
        message = err.message if err else "Unknown error"
        details = None
        if options.debug_mode:
            details = dict(err.details or {}) if err else {}
        pipeline_result = self._assemble(False, brief, options, state, t0)
        pipeline_result.error = PipelineError(
            stage=stage.value,
            message=message,
            error_type=err.error_type if err else DEPENDENCY_ERROR,
            details=details,
        )
        logger.error(f"Pipeline failed at stage {stage.value} ({stage.label}): {message}")
        self._emit(state, on_progress, STATUS_ERROR, 0, f"Failed at {stage.label}", message)
        return pipeline_result

    @staticmethod
    def _assemble(
        success: bool, brief: Brief, options: PipelineOptions, state: PipelineState, t0: float
    ) -> PipelineResult:
        out = state.stage_outputs
        generated: Optional[GeneratedSvg] = out.get(StageId.D)
        stages_ms = {s.value: ms for s, ms in state.execution_time_ms.items()}
        stages_tokens = {s.value: n for s, n in state.tokens_used.items()}
        return PipelineResult(
            success=success,
            brief=brief,
            design_spec=out.get(StageId.A),
            concepts=list(out.get(StageId.B) or []),
            selection=out.get(StageId.C),
            svg=generated.svg if generated else None,
            validation=out.get(StageId.E),
            variants=out.get(StageId.F),
            guidelines=out.get(StageId.G),
            package=out.get(StageId.H),
            execution_time={"total": elapsed_ms(t0), "stages": stages_ms},
            tokens_used={"total": sum(stages_tokens.values()), "stages": stages_tokens},
            logs=list(state.logs) if options.debug_mode else [],
            stage_outputs={s.value: o for s, o in out.items()} if options.debug_mode else {},
        )


# ── Cached front door ─────────────────────────────────────────────────────────

def cache_key(brief: Brief, options: PipelineOptions) -> str:
    """Brief fingerprint, qualified by the options that change the output."""
    key = brief_fingerprint(brief)
    skipped = "".join(sorted(s.upper() for s in options.skip_stages))
    if skipped or options.manual_concept_selection is not None:
        key += f":skip={skipped}:concept={options.manual_concept_selection}"
    return key


class LogoService:
    """Cache lookup → single-flight pipeline run → cache store."""

    def __init__(
        self,
        pipeline: LogoPipeline,
        cache: ResultCache,
        single_flight: Optional[SingleFlight] = None,
    ) -> None:
        self.pipeline = pipeline
        self.cache = cache
        self.single_flight = single_flight or SingleFlight()

    async def generate(
        self,
        brief: Brief,
        options: Optional[PipelineOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        options = options or PipelineOptions()
        key = cache_key(brief, options)

        hit = await self.cache.get(key)
        if hit is not None:
            logger.info(f"Cache hit for {key[:12]}")
            if on_progress is not None:
                try:
                    on_progress(ProgressUpdate(STATUS_COMPLETE, 100, 100, "Logo generation complete (cached)"))
                except Exception as e:
                    logger.warning(f"Progress callback raised, ignoring: {e}")
            return dataclasses.replace(hit, cached=True)

        async def _run() -> PipelineResult:
            result = await self.pipeline.execute(brief, options, on_progress)
            if result.success:
                await self.cache.set(key, result)
            return result

        return await self.single_flight.do(key, _run)
