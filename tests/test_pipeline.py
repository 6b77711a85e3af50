import asyncio

import pytest

from helpers import BARE_SVG_REPLY, BRIEF_TEXT, SPEC_REPLY, FakeAI, pipeline_script
from logoforge.cache import InMemoryCache
from logoforge.errors import AIResponseError
from logoforge.models import Brief
from logoforge.pipeline import (
    DEPENDENCIES,
    STAGE_ORDER,
    LogoPipeline,
    LogoService,
    PipelineOptions,
    StageId,
)
from logoforge import animation
from logoforge.stages import distillation, guidelines, moodboard, selection

BRIEF = Brief(prompt=BRIEF_TEXT)


@pytest.fixture
def make_pipeline(rasterizer, store, sleep):
    def _make(ai, **kwargs):
        return LogoPipeline(ai, rasterizer=rasterizer, store=store, sleep=sleep, **kwargs)
    return _make


class Recorder:
    def __init__(self):
        self.updates = []

    def __call__(self, update):
        self.updates.append(update)


def test_dependency_graph_only_points_backwards():
    for stage, deps in DEPENDENCIES.items():
        for dep in deps:
            assert STAGE_ORDER.index(dep) < STAGE_ORDER.index(stage)


async def test_full_run(fake_ai, make_pipeline, store):
    progress = Recorder()
    result = await make_pipeline(fake_ai).execute(BRIEF, on_progress=progress)

    assert result.success, result.error
    assert result.design_spec.brand_name == "Flour & Joy"
    assert len(result.concepts) == 3
    assert result.selection.selected_index == 1
    assert result.validation.is_valid
    assert result.variants.used_fallback
    assert "Color Palette" in result.guidelines.html
    assert result.package.file_name in store.files
    assert result.animation.type.value == "draw"
    assert result.error is None

    assert result.tokens_used["total"] == 60
    assert result.tokens_used["stages"]["A"] == 15
    assert set(result.execution_time["stages"]) == {s.value for s in STAGE_ORDER}
    assert result.logs == []
    assert result.stage_outputs == {}


async def test_progress_is_monotonic_and_ends_at_100(fake_ai, make_pipeline):
    progress = Recorder()
    await make_pipeline(fake_ai).execute(BRIEF, on_progress=progress)

    overall = [u.overall_progress for u in progress.updates]
    assert progress.updates[0].stage == "initializing"
    assert overall == sorted(overall)
    last = progress.updates[-1]
    assert (last.stage, last.stage_progress, last.overall_progress, last.status_message) == (
        "complete", 100, 100, "Logo generation complete"
    )
    a_done = [u for u in progress.updates if u.stage == "A" and u.stage_progress == 100][0]
    assert a_done.overall_progress == 12.5


async def test_observer_errors_do_not_abort(fake_ai, make_pipeline):
    def explode(update):
        raise RuntimeError("observer is broken")

    result = await make_pipeline(fake_ai).execute(BRIEF, on_progress=explode)
    assert result.success


async def test_first_failure_short_circuits(make_pipeline):
    ai = FakeAI(pipeline_script(a="no json here, sorry"))
    progress = Recorder()
    result = await make_pipeline(ai).execute(BRIEF, on_progress=progress)

    assert not result.success
    assert result.error.stage == "A"
    assert result.error.error_type == "ai_error"
    assert result.error.details is None
    assert ai.calls_for(moodboard.SYSTEM_PROMPT) == 0
    assert progress.updates[-1].stage == "error"


async def test_debug_mode_keeps_details_and_logs(make_pipeline):
    ai = FakeAI(pipeline_script(a="no json here, sorry"))
    result = await make_pipeline(ai).execute(BRIEF, PipelineOptions(debug_mode=True))
    assert result.error.details["exception"] == "AIResponseError"
    assert any("Stage A failed" in line for line in result.logs)


async def test_transient_errors_are_retried(make_pipeline, sleep):
    ai = FakeAI(pipeline_script(a=[AIResponseError("overloaded"), SPEC_REPLY]))
    result = await make_pipeline(ai).execute(BRIEF)
    assert result.success
    assert ai.calls_for(distillation.SYSTEM_PROMPT) == 2
    assert sleep.delays[0] == 1


async def test_skipped_dependency_fails_at_dependent_stage(fake_ai, make_pipeline):
    result = await make_pipeline(fake_ai).execute(BRIEF, PipelineOptions(skip_stages=frozenset({"B"})))
    assert not result.success
    assert result.error.stage == "C"
    assert result.error.error_type == "dependency_error"
    assert result.error.message == "Stage C requires output from Stage B"
    assert fake_ai.calls_for(moodboard.SYSTEM_PROMPT) == 0
    assert fake_ai.calls_for(selection.SYSTEM_PROMPT) == 0


async def test_skipping_tail_stages_succeeds(fake_ai, make_pipeline):
    progress = Recorder()
    result = await make_pipeline(fake_ai).execute(
        BRIEF, PipelineOptions(skip_stages=frozenset({"g", "H"})), on_progress=progress
    )
    assert result.success
    assert result.guidelines is None
    assert result.package is None
    assert progress.updates[-1].overall_progress == 100


async def test_manual_concept_override(fake_ai, make_pipeline):
    result = await make_pipeline(fake_ai).execute(BRIEF, PipelineOptions(manual_concept_selection=2))
    assert result.success
    assert result.selection.selected_index == 2
    assert result.selection.score == 100
    assert result.selection.rationale == "Manually selected by user."
    assert result.tokens_used["stages"]["C"] == 0
    assert result.execution_time["stages"]["C"] == 0
    assert fake_ai.calls_for(selection.SYSTEM_PROMPT) == 0


async def test_manual_override_out_of_range(fake_ai, make_pipeline):
    result = await make_pipeline(fake_ai).execute(BRIEF, PipelineOptions(manual_concept_selection=7))
    assert not result.success
    assert result.error.stage == "C"
    assert result.error.error_type == "validation_error"


async def test_validated_svg_replaces_generated_svg(make_pipeline):
    ai = FakeAI(pipeline_script(d=BARE_SVG_REPLY))
    result = await make_pipeline(ai).execute(BRIEF, PipelineOptions(debug_mode=True))
    assert result.success
    assert "<title>Flour &amp; Joy Logo</title>" in result.svg
    assert result.stage_outputs["D"].svg == result.svg
    assert result.stage_outputs["E"].svg == result.svg
    assert "xmlns" in result.variants.monochrome_black


async def test_guidelines_failure_is_not_fatal_by_itself(fake_ai, make_pipeline, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("template exploded")

    monkeypatch.setattr(guidelines, "render_html", broken)
    progress = Recorder()
    result = await make_pipeline(fake_ai).execute(BRIEF, PipelineOptions(skip_stages=frozenset({"H"})), progress)
    assert result.success
    assert result.guidelines is None
    assert any(u.stage == "G" and u.error for u in progress.updates)


async def test_guidelines_failure_surfaces_at_packaging(fake_ai, make_pipeline, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("template exploded")

    monkeypatch.setattr(guidelines, "render_html", broken)
    result = await make_pipeline(fake_ai).execute(BRIEF)
    assert not result.success
    assert result.error.stage == "H"
    assert result.error.message == "Stage H requires output from Stage G"


async def test_runs_do_not_share_state(fake_ai, make_pipeline):
    pipeline = make_pipeline(fake_ai)
    first, second = await asyncio.gather(pipeline.execute(BRIEF), pipeline.execute(BRIEF))
    assert first.success and second.success
    assert first.tokens_used["stages"] == second.tokens_used["stages"]


async def test_animation_can_be_disabled(fake_ai, make_pipeline):
    result = await make_pipeline(fake_ai, auto_animation=False).execute(BRIEF)
    assert result.animation is None


async def test_animation_tokens_are_counted(make_pipeline):
    ai = FakeAI({**pipeline_script(), animation.SYSTEM_PROMPT: '{"animation": "bounce"}'})
    result = await make_pipeline(ai).execute(BRIEF)
    assert result.animation.source == "ai"
    assert result.tokens_used["stages"]["animation"] == 15
    assert result.tokens_used["total"] == 75


def test_stage_labels():
    assert StageId.E.label == "SVG validation"


# ── LogoService ───────────────────────────────────────────────────────────────

async def test_service_caches_successful_runs(fake_ai, make_pipeline):
    service = LogoService(make_pipeline(fake_ai), InMemoryCache())
    first = await service.generate(BRIEF)
    calls = len(fake_ai.calls)

    progress = Recorder()
    again = await service.generate(Brief(prompt="  " + BRIEF_TEXT.upper() + "  "), on_progress=progress)
    assert not first.cached
    assert again.cached
    assert again.package == first.package
    assert len(fake_ai.calls) == calls
    assert [(u.stage, u.overall_progress) for u in progress.updates] == [("complete", 100)]


async def test_service_does_not_cache_failures(make_pipeline):
    ai = FakeAI(pipeline_script(a="no json"))
    service = LogoService(make_pipeline(ai), InMemoryCache())
    await service.generate(BRIEF)
    await service.generate(BRIEF)
    assert ai.calls_for(distillation.SYSTEM_PROMPT) == 2


async def test_service_options_change_cache_key(fake_ai, make_pipeline):
    service = LogoService(make_pipeline(fake_ai), InMemoryCache())
    await service.generate(BRIEF)
    forced = await service.generate(BRIEF, PipelineOptions(manual_concept_selection=0))
    assert not forced.cached
    assert forced.selection.selected_index == 0


async def test_service_single_flight(fake_ai, make_pipeline):
    service = LogoService(make_pipeline(fake_ai), InMemoryCache())
    first, second = await asyncio.gather(service.generate(BRIEF), service.generate(BRIEF))
    assert first is second
    assert fake_ai.calls_for(distillation.SYSTEM_PROMPT) == 1
