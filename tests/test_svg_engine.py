import pytest

from helpers import BARE_SVG, LOGO_SVG, FakeAI
from logoforge.svg.analysis import iter_attributes, parse_svg_metadata, top_level_tag_count
from logoforge.svg.engine import AI_REPAIR_MODIFICATION, AI_REPAIR_SYSTEM_PROMPT, SvgValidationEngine
from logoforge.svg.monochrome import MonochromeConverter
from logoforge.svg.optimizer import MinifyingOptimizer
from logoforge.svg.repair import repair_svg
from logoforge.svg.validator import DISALLOWED_ELEMENTS, validate_svg

SCRIPT_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100">'
    "<script>alert('x')</script>"
    '<circle cx="50" cy="50" r="40" fill="#336699"/>'
    "</svg>"
)

HOSTILE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100"><title>Hostile</title>'
    '<a href="javascript:alert(1)"><rect onclick="steal()" width="10" height="10"/></a>'
    '<circle cx="50" cy="50" r="20" onmouseover="x()"/>'
    "</svg>"
)


# ── Validation ────────────────────────────────────────────────────────────────

def test_script_is_critical():
    result = validate_svg(SCRIPT_SVG)
    assert not result.is_valid
    assert any("script" in issue for issue in result.critical_issues)
    assert result.security_score < 100


def test_clean_svg_is_valid():
    result = validate_svg(LOGO_SVG)
    assert result.is_valid
    assert result.issues == []
    assert result.security_score == 100


def test_empty_and_missing_root():
    assert not validate_svg("").is_valid
    result = validate_svg("just some words that are long enough to pass the size check")
    assert "Missing <svg> element" in result.issues
    assert not result.is_valid


def test_missing_metadata_is_advisory():
    result = validate_svg(BARE_SVG)
    assert result.is_valid
    assert "Missing xmlns attribute on root <svg>" in result.issues
    assert "Missing <title> or <desc> element for accessibility" in result.issues
    assert result.critical_issues == []


def test_every_event_handler_is_flagged():
    svg = LOGO_SVG.replace("<circle ", '<circle onpointerdown="x()" ')
    result = validate_svg(svg)
    assert "Contains disallowed attribute: onpointerdown" in result.issues
    assert not result.is_valid


def test_unbalanced_tags_reported():
    result = validate_svg(LOGO_SVG.replace("</title>", ""))
    assert any(issue.startswith("Unbalanced tags") for issue in result.issues)


# ── Repair ────────────────────────────────────────────────────────────────────

def test_repair_removes_script():
    repaired = repair_svg(SCRIPT_SVG, "Acme")
    assert "<script" not in repaired.svg
    assert "alert" not in repaired.svg
    assert validate_svg(repaired.svg).is_valid
    assert any("script" in m for m in repaired.modifications)


def test_repair_adds_namespace_viewbox_and_escaped_title():
    repaired = repair_svg(BARE_SVG, "Flour & Joy")
    assert 'xmlns="http://www.w3.org/2000/svg"' in repaired.svg
    assert 'viewBox="0 0 300 300"' in repaired.svg
    assert "<title>Flour &amp; Joy Logo</title>" in repaired.svg
    assert repaired.svg.startswith("<?xml")


@pytest.mark.parametrize("svg", [SCRIPT_SVG, BARE_SVG, HOSTILE_SVG, LOGO_SVG])
def test_repair_is_idempotent(svg):
    once = repair_svg(svg, "Flour & Joy")
    twice = repair_svg(once.svg, "Flour & Joy")
    assert twice.svg == once.svg
    assert twice.modifications == []


def test_repair_leaves_non_svg_alone():
    repaired = repair_svg("hello", "Brand")
    assert repaired.svg == "hello"
    assert repaired.modifications == []


# ── Engine ────────────────────────────────────────────────────────────────────

async def test_engine_repairs_injected_script():
    result = await SvgValidationEngine().process(SCRIPT_SVG, "Acme")
    assert result.is_valid
    assert "<script" not in result.svg
    assert result.optimized


async def test_engine_flour_and_joy():
    result = await SvgValidationEngine().process(BARE_SVG, "Flour & Joy")
    assert result.is_valid
    assert "xmlns=" in result.svg
    assert "viewBox=" in result.svg
    assert "Flour &amp; Joy" in result.svg


async def test_engine_output_never_contains_handlers_or_scripts():
    result = await SvgValidationEngine().process(HOSTILE_SVG, "Hostile")
    lowered = result.svg.lower()
    assert result.is_valid
    assert "onclick" not in lowered
    assert "onmouseover" not in lowered
    assert "javascript:" not in lowered
    assert "<script" not in lowered


# ── Injected fragments ────────────────────────────────────────────────────────

def wrap(fragment):
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:svg="http://www.w3.org/2000/svg" '
        'xmlns:xlink="http://www.w3.org/1999/xlink" viewBox="0 0 100 100"><title>Acme</title>'
        f'{fragment}<circle cx="50" cy="50" r="20" fill="#336699"/></svg>'
    )


INJECTED = [
    ("<script>alert(1)</script>", "<script"),
    ("<SCRIPT>alert(1)</SCRIPT>", "<script"),
    ("<svg:script>alert(document.domain)</svg:script>", "svg:script"),
    ('<svg:script href="evil.js"/>', "svg:script"),
    ('<rect width="10" height="10"onclick="alert(1)"/>', "onclick"),
    ('<rect/onclick="alert(1)" width="10" height="10"/>', "onclick"),
    ('<rect width="10" height="10" OnClick="alert(1)"/>', "onclick"),
    ('<a href="javascript:alert(1)"><rect width="1" height="1"/></a>', "javascript:"),
    ('<a href=" JaVaScRiPt:alert(1)"><rect width="1" height="1"/></a>', "javascript:"),
    ('<a href="&#106;avascript:alert(1)"><rect width="1" height="1"/></a>', "avascript"),
    ('<a xlink:href="&#x6A;avascript:alert(1)"><rect width="1" height="1"/></a>', "avascript"),
    ('<a href="java&#x09;script:alert(1)"><rect width="1" height="1"/></a>', "script:"),
]
INJECTED += [(f'<{name} id="bad"/>', f"<{name.lower()}") for name in DISALLOWED_ELEMENTS]
INJECTED += [(f'<svg:{name} id="bad"/>', f"svg:{name.lower()}") for name in DISALLOWED_ELEMENTS]


@pytest.mark.parametrize("fragment,needle", INJECTED)
def test_injected_fragment_is_never_valid(fragment, needle):
    assert not validate_svg(wrap(fragment)).is_valid


@pytest.mark.parametrize("fragment,needle", INJECTED)
async def test_engine_removes_injected_fragment(fragment, needle):
    result = await SvgValidationEngine().process(wrap(fragment), "Acme")
    out = result.svg.lower()
    assert not (validate_svg(result.svg).is_valid and needle in out)
    assert result.is_valid
    assert needle not in out


@pytest.mark.parametrize("fragment,needle", INJECTED)
def test_repair_of_injected_fragment_is_idempotent(fragment, needle):
    once = repair_svg(wrap(fragment), "Acme")
    assert repair_svg(once.svg, "Acme").svg == once.svg


async def test_minimal_script_logo():
    result = await SvgValidationEngine().process("<svg><script>alert(1)</script><rect/></svg>", "Acme")
    assert result.is_valid
    assert "<script" not in result.svg
    assert "alert(1)" not in result.svg


def test_attributes_are_read_per_tag():
    svg = '<rect d="M0 0 onclick=1" width="10"onclick="x()"/><a/href="y">'
    assert list(iter_attributes(svg)) == [("d", "M0 0 onclick=1"), ("width", "10"), ("onclick", "x()"), ("href", "y")]


def test_encoded_scheme_is_neutralized_by_repair():
    repaired = repair_svg(wrap('<a href="&#106;avascript:alert(1)"><rect width="1" height="1"/></a>'), "Acme")
    assert 'href="removed:"' in repaired.svg
    assert any("encoded javascript:" in m for m in repaired.modifications)


async def test_engine_without_repair_reports_invalid():
    result = await SvgValidationEngine().process(SCRIPT_SVG, "Acme", repair=False)
    assert not result.is_valid
    assert result.svg == SCRIPT_SVG


class BreakingOptimizer:
    applied = ["broke it"]

    def optimize(self, svg):
        return "<svg></svg>"


async def test_broken_optimization_is_reverted():
    result = await SvgValidationEngine(optimizer=BreakingOptimizer()).process(LOGO_SVG, "Flour & Joy")
    assert result.is_valid
    assert result.svg == LOGO_SVG
    assert not result.optimized
    assert result.optimization.reduction_percent == 0


async def test_ai_assisted_repair_is_logged_and_validated(sleep):
    ai = FakeAI({AI_REPAIR_SYSTEM_PROMPT: f"Here you go:\n```svg\n{LOGO_SVG}\n```"})
    engine = SvgValidationEngine(ai=ai, sleep=sleep)
    result = await engine.process("this is not an svg document at all, sorry about that", "Flour & Joy")
    assert result.is_valid
    assert AI_REPAIR_MODIFICATION in result.modifications
    assert result.tokens_used == 15
    assert ai.calls_for(AI_REPAIR_SYSTEM_PROMPT) == 1


async def test_invalid_ai_repair_is_rejected(sleep):
    ai = FakeAI({AI_REPAIR_SYSTEM_PROMPT: "```svg\n<svg><script>x</script></svg>\n```"})
    engine = SvgValidationEngine(ai=ai, sleep=sleep)
    result = await engine.process("this is not an svg document at all, sorry about that", "Brand")
    assert not result.is_valid
    assert AI_REPAIR_MODIFICATION not in result.modifications


async def test_ai_repair_not_used_when_deterministic_repair_suffices(sleep):
    ai = FakeAI({AI_REPAIR_SYSTEM_PROMPT: LOGO_SVG})
    result = await SvgValidationEngine(ai=ai, sleep=sleep).process(SCRIPT_SVG, "Acme")
    assert result.is_valid
    assert ai.calls == []


# ── Optimizer / monochrome / analysis ────────────────────────────────────────

def test_minifier_strips_comments_and_decimals():
    svg = LOGO_SVG.replace("<circle", "<!-- note -->\n  <circle").replace('r="120"', 'r="120.123456"')
    optimizer = MinifyingOptimizer()
    out = optimizer.optimize(svg)
    assert "<!--" not in out
    assert 'r="120.12"' in out
    assert "removed comments" in optimizer.applied


def test_monochrome_variants():
    converter = MonochromeConverter()
    black = converter.to_black(LOGO_SVG)
    assert "#8B5E3C" not in black and "#F5E6CC" not in black
    assert black.count("#000000") == 2
    white = converter.to_white(LOGO_SVG)
    assert white.count("#FFFFFF") == 2
    favicon = converter.to_favicon(BARE_SVG)
    assert 'viewBox="0 0 300 300"' in favicon
    assert "<title>Favicon</title>" in favicon
    assert 'width="300"' not in favicon.split(">")[0]


def test_monochrome_keeps_none():
    svg = LOGO_SVG.replace('fill="#F5E6CC"', 'fill="none" stroke="#123456"')
    black = MonochromeConverter().to_black(svg)
    assert 'fill="none"' in black
    assert 'stroke="#000000"' in black


def test_metadata_and_top_level_count():
    meta = parse_svg_metadata(LOGO_SVG)
    assert (meta.width, meta.height) == (300, 300)
    assert meta.element_count == 2
    assert not meta.has_gradients
    assert top_level_tag_count(LOGO_SVG) == 2
