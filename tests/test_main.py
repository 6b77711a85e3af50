from helpers import BRIEF_TEXT
from logoforge.main import parse_args, save_svg_files
from logoforge.models import Brief
from logoforge.pipeline import LogoPipeline


async def test_saved_files_include_animation_css(fake_ai, rasterizer, store, sleep, tmp_path):
    pipeline = LogoPipeline(fake_ai, rasterizer=rasterizer, store=store, sleep=sleep)
    result = await pipeline.execute(Brief(prompt=BRIEF_TEXT))

    save_svg_files(result, tmp_path)
    assert (tmp_path / "logo.svg").read_text(encoding="utf-8") == result.svg
    assert "Color Palette" in (tmp_path / "brand-guidelines.html").read_text(encoding="utf-8")
    css = (tmp_path / "logo-animation.css").read_text(encoding="utf-8")
    assert "@keyframes logo-draw" in css


async def test_no_animation_css_without_animation(fake_ai, rasterizer, store, sleep, tmp_path):
    pipeline = LogoPipeline(fake_ai, rasterizer=rasterizer, store=store, sleep=sleep, auto_animation=False)
    result = await pipeline.execute(Brief(prompt=BRIEF_TEXT))

    save_svg_files(result, tmp_path)
    assert not (tmp_path / "logo-animation.css").exists()


def test_parse_args():
    args = parse_args(["--brief", BRIEF_TEXT, "--skip", "G", "--skip", "H", "--concept", "1"])
    assert args.skip == ["G", "H"]
    assert args.concept == 1
    assert not args.debug
