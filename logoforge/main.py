"""
logoforge — Logo Generation Pipeline

Usage:
  python -m logoforge.main --brief "Flour & Joy, an artisan bakery in Lisbon..."
  python -m logoforge.main --brief-file briefs/bakery.md --image-description "hand-drawn wheat"
  python -m logoforge.main --brief-file briefs/bakery.md --concept 1 --debug
  python -m logoforge.main --brief-file briefs/bakery.md --skip G --skip H
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from .ai_client import GeminiTextService
from .animation import render_animation_css
from .cache import InMemoryCache
from .config import LOG_LEVEL, OUTPUT_DIR
from .models import Brief
from .pipeline import (
    STAGE_ORDER,
    STATUS_COMPLETE,
    STATUS_ERROR,
    STATUS_INITIALIZING,
    LogoPipeline,
    LogoService,
    PipelineOptions,
    PipelineResult,
    ProgressUpdate,
)
from .raster import CairoRasterizer
from .storage import LocalFileStore

load_dotenv()

console = Console()


# ── CLI ───────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="logoforge — brief in, logo package out"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--brief", help="Brief text")
    source.add_argument("--brief-file", help="Path to a text/markdown file containing the brief")
    parser.add_argument(
        "--image-description",
        action="append",
        default=[],
        help="Text description of a reference image (repeatable, max 3 used)",
    )
    parser.add_argument(
        "--skip",
        action="append",
        default=[],
        choices=[s.value for s in STAGE_ORDER],
        help="Stage id to skip (repeatable)",
    )
    parser.add_argument(
        "--concept",
        type=int,
        default=None,
        help="Force concept index 0–2 instead of letting the model choose",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Keep per-stage logs and error details in the result",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output directory (default: outputs/<timestamp>)",
    )
    return parser.parse_args(argv)


def load_brief(args: argparse.Namespace) -> Brief:
    text = args.brief
    if args.brief_file:
        text = Path(args.brief_file).read_text(encoding="utf-8")
    return Brief(prompt=text or "", image_descriptions=list(args.image_description))


# ── Output helpers ────────────────────────────────────────────────────────────

def print_progress(update: ProgressUpdate) -> None:
    pct = f"[dim]{update.overall_progress:5.1f}%[/dim]"
    if update.stage == STATUS_ERROR:
        console.print(f"{pct}  [red]✗ {update.status_message}: {update.error}[/red]")
    elif update.error:
        console.print(f"{pct}  [yellow]⚠ {update.status_message} ({update.error})[/yellow]")
    elif update.stage in (STATUS_INITIALIZING, STATUS_COMPLETE):
        console.print(f"{pct}  [bold]{update.status_message}[/bold]")
    elif update.stage_progress >= 100:
        console.print(f"{pct}  [green]✓ {update.status_message}[/green]")
    else:
        console.print(f"{pct}  [bold]Stage {update.stage}[/bold] — {update.status_message}")


def print_concepts(result: PipelineResult) -> None:
    if not result.concepts:
        return
    chosen = result.selection.selected_index if result.selection else None
    lines = []
    for i, c in enumerate(result.concepts):
        marker = "[bold green]→[/bold green]" if i == chosen else " "
        lines.append(f"{marker} [bold]{i}. {c.name}[/bold] — {c.style_approach}")
        lines.append(f"    {c.description}")
        lines.append(f"    [dim]{', '.join(c.primary_colors)}[/dim]")
    if result.selection:
        lines.append(f"\n[italic]{result.selection.rationale}[/italic] (score {result.selection.score:.0f})")
    console.print(Panel("\n".join(lines), title="[bold]Concepts[/bold]", border_style="cyan"))


def print_summary(result: PipelineResult) -> None:
    table = Table(title="Stages", show_lines=False)
    table.add_column("Stage")
    table.add_column("Time", justify="right")
    table.add_column("Tokens", justify="right")
    stage_ms = result.execution_time.get("stages", {})
    stage_tokens = result.tokens_used.get("stages", {})
    for stage in STAGE_ORDER:
        if stage.value in stage_ms:
            table.add_row(
                f"{stage.value}  {stage.label}",
                f"{stage_ms[stage.value] / 1000:.1f}s",
                str(stage_tokens.get(stage.value, 0)),
            )
    table.add_row(
        "[bold]Total[/bold]",
        f"[bold]{result.execution_time.get('total', 0) / 1000:.1f}s[/bold]",
        f"[bold]{result.tokens_used.get('total', 0)}[/bold]",
    )
    console.print(table)


def save_svg_files(result: PipelineResult, output_dir: Path) -> None:
    """Loose copies of the SVGs next to the package, handy for quick preview."""
    output_dir.mkdir(parents=True, exist_ok=True)
    if result.svg:
        (output_dir / "logo.svg").write_text(result.svg, encoding="utf-8")
    if result.guidelines:
        (output_dir / "brand-guidelines.html").write_text(result.guidelines.html, encoding="utf-8")
    if result.animation:
        css = render_animation_css(result.animation)
        (output_dir / "logo-animation.css").write_text(css, encoding="utf-8")


# ── Main ──────────────────────────────────────────────────────────────────────

async def run(args: argparse.Namespace) -> PipelineResult:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(args.output) if args.output else OUTPUT_DIR / timestamp

    pipeline = LogoPipeline(
        GeminiTextService(),
        rasterizer=CairoRasterizer(),
        store=LocalFileStore(output_dir),
    )
    # process-local: a one-shot CLI run never gets a hit
    service = LogoService(pipeline, InMemoryCache())
    options = PipelineOptions(
        skip_stages=frozenset(args.skip),
        debug_mode=args.debug,
        manual_concept_selection=args.concept,
    )
    result = await service.generate(load_brief(args), options, on_progress=print_progress)
    if result.success:
        save_svg_files(result, output_dir)
    return result


def main(argv: Optional[list] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s — %(levelname)s — %(name)s — %(message)s",
        level=getattr(logging, LOG_LEVEL, logging.INFO),
    )
    _check_env()

    console.print(Rule("[bold magenta]logoforge[/bold magenta]"))
    t0 = time.time()
    result = asyncio.run(run(args))

    print_concepts(result)
    print_summary(result)

    if not result.success:
        err = result.error
        body = f"Stage {err.stage}: {err.message}" if err else "Unknown error"
        if err and err.details:
            body += f"\n\n[dim]{err.details.get('traceback', '')}[/dim]"
        console.print(Panel(body, title="[bold red]Generation failed[/bold red]", border_style="red"))
        sys.exit(1)

    lines = []
    if result.design_spec:
        lines.append(f"Brand: [bold]{result.design_spec.brand_name}[/bold]")
    if result.package:
        lines.append(f"Package: [bold]{result.package.download_url}[/bold] ({result.package.size_bytes // 1024} KB)")
    if result.animation:
        lines.append(f"Animation: {result.animation.type.value} ({result.animation.duration_ms}ms)")
    if result.variants and result.variants.used_fallback:
        lines.append("[yellow]⚠ Some variants used rule-based conversion[/yellow]")
    if args.debug:
        for line in result.logs:
            console.print(f"  [dim]{line}[/dim]")
    console.print(
        Panel(
            "\n".join(lines) + f"\n\n✓ Done in {time.time() - t0:.1f}s",
            title="[bold green]Logo Ready[/bold green]",
            border_style="green",
        )
    )


def _check_env() -> None:
    """Check required environment variables."""
    if not os.environ.get("GEMINI_API_KEY"):
        console.print("[bold red]Error:[/bold red] GEMINI_API_KEY not set.")
        console.print("Create a .env file from .env.example and add your key.")
        sys.exit(1)


if __name__ == "__main__":
    main()
