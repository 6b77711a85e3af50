"""
Stage H — Package assets into a downloadable ZIP.

  logo.svg, logo-black.svg, logo-white.svg, favicon.svg
  logo-256.png, logo-512.png, logo-1024.png, favicon.ico
  brand-guidelines.html, brand-guidelines.txt, README.txt

The archive is built in memory and handed to the FileStore, which returns
the download handle.
"""

from __future__ import annotations

import io
import logging
import re
import time
import zipfile
from datetime import datetime
from typing import Dict, Optional

from ..models import Guidelines, PackageResult, StageResult, Variants
from ..storage import FileStore
from .common import elapsed_ms, failure, require

logger = logging.getLogger(__name__)

README_TEMPLATE = """\
# {brand} Logo Package

Generated {date}.

## Contents

### SVG files
- logo.svg          primary logo, vector
- logo-black.svg    monochrome black
- logo-white.svg    monochrome white
- favicon.svg       simplified square mark

### PNG files
- logo-256.png, logo-512.png, logo-1024.png

### Favicon
- favicon.ico       32x32, for websites

### Documentation
- brand-guidelines.html   full brand guidelines
- brand-guidelines.txt    plain-text version

## Usage

SVG files scale to any size and suit print and high-resolution screens.
PNG files are for places where vector formats are not supported.
"""


def package_file_name(brand_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", brand_name.lower()).strip("-") or "brand"
    return f"{slug}-logo-package.zip"


def collect_files(brand_name: str, svg: str, variants: Variants, guidelines: Guidelines) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {
        "logo.svg": svg.encode("utf-8"),
        "logo-black.svg": variants.monochrome_black.encode("utf-8"),
        "logo-white.svg": variants.monochrome_white.encode("utf-8"),
        "favicon.svg": variants.favicon_svg.encode("utf-8"),
    }
    for size, png in sorted(variants.png_variants.items()):
        if png:
            files[f"logo-{size}.png"] = png
    if variants.favicon_ico:
        files["favicon.ico"] = variants.favicon_ico
    files["brand-guidelines.html"] = guidelines.html.encode("utf-8")
    files["brand-guidelines.txt"] = guidelines.plain_text.encode("utf-8")
    files["README.txt"] = README_TEMPLATE.format(
        brand=brand_name, date=datetime.now().strftime("%Y-%m-%d %H:%M")
    ).encode("utf-8")
    return files


def build_zip(files: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


async def run(
    brand_name: Optional[str],
    svg: Optional[str],
    variants: Optional[Variants],
    guidelines: Optional[Guidelines],
    *,
    store: FileStore,
) -> StageResult[PackageResult]:
    started = time.perf_counter()
    try:
        require(brand_name, "Invalid input: brand name is required")
        require(svg, "Invalid input: SVG is required")
        require(variants, "Invalid input: variants are required")
        require(guidelines, "Invalid input: guidelines are required")
        require(guidelines.html, "Invalid input: guidelines HTML is required")

        files = collect_files(brand_name, svg, variants, guidelines)
        archive = build_zip(files)
        file_name = package_file_name(brand_name)
        url = await store.save(file_name, archive)

        logger.info(f"Stage H: {file_name} ({len(archive) // 1024} KB, {len(files)} files)")
        return StageResult.ok(
            PackageResult(file_name=file_name, download_url=url, size_bytes=len(archive), files=list(files)),
            processing_time_ms=elapsed_ms(started),
        )
    except Exception as e:
        return failure("H", e, started)
