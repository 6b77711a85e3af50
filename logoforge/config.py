"""
config.py — Runtime configuration for the logo pipeline.

All values come from the environment (or a local .env file) with sane
defaults, so the pipeline runs with nothing but GEMINI_API_KEY set.

Usage:
  from .config import STAGE_A, OUTPUT_DIR
  settings = STAGE_A            # StageSettings for the distillation call
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


# ── Environment ───────────────────────────────────────────────────────────────

FAST_MODEL = os.getenv("LOGOFORGE_FAST_MODEL", "gemini-2.5-flash-lite")
CREATIVE_MODEL = os.getenv("LOGOFORGE_CREATIVE_MODEL", "gemini-2.5-flash")

OUTPUT_DIR = Path(os.getenv("LOGOFORGE_OUTPUT_DIR", "outputs"))

CACHE_TTL_SECONDS = float(os.getenv("LOGOFORGE_CACHE_TTL_SECONDS", "86400"))
CACHE_MAX_ITEMS = int(os.getenv("LOGOFORGE_CACHE_MAX_ITEMS", "100"))

LOG_LEVEL = os.getenv("LOGOFORGE_LOG_LEVEL", "INFO").upper()


# ── Per-stage call settings ───────────────────────────────────────────────────

@dataclass(frozen=True)
class StageSettings:
    """Model call parameters for one AI-backed step."""
    model: str
    temperature: float
    max_tokens: int
    timeout: float          # seconds, per attempt
    max_attempts: int = 3
    retry_delay: float = 1.0  # base delay in seconds, doubled per retry


STAGE_A = StageSettings(FAST_MODEL, temperature=0.1, max_tokens=500, timeout=10, retry_delay=1)
STAGE_B = StageSettings(CREATIVE_MODEL, temperature=0.7, max_tokens=1500, timeout=30, retry_delay=2)
STAGE_C = StageSettings(FAST_MODEL, temperature=0.2, max_tokens=400, timeout=15, retry_delay=1)
STAGE_D = StageSettings(CREATIVE_MODEL, temperature=0.5, max_tokens=2500, timeout=60, retry_delay=3)
STAGE_F = StageSettings(FAST_MODEL, temperature=0.1, max_tokens=1000, timeout=30, retry_delay=1)
STAGE_G = StageSettings(FAST_MODEL, temperature=0.4, max_tokens=300, timeout=15, max_attempts=2)
SVG_REPAIR = StageSettings(FAST_MODEL, temperature=0.1, max_tokens=1000, timeout=30, max_attempts=2)
ANIMATION = StageSettings(FAST_MODEL, temperature=0.2, max_tokens=300, timeout=10, max_attempts=2)

MAX_RETRY_DELAY = 10.0

# Raster export sizes (px)
PNG_SIZES = (256, 512, 1024)
FAVICON_SIZE = 32
