"""
ai_client.py — Text-generation service used by every AI-backed stage.

The pipeline only depends on the TextGenerator protocol:
  generate(system_prompt, user_prompt, model=..., temperature=..., max_tokens=..., timeout=...)
    → AIResponse(text, input_tokens, output_tokens)

GeminiTextService is the production implementation (google-genai).
Tests substitute a scripted fake.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from google import genai
from google.genai import types

from .config import StageSettings
from .errors import AIResponseError, AITimeoutError, ConfigurationError
from .retry import SleepFn, with_retry

logger = logging.getLogger(__name__)


@dataclass
class AIResponse:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class TextGenerator(Protocol):
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> AIResponse:
        ...


# ── Gemini implementation ─────────────────────────────────────────────────────

class GeminiTextService:
    """TextGenerator backed by the Gemini API (async client)."""

    def __init__(self, api_key: Optional[str] = None) -> None:
        api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY not set in environment / .env")
        self.client = genai.Client(api_key=api_key)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> AIResponse:
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=model,
                    contents=user_prompt,
                    config=types.GenerateContentConfig(
                        system_instruction=system_prompt,
                        temperature=temperature,
                        max_output_tokens=max_tokens,
                    ),
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise AITimeoutError(f"{model} did not respond within {timeout:.0f}s") from e

        text = (response.text or "").strip()
        if not text:
            raise AIResponseError("Empty response from AI model")

        usage = response.usage_metadata
        return AIResponse(
            text=text,
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
        )


# ── Stage helper ──────────────────────────────────────────────────────────────

async def call_model(
    ai: TextGenerator,
    settings: StageSettings,
    system_prompt: str,
    user_prompt: str,
    *,
    sleep: Optional[SleepFn] = None,
    label: str = "AI call",
) -> AIResponse:
    """One generation with the stage's model settings and retry budget."""

    async def _attempt() -> AIResponse:
        return await ai.generate(
            system_prompt,
            user_prompt,
            model=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.timeout,
        )

    response = await with_retry(
        _attempt,
        max_attempts=settings.max_attempts,
        base_delay=settings.retry_delay,
        sleep=sleep,
        label=label,
    )
    logger.debug(f"{label}: {response.total_tokens} tokens ({settings.model})")
    return response
