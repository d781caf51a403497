"""End-to-end comic generation: scripts, prompts, images."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from comicgen.core.comic_styles import ComicStyle
from comicgen.core.request_context import log_context
from comicgen.services.panel_images import PanelImage, PanelImageGenerator
from comicgen.services.prompt_optimizer import optimize_panel_prompt
from comicgen.services.script_writer import PanelScript, generate_panel_scripts
from comicgen.services.vertex_gemini import GeminiClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ComicResult:
    scripts: list[PanelScript]
    images: list[PanelImage]


async def _fan_out(calls: list[Callable[[], T]], parallel: bool) -> list[T]:
    """Run blocking calls in worker threads, concurrently or one after another."""
    if parallel:
        return list(await asyncio.gather(*(asyncio.to_thread(call) for call in calls)))
    results: list[T] = []
    for call in calls:
        results.append(await asyncio.to_thread(call))
    return results


async def generate_comic(
    *,
    prompt: str,
    style: ComicStyle,
    panel_count: int,
    gemini: GeminiClient,
    image_generator: PanelImageGenerator,
    parallel: bool = True,
) -> ComicResult:
    """Produce `panel_count` scripts and images.

    Script and prompt failures fall back to deterministic text. A panel whose
    image cannot be produced raises PanelGenerationError and fails the whole
    comic.
    """
    start = time.perf_counter()

    def _scripts() -> list[PanelScript]:
        with log_context(stage="script"):
            return generate_panel_scripts(prompt, panel_count, style, gemini)

    scripts = await asyncio.to_thread(_scripts)

    def _optimizer(script: PanelScript) -> Callable[[], str]:
        def run() -> str:
            with log_context(stage="prompt", panel_number=script.panel_number):
                return optimize_panel_prompt(script, style, gemini)

        return run

    image_prompts = await _fan_out([_optimizer(script) for script in scripts], parallel)

    def _renderer(image_prompt: str, script: PanelScript) -> Callable[[], PanelImage]:
        return lambda: image_generator.generate(image_prompt, script, style)

    images = await _fan_out(
        [_renderer(image_prompt, script) for image_prompt, script in zip(image_prompts, scripts)],
        parallel,
    )

    logger.info(
        "comic_generated panel_count=%d attempts=%s duration_ms=%.0f",
        panel_count,
        [image.attempts for image in images],
        (time.perf_counter() - start) * 1000,
    )
    return ComicResult(scripts=scripts, images=images)
