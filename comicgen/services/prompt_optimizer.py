"""Rewrite panel scripts into image-model prompts."""

from __future__ import annotations

import logging

from comicgen.core.comic_styles import PANEL_SUFFIX, ComicStyle, style_prompt
from comicgen.core.metrics import record_prompt_fallback
from comicgen.prompts.loader import render_prompt
from comicgen.services.script_writer import PanelScript
from comicgen.services.vertex_gemini import GeminiClient

logger = logging.getLogger(__name__)


def basic_panel_prompt(script: PanelScript, style: ComicStyle | str) -> str:
    """Plain concatenation of the script fields and style keywords."""
    parts = [f"Create a comic panel {script.panel_number}: {script.description}"]
    if script.dialogue:
        parts.append(f'characters saying: "{script.dialogue}"')
    parts.append(f"{script.mood} mood")
    modifier = style_prompt(style)
    if modifier:
        parts.append(modifier)
    parts.append(PANEL_SUFFIX)
    return ", ".join(parts)


def optimize_panel_prompt(
    script: PanelScript,
    style: ComicStyle | str,
    gemini: GeminiClient,
) -> str:
    """Ask the language model for an image prompt; never raises for model errors."""
    rendered_prompt = render_prompt(
        "prompt_optimize_panel",
        panel_number=script.panel_number,
        description=script.description,
        dialogue=script.dialogue,
        mood=script.mood,
        style_text=style_prompt(style) or str(style),
    )

    try:
        optimized = gemini.generate_text(prompt=rendered_prompt).strip().strip('"').strip()
    except Exception as exc:  # noqa: BLE001
        logger.warning("prompt_optimization_failed error=%r", exc)
        record_prompt_fallback()
        return basic_panel_prompt(script, style)

    if not optimized:
        logger.warning("prompt_optimization_empty")
        record_prompt_fallback()
        return basic_panel_prompt(script, style)

    # The style must survive even if the model dropped it.
    modifier = style_prompt(style)
    if modifier and modifier not in optimized:
        optimized = f"{optimized}, {modifier}"
    return optimized
