"""Panel script generation."""

from __future__ import annotations

import logging
from typing import Any

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field

from comicgen.core.comic_styles import ComicStyle, style_prompt
from comicgen.core.metrics import record_script_fallback
from comicgen.prompts.loader import render_prompt
from comicgen.services.json_parsing import decode_json
from comicgen.services.vertex_gemini import GeminiClient

logger = logging.getLogger(__name__)

DEFAULT_MOOD = "neutral"


class PanelScript(BaseModel):
    """Scene description, optional dialogue and mood for one panel."""

    model_config = ConfigDict(populate_by_name=True)

    panel_number: int = Field(ge=1, alias="panelNumber")
    description: str = Field(min_length=1)
    dialogue: str | None = None
    mood: str = Field(min_length=1)


PANEL_SCRIPTS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "panels": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "panelNumber": types.Schema(type=types.Type.INTEGER),
                    "description": types.Schema(type=types.Type.STRING),
                    "dialogue": types.Schema(type=types.Type.STRING),
                    "mood": types.Schema(type=types.Type.STRING),
                },
                required=["panelNumber", "description", "mood"],
            ),
        ),
    },
    required=["panels"],
)


def placeholder_scripts(story_prompt: str, panel_count: int) -> list[PanelScript]:
    """Deterministic scripts used when the model gives nothing usable."""
    return [
        PanelScript(
            panel_number=i,
            description=f"{story_prompt} (scene {i} of {panel_count})",
            mood=DEFAULT_MOOD,
        )
        for i in range(1, panel_count + 1)
    ]


def _coerce_panels(raw_panels: list[Any], panel_count: int) -> list[PanelScript] | None:
    scripts: list[PanelScript] = []
    for raw in raw_panels:
        if len(scripts) == panel_count:
            break
        if not isinstance(raw, dict):
            continue
        description = str(raw.get("description") or "").strip()
        if not description:
            continue
        dialogue = str(raw.get("dialogue") or "").strip() or None
        mood = str(raw.get("mood") or "").strip() or DEFAULT_MOOD
        scripts.append(
            PanelScript(
                panel_number=len(scripts) + 1,
                description=description,
                dialogue=dialogue,
                mood=mood,
            )
        )

    if len(scripts) < panel_count:
        return None
    return scripts


def generate_panel_scripts(
    story_prompt: str,
    panel_count: int,
    style: ComicStyle | str,
    gemini: GeminiClient,
) -> list[PanelScript]:
    """Ask the language model for `panel_count` scripts.

    There is a single model call. Any failure, unparseable output or short
    panel list falls back to placeholder scripts, so this never raises for
    model problems. Panel numbers are always 1..panel_count in order.
    """
    rendered_prompt = render_prompt(
        "prompt_panel_scripts",
        story_prompt=story_prompt,
        panel_count=panel_count,
        style_text=style_prompt(style) or str(style),
    )

    try:
        text = gemini.generate_text(prompt=rendered_prompt, response_schema=PANEL_SCRIPTS_SCHEMA)
    except Exception as exc:  # noqa: BLE001
        logger.warning("script_generation_failed panel_count=%d error=%r", panel_count, exc)
        record_script_fallback()
        return placeholder_scripts(story_prompt, panel_count)

    parsed = decode_json(text)
    raw_panels = parsed.value.get("panels") if isinstance(parsed.value, dict) else None
    if not isinstance(raw_panels, list):
        logger.warning(
            "script_generation_invalid_output panel_count=%d reason=missing_panels json_tier=%s failed_tiers=%s",
            panel_count,
            parsed.tier,
            ",".join(parsed.failed_tiers) or "-",
        )
        record_script_fallback()
        return placeholder_scripts(story_prompt, panel_count)

    scripts = _coerce_panels(raw_panels, panel_count)
    if scripts is None:
        logger.warning(
            "script_generation_invalid_output panel_count=%d returned=%d reason=too_few_panels",
            panel_count,
            len(raw_panels),
        )
        record_script_fallback()
        return placeholder_scripts(story_prompt, panel_count)

    logger.info("script_generation_complete panel_count=%d json_tier=%s", panel_count, parsed.tier)
    return scripts
