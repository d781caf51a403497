"""
Prompt rewriting applied after the image model refuses a prompt.

The substitutions soften violence and injury vocabulary. They are a blunt
heuristic; `PanelImageGenerator` accepts any callable with the same signature
as `sanitize_for_retry`.
"""

from __future__ import annotations

import re
from typing import Callable

from comicgen.services.script_writer import PanelScript

# (pattern, replacement); applied in order, case-insensitive, whole words
SAFETY_SUBSTITUTIONS: list[tuple[str, str]] = [
    (r"\b(?:blood(?:y|ied)?|gore|gory)\b", "red paint"),
    (r"\b(?:kill(?:s|ed|ing)?|murder(?:s|ed|ing)?|slay(?:s|ed|ing)?)\b", "defeat"),
    (r"\b(?:dead|death|die[sd]?|dying|corpses?)\b", "fallen"),
    (r"\b(?:stab(?:s|bed|bing)?|slash(?:es|ed|ing)?)\b", "strike"),
    (r"\b(?:shoot(?:s|ing)?|shot)\b", "aim"),
    (r"\b(?:guns?|rifles?|pistols?)\b", "toy blaster"),
    (r"\b(?:knife|knives|daggers?)\b", "wooden stick"),
    (r"\b(?:wound(?:s|ed)?|injur(?:y|ies|ed))\b", "bruise"),
    (r"\b(?:attack(?:s|ed|ing)?|assault(?:s|ed|ing)?)\b", "confront"),
    (r"\b(?:fight(?:s|ing)?|battle(?:s|d)?|war)\b", "contest"),
    (r"\b(?:violent|violence|brutal(?:ly)?)\b", "intense"),
    (r"\b(?:explosions?|explod(?:e|es|ed|ing)|bombs?)\b", "burst of light"),
    (r"\b(?:scream(?:s|ed|ing)?)\b", "shout"),
    (r"\b(?:terrifying|horrifying|gruesome)\b", "dramatic"),
]

_COMPILED = [(re.compile(pattern, re.IGNORECASE), replacement) for pattern, replacement in SAFETY_SUBSTITUTIONS]

ALL_AGES_CLAUSE = "family-friendly, suitable for all ages, no violence, gentle cartoon tone"

SafetyPolicy = Callable[[str, PanelScript, int, str], str]


def sanitize_text(text: str) -> str:
    """Apply every substitution to `text`."""
    for pattern, replacement in _COMPILED:
        text = pattern.sub(replacement, text)
    return text


def sanitize_for_retry(
    prompt: str,
    script: PanelScript,
    rewrite_count: int,
    style_text: str = "",
) -> str:
    """Return the prompt for the attempt after a safety block.

    The first rewrite sanitizes the prompt that was refused. Later rewrites
    drop it and rebuild from the sanitized script with an all-ages clause.
    """
    if rewrite_count <= 1:
        return sanitize_text(prompt)

    parts = [
        f"Create a comic panel {script.panel_number}: {sanitize_text(script.description)}",
        f"{sanitize_text(script.mood)} mood",
    ]
    if style_text:
        parts.append(style_text)
    parts.append(ALL_AGES_CLAUSE)
    return ", ".join(parts)
