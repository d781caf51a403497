"""
Comic style definitions.

Each style maps to a modifier string appended to every image prompt.
"""

from enum import Enum


class ComicStyle(str, Enum):
    MANGA = "manga"
    WEBTOON = "webtoon"
    BLACKWHITE = "blackwhite"
    CHIBI = "chibi"
    REALISTIC = "realistic"
    WATERCOLOR = "watercolor"


STYLE_PROMPTS = {
    ComicStyle.MANGA: "manga style, anime style, Japanese comic art",
    ComicStyle.WEBTOON: "webtoon style, Korean comic style, vertical comic panels",
    ComicStyle.BLACKWHITE: "black and white ink drawing, monochrome comic art",
    ComicStyle.CHIBI: "chibi style, cute super deformed characters, kawaii art",
    ComicStyle.REALISTIC: "realistic comic art, detailed illustration",
    ComicStyle.WATERCOLOR: "watercolor comic style, soft colors, artistic painting",
}

# Appended after the style modifier on every panel prompt
PANEL_SUFFIX = "comic book style, clear storytelling"


def style_prompt(style: ComicStyle | str) -> str:
    """Return the prompt modifier for a style, or "" when it is unknown."""
    try:
        return STYLE_PROMPTS[ComicStyle(style)]
    except ValueError:
        return ""
