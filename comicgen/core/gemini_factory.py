"""
Centralized Gemini client factory.

The application builds one GeminiClient per process and hands it to routes
through a FastAPI dependency.
"""

from __future__ import annotations

from functools import lru_cache

from comicgen.core.settings import settings
from comicgen.services.vertex_gemini import GeminiClient


class GeminiNotConfiguredError(RuntimeError):
    """Raised when Gemini API credentials are missing."""

    def __init__(self) -> None:
        super().__init__("Gemini is not configured. Set GEMINI_API_KEY.")


def build_gemini_client() -> GeminiClient:
    """Build a GeminiClient from application settings.

    Raises:
        GeminiNotConfiguredError: If the API key is not set.
    """
    if not settings.gemini_api_key:
        raise GeminiNotConfiguredError()

    return GeminiClient(
        api_key=settings.gemini_api_key,
        text_model=settings.gemini_text_model,
        image_model=settings.gemini_image_model,
        timeout_seconds=settings.gemini_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_shared_gemini_client() -> GeminiClient:
    """Process-wide client, built on first use."""
    return build_gemini_client()
