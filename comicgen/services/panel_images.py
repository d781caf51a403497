"""Panel image rendering with safety fallback and bounded retries."""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from typing import Callable

from comicgen.core.comic_styles import ComicStyle, style_prompt
from comicgen.core.exceptions import PanelGenerationError
from comicgen.core.metrics import record_panel_attempts, record_safety_rewrite
from comicgen.core.request_context import log_context
from comicgen.services.safety import SafetyPolicy, sanitize_for_retry
from comicgen.services.script_writer import PanelScript
from comicgen.services.vertex_gemini import (
    GeminiClient,
    GeminiContentFilterError,
    classify_error,
    user_message_for,
)

logger = logging.getLogger(__name__)


@dataclass
class PanelImage:
    panel_number: int
    data: bytes
    mime_type: str
    prompt: str
    attempts: int

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class PanelImageGenerator:
    """Render one panel, retrying up to `max_attempts` times.

    A safety block rewrites the prompt through `safety_policy` and retries at
    once. Any other failure retries the same prompt after
    `retry_delay_seconds`. When attempts run out a PanelGenerationError names
    the panel and the last failure reason.
    """

    def __init__(
        self,
        gemini: GeminiClient,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        safety_policy: SafetyPolicy = sanitize_for_retry,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._gemini = gemini
        self._max_attempts = max_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._safety_policy = safety_policy
        self._sleep = sleep

    def generate(
        self,
        prompt: str,
        script: PanelScript,
        style: ComicStyle | str | None = None,
    ) -> PanelImage:
        panel_number = script.panel_number
        style_text = style_prompt(style) if style else ""
        current_prompt = prompt
        rewrites = 0
        last_exc: Exception | None = None

        with log_context(stage="panel_image", panel_number=panel_number):
            for attempt in range(1, self._max_attempts + 1):
                try:
                    data, mime_type = self._gemini.generate_image(prompt=current_prompt)
                except GeminiContentFilterError as exc:
                    last_exc = exc
                    logger.warning(
                        "panel_image_blocked attempt=%d/%d error=%s",
                        attempt,
                        self._max_attempts,
                        exc,
                    )
                    if attempt < self._max_attempts:
                        rewrites += 1
                        current_prompt = self._safety_policy(current_prompt, script, rewrites, style_text)
                        record_safety_rewrite()
                    continue
                except Exception as exc:  # noqa: BLE001
                    last_exc = exc
                    logger.warning(
                        "panel_image_failed attempt=%d/%d type=%s error=%r",
                        attempt,
                        self._max_attempts,
                        classify_error(exc),
                        exc,
                    )
                    if attempt < self._max_attempts:
                        self._sleep(self._retry_delay_seconds)
                    continue

                record_panel_attempts(attempt)
                logger.info(
                    "panel_image_generated attempt=%d size_kb=%d rewrites=%d",
                    attempt,
                    len(data) // 1024,
                    rewrites,
                )
                return PanelImage(
                    panel_number=panel_number,
                    data=data,
                    mime_type=mime_type,
                    prompt=current_prompt,
                    attempts=attempt,
                )

        record_panel_attempts(self._max_attempts)
        reason = user_message_for(last_exc) if last_exc is not None else "no image returned"
        logger.error("panel_image_exhausted panel_number=%d reason=%s", panel_number, reason)
        raise PanelGenerationError(panel_number, reason, self._max_attempts)
