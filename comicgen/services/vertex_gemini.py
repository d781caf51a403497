import logging
from typing import Any, Callable

import httpx
from google import genai
from google.genai import types

from comicgen.core.metrics import track_gemini_call

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception taxonomy
# ---------------------------------------------------------------------------


class GeminiError(Exception):
    """Base exception for Gemini-related errors."""

    error_type = "unknown"
    user_message = "The generation service returned an unexpected error"

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class GeminiRateLimitError(GeminiError):
    """Raised when quota or rate limit is exceeded."""

    error_type = "quota"
    user_message = "API quota exhausted or rate limit reached"


class GeminiRegionError(GeminiError):
    """Raised when the model is not offered in the caller's region."""

    error_type = "region"
    user_message = "Image generation is not available in this region"


class GeminiAuthError(GeminiError):
    """Raised when the API key is missing, invalid or lacks permission."""

    error_type = "auth"
    user_message = "API key is invalid or not configured"


class GeminiContentFilterError(GeminiError):
    """Raised when content is blocked by safety filters or comes back empty."""

    error_type = "content_filter"
    user_message = "Content was blocked by the safety filter"

    def __init__(
        self,
        message: str,
        model: str | None = None,
        blocked_categories: list[str] | None = None,
    ):
        super().__init__(message, model)
        self.blocked_categories = blocked_categories or []


class GeminiNetworkError(GeminiError):
    """Raised when the API cannot be reached."""

    error_type = "network"
    user_message = "Could not reach the generation service"


class GeminiTimeoutError(GeminiError):
    """Raised when request times out."""

    error_type = "timeout"
    user_message = "The generation service timed out"


class GeminiModelUnavailableError(GeminiError):
    """Raised when the model is unavailable."""

    error_type = "model_unavailable"
    user_message = "The generation model is temporarily unavailable"


_ERRORS_BY_TYPE: dict[str, type[GeminiError]] = {
    cls.error_type: cls
    for cls in (
        GeminiError,
        GeminiRateLimitError,
        GeminiRegionError,
        GeminiAuthError,
        GeminiContentFilterError,
        GeminiNetworkError,
        GeminiTimeoutError,
        GeminiModelUnavailableError,
    )
}

_BLOCKING_FINISH_REASONS = ("SAFETY", "PROHIBITED", "BLOCKLIST", "SPII")


def classify_error(exc: Exception) -> str:
    """Map an SDK/transport exception onto the error taxonomy."""
    if isinstance(exc, GeminiError):
        return exc.error_type
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return "network"

    text = str(exc).lower()
    if "safety" in text or "blocked" in text:
        return "content_filter"
    if "resource_exhausted" in text or "429" in text or "quota" in text or "limit" in text:
        return "quota"
    if "api key" in text or "api_key" in text or "permission_denied" in text or "unauthenticated" in text:
        return "auth"
    if "401" in text or "403" in text:
        return "auth"
    if "not available" in text or "region" in text or "location is not supported" in text:
        return "region"
    if "timeout" in text or "timed out" in text or "deadline" in text:
        return "timeout"
    if "connection" in text or "network" in text:
        return "network"
    if "unavailable" in text or "503" in text or "overloaded" in text:
        return "model_unavailable"
    return "unknown"


def user_message_for(exc: Exception) -> str:
    """Human-readable reason for a failed Gemini call."""
    if isinstance(exc, GeminiError):
        return exc.user_message
    return _ERRORS_BY_TYPE[classify_error(exc)].user_message


class GeminiClient:
    """Thin synchronous wrapper over the google-genai SDK.

    Every call is a single attempt: SDK failures are classified into the
    GeminiError taxonomy and re-raised. Retry policy belongs to callers.
    """

    def __init__(
        self,
        api_key: str | None,
        text_model: str,
        image_model: str,
        timeout_seconds: float = 60.0,
    ):
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY must be configured")

        self._text_model = text_model
        self._image_model = image_model
        self._timeout_seconds = timeout_seconds

        self.last_model: str | None = None
        self.last_usage: dict | None = None
        self.last_error_type: str | None = None

        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    def _check_response_safety(
        self,
        response: types.GenerateContentResponse,
        model_name: str,
    ) -> None:
        """Raise GeminiContentFilterError when the prompt or candidate was blocked."""
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            raise GeminiContentFilterError(
                f"Prompt blocked: {block_reason}",
                model=model_name,
            )

        candidate = (response.candidates or [None])[0]
        if candidate is None:
            return

        finish_reason = str(getattr(candidate, "finish_reason", None) or "").upper()
        if any(reason in finish_reason for reason in _BLOCKING_FINISH_REASONS):
            blocked_categories = []
            for rating in getattr(candidate, "safety_ratings", None) or []:
                if getattr(rating, "blocked", False):
                    blocked_categories.append(str(getattr(rating, "category", "UNKNOWN")))

            raise GeminiContentFilterError(
                f"Content blocked by safety filters: {finish_reason} {blocked_categories}",
                model=model_name,
                blocked_categories=blocked_categories,
            )

    def _call(
        self,
        func: Callable[[], types.GenerateContentResponse],
        model_name: str,
        request_type: str,
    ) -> types.GenerateContentResponse:
        """Run one SDK call, recording metrics and translating failures."""
        try:
            with track_gemini_call(request_type):
                response = func()
                self._check_response_safety(response, model_name)
        except GeminiError as exc:
            self.last_error_type = exc.error_type
            if exc.model is None:
                exc.model = model_name
            raise
        except Exception as exc:  # noqa: BLE001
            error_type = classify_error(exc)
            self.last_error_type = error_type
            logger.warning(
                "gemini.%s failed model=%s type=%s error=%s",
                request_type,
                model_name,
                error_type,
                repr(exc),
            )
            raise _ERRORS_BY_TYPE[error_type](str(exc), model=model_name) from exc

        self.last_model = model_name
        self.last_error_type = None
        if response.usage_metadata:
            self.last_usage = response.usage_metadata.model_dump()
        else:
            self.last_usage = {"model": model_name}
        return response

    def _extract_text_from_response(self, response: types.GenerateContentResponse) -> str:
        candidate = (response.candidates or [None])[0]
        if candidate is None or not candidate.content or not candidate.content.parts:
            raise GeminiError("Gemini returned empty content")

        texts: list[str] = []
        for part in candidate.content.parts:
            if part.text:
                texts.append(part.text)

        if not texts:
            raise GeminiError("Gemini returned no textual content")

        return "\n".join(texts).strip()

    def _extract_image(self, response: types.GenerateContentResponse, model_name: str) -> tuple[bytes, str]:
        candidate = (response.candidates or [None])[0]
        if candidate is None or not candidate.content or not candidate.content.parts:
            raise GeminiContentFilterError("Gemini returned empty content", model=model_name)

        for part in candidate.content.parts:
            inline_data = part.inline_data
            if inline_data and inline_data.data:
                mime_type = inline_data.mime_type or "image/png"
                return inline_data.data, mime_type

        # Text without an image is not a safety block: the caller retries the same prompt after its delay.
        raise GeminiError("Gemini returned no image data", model=model_name)

    def generate_text(
        self,
        prompt: str,
        model: str | None = None,
        response_schema: Any | None = None,
    ) -> str:
        """Generate text, optionally constrained to a JSON response schema.

        Raises:
            GeminiError: On failure (with specific subclass for error type)
        """
        model_name = model or self._text_model
        config = None
        if response_schema is not None:
            config = types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=response_schema,
            )

        response = self._call(
            func=lambda: self._client.models.generate_content(
                model=model_name,
                contents=[prompt],
                config=config,
            ),
            model_name=model_name,
            request_type="generate_text",
        )
        return self._extract_text_from_response(response)

    def generate_image(self, prompt: str, model: str | None = None) -> tuple[bytes, str]:
        """Render one image from a text prompt.

        Returns:
            Tuple of (image_bytes, mime_type)

        Raises:
            GeminiContentFilterError: When the response was blocked or empty
            GeminiError: On any other failure
        """
        model_name = model or self._image_model
        response = self._call(
            func=lambda: self._client.models.generate_content(
                model=model_name,
                contents=[prompt],
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                ),
            ),
            model_name=model_name,
            request_type="generate_image",
        )
        return self._extract_image(response, model_name)
