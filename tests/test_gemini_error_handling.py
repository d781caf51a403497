"""Tests for Gemini client error classification and response checks."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from comicgen.services.vertex_gemini import (
    GeminiAuthError,
    GeminiClient,
    GeminiContentFilterError,
    GeminiError,
    GeminiModelUnavailableError,
    GeminiRateLimitError,
    GeminiRegionError,
    classify_error,
    user_message_for,
)


def _text_part(text):
    part = MagicMock()
    part.text = text
    part.inline_data = None
    return part


def _image_part(data, mime_type="image/png"):
    part = MagicMock()
    part.text = None
    part.inline_data.data = data
    part.inline_data.mime_type = mime_type
    return part


def _response(parts=None, finish_reason="STOP", block_reason=None, safety_ratings=None):
    response = MagicMock()
    response.prompt_feedback = MagicMock(block_reason=block_reason) if block_reason else None
    response.usage_metadata = None
    if parts is None:
        response.candidates = []
        return response
    candidate = MagicMock()
    candidate.finish_reason = finish_reason
    candidate.safety_ratings = safety_ratings or []
    candidate.content.parts = parts
    response.candidates = [candidate]
    return response


@pytest.fixture()
def gemini():
    with patch("comicgen.services.vertex_gemini.genai"):
        client = GeminiClient(
            api_key="test-key",
            text_model="text-model",
            image_model="image-model",
            timeout_seconds=5.0,
        )
    return client


def _respond_with(client, response=None, side_effect=None):
    client._client.models.generate_content = MagicMock(return_value=response, side_effect=side_effect)
    return client._client.models.generate_content


class TestClassifyError:
    @pytest.mark.parametrize(
        "exc,expected",
        [
            (Exception("429 RESOURCE_EXHAUSTED"), "quota"),
            (Exception("Quota exceeded for metric"), "quota"),
            (Exception("API key not valid. Please pass a valid API key."), "auth"),
            (Exception("403 PERMISSION_DENIED"), "auth"),
            (Exception("User location is not supported for the API use."), "region"),
            (Exception("Response was blocked due to SAFETY"), "content_filter"),
            (Exception("Deadline exceeded"), "timeout"),
            (Exception("503 Service Unavailable: the model is overloaded"), "model_unavailable"),
            (Exception("connection reset by peer"), "network"),
            (httpx.ReadTimeout("read timed out"), "timeout"),
            (httpx.ConnectError("boom"), "network"),
            (ConnectionError("reset"), "network"),
            (ValueError("something odd"), "unknown"),
        ],
    )
    def test_classification(self, exc, expected):
        assert classify_error(exc) == expected

    def test_typed_errors_keep_their_type(self):
        assert classify_error(GeminiRegionError("x")) == "region"
        assert classify_error(GeminiContentFilterError("x")) == "content_filter"


class TestUserMessage:
    def test_typed_error(self):
        assert user_message_for(GeminiRateLimitError("x")) == GeminiRateLimitError.user_message

    def test_untyped_error_is_classified(self):
        assert user_message_for(RuntimeError("quota exceeded")) == GeminiRateLimitError.user_message

    def test_unknown_error(self):
        assert user_message_for(RuntimeError("??")) == GeminiError.user_message


class TestClientConstruction:
    def test_requires_api_key(self):
        with pytest.raises(RuntimeError):
            GeminiClient(api_key=None, text_model="t", image_model="i")

    def test_timeout_is_passed_in_milliseconds(self):
        with patch("comicgen.services.vertex_gemini.genai") as mock_genai:
            GeminiClient(api_key="k", text_model="t", image_model="i", timeout_seconds=2.5)
        http_options = mock_genai.Client.call_args.kwargs["http_options"]
        assert http_options.timeout == 2500


class TestGenerateText:
    def test_returns_joined_text(self, gemini):
        _respond_with(gemini, _response([_text_part("hello"), _text_part("world")]))
        assert gemini.generate_text("prompt") == "hello\nworld"
        assert gemini.last_model == "text-model"
        assert gemini.last_error_type is None

    def test_schema_requests_json(self, gemini):
        call = _respond_with(gemini, _response([_text_part("{}")]))
        gemini.generate_text("prompt", response_schema={"type": "object"})
        config = call.call_args.kwargs["config"]
        assert config.response_mime_type == "application/json"

    def test_plain_call_has_no_config(self, gemini):
        call = _respond_with(gemini, _response([_text_part("ok")]))
        gemini.generate_text("prompt")
        assert call.call_args.kwargs["config"] is None

    def test_sdk_error_is_translated(self, gemini):
        _respond_with(gemini, side_effect=Exception("429 RESOURCE_EXHAUSTED"))
        with pytest.raises(GeminiRateLimitError) as exc_info:
            gemini.generate_text("prompt")
        assert exc_info.value.model == "text-model"
        assert isinstance(exc_info.value.__cause__, Exception)
        assert gemini.last_error_type == "quota"

    def test_auth_error_is_translated(self, gemini):
        _respond_with(gemini, side_effect=Exception("401 UNAUTHENTICATED"))
        with pytest.raises(GeminiAuthError):
            gemini.generate_text("prompt")

    def test_empty_candidates_raise(self, gemini):
        _respond_with(gemini, _response(None))
        with pytest.raises(GeminiError):
            gemini.generate_text("prompt")


class TestGenerateImage:
    def test_returns_bytes_and_mime(self, gemini):
        _respond_with(gemini, _response([_text_part("here you go"), _image_part(b"\x89PNG", "image/png")]))
        data, mime_type = gemini.generate_image("a cat")
        assert data == b"\x89PNG"
        assert mime_type == "image/png"

    def test_requests_image_modality(self, gemini):
        call = _respond_with(gemini, _response([_image_part(b"img")]))
        gemini.generate_image("a cat")
        assert call.call_args.kwargs["model"] == "image-model"
        assert "IMAGE" in call.call_args.kwargs["config"].response_modalities

    def test_prompt_block_is_content_filter(self, gemini):
        _respond_with(gemini, _response([_image_part(b"img")], block_reason="SAFETY"))
        with pytest.raises(GeminiContentFilterError):
            gemini.generate_image("a fight")

    def test_safety_finish_reason_is_content_filter(self, gemini):
        rating = MagicMock(blocked=True, category="HARM_CATEGORY_DANGEROUS_CONTENT")
        _respond_with(gemini, _response([], finish_reason="IMAGE_SAFETY", safety_ratings=[rating]))
        with pytest.raises(GeminiContentFilterError) as exc_info:
            gemini.generate_image("a fight")
        assert exc_info.value.blocked_categories == ["HARM_CATEGORY_DANGEROUS_CONTENT"]
        assert gemini.last_error_type == "content_filter"

    def test_empty_response_is_content_filter(self, gemini):
        _respond_with(gemini, _response(None))
        with pytest.raises(GeminiContentFilterError):
            gemini.generate_image("a cat")

    def test_text_only_response_is_generic_error(self, gemini):
        _respond_with(gemini, _response([_text_part("I cannot draw that")]))
        with pytest.raises(GeminiError) as exc_info:
            gemini.generate_image("a cat")
        assert not isinstance(exc_info.value, GeminiContentFilterError)

    def test_overloaded_model_is_typed(self, gemini):
        _respond_with(gemini, side_effect=Exception("503 UNAVAILABLE"))
        with pytest.raises(GeminiModelUnavailableError):
            gemini.generate_image("a cat")
