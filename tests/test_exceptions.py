"""Tests for application exception types."""

from comicgen.core.exceptions import (
    AppError,
    ConfigurationError,
    EntityNotFoundError,
    GenerationError,
    PanelGenerationError,
    PersistenceError,
)


class TestAppError:
    def test_detail_defaults_to_message(self):
        err = AppError("something broke")
        assert str(err) == "something broke"
        assert err.detail == "something broke"

    def test_explicit_detail(self):
        err = AppError("internal text", detail="public text")
        assert err.detail == "public text"


class TestPanelGenerationError:
    def test_message_names_panel_and_reason(self):
        err = PanelGenerationError(3, "Content was blocked by the safety filter", 3)
        assert str(err) == "Panel 3 failed after 3 attempt(s): Content was blocked by the safety filter"
        assert err.panel_number == 3
        assert err.attempts == 3
        assert err.detail == "Content was blocked by the safety filter"

    def test_is_generation_error(self):
        assert isinstance(PanelGenerationError(1, "x", 1), GenerationError)
        assert isinstance(PanelGenerationError(1, "x", 1), AppError)


class TestPersistenceError:
    def test_failed_panels_default_empty(self):
        assert PersistenceError("nope").failed_panels == []

    def test_failed_panels_kept(self):
        err = PersistenceError("upload failed", failed_panels=[2, 4])
        assert err.failed_panels == [2, 4]


class TestEntityNotFoundError:
    def test_detail_hides_id(self):
        err = EntityNotFoundError("Comic", 42)
        assert "42" in str(err)
        assert err.detail == "Comic not found"
        assert err.entity_type == "Comic"
        assert err.entity_id == 42


def test_configuration_error_is_app_error():
    assert issubclass(ConfigurationError, AppError)
