"""
Application-level exception types.

Routes translate these into HTTP responses; services raise them instead of
bare `Exception` so callers can tell failures apart.
"""

from __future__ import annotations


class AppError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        self.detail = detail or message
        super().__init__(message)


class GenerationError(AppError):
    """Raised when image/text generation fails."""


class PanelGenerationError(GenerationError):
    """Raised when a panel image could not be produced within its attempts."""

    def __init__(self, panel_number: int, reason: str, attempts: int) -> None:
        super().__init__(
            f"Panel {panel_number} failed after {attempts} attempt(s): {reason}",
            detail=reason,
        )
        self.panel_number = panel_number
        self.reason = reason
        self.attempts = attempts


class PersistenceError(AppError):
    """Raised when a generated comic could not be saved."""

    def __init__(self, message: str, *, failed_panels: list[int] | None = None) -> None:
        super().__init__(message)
        self.failed_panels = failed_panels or []


class ConfigurationError(AppError):
    """Raised when required configuration is missing or invalid."""


class EntityNotFoundError(AppError):
    """Raised when a database entity cannot be found."""

    def __init__(self, entity_type: str, entity_id: object) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            detail=f"{entity_type} not found",
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
