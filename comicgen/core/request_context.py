import contextvars
from contextlib import contextmanager

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)
stage_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("stage", default=None)
panel_number_var: contextvars.ContextVar[int | None] = contextvars.ContextVar("panel_number", default=None)


def set_request_id(request_id: str) -> contextvars.Token:
    """Store the current request ID in a context variable."""
    return request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    """Reset the request ID context variable to a previous state."""
    request_id_var.reset(token)


def get_request_id() -> str | None:
    """Retrieve the current request ID from the context."""
    return request_id_var.get()


def get_stage() -> str | None:
    """Retrieve the current pipeline stage for logging."""
    return stage_var.get()


def get_panel_number() -> int | None:
    """Retrieve the panel currently being processed, if any."""
    return panel_number_var.get()


@contextmanager
def log_context(stage: str | None = None, panel_number: int | None = None):
    """Temporarily scope stage/panel context for structured logs."""
    tokens: list[tuple[contextvars.ContextVar, contextvars.Token]] = []
    if stage is not None:
        tokens.append((stage_var, stage_var.set(stage)))
    if panel_number is not None:
        tokens.append((panel_number_var, panel_number_var.set(panel_number)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
