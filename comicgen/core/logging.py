import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from comicgen.core.request_context import get_panel_number, get_request_id, get_stage


class RequestIdFilter(logging.Filter):
    """Attach request id, pipeline stage and panel number to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "unknown"
        record.stage = get_stage() or ""
        record.panel_number = get_panel_number()
        return True


class StructuredJsonFormatter(logging.Formatter):
    """Emit log records as JSON with consistent fields."""

    # Attributes every LogRecord carries; anything else came in through `extra`.
    _SKIP_FIELDS = set(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
        "message",
        "taskName",
        "request_id",
        "stage",
        "panel_number",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_payload: dict[str, object | None] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "unknown"),
            "stage": getattr(record, "stage", ""),
        }
        panel_number = getattr(record, "panel_number", None)
        if panel_number is not None:
            log_payload["panel_number"] = panel_number
        log_payload.update(self._extract_extra(record))
        if record.exc_info:
            log_payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_payload["stack_info"] = record.stack_info
        try:
            return json.dumps(log_payload, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            return super().format(record)

    def _extract_extra(self, record: logging.LogRecord) -> dict[str, object]:
        extras: dict[str, object] = {}
        for key, value in record.__dict__.items():
            if key in self._SKIP_FIELDS or key.startswith("_"):
                continue
            if value is None:
                continue
            extras[key] = value
        return extras


def configure_logging(level_name: str, log_file: str | None = None) -> None:
    """Replace root handlers with structured JSON output."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    formatter = StructuredJsonFormatter(datefmt="%Y-%m-%dT%H:%M:%S%z")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(RequestIdFilter())
    root_logger.addHandler(stream_handler)

    # request_complete logs replace uvicorn's access log.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(RequestIdFilter())
        root_logger.addHandler(file_handler)
