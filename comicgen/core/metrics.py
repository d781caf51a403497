from __future__ import annotations

from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

registry = CollectorRegistry(auto_describe=True)

GEMINI_CALL_DURATION = Histogram(
    "comicgen_gemini_call_duration_seconds",
    "Latency for Gemini API calls per operation.",
    ["operation"],
    registry=registry,
)

GEMINI_CALLS_TOTAL = Counter(
    "comicgen_gemini_calls_total",
    "Total Gemini API calls partitioned by operation and status.",
    ["operation", "status"],
    registry=registry,
)

JSON_PARSE_FAILURES = Counter(
    "comicgen_json_parse_failures_total",
    "Number of times parsing JSON from Gemini failed, labeled by the extraction tier.",
    ["tier"],
    registry=registry,
)

SCRIPT_FALLBACKS = Counter(
    "comicgen_script_fallbacks_total",
    "Comics whose panel scripts were replaced with placeholders.",
    registry=registry,
)

PROMPT_FALLBACKS = Counter(
    "comicgen_prompt_fallbacks_total",
    "Panels rendered from the basic prompt because optimization failed.",
    registry=registry,
)

SAFETY_REWRITES = Counter(
    "comicgen_safety_rewrites_total",
    "Prompt rewrites triggered by image safety blocks.",
    registry=registry,
)

PANEL_ATTEMPTS = Histogram(
    "comicgen_panel_attempts",
    "Image generation attempts used per panel.",
    buckets=(1, 2, 3, 4, 5),
    registry=registry,
)

COMIC_SAVES_TOTAL = Counter(
    "comicgen_comic_saves_total",
    "Comic persistence outcomes.",
    ["status"],
    registry=registry,
)


@contextmanager
def track_gemini_call(operation: str):
    timer = GEMINI_CALL_DURATION.labels(operation=operation).time()
    timer.__enter__()
    try:
        yield
        GEMINI_CALLS_TOTAL.labels(operation=operation, status="success").inc()
    except Exception:
        GEMINI_CALLS_TOTAL.labels(operation=operation, status="error").inc()
        raise
    finally:
        timer.__exit__(None, None, None)


def increment_json_parse_failure(tier: str) -> None:
    JSON_PARSE_FAILURES.labels(tier=tier).inc()


def record_script_fallback() -> None:
    SCRIPT_FALLBACKS.inc()


def record_prompt_fallback() -> None:
    PROMPT_FALLBACKS.inc()


def record_safety_rewrite() -> None:
    SAFETY_REWRITES.inc()


def record_panel_attempts(attempts: int) -> None:
    PANEL_ATTEMPTS.observe(attempts)


def record_comic_save(success: bool) -> None:
    COMIC_SAVES_TOTAL.labels(status="success" if success else "error").inc()


def get_metrics_payload() -> bytes:
    return generate_latest(registry)
