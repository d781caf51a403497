"""Lenient JSON decoding for language model output.

Models sometimes wrap JSON in markdown fences, add a sentence before or after
it, or leave trailing commas. Decoding tries three tiers in order:

    direct   the text exactly as returned
    cleaned  fences and surrounding prose removed, trailing commas dropped
    object   the first balanced {...} block

Each tier that fails is counted in comicgen_json_parse_failures_total.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from comicgen.core.metrics import increment_json_parse_failure

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*(?=[}\]])")


@dataclass
class ParsedJson:
    value: Any = None
    tier: str | None = None
    failed_tiers: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.tier is not None


def unfence(text: str) -> str:
    match = _FENCE.search(text)
    return match.group(1) if match else text


def loosen(text: str) -> str:
    """Drop fences, prose outside the outermost brackets and trailing commas."""
    body = unfence(text.strip())
    starts = [pos for pos in (body.find("{"), body.find("[")) if pos != -1]
    end = max(body.rfind("}"), body.rfind("]"))
    if starts and end > min(starts):
        body = body[min(starts) : end + 1]
    return _TRAILING_COMMA.sub("", body).strip()


def first_object(text: str) -> str | None:
    """The first balanced {...} block, ignoring braces inside strings."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]
    return None


_TIERS: tuple[tuple[str, Callable[[str], str | None]], ...] = (
    ("direct", lambda text: text),
    ("cleaned", loosen),
    ("object", first_object),
)


def decode_json(text: str | None) -> ParsedJson:
    """Decode model output, recording which tier succeeded and which failed.

    Empty input returns an unsuccessful result without touching any tier.
    """
    result = ParsedJson()
    if not text:
        return result

    for tier, extract in _TIERS:
        try:
            result.value = json.loads(extract(text) or "")
        except json.JSONDecodeError:
            result.failed_tiers.append(tier)
            increment_json_parse_failure(tier)
            continue
        result.tier = tier
        return result

    logger.warning("json_parse_failed preview=%.200s", text)
    return result
