"""
Versioned YAML prompt templates rendered with Jinja2.

Layout on disk:

    v1/
    ├── shared/   # fragments injected into every render (JSON-only system prompt)
    └── comic/    # panel scripts, image prompt optimization

Each YAML key is either a bare template string or a mapping with `template`
and an optional `required_variables` list.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, meta

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).resolve().parent
_VERSION = "v1"

# Load order; a later domain overrides an earlier one on name clashes.
_DOMAINS = ("shared", "comic")

_SHARED_KEYS = ("system_prompt_json",)


@lru_cache(maxsize=1)
def _jinja_env() -> Environment:
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _template_of(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and isinstance(entry.get("template"), str):
        return entry["template"]
    return None


def _domain_files(domain: str) -> list[Path]:
    domain_dir = _PROMPTS_DIR / _VERSION / domain
    return sorted(domain_dir.glob("*.yaml")) if domain_dir.is_dir() else []


def _read_prompt_file(path: Path) -> dict[str, Any]:
    entries = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(entries, dict):
        raise ValueError(f"{path} must contain a mapping of prompt names")

    env = _jinja_env()
    for name, entry in entries.items():
        template = _template_of(entry)
        if template is None:
            continue
        try:
            env.parse(template)
        except TemplateSyntaxError as exc:
            raise ValueError(f"Invalid Jinja2 template {name!r} in {path.name}: {exc}") from exc
    return entries


@lru_cache(maxsize=1)
def _load_prompts() -> dict[str, Any]:
    """Every prompt entry keyed by name. Broken templates raise ValueError."""
    library: dict[str, Any] = {}
    for domain in _DOMAINS:
        for path in _domain_files(domain):
            library.update(_read_prompt_file(path))
    logger.debug("prompts_loaded count=%d version=%s", len(library), _VERSION)
    return library


def clear_cache() -> None:
    """Forget loaded templates; the next lookup re-reads the YAML files."""
    _load_prompts.cache_clear()


def get_prompt(name: str) -> str:
    """Raw template text for `name`; KeyError when it is not defined."""
    template = _template_of(_load_prompts().get(name))
    if template is None:
        raise KeyError(f"Prompt '{name}' not found or not a string")
    return template


def extract_template_variables(template: str) -> set[str]:
    """Top-level names a template reads from its render context."""
    return set(meta.find_undeclared_variables(_jinja_env().parse(template)))


def check_required_variables(name: str, context: dict[str, Any]) -> list[str]:
    """Names `name` needs that `context` lacks, declared list first."""
    entry = _load_prompts().get(name)
    declared = entry.get("required_variables") if isinstance(entry, dict) else None
    if declared:
        return [var for var in declared if var not in context]

    needed = extract_template_variables(get_prompt(name)) - set(_SHARED_KEYS)
    return sorted(needed - set(context))


def render_prompt(name: str, validate: bool = False, **context: Any) -> str:
    """
    Render `name` with `context`.

    Shared fragments are supplied automatically unless the caller overrides
    them. With validate=True a missing variable raises ValueError before
    rendering; otherwise StrictUndefined raises during rendering.
    """
    library = _load_prompts()
    for key in _SHARED_KEYS:
        if key in library:
            context.setdefault(key, library[key])

    if validate:
        missing = check_required_variables(name, context)
        if missing:
            raise ValueError(f"Missing required variables for '{name}': {missing}")

    return _jinja_env().from_string(get_prompt(name)).render(**context).strip()


def list_prompts(domain: str | None = None) -> list[str]:
    """Prompt names, either all of them or those defined under one domain."""
    if domain is None:
        return list(_load_prompts())
    names: list[str] = []
    for path in _domain_files(domain):
        names.extend(_read_prompt_file(path))
    return names
