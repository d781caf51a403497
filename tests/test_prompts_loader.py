from pathlib import Path

import pytest

from comicgen.prompts import loader


def test_list_prompts_domain():
    names = loader.list_prompts(domain="comic")
    assert "prompt_panel_scripts" in names
    assert "prompt_optimize_panel" in names


def test_list_prompts_unknown_domain():
    assert loader.list_prompts(domain="nope") == []


def test_render_panel_scripts_includes_shared_system_prompt():
    rendered = loader.render_prompt(
        "prompt_panel_scripts",
        story_prompt="A cat learns to fly",
        panel_count=4,
        style_text="manga style",
    )
    assert "JSON-only generator" in rendered
    assert "exactly 4 consecutive panels" in rendered
    assert "A cat learns to fly" in rendered


def test_render_optimize_panel_omits_missing_dialogue():
    rendered = loader.render_prompt(
        "prompt_optimize_panel",
        panel_number=2,
        description="A cat on a roof",
        dialogue=None,
        mood="hopeful",
        style_text="watercolor",
    )
    assert "Panel 2" in rendered
    assert "Dialogue" not in rendered


def test_render_optimize_panel_includes_dialogue():
    rendered = loader.render_prompt(
        "prompt_optimize_panel",
        panel_number=1,
        description="A cat on a roof",
        dialogue="I can fly!",
        mood="hopeful",
        style_text="watercolor",
    )
    assert 'Dialogue: "I can fly!"' in rendered


def test_validate_reports_missing_variables():
    with pytest.raises(ValueError) as exc_info:
        loader.render_prompt("prompt_panel_scripts", validate=True, story_prompt="x")
    assert "panel_count" in str(exc_info.value)


def test_check_required_variables_uses_declared_list():
    missing = loader.check_required_variables("prompt_optimize_panel", {"panel_number": 1})
    assert missing == ["description", "mood", "style_text"]


def test_unknown_prompt_raises_key_error():
    with pytest.raises(KeyError):
        loader.get_prompt("prompt_does_not_exist")


def test_extract_template_variables():
    variables = loader.extract_template_variables("{{ a }} {% if b %}{{ c.d }}{% endif %}")
    assert variables == {"a", "b", "c"}


def test_invalid_template_raises_and_is_not_silently_ignored():
    prompts_dir = Path(loader.__file__).resolve().parent
    bad_file = prompts_dir / "v1" / "comic" / "bad_template_for_test.yaml"
    bad_file.write_text("bad_prompt: '{% if foo %} missing endif'\n")

    try:
        loader.clear_cache()
        with pytest.raises(ValueError):
            loader._load_prompts()
    finally:
        bad_file.unlink()
        loader.clear_cache()
