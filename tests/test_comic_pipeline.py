import pytest

from comicgen.core.comic_styles import ComicStyle
from comicgen.core.exceptions import PanelGenerationError
from comicgen.services.comic_pipeline import generate_comic
from comicgen.services.panel_images import PanelImageGenerator
from comicgen.services.vertex_gemini import GeminiTimeoutError


@pytest.mark.anyio
@pytest.mark.parametrize("parallel", [True, False])
async def test_images_follow_script_order(fake_gemini, parallel):
    generator = PanelImageGenerator(fake_gemini, sleep=lambda _: None)

    result = await generate_comic(
        prompt="a snail wins a race",
        style=ComicStyle.REALISTIC,
        panel_count=5,
        gemini=fake_gemini,
        image_generator=generator,
        parallel=parallel,
    )

    assert [s.panel_number for s in result.scripts] == [1, 2, 3, 4, 5]
    assert [image.panel_number for image in result.images] == [1, 2, 3, 4, 5]
    for image in result.images:
        assert image.prompt.startswith(f"optimized prompt for panel {image.panel_number},")
        assert image.attempts == 1


@pytest.mark.anyio
async def test_sequential_mode_renders_in_order(fake_gemini):
    generator = PanelImageGenerator(fake_gemini, sleep=lambda _: None)

    await generate_comic(
        prompt="a snail wins a race",
        style="manga",
        panel_count=3,
        gemini=fake_gemini,
        image_generator=generator,
        parallel=False,
    )

    assert [p.split(",")[0] for p in fake_gemini.image_calls] == [
        "optimized prompt for panel 1",
        "optimized prompt for panel 2",
        "optimized prompt for panel 3",
    ]


@pytest.mark.anyio
async def test_failed_panel_raises(fake_gemini):
    def handler(prompt):
        if "panel 3" in prompt:
            raise GeminiTimeoutError("deadline exceeded")
        return b"img", "image/png"

    fake_gemini.image_handler = handler
    generator = PanelImageGenerator(fake_gemini, max_attempts=2, sleep=lambda _: None)

    with pytest.raises(PanelGenerationError) as exc_info:
        await generate_comic(
            prompt="a snail wins a race",
            style="manga",
            panel_count=3,
            gemini=fake_gemini,
            image_generator=generator,
        )

    assert exc_info.value.panel_number == 3
    assert exc_info.value.attempts == 2
    assert exc_info.value.reason == GeminiTimeoutError.user_message
