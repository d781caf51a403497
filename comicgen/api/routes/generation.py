import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from comicgen.api.deps import GeminiDep, ImageGeneratorDep, RepositoryDep
from comicgen.api.routes.schemas import GenerateComicRequest, GenerateComicResponse
from comicgen.core.exceptions import GenerationError
from comicgen.core.metrics import record_comic_save
from comicgen.core.request_context import get_request_id
from comicgen.core.settings import settings
from comicgen.services.comic_pipeline import ComicResult, generate_comic
from comicgen.services.comic_repository import ComicRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "request_id": get_request_id()},
    )


async def _save_best_effort(
    repo: ComicRepository,
    payload: GenerateComicRequest,
    result: ComicResult,
    response: GenerateComicResponse,
) -> None:
    """Persist the comic; failures are logged and never reach the client."""
    if repo.store is None:
        logger.warning("comic_save_skipped reason=storage_not_configured")
        return
    try:
        saved = await repo.save_comic(
            user_prompt=payload.prompt,
            style=payload.style.value,
            scripts=result.scripts,
            images=result.images,
        )
    except Exception:
        logger.exception("comic_save_failed panel_count=%d", payload.panel_count)
        record_comic_save(False)
        return
    record_comic_save(True)
    response.comic_id = saved.comic_id
    response.created_at = saved.created_at


@router.post(
    "/generate-comic",
    response_model=GenerateComicResponse,
    response_model_exclude_none=True,
)
async def generate_comic_endpoint(
    payload: GenerateComicRequest,
    gemini=GeminiDep,
    image_generator=ImageGeneratorDep,
    repo: ComicRepository = RepositoryDep,
):
    logger.info(
        "generate_comic_requested panel_count=%d style=%s",
        payload.panel_count,
        payload.style.value,
    )

    if gemini is None or image_generator is None:
        logger.error("generate_comic_rejected reason=gemini_not_configured")
        return _error(500, "Server configuration error: GEMINI_API_KEY is not set")

    try:
        result = await generate_comic(
            prompt=payload.prompt,
            style=payload.style,
            panel_count=payload.panel_count,
            gemini=gemini,
            image_generator=image_generator,
            parallel=settings.parallel_panel_generation,
        )
    except GenerationError as exc:
        logger.error("generate_comic_failed error=%s", exc)
        return _error(500, f"Generation failed: {exc}")
    except Exception as exc:  # noqa: BLE001
        logger.exception("generate_comic_failed")
        return _error(500, f"Generation failed: {exc}")

    response = GenerateComicResponse(
        images=[image.base64 for image in result.images],
        scripts=result.scripts,
        message=f"Generated {payload.panel_count} comic panels",
    )
    await _save_best_effort(repo, payload, result, response)
    return response
