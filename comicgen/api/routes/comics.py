import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from comicgen.api.deps import RepositoryDep
from comicgen.api.routes.schemas import (
    ComicDetail,
    ComicDetailResponse,
    ComicListResponse,
    ComicPanelRead,
    ComicSummary,
    GalleryResponse,
)
from comicgen.db.models import Comic, ComicPanel
from comicgen.services.comic_repository import ComicRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["comics"])


def _to_detail(comic: Comic, panels: list[ComicPanel]) -> ComicDetail:
    summary = ComicSummary.model_validate(comic)
    return ComicDetail(
        **summary.model_dump(),
        updated_at=comic.updated_at,
        panels=[ComicPanelRead.model_validate(panel) for panel in panels],
    )


@router.get("/comics", response_model=ComicListResponse)
def list_comics(
    limit: int = Query(default=10, ge=1, le=100),
    repo: ComicRepository = RepositoryDep,
):
    comics = [ComicSummary.model_validate(comic) for comic in repo.list_recent(limit)]
    return ComicListResponse(comics=comics, total=len(comics))


@router.get("/comics/{comic_id}", response_model=ComicDetailResponse)
def get_comic(comic_id: str, repo: ComicRepository = RepositoryDep):
    try:
        parsed_id = int(comic_id)
    except ValueError:
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid comic id"})

    comic = repo.get_comic(parsed_id)
    return ComicDetailResponse(comic=_to_detail(comic, list(comic.panels)))


@router.get("/gallery", response_model=GalleryResponse)
def list_gallery(
    limit: int = Query(default=50, ge=1, le=100),
    repo: ComicRepository = RepositoryDep,
):
    entries = repo.list_gallery(limit)
    logger.info("gallery_listed comics=%d", len(entries))
    comics = [_to_detail(entry.comic, entry.panels) for entry in entries]
    return GalleryResponse(comics=comics, total=len(comics))
