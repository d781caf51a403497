from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from comicgen.core.settings import settings
from comicgen.db.session import get_db
from comicgen.services.comic_repository import ComicRepository
from comicgen.services.panel_images import PanelImageGenerator
from comicgen.services.storage import MediaStore
from comicgen.services.vertex_gemini import GeminiClient


def db_session() -> Generator[Session, None, None]:
    yield from get_db()


DbSessionDep = Depends(db_session)


def get_gemini(request: Request) -> GeminiClient | None:
    """Process-wide Gemini client built at startup; None when not configured."""
    return getattr(request.app.state, "gemini", None)


def get_media_store(request: Request) -> MediaStore | None:
    return getattr(request.app.state, "media_store", None)


def get_repository(
    db: Session = DbSessionDep,
    store: MediaStore | None = Depends(get_media_store),
) -> ComicRepository:
    return ComicRepository(db, store=store, trusted_host=settings.image_host)


def get_image_generator(gemini: GeminiClient | None = Depends(get_gemini)) -> PanelImageGenerator | None:
    if gemini is None:
        return None
    return PanelImageGenerator(
        gemini,
        max_attempts=settings.image_max_attempts,
        retry_delay_seconds=settings.image_retry_delay_seconds,
    )


GeminiDep = Depends(get_gemini)
RepositoryDep = Depends(get_repository)
ImageGeneratorDep = Depends(get_image_generator)
