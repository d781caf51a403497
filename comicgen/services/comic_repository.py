"""Comic persistence and gallery reads."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlparse

from sqlalchemy import desc, inspect, select
from sqlalchemy.orm import Session, selectinload

from comicgen.core.exceptions import ConfigurationError, EntityNotFoundError, PersistenceError
from comicgen.db.models import Comic, ComicPanel
from comicgen.services.panel_images import PanelImage
from comicgen.services.script_writer import PanelScript
from comicgen.services.storage import MediaStore

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("comics", "comic_panels")


def is_trusted_image_url(url: object, trusted_host: str) -> bool:
    """True for https URLs served from `trusted_host` or one of its subdomains."""
    if not url or not isinstance(url, str):
        return False
    # Browsers read "\" as "/" in https URLs, so the host they load can differ from urlparse's.
    if "\\" in url:
        return False
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return False
    if parsed.scheme != "https" or not host:
        return False
    if "@" in parsed.netloc or parsed.username or parsed.password:
        return False
    trusted = trusted_host.lower().lstrip(".")
    return host == trusted or host.endswith(f".{trusted}")


@dataclass
class SavedComic:
    comic_id: int
    created_at: datetime | None


@dataclass
class GalleryComic:
    comic: Comic
    panels: list[ComicPanel] = field(default_factory=list)


@dataclass
class SetupStatus:
    missing_tables: list[str]
    bucket: str | None
    bucket_exists: bool | None

    @property
    def ready(self) -> bool:
        return not self.missing_tables and self.bucket_exists is not False


class ComicRepository:
    def __init__(self, db: Session, store: MediaStore | None = None, trusted_host: str = "supabase.co"):
        self.db = db
        self.store = store
        self.trusted_host = trusted_host

    # -- writes -------------------------------------------------------------

    def _insert_comic(self, user_prompt: str, style: str, panel_count: int) -> Comic:
        comic = Comic(user_prompt=user_prompt, style=style, panel_count=panel_count)
        self.db.add(comic)
        self.db.commit()
        self.db.refresh(comic)
        return comic

    def _insert_panels(
        self,
        comic_id: int,
        scripts: list[PanelScript],
        images: list[PanelImage],
        urls: list[str],
    ) -> None:
        rows = [
            ComicPanel(
                comic_id=comic_id,
                panel_number=script.panel_number,
                script_text=script.description,
                dialogue=script.dialogue,
                mood=script.mood,
                image_prompt=image.prompt,
                image_url=url,
            )
            for script, image, url in zip(scripts, images, urls)
        ]
        self.db.add_all(rows)
        try:
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to insert panels for comic {comic_id}: {exc}") from exc

    async def save_comic(
        self,
        *,
        user_prompt: str,
        style: str,
        scripts: list[PanelScript],
        images: list[PanelImage],
    ) -> SavedComic:
        """Insert the comic row, upload every image, then insert the panel rows.

        Uploads run concurrently. If any fails, PersistenceError lists the
        failed panel numbers and the comic row is left without panels.
        """
        if self.store is None:
            raise ConfigurationError("Image storage is not configured")
        if len(scripts) != len(images):
            raise ValueError("scripts and images must have the same length")

        comic = await asyncio.to_thread(self._insert_comic, user_prompt, style, len(scripts))
        logger.info("comic_row_created comic_id=%s panel_count=%d", comic.id, len(scripts))

        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self.store.upload_panel_image,
                    comic.id,
                    image.panel_number,
                    image.data,
                    image.mime_type,
                )
                for image in images
            ),
            return_exceptions=True,
        )

        urls: list[str] = []
        failed: list[int] = []
        for image, result in zip(images, results):
            if isinstance(result, BaseException):
                logger.error(
                    "panel_upload_failed comic_id=%s panel_number=%d error=%r",
                    comic.id,
                    image.panel_number,
                    result,
                )
                failed.append(image.panel_number)
            else:
                urls.append(result)

        if failed:
            raise PersistenceError(
                f"Failed to upload panels {failed} for comic {comic.id}",
                failed_panels=failed,
            )

        await asyncio.to_thread(self._insert_panels, comic.id, scripts, images, urls)
        logger.info("comic_saved comic_id=%s", comic.id)
        return SavedComic(comic_id=comic.id, created_at=comic.created_at)

    # -- reads --------------------------------------------------------------

    def list_recent(self, limit: int = 10) -> list[Comic]:
        stmt = select(Comic).order_by(desc(Comic.created_at), desc(Comic.id)).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def get_comic(self, comic_id: int) -> Comic:
        stmt = select(Comic).where(Comic.id == comic_id).options(selectinload(Comic.panels))
        comic = self.db.execute(stmt).scalar_one_or_none()
        if comic is None:
            raise EntityNotFoundError("Comic", comic_id)
        return comic

    def _valid_panels(self, comic: Comic) -> list[ComicPanel]:
        valid: list[ComicPanel] = []
        for panel in sorted(comic.panels, key=lambda p: p.panel_number):
            if is_trusted_image_url(panel.image_url, self.trusted_host):
                valid.append(panel)
            else:
                logger.warning(
                    "gallery_panel_skipped comic_id=%s panel_id=%s image_url=%.80s",
                    comic.id,
                    panel.id,
                    panel.image_url,
                )
        return valid

    def list_gallery(self, limit: int = 50) -> list[GalleryComic]:
        """Newest comics that still have at least one displayable panel."""
        gallery: list[GalleryComic] = []
        offset = 0
        while len(gallery) < limit:
            stmt = (
                select(Comic)
                .options(selectinload(Comic.panels))
                .order_by(desc(Comic.created_at), desc(Comic.id))
                .offset(offset)
                .limit(limit)
            )
            batch = list(self.db.execute(stmt).scalars().all())
            if not batch:
                break
            offset += len(batch)
            for comic in batch:
                panels = self._valid_panels(comic)
                if panels:
                    gallery.append(GalleryComic(comic=comic, panels=panels))
                    if len(gallery) == limit:
                        break
        return gallery

    # -- setup --------------------------------------------------------------

    def check_setup(self) -> SetupStatus:
        inspector = inspect(self.db.get_bind())
        missing = [name for name in REQUIRED_TABLES if not inspector.has_table(name)]

        bucket_exists: bool | None = None
        bucket = self.store.bucket if self.store is not None else None
        if self.store is not None:
            try:
                bucket_exists = self.store.bucket_exists()
            except Exception as exc:  # noqa: BLE001
                logger.warning("storage_bucket_check_failed bucket=%s error=%r", bucket, exc)
                bucket_exists = False

        return SetupStatus(missing_tables=missing, bucket=bucket, bucket_exists=bucket_exists)
