import logging
import time
from typing import Protocol

from supabase import Client, create_client

from comicgen.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _ext_from_mime(mime_type: str) -> str:
    mime = (mime_type or "").lower()
    if mime == "image/png":
        return ".png"
    if mime in {"image/jpeg", "image/jpg"}:
        return ".jpg"
    if mime == "image/webp":
        return ".webp"
    return ".bin"


def panel_object_path(comic_id: int, panel_number: int, mime_type: str = "image/png") -> str:
    """Object key for one panel: comic id, panel number and a ms timestamp."""
    timestamp_ms = int(time.time() * 1000)
    return f"panels/comic-{comic_id}-panel-{panel_number}-{timestamp_ms}{_ext_from_mime(mime_type)}"


class MediaStore(Protocol):
    bucket: str

    def upload_panel_image(
        self,
        comic_id: int,
        panel_number: int,
        image_bytes: bytes,
        mime_type: str = "image/png",
    ) -> str: ...

    def bucket_exists(self) -> bool: ...


class SupabaseMediaStore:
    """Panel images in a public Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str):
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_credentials(cls, url: str | None, key: str | None, bucket: str) -> "SupabaseMediaStore":
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set for image storage")
        return cls(create_client(url, key), bucket)

    def upload_panel_image(
        self,
        comic_id: int,
        panel_number: int,
        image_bytes: bytes,
        mime_type: str = "image/png",
    ) -> str:
        path = panel_object_path(comic_id, panel_number, mime_type)
        bucket = self._client.storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=image_bytes,
            file_options={"content-type": mime_type, "upsert": "true"},
        )
        public_url = bucket.get_public_url(path).rstrip("?")
        logger.info("panel_image_uploaded comic_id=%s panel_number=%s path=%s", comic_id, panel_number, path)
        return public_url

    def bucket_exists(self) -> bool:
        buckets = self._client.storage.list_buckets()
        return any(getattr(b, "name", None) == self.bucket for b in buckets)
