import json
import re

import httpx
import pytest

from comicgen.api import deps
from comicgen.core import settings as settings_module
from comicgen.db.base import Base
from comicgen.db.session import get_engine, get_sessionmaker, init_engine
from comicgen.main import app

TRUSTED_HOST = "demo.supabase.co"


class FakeGemini:
    """Stands in for GeminiClient; records every prompt it receives."""

    def __init__(self):
        self.script_calls: list[str] = []
        self.text_calls: list[str] = []
        self.image_calls: list[str] = []
        self.script_response: str | Exception | None = None
        self.optimize_error: Exception | None = None
        self.image_handler = None

    def generate_text(self, prompt: str, model=None, response_schema=None) -> str:
        if response_schema is not None:
            self.script_calls.append(prompt)
            if isinstance(self.script_response, Exception):
                raise self.script_response
            if self.script_response is not None:
                return self.script_response
            count = int(re.search(r"exactly (\d+) consecutive panels", prompt).group(1))
            return json.dumps(
                {
                    "panels": [
                        {
                            "panelNumber": i,
                            "description": f"scene {i} description",
                            "dialogue": f"line {i}" if i % 2 else "",
                            "mood": "hopeful",
                        }
                        for i in range(1, count + 1)
                    ]
                }
            )

        self.text_calls.append(prompt)
        if self.optimize_error is not None:
            raise self.optimize_error
        panel = re.search(r"Panel (\d+)", prompt).group(1)
        return f"optimized prompt for panel {panel}"

    def generate_image(self, prompt: str, model=None):
        self.image_calls.append(prompt)
        if self.image_handler is not None:
            return self.image_handler(prompt)
        return f"png:{prompt}".encode(), "image/png"

    @property
    def call_count(self) -> int:
        return len(self.script_calls) + len(self.text_calls) + len(self.image_calls)


class FakeStore:
    """In-memory MediaStore returning public URLs on the trusted host."""

    bucket = "comic-images"

    def __init__(self, fail_panels=(), exists: bool = True):
        self.fail_panels = set(fail_panels)
        self.exists = exists
        self.uploads: list[tuple[int, int, bytes, str]] = []

    def upload_panel_image(self, comic_id, panel_number, image_bytes, mime_type="image/png"):
        if panel_number in self.fail_panels:
            raise RuntimeError(f"upload rejected for panel {panel_number}")
        self.uploads.append((comic_id, panel_number, image_bytes, mime_type))
        return (
            f"https://{TRUSTED_HOST}/storage/v1/object/public/{self.bucket}/"
            f"panels/comic-{comic_id}-panel-{panel_number}.png"
        )

    def bucket_exists(self) -> bool:
        return self.exists


@pytest.fixture(autouse=True)
def _use_test_db(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    database_url = f"sqlite+pysqlite:///{db_path}"

    settings = settings_module.settings
    monkeypatch.setattr(settings, "database_url", database_url)
    monkeypatch.setattr(settings, "db_auto_create", True)
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "supabase_url", None)
    monkeypatch.setattr(settings, "supabase_anon_key", None)
    monkeypatch.setattr(settings, "trusted_image_host", TRUSTED_HOST)
    monkeypatch.setattr(settings, "image_retry_delay_seconds", 0.0)

    init_engine(database_url)
    Base.metadata.create_all(bind=get_engine())

    yield

    app.dependency_overrides.clear()


@pytest.fixture()
def db():
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_gemini():
    return FakeGemini()


@pytest.fixture()
def fake_store():
    return FakeStore()


@pytest.fixture()
def wired(fake_gemini, fake_store):
    """Route dependencies resolve to the fakes."""
    app.dependency_overrides[deps.get_gemini] = lambda: fake_gemini
    app.dependency_overrides[deps.get_media_store] = lambda: fake_store
    return fake_gemini, fake_store


@pytest.fixture()
async def client():
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture()
def anyio_backend():
    """The app and pipeline are asyncio-based; run anyio-marked tests on asyncio."""
    return "asyncio"
