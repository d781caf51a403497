import pytest


@pytest.mark.anyio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_request_id_is_echoed(client):
    resp = await client.get("/health", headers={"x-request-id": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"


@pytest.mark.anyio
async def test_request_id_is_generated(client):
    resp = await client.get("/health")
    assert resp.headers["x-request-id"]


@pytest.mark.anyio
async def test_metrics_exposes_comicgen_series(client):
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "comicgen_gemini_calls_total" in resp.text
    assert "comicgen_comic_saves_total" in resp.text
