from __future__ import annotations

import asyncio
import json

import pytest
from httpx import ASGITransport, AsyncClient
from loguru import logger

from core.exceptions import DownloadError, S3Error
from core.publisher import Publisher
from core.settings import Settings, StorageSettings
from core.transfer import MediaTransferService
from services.api import routes
from services.api.main import create_app
from tests.fakes import FakeFetcher, FakeStorage, StallingFetcher


def _settings() -> Settings:
    return Settings(storage=StorageSettings(endpoint="oss-cn-hangzhou.aliyuncs.com", bucket="media-bucket"))


def _app(fetcher=None, storage=None):
    service = MediaTransferService(fetcher or FakeFetcher(), Publisher(storage or FakeStorage()))
    return create_app(_settings(), service)


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio()
async def test_transfer_endpoint_returns_public_url():
    fetcher = FakeFetcher(b"\x89PNG", content_type="image/png")
    async with _client(_app(fetcher)) as client:
        response = await client.post(
            "/api/v1/media/transfer",
            json={"url": " https://cdn.example.com/out/0.jpg?sig=abc ", "ext": "png", "prediction_uuid": "p-1"},
        )

    assert response.status_code == 200, response.text
    assert response.json() == {
        "success": True,
        "message": "Successfully uploaded file to OSS",
        "oss_url": "https://media-bucket.oss-cn-hangzhou.aliyuncs.com/outputs/p-1/0.png",
        "original_url": "https://cdn.example.com/out/0.jpg?sig=abc",
        "file_size": 4,
        "content_type": "image/png",
    }
    assert fetcher.calls == ["https://cdn.example.com/out/0.jpg?sig=abc"]


@pytest.mark.asyncio()
async def test_empty_ext_is_accepted():
    async with _client(_app(FakeFetcher(content_type="video/mp4"))) as client:
        response = await client.post(
            "/api/v1/media/transfer",
            json={"url": "https://cdn.example.com/clip", "ext": "", "prediction_uuid": "p-1"},
        )

    assert response.status_code == 200
    assert response.json()["oss_url"].endswith("/outputs/p-1/clip.mp4")


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "payload",
    [
        {"ext": "png", "prediction_uuid": "p-1"},
        {"url": "https://cdn.example.com/a.png", "prediction_uuid": "p-1"},
        {"url": "https://cdn.example.com/a.png", "ext": "png"},
    ],
)
async def test_missing_fields_are_bad_requests(payload):
    fetcher = FakeFetcher()
    async with _client(_app(fetcher)) as client:
        response = await client.post("/api/v1/media/transfer", json=payload)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request parameters"
    assert fetcher.calls == []


@pytest.mark.asyncio()
async def test_malformed_json_is_bad_request():
    async with _client(_app()) as client:
        response = await client.post(
            "/api/v1/media/transfer",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

    assert response.status_code == 400


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "payload,error,message",
    [
        ({"url": "   ", "ext": "", "prediction_uuid": "p"}, "ValidationError", "URL cannot be empty"),
        ({"url": "https://e.com/a", "ext": "", "prediction_uuid": ""}, "ValidationError", "PredictionUUID cannot be empty"),
        (
            {"url": "ftp://e.com/a.png", "ext": "", "prediction_uuid": "p"},
            "UnsupportedSchemeError",
            "Only HTTP and HTTPS protocols are supported",
        ),
    ],
)
async def test_invalid_input_is_bad_request(payload, error, message):
    fetcher = FakeFetcher()
    async with _client(_app(fetcher)) as client:
        response = await client.post("/api/v1/media/transfer", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == error
    assert body["message"] == message
    assert fetcher.calls == []


@pytest.mark.asyncio()
async def test_download_failure_is_internal_error():
    fetcher = FakeFetcher(error=DownloadError("download failed with status: 404", {"url": "https://e.com/a"}))
    async with _client(_app(fetcher)) as client:
        response = await client.post(
            "/api/v1/media/transfer",
            json={"url": "https://e.com/a", "ext": "", "prediction_uuid": "p"},
        )

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "DownloadError"
    assert body["details"] == {"url": "https://e.com/a", "phase": "download"}


@pytest.mark.asyncio()
async def test_upload_failure_is_internal_error():
    storage = FakeStorage(error=S3Error("failed to upload file: AccessDenied"))
    async with _client(_app(storage=storage)) as client:
        response = await client.post(
            "/api/v1/media/transfer",
            json={"url": "https://e.com/a.png", "ext": "", "prediction_uuid": "p"},
        )

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "UploadError"
    assert body["details"]["phase"] == "upload"
    assert body["details"]["object_key"] == "outputs/p/a.png"


@pytest.mark.asyncio()
async def test_unknown_route_returns_json_404():
    async with _client(_app()) as client:
        response = await client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.json()["message"] == "Route not found"


@pytest.mark.asyncio()
async def test_index_lists_endpoints():
    async with _client(_app()) as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["transfer"] == "POST /api/v1/media/transfer"


@pytest.mark.asyncio()
async def test_client_disconnect_cancels_transfer(monkeypatch):
    monkeypatch.setattr(routes, "DISCONNECT_POLL_SECONDS", 0.02)
    fetcher = StallingFetcher()
    app = _app(fetcher)
    body = json.dumps({"url": "https://e.com/long.mp4", "ext": "", "prediction_uuid": "p"}).encode()
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/api/v1/media/transfer",
        "raw_path": b"/api/v1/media/transfer",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json"), (b"content-length", str(len(body)).encode())],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }
    body_sent = False
    messages = []

    async def receive():
        nonlocal body_sent
        if not body_sent:
            body_sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        # The client goes away once the upload is under way.
        while not fetcher.started.is_set():
            await asyncio.sleep(0.01)
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)

    await asyncio.wait_for(app(scope, receive, send), timeout=3.0)

    assert fetcher.cancel_events[0].is_set()
    assert fetcher.streams[0].close_calls == 1
    start = next(message for message in messages if message["type"] == "http.response.start")
    assert start["status"] == 500


@pytest.mark.asyncio()
async def test_access_log_records_status():
    app = _app()
    lines = []
    sink_id = logger.add(lines.append, format="{message}")
    try:
        async with _client(app) as client:
            await client.get("/api/v1/nope")
    finally:
        logger.remove(sink_id)

    assert any("GET /api/v1/nope -> 404" in line for line in lines)


@pytest.mark.asyncio()
async def test_shutdown_closes_owned_http_client():
    app = create_app(_settings())
    fetcher = app.state.transfer_service.fetcher

    async with app.router.lifespan_context(app):
        assert not fetcher.client.is_closed

    assert fetcher.client.is_closed


@pytest.mark.asyncio()
async def test_shutdown_leaves_injected_service_open():
    fetcher = FakeFetcher()
    app = _app(fetcher)

    async with app.router.lifespan_context(app):
        pass

    assert fetcher.close_calls == 0
