"""
Media API Tests - discovery, download proxy and image transcode proxy
"""
import contextlib

import httpx
import pytest
from httpx import AsyncClient

from mediascout.extraction.orchestrator import ExtractionOrchestrator
from mediascout.core.config import settings
from mediascout.main import app
from mediascout.routers.media import (
    get_http_client_factory,
    get_orchestrator,
    get_url_guard,
    parse_sources,
)
from tests.fakes import FakeStrategy, image, make_png, video

PAGE_A = "https://a.example.com/watch"
PAGE_B = "https://b.example.com/gallery"


def _use_upstream(handler, guarded: bool = False):
    """让代理路由使用 MockTransport 作为上游，并返回创建过的客户端列表

    guarded=False 时跳过地址安全检查，避免测试依赖 DNS
    """
    clients = []

    def _factory():
        c = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
        clients.append(c)
        return c

    app.dependency_overrides[get_http_client_factory] = lambda: _factory
    if not guarded:
        app.dependency_overrides[get_url_guard] = lambda: (lambda url: True)
    return clients


def test_parse_sources():
    assert parse_sources(None) == []
    assert parse_sources("") == []
    assert parse_sources(" https://a.com/x , ,https://b.com/y,") == ["https://a.com/x", "https://b.com/y"]


class TestDiscoveryAPI:
    """Test suite for /api/media"""

    @pytest.mark.asyncio
    async def test_empty_sources_returns_empty_list(self, client: AsyncClient):
        primary = FakeStrategy("yt-dlp")
        app.dependency_overrides[get_orchestrator] = lambda: ExtractionOrchestrator([primary])

        for params in ({}, {"sources": ""}):
            response = await client.get("/api/media", params=params)
            assert response.status_code == 200
            assert response.json() == []
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_records_shape(self, client: AsyncClient):
        primary = FakeStrategy("yt-dlp", results={PAGE_A: [video("https://cdn.example.com/v.mp4", author="Alice")]})
        fallback = FakeStrategy("scrape", results={PAGE_B: [image("https://cdn.example.com/p.jpg", author="b.example.com")]})
        app.dependency_overrides[get_orchestrator] = lambda: ExtractionOrchestrator([primary, fallback])

        response = await client.get("/api/media", params={"sources": f"{PAGE_A},not-a-url,{PAGE_B}"})

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body] == ["yt-dlp-0", "scrape-1"]

        first, second = body
        assert first["type"] == "video"
        assert first["thumbnailUrl"] == "https://img.example.com/t.jpg"
        assert first["author"] == "Alice"
        assert first["source"] == "web"
        assert "timestamp" in first

        assert second["type"] == "image"
        assert "thumbnailUrl" not in second
        assert second["author"] == "b.example.com"


class TestDownloadProxy:
    """Test suite for /api/download"""

    @pytest.mark.asyncio
    async def test_streams_with_filename_and_content_type(self, client: AsyncClient):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["referer"] = request.headers.get("referer")
            seen["user_agent"] = request.headers.get("user-agent")
            return httpx.Response(200, content=b"\x00\x01video-bytes", headers={"content-type": "video/mp4"})

        _use_upstream(handler)
        response = await client.get("/api/download", params={"url": "https://cdn.example.com/media/clip.mp4?sig=1"})

        assert response.status_code == 200
        assert response.content == b"\x00\x01video-bytes"
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-disposition"] == 'attachment; filename="clip.mp4"'
        assert seen["referer"] == "https://cdn.example.com"
        assert seen["user_agent"].startswith("Mozilla/5.0")

    @pytest.mark.asyncio
    async def test_default_filename_when_path_has_no_segment(self, client: AsyncClient):
        _use_upstream(lambda request: httpx.Response(200, content=b"data"))

        response = await client.get("/api/download", params={"url": "https://cdn.example.com/"})

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="media.file"'
        assert response.headers["content-type"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_missing_or_invalid_url(self, client: AsyncClient):
        assert (await client.get("/api/download")).status_code == 400
        assert (await client.get("/api/download", params={"url": "file:///etc/passwd"})).status_code == 400

    @pytest.mark.asyncio
    async def test_upstream_error_is_surfaced(self, client: AsyncClient):
        _use_upstream(lambda request: httpx.Response(404, content=b"missing"))
        response = await client.get("/api/download", params={"url": "https://cdn.example.com/a.jpg"})
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_upstream_network_failure_is_surfaced(self, client: AsyncClient):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        _use_upstream(handler)
        response = await client.get("/api/download", params={"url": "https://cdn.example.com/a.jpg"})
        assert response.status_code == 502


class TestImageProxy:
    """Test suite for /api/proxy/image"""

    @pytest.mark.asyncio
    async def test_low_quality_is_smaller_than_default(self, client: AsyncClient, png_bytes: bytes):
        _use_upstream(lambda request: httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"}))
        url = "https://cdn.example.com/photo.png"

        low = await client.get("/api/proxy/image", params={"url": url, "quality": "low"})
        default = await client.get("/api/proxy/image", params={"url": url})

        assert low.status_code == default.status_code == 200
        assert low.headers["content-type"].startswith("image/")
        assert default.headers["content-type"].startswith("image/")
        assert len(low.content) < len(default.content)
        assert low.headers["x-transcode-profile"] == "low"
        assert default.headers["x-transcode-profile"] == "normal"
        assert default.headers["x-original-size"] == str(len(png_bytes))

    @pytest.mark.asyncio
    async def test_undecodable_body_is_returned_raw(self, client: AsyncClient):
        _use_upstream(lambda request: httpx.Response(200, content=b"<svg/>", headers={"content-type": "image/svg+xml"}))

        response = await client.get("/api/proxy/image", params={"url": "https://cdn.example.com/icon.svg"})

        assert response.status_code == 200
        assert response.content == b"<svg/>"
        assert response.headers["x-transcode-status"] == "RAW"

    @pytest.mark.asyncio
    async def test_upstream_status_error(self, client: AsyncClient):
        _use_upstream(lambda request: httpx.Response(500))
        response = await client.get("/api/proxy/image", params={"url": "https://cdn.example.com/a.png"})
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_upstream_timeout(self, client: AsyncClient):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        _use_upstream(handler)
        response = await client.get("/api/proxy/image", params={"url": "https://cdn.example.com/a.png"})
        assert response.status_code == 504


class _BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b"first-chunk"
        raise httpx.ReadError("connection reset")


class TestProxyTargetGuard:
    """Internal and reserved addresses are refused by both proxies"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/download", "/api/proxy/image"])
    @pytest.mark.parametrize(
        "target",
        [
            "http://127.0.0.1:8000/admin",
            "http://169.254.169.254/latest/meta-data/",
            "http://10.0.0.5/a.jpg",
            "http://[::1]/a.jpg",
        ],
    )
    async def test_internal_target_rejected(self, client: AsyncClient, monkeypatch, path, target):
        monkeypatch.setattr(settings, "debug", False)
        seen = []
        _use_upstream(lambda request: seen.append(request) or httpx.Response(200), guarded=True)

        response = await client.get(path, params={"url": target})

        assert response.status_code == 400
        assert seen == []

    @pytest.mark.asyncio
    async def test_debug_mode_allows_loopback(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "debug", True)
        _use_upstream(lambda request: httpx.Response(200, content=b"ok"), guarded=True)

        response = await client.get("/api/download", params={"url": "http://127.0.0.1/a.bin"})

        assert response.status_code == 200
        assert response.content == b"ok"

    @pytest.mark.asyncio
    async def test_fake_ip_range_is_allowed(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "debug", False)
        _use_upstream(lambda request: httpx.Response(200, content=b"ok"), guarded=True)

        response = await client.get("/api/download", params={"url": "http://198.18.0.10/a.bin"})

        assert response.status_code == 200


@pytest.mark.asyncio
async def test_download_closes_client_when_stream_breaks(client: AsyncClient):
    clients = _use_upstream(lambda request: httpx.Response(200, stream=_BrokenStream()))

    # 传输中途失败，异常会从 ASGI 应用冒出
    with contextlib.suppress(Exception):
        await client.get("/api/download", params={"url": "https://cdn.example.com/big.mp4"})

    assert len(clients) == 1
    assert clients[0].is_closed
