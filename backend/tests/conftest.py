"""
Pytest Fixtures for Backend Tests
"""
import os

# 在导入 settings 之前设置测试环境：不写日志文件、不在启动时更新 yt-dlp
os.environ["LOG_DIR"] = ""
os.environ["YTDLP_AUTO_UPDATE"] = "false"

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from mediascout.main import app
from tests.fakes import make_png


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Provide an AsyncClient bound to the ASGI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
