"""
功能描述：媒体发现与媒体代理 API
包含：批量媒体发现、下载代理、图片转码代理
调用方式：无需鉴权，前端直接调用
"""
from typing import Callable, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from mediascout.core.config import settings
from mediascout.core.logging import logger
from mediascout.extraction.orchestrator import ExtractionOrchestrator
from mediascout.media.processor import (
    WEBP_CONTENT_TYPE,
    TranscodeError,
    get_profile,
    request_headers_for_url,
    transform,
)
from mediascout.schemas.media import MediaRecordResponse
from mediascout.utils.url_utils import filename_from_url, is_absolute_http_url, is_safe_url

router = APIRouter()

HttpClientFactory = Callable[[], httpx.AsyncClient]
UrlGuard = Callable[[str], bool]

_IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"


def parse_sources(raw: Optional[str]) -> List[str]:
    """拆分逗号分隔的来源列表，去掉空白项"""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        proxy=settings.http_proxy,
        timeout=httpx.Timeout(settings.proxy_timeout_seconds, connect=5.0),
        follow_redirects=True,
    )


def get_http_client_factory() -> HttpClientFactory:
    return build_http_client


def get_orchestrator() -> ExtractionOrchestrator:
    return ExtractionOrchestrator()


def _guard_target_url(url: str) -> bool:
    return is_safe_url(url, allow_private=settings.debug)


def get_url_guard() -> UrlGuard:
    return _guard_target_url


async def _require_target_url(url: Optional[str], guard: UrlGuard) -> str:
    if not url:
        raise HTTPException(status_code=400, detail="缺少 url 参数")
    url = url.strip()
    if not is_absolute_http_url(url):
        raise HTTPException(status_code=400, detail="url 必须是 http(s) 绝对地址")
    # 域名解析是阻塞调用
    if not await run_in_threadpool(guard, url):
        logger.warning("拒绝代理内网或保留地址: {}", url)
        raise HTTPException(status_code=400, detail="不允许访问该地址")
    return url


@router.get(
    "/media",
    response_model=List[MediaRecordResponse],
    response_model_exclude_none=True,
)
async def discover_media(
    sources: Optional[str] = Query(None, description="逗号分隔的页面 URL"),
    orchestrator: ExtractionOrchestrator = Depends(get_orchestrator),
):
    """批量发现页面中的媒体，单个来源失败不会影响其它来源"""
    source_urls = parse_sources(sources)
    if not source_urls:
        return []

    records = await orchestrator.run(source_urls)
    return [MediaRecordResponse.from_record(record) for record in records]


@router.get("/download")
async def download_media(
    url: Optional[str] = Query(None, description="要下载的媒体 URL"),
    client_factory: HttpClientFactory = Depends(get_http_client_factory),
    guard: UrlGuard = Depends(get_url_guard),
):
    """下载代理：以附件形式原样流式返回上游内容"""
    url = await _require_target_url(url, guard)

    client = client_factory()
    try:
        request = client.build_request("GET", url, headers=request_headers_for_url(url))
        upstream = await client.send(request, stream=True)
    except httpx.TimeoutException:
        await client.aclose()
        logger.error("下载代理请求超时: {}", url)
        raise HTTPException(status_code=504, detail="上游服务器响应超时")
    except httpx.RequestError as e:
        await client.aclose()
        logger.error("下载代理网络错误: {}, {}", url, e)
        raise HTTPException(status_code=502, detail="无法下载文件")

    if upstream.status_code >= 400:
        await upstream.aclose()
        await client.aclose()
        logger.error("下载代理上游错误 {}: {}", upstream.status_code, url)
        raise HTTPException(status_code=502, detail=f"上游服务器返回错误: {upstream.status_code}")

    async def _close():
        await upstream.aclose()
        await client.aclose()

    async def _body():
        # 传输中途出错时后台任务不会执行，在这里兜底关闭
        try:
            async for chunk in upstream.aiter_bytes():
                yield chunk
        finally:
            await _close()

    filename = filename_from_url(url)
    logger.info("下载代理开始传输: {} -> {}", url, filename)
    return StreamingResponse(
        _body(),
        media_type=upstream.headers.get("content-type", "application/octet-stream"),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        background=BackgroundTask(_close),
    )


@router.get("/proxy/image")
async def proxy_image(
    url: Optional[str] = Query(None, description="要转码的图片 URL"),
    quality: Optional[str] = Query(None, description="low | normal（默认）"),
    client_factory: HttpClientFactory = Depends(get_http_client_factory),
    guard: UrlGuard = Depends(get_url_guard),
):
    """图片转码代理

    low: 极小、模糊、高压缩的占位图；其它取值: 限宽 1280 的适度压缩图。
    输出统一为 WebP。
    """
    url = await _require_target_url(url, guard)
    profile = get_profile(quality)

    try:
        async with client_factory() as client:
            resp = await client.get(url, headers=request_headers_for_url(url, accept=_IMAGE_ACCEPT))
    except httpx.TimeoutException:
        logger.error("图片代理请求超时: {}", url)
        raise HTTPException(status_code=504, detail="上游服务器响应超时")
    except httpx.RequestError as e:
        logger.error("图片代理网络错误: {}, {}", url, e)
        raise HTTPException(status_code=502, detail=f"网络请求失败: {e}")

    if resp.status_code != 200:
        logger.error("图片代理上游错误 {}: {}", resp.status_code, url)
        raise HTTPException(status_code=502, detail=f"上游服务器返回错误: {resp.status_code}")

    original_data = resp.content
    try:
        data = await run_in_threadpool(transform, original_data, profile)
    except TranscodeError as e:
        # 转码失败，返回原图
        logger.warning("图片转码失败，返回原图: {}", e)
        return Response(
            content=original_data,
            media_type=resp.headers.get("content-type", "application/octet-stream"),
            headers={"X-Transcode-Status": "RAW"},
        )

    logger.info(
        "图片代理转码完成 [{}]: {} ({}KB -> {}KB)",
        profile.name, url, len(original_data) // 1024, len(data) // 1024,
    )
    return Response(
        content=data,
        media_type=WEBP_CONTENT_TYPE,
        headers={
            "Cache-Control": "public, max-age=86400",
            "X-Transcode-Profile": profile.name,
            "X-Original-Size": str(len(original_data)),
            "X-Compressed-Size": str(len(data)),
        },
    )
