"""
FastAPI 主应用
"""
import asyncio
from contextlib import asynccontextmanager
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mediascout import __version__
from mediascout.core.config import settings, validate_settings
from mediascout.core.ffmpeg_check import log_ffmpeg_status
from mediascout.core.logging import log_context, logger, new_request_id, setup_logging
from mediascout.extraction.primary import update_ytdlp
from mediascout.routers import media, system

setup_logging(
    level=settings.log_level,
    fmt=settings.log_format,
    debug=settings.debug,
    log_dir=settings.log_dir,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    validate_settings()
    logger.info("启动 MediaScout 应用程序...")

    log_ffmpeg_status()

    # yt-dlp 自更新放到后台，不阻塞启动
    update_task = None
    if settings.ytdlp_auto_update:
        update_task = asyncio.create_task(update_ytdlp())

    yield

    logger.info("关闭 MediaScout 应用程序...")
    if update_task is not None and not update_task.done():
        update_task.cancel()
        try:
            await update_task
        except asyncio.CancelledError:
            pass
    logger.info("应用程序关闭完成")


app = FastAPI(
    title="MediaScout API",
    description="网页媒体发现与下载/转码代理",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or new_request_id()
    request.state.request_id = request_id

    start = perf_counter()
    response = None
    with log_context(request_id=request_id):
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("未处理的请求异常")
            raise
        finally:
            elapsed_ms = (perf_counter() - start) * 1000
            logger.info(
                "request_complete path={} method={} status={} elapsed_ms={:.2f}",
                request.url.path,
                request.method,
                getattr(response, "status_code", 500),
                elapsed_ms,
            )

    if response is not None:
        response.headers["X-Request-Id"] = request_id
        return response

    return JSONResponse(status_code=500, content={"detail": "internal error"}, headers={"X-Request-Id": request_id})


# CORS中间件
_cors_origins = [o.strip() for o in settings.cors_allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-Id"],
)

# 注册路由
app.include_router(media.router, prefix="/api", tags=["media"])
app.include_router(system.router, tags=["system"])


@app.get("/api")
async def api_root():
    """API根路径"""
    return {
        "name": "MediaScout",
        "version": __version__,
        "description": "网页媒体发现与下载/转码代理",
    }


def run():
    import uvicorn
    uvicorn.run(
        "mediascout.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
