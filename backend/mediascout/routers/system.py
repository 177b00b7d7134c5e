"""
功能描述：系统状态 API
包含：健康检查（外部工具可用性）
"""
from fastapi import APIRouter

from mediascout import __version__
from mediascout.core.ffmpeg_check import resolve_ffmpeg_location
from mediascout.extraction.primary import check_ytdlp_available
from mediascout.schemas.media import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """健康检查：服务本身总是 ok，yt-dlp/ffmpeg 缺失只影响提取能力"""
    return HealthResponse(
        version=__version__,
        ytdlp=check_ytdlp_available(),
        ffmpeg=resolve_ffmpeg_location() is not None,
    )
