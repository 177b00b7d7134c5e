"""
ffmpeg 可用性检查模块

在应用启动时检查 ffmpeg 是否可用，并记录到日志。
yt-dlp 在检测到 ffmpeg 时通过 --ffmpeg-location 使用它做格式合并/转换。
"""

import os
import shutil
import subprocess
from typing import Optional

from mediascout.core.config import settings
from mediascout.core.logging import logger


def _binary_name() -> str:
    return "ffmpeg.exe" if os.name == "nt" else "ffmpeg"


def resolve_ffmpeg_location(configured: Optional[str] = None) -> Optional[str]:
    """返回可传给 yt-dlp --ffmpeg-location 的路径

    优先使用配置的目录或可执行文件，其次在 PATH 中查找。
    找不到时返回 None（不会抛出异常）。
    """
    configured = configured if configured is not None else settings.ffmpeg_location
    if configured:
        if os.path.isdir(configured):
            if os.path.isfile(os.path.join(configured, _binary_name())):
                return configured
            return None
        if os.path.isfile(configured):
            return configured
        return None

    found = shutil.which("ffmpeg")
    if found:
        return os.path.dirname(found)
    return None


def _ffmpeg_executable(location: str) -> str:
    if os.path.isdir(location):
        return os.path.join(location, _binary_name())
    return location


def get_ffmpeg_version(location: Optional[str] = None) -> Optional[str]:
    """获取 ffmpeg 版本号

    Returns:
        Version string like "ffmpeg version 6.1 ..." or None if ffmpeg not available
    """
    location = location or resolve_ffmpeg_location()
    if not location:
        return None
    try:
        result = subprocess.run(
            [_ffmpeg_executable(location), "-version"],
            capture_output=True,
            timeout=5,
            check=False,
            text=True,
        )
        if result.returncode == 0:
            # 第一行通常是: ffmpeg version ...
            first_line = result.stdout.split('\n')[0] if result.stdout else ""
            return first_line.strip()
        return None
    except (OSError, subprocess.TimeoutExpired):
        return None


def check_ffmpeg_available() -> bool:
    return get_ffmpeg_version() is not None


def log_ffmpeg_status():
    """在应用启动时记录 ffmpeg 可用性状态"""
    location = resolve_ffmpeg_location()
    version = get_ffmpeg_version(location) if location else None

    if version:
        logger.info("ffmpeg is available at {} ({})", location, version)
    else:
        logger.warning(
            "ffmpeg is not available. yt-dlp will run without --ffmpeg-location; "
            "some sites need it to merge audio/video formats"
        )
