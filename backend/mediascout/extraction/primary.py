"""
yt-dlp 结构化提取（主策略）

以子进程方式运行 yt-dlp -j，逐行解码标准输出中的 JSON，
筛选出同时带有媒体地址与缩略图的视频条目。

任何进程级失败（找不到可执行文件、启动失败、非零退出且无输出）都返回空列表，
由编排器据此触发降级抓取。
"""

import asyncio
import json
import os
import shutil
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from mediascout.core.config import settings
from mediascout.core.ffmpeg_check import resolve_ffmpeg_location
from mediascout.core.logging import logger
from mediascout.extraction.base import (
    DiscoveredMedia,
    ExtractionStrategy,
    MediaKind,
    VideoCandidate,
)
from mediascout.extraction.errors import ToolUnavailableError
from mediascout.utils.url_utils import hostname_of, is_absolute_http_url, resolve_url

# yt-dlp 单行 JSON 可能有数百 KB（formats 列表），默认 64KB 的 StreamReader 限制不够
_STREAM_LIMIT = 16 * 1024 * 1024


async def _iter_lines(reader: asyncio.StreamReader) -> AsyncIterator[bytes]:
    """逐行读取子进程输出，超过长度上限的行直接丢弃"""
    while True:
        try:
            raw = await reader.readline()
        except ValueError:
            logger.debug("子进程输出行超过长度上限，已跳过")
            continue
        if not raw:
            return
        yield raw


def _media_url_of(info: Dict[str, Any]) -> Optional[str]:
    url = info.get("url")
    if is_absolute_http_url(url):
        return url

    # 音视频分离的格式没有顶层 url，取第一个已选格式
    requested = info.get("requested_formats")
    if isinstance(requested, list):
        for fmt in requested:
            if isinstance(fmt, dict) and is_absolute_http_url(fmt.get("url")):
                return fmt["url"]
    return None


def parse_ytdlp_line(line: str, page_url: str) -> Optional[VideoCandidate]:
    """解析 yt-dlp 的一行输出，不是可用的视频条目时返回 None"""
    line = (line or "").strip()
    if not line:
        return None
    try:
        info = json.loads(line)
    except ValueError:
        # yt-dlp 的诊断信息会夹在数据行之间
        return None
    if not isinstance(info, dict):
        return None

    media_url = _media_url_of(info)
    thumbnail = info.get("thumbnail")
    thumbnail_url = resolve_url(thumbnail, page_url) if isinstance(thumbnail, str) else None
    if not media_url or not thumbnail_url:
        return None

    uploader = info.get("uploader")
    author = str(uploader) if uploader else hostname_of(page_url)
    return VideoCandidate(url=media_url, thumbnail_url=thumbnail_url, author=author)


def parse_ytdlp_output(lines: Iterable[str], page_url: str) -> List[VideoCandidate]:
    candidates = []
    for line in lines:
        candidate = parse_ytdlp_line(line, page_url)
        if candidate:
            candidates.append(candidate)
    return candidates


def check_ytdlp_available(binary: Optional[str] = None) -> bool:
    binary = binary or settings.ytdlp_path
    return shutil.which(binary) is not None or os.path.isfile(binary)


async def update_ytdlp(binary: Optional[str] = None) -> Optional[int]:
    """执行 yt-dlp -U 自更新，输出逐行写入日志；不可用时只记录日志"""
    binary = binary or settings.ytdlp_path
    logger.info("检查 yt-dlp 更新...")
    try:
        process = await asyncio.create_subprocess_exec(
            binary,
            "-U",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        logger.error("无法启动 yt-dlp 更新进程 ({}): {}", binary, e)
        return None

    async for raw in _iter_lines(process.stdout):
        text = raw.decode("utf-8", errors="replace").strip()
        if text:
            logger.info("[yt-dlp update] {}", text)
    returncode = await process.wait()
    logger.info("yt-dlp 更新进程结束，退出码 {}", returncode)
    return returncode


class YtDlpExtractor(ExtractionStrategy):
    """yt-dlp 主策略：每次调用启动一个子进程，不复用"""

    name = "yt-dlp"

    def __init__(
        self,
        binary: Optional[str] = None,
        ffmpeg_location: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self._binary = binary
        self._ffmpeg_location = ffmpeg_location
        self._timeout = timeout

    @property
    def binary(self) -> str:
        return self._binary or settings.ytdlp_path

    @property
    def timeout(self) -> float:
        return self._timeout or settings.ytdlp_timeout_seconds

    def build_command(self, page_url: str) -> List[str]:
        command = [
            self.binary,
            "--ignore-errors",
            "-j",
            "--no-warnings",
        ]
        ffmpeg_location = self._ffmpeg_location or resolve_ffmpeg_location()
        if ffmpeg_location:
            command += ["--ffmpeg-location", ffmpeg_location]
        command.append(page_url)
        return command

    async def extract(self, page_url: str) -> List[VideoCandidate]:
        logger.info("yt-dlp 开始提取: {}", page_url)
        candidates: List[VideoCandidate] = []
        try:
            returncode = await self._run(self.build_command(page_url), page_url, candidates)
        except ToolUnavailableError as e:
            logger.error("{}，跳过结构化提取", e.message)
            return []

        if not candidates:
            logger.info("yt-dlp 未找到可用视频 (exit={}): {}", returncode, page_url)
            return []

        logger.info("yt-dlp 找到 {} 个视频 (exit={}): {}", len(candidates), returncode, page_url)
        return candidates

    async def discover(self, page_url: str) -> List[DiscoveredMedia]:
        return [
            DiscoveredMedia(
                url=c.url,
                kind=MediaKind.VIDEO,
                author=c.author,
                thumbnail_url=c.thumbnail_url,
            )
            for c in await self.extract(page_url)
        ]

    async def _run(
        self,
        command: List[str],
        page_url: str,
        candidates: List[VideoCandidate],
    ) -> Optional[int]:
        """运行子进程并把解析出的条目追加到 candidates，返回退出码（超时为 None）"""
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except (OSError, ValueError) as e:
            # ValueError: 参数中含有 NUL 等无法传给 exec 的字符
            raise ToolUnavailableError(
                f"无法启动 yt-dlp ({command[0]}): {e}",
                details={"binary": command[0]},
            ) from e

        async def _consume_stdout():
            async for raw in _iter_lines(process.stdout):
                candidate = parse_ytdlp_line(raw.decode("utf-8", errors="replace"), page_url)
                if candidate:
                    candidates.append(candidate)

        async def _consume_stderr():
            async for raw in _iter_lines(process.stderr):
                text = raw.decode("utf-8", errors="replace").strip()
                if text:
                    logger.debug("[yt-dlp stderr] {}", text)

        try:
            await asyncio.wait_for(
                asyncio.gather(_consume_stdout(), _consume_stderr(), process.wait()),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("yt-dlp 超过 {}s 未结束，终止进程: {}", self.timeout, page_url)
            return None
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
        return process.returncode
