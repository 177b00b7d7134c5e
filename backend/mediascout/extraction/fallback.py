"""
无头浏览器降级抓取

仅在 yt-dlp 没有结果时使用：
  1. 导航前挂上网络请求观察器，记录所有路径以媒体扩展名结尾的请求（只观察，不拦截）。
  2. 等待网络接近空闲（在途请求不超过 2 个并持续 500ms），硬超时 30s。
  3. 读取渲染后的 DOM，补充 <img>/<video> 中显式声明的媒体地址。

两路来源写入同一个按插入顺序去重的候选集合。
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from mediascout.core.browser_manager import PlaywrightBrowserManager, browser_manager
from mediascout.core.config import settings
from mediascout.core.logging import logger
from mediascout.extraction.base import DiscoveredMedia, ExtractionStrategy
from mediascout.extraction.classifier import classify, is_media_url
from mediascout.extraction.errors import ExtractionError, NavigationError, ToolUnavailableError
from mediascout.utils.url_utils import hostname_of, is_absolute_http_url, resolve_url

RequestObserver = Callable[[str], None]


class CandidateSet:
    """按精确字符串去重、保持插入顺序的候选 URL 集合"""

    def __init__(self):
        self._items: Dict[str, None] = {}

    def add(self, url: str) -> bool:
        if url in self._items:
            return False
        self._items[url] = None
        return True

    def __contains__(self, url: object) -> bool:
        return url in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[str]:
        return list(self._items)


def scan_rendered_dom(html: str, page_url: str) -> List[str]:
    """从渲染后的 HTML 中取出 <img src> 与 <video src>/<source src>，解析为绝对地址"""
    soup = BeautifulSoup(html or "", "html.parser")
    found: List[str] = []

    for img in soup.find_all("img"):
        resolved = resolve_url(img.get("src"), page_url)
        if resolved:
            found.append(resolved)

    for video in soup.find_all("video"):
        src = video.get("src")
        if not src:
            source = video.find("source")
            src = source.get("src") if source else None
        resolved = resolve_url(src, page_url)
        if resolved:
            found.append(resolved)

    return found


class _NetworkIdleTracker:
    """统计在途请求数，等待“在途请求 <= max_inflight 且持续 idle_ms”"""

    def __init__(self, max_inflight: int = 2, idle_ms: int = 500):
        self._max_inflight = max_inflight
        self._idle_seconds = idle_ms / 1000
        self._inflight = 0
        self._changed = asyncio.Event()

    @property
    def inflight(self) -> int:
        return self._inflight

    def started(self) -> None:
        self._inflight += 1
        self._changed.set()

    def finished(self) -> None:
        self._inflight = max(0, self._inflight - 1)
        self._changed.set()

    async def wait_idle(self) -> None:
        while True:
            self._changed.clear()
            if self._inflight > self._max_inflight:
                await self._changed.wait()
                continue
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=self._idle_seconds)
            except asyncio.TimeoutError:
                return


class PageRenderer(ABC):
    """页面渲染能力：渲染页面、把每个出站请求 URL 交给观察器，返回渲染后的 HTML"""

    @abstractmethod
    async def render(self, page_url: str, on_request: RequestObserver) -> str:
        """导航失败或超时抛出 NavigationError，浏览器无法启动抛出 ToolUnavailableError"""
        pass


class PlaywrightRenderer(PageRenderer):
    def __init__(
        self,
        manager: Optional[PlaywrightBrowserManager] = None,
        timeout_ms: Optional[int] = None,
        max_inflight: int = 2,
        idle_ms: int = 500,
    ):
        self._manager = manager or browser_manager
        self._timeout_ms = timeout_ms
        self._max_inflight = max_inflight
        self._idle_ms = idle_ms

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms or settings.browser_navigation_timeout_ms

    async def render(self, page_url: str, on_request: RequestObserver) -> str:
        tracker = _NetworkIdleTracker(self._max_inflight, self._idle_ms)

        def _on_request(request):
            tracker.started()
            on_request(request.url)

        try:
            async with self._manager.session() as page:
                page.on("request", _on_request)
                page.on("requestfinished", lambda request: tracker.finished())
                page.on("requestfailed", lambda request: tracker.finished())

                try:
                    await asyncio.wait_for(
                        self._navigate(page, page_url, tracker),
                        timeout=self.timeout_ms / 1000,
                    )
                except asyncio.TimeoutError as e:
                    raise NavigationError(
                        f"页面在 {self.timeout_ms}ms 内未稳定",
                        details={"inflight": tracker.inflight},
                    ) from e
                except PlaywrightError as e:
                    raise NavigationError(f"页面导航失败: {e}") from e

                return await page.content()
        except PlaywrightError as e:
            raise ToolUnavailableError(f"无头浏览器不可用: {e}") from e

    async def _navigate(self, page, page_url: str, tracker: _NetworkIdleTracker) -> None:
        await page.goto(page_url, wait_until="domcontentloaded", timeout=self.timeout_ms)
        await tracker.wait_idle()


class BrowserScraper(ExtractionStrategy):
    """降级策略：渲染页面并收集网络请求与 DOM 中的媒体地址"""

    name = "scrape"

    def __init__(self, renderer: Optional[PageRenderer] = None):
        self._renderer = renderer or PlaywrightRenderer()

    @staticmethod
    def observe_network_media(candidates: CandidateSet) -> RequestObserver:
        def _observe(request_url: str) -> None:
            if is_absolute_http_url(request_url) and is_media_url(request_url):
                candidates.add(request_url)
        return _observe

    async def scrape(self, page_url: str) -> List[str]:
        logger.info("浏览器降级抓取开始: {}", page_url)
        candidates = CandidateSet()

        try:
            html = await self._renderer.render(page_url, self.observe_network_media(candidates))
        except ExtractionError as e:
            logger.warning(
                "浏览器抓取中断 ({}), 返回已捕获的 {} 个媒体: {}",
                e.message, len(candidates), page_url,
            )
            return candidates.items()

        network_count = len(candidates)
        for url in scan_rendered_dom(html, page_url):
            candidates.add(url)

        logger.info(
            "浏览器抓取完成，共 {} 个媒体（网络 {}，DOM 新增 {}）: {}",
            len(candidates), network_count, len(candidates) - network_count, page_url,
        )
        return candidates.items()

    async def discover(self, page_url: str) -> List[DiscoveredMedia]:
        author = hostname_of(page_url)
        return [
            DiscoveredMedia(url=url, kind=classify(url), author=author)
            for url in await self.scrape(page_url)
        ]
