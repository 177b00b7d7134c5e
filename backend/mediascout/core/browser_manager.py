"""
一次性无头浏览器会话管理

每次降级抓取都启动独立的浏览器进程，用完即关，不做池化与复用：
  - 会话之间不共享 Cookie / 缓存，抓取结果互不影响。
  - 通过 async context manager 获取，任何退出路径（成功、超时、异常）都会关闭浏览器，
    避免遗留系统级浏览器进程。
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Page, async_playwright

from mediascout.core.config import settings
from mediascout.core.logging import logger

_FETCH_VIEWPORT = {"width": 1280, "height": 900}
_LAUNCH_ARGS = {
    "chromium": ["--no-sandbox", "--disable-setuid-sandbox"],
    "webkit": [],
    "firefox": [],
}


class PlaywrightBrowserManager:
    def __init__(
        self,
        browser_type: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self._browser_type = browser_type
        self._user_agent = user_agent

    @property
    def browser_type(self) -> str:
        return self._browser_type or settings.browser_type

    @property
    def ua(self) -> str:
        return self._user_agent or settings.browser_user_agent

    @property
    def fetch_viewport(self):
        return dict(_FETCH_VIEWPORT)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        """启动一次性浏览器并返回新页面，退出上下文时关闭整个浏览器。"""
        async with async_playwright() as pw:
            launcher = getattr(pw, self.browser_type)
            browser = await launcher.launch(
                headless=True,
                args=_LAUNCH_ARGS.get(self.browser_type, []),
            )
            logger.debug("浏览器会话已启动 ({})", self.browser_type)
            try:
                context = await browser.new_context(
                    viewport=self.fetch_viewport,
                    user_agent=self.ua,
                )
                page = await context.new_page()
                yield page
            finally:
                await browser.close()
                logger.debug("浏览器会话已关闭")


browser_manager = PlaywrightBrowserManager()
