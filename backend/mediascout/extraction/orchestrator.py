"""
提取编排

对每个来源页面按顺序尝试策略链（yt-dlp → 浏览器抓取），第一个返回非空结果的策略即为该来源的结果，
两种策略对同一来源互斥、不合并。单个来源的任何失败只会让该来源没有结果，不会中断整批。

id 在所有来源的发现完成后按提交顺序统一分配，因此即使并发处理来源，
输出顺序（按来源分组、保持提交顺序）与 id 递增关系也不变。
"""

import asyncio
from typing import Iterable, List, NamedTuple, Optional, Sequence

from mediascout.core.config import settings
from mediascout.core.logging import log_context, logger
from mediascout.extraction.base import (
    DiscoveredMedia,
    ExtractionContext,
    ExtractionStrategy,
    MediaRecord,
)
from mediascout.extraction.errors import ExtractionError, InvalidSourceError
from mediascout.extraction.fallback import BrowserScraper
from mediascout.extraction.primary import YtDlpExtractor
from mediascout.utils.url_utils import is_absolute_http_url


class SourceOutcome(NamedTuple):
    source_url: str
    strategy: str
    items: List[DiscoveredMedia]


def validate_source_url(source: str) -> str:
    value = (source or "").strip()
    if not is_absolute_http_url(value):
        raise InvalidSourceError(f"无效的来源 URL: {source!r}", details={"source": source})
    return value


def default_strategies() -> List[ExtractionStrategy]:
    return [YtDlpExtractor(), BrowserScraper()]


class ExtractionOrchestrator:
    def __init__(
        self,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        concurrency: Optional[int] = None,
    ):
        self._strategies = list(strategies) if strategies is not None else default_strategies()
        self._concurrency = concurrency

    @property
    def strategies(self) -> List[ExtractionStrategy]:
        return list(self._strategies)

    @property
    def concurrency(self) -> int:
        return self._concurrency or settings.extraction_concurrency

    async def run(self, source_urls: Iterable[str]) -> List[MediaRecord]:
        sources = list(source_urls)
        if not sources:
            return []

        context = ExtractionContext()
        with log_context(run_id=context.run_id):
            logger.info("开始提取 {} 个来源 (concurrency={})", len(sources), self.concurrency)
            outcomes = await self._discover_all(sources)

            records: List[MediaRecord] = []
            for outcome in outcomes:
                if outcome is None:
                    continue
                records.extend(context.materialize(outcome.strategy, item) for item in outcome.items)

            logger.info("提取完成，共 {} 条媒体记录", len(records))
        return records

    async def _discover_all(self, sources: List[str]) -> List[Optional[SourceOutcome]]:
        if self.concurrency <= 1 or len(sources) == 1:
            return [await self._discover_source(source) for source in sources]

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(source: str) -> Optional[SourceOutcome]:
            async with semaphore:
                return await self._discover_source(source)

        return list(await asyncio.gather(*(_bounded(source) for source in sources)))

    async def _discover_source(self, source: str) -> Optional[SourceOutcome]:
        with log_context(source_url=source):
            try:
                page_url = validate_source_url(source)
            except InvalidSourceError:
                logger.info("来源 {!r} 不是有效的 URL，跳过", source)
                return None

            try:
                return await self._run_chain(page_url)
            except Exception:
                logger.exception("处理来源失败，跳过: {}", page_url)
                return None

    async def _run_chain(self, page_url: str) -> Optional[SourceOutcome]:
        for strategy in self._strategies:
            try:
                items = await strategy.discover(page_url)
            except ExtractionError as e:
                logger.warning("策略 {} 失败: {}", strategy.name, e.message)
                items = []

            if items:
                logger.info("策略 {} 在 {} 找到 {} 个媒体", strategy.name, page_url, len(items))
                return SourceOutcome(page_url, strategy.name, items)
            logger.info("策略 {} 没有结果: {}", strategy.name, page_url)
        return None
