"""
提取策略基类与数据结构
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from mediascout.core.logging import new_run_id

MEDIA_SOURCE_WEB = "web"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class VideoCandidate:
    """yt-dlp 输出中的一条可预览视频"""
    url: str
    thumbnail_url: str
    author: str


@dataclass(frozen=True)
class DiscoveredMedia:
    """策略发现的媒体项，尚未分配 id"""
    url: str
    kind: MediaKind
    author: str
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class MediaRecord:
    """对外输出的媒体记录，创建后不可变，不做持久化"""
    id: str
    type: MediaKind
    url: str
    author: str
    thumbnail_url: Optional[str] = None
    source: str = MEDIA_SOURCE_WEB
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ExtractionContext:
    """单次提取运行的上下文

    持有整批共享的递增序号，保证 id 在一次运行内唯一且严格递增。
    每次运行新建，运行结束即丢弃。
    """

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or new_run_id()
        self._sequence = 0

    def next_id(self, prefix: str) -> str:
        value = f"{prefix}-{self._sequence}"
        self._sequence += 1
        return value

    @property
    def issued(self) -> int:
        return self._sequence

    def materialize(self, prefix: str, item: DiscoveredMedia) -> MediaRecord:
        return MediaRecord(
            id=self.next_id(prefix),
            type=item.kind,
            url=item.url,
            author=item.author,
            thumbnail_url=item.thumbnail_url,
        )


class ExtractionStrategy(ABC):
    """提取策略基类

    编排器按顺序尝试各策略，直到某个策略返回非空结果。
    `name` 同时作为媒体记录 id 的前缀。
    """

    name: str

    @abstractmethod
    async def discover(self, page_url: str) -> List[DiscoveredMedia]:
        """发现页面中的媒体；失败时返回空列表而不是抛出异常"""
        pass
