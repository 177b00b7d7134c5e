"""
媒体发现模块

该模块包含:
- classifier: 根据扩展名判断媒体类型
- primary: yt-dlp 结构化提取（主策略）
- fallback: 无头浏览器抓取（降级策略）
- orchestrator: 策略链编排与 id 分配
"""
from .base import MediaKind, MediaRecord, ExtractionContext, ExtractionStrategy
from .classifier import classify
from .primary import YtDlpExtractor
from .fallback import BrowserScraper
from .orchestrator import ExtractionOrchestrator

__all__ = [
    'MediaKind',
    'MediaRecord',
    'ExtractionContext',
    'ExtractionStrategy',
    'classify',
    'YtDlpExtractor',
    'BrowserScraper',
    'ExtractionOrchestrator',
]
