"""
媒体类型分类

仅根据 URL 路径的扩展名判断，不访问网络。
"""
import re
from urllib.parse import urlparse

from mediascout.extraction.base import MediaKind

VIDEO_EXTENSIONS = ("mp4", "webm")
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")

_VIDEO_PATTERN = re.compile(r"\.(?:%s)\Z" % "|".join(VIDEO_EXTENSIONS), re.IGNORECASE)
MEDIA_PATTERN = re.compile(
    r"\.(?:%s)\Z" % "|".join(VIDEO_EXTENSIONS + IMAGE_EXTENSIONS), re.IGNORECASE
)


def _path_of(url: str) -> str:
    if not isinstance(url, str):
        return ""
    try:
        return urlparse(url).path
    except ValueError:
        return url


def is_media_url(url: str) -> bool:
    """路径是否以已知的图片/视频扩展名结尾"""
    return bool(MEDIA_PATTERN.search(_path_of(url)))


def classify(url: str) -> MediaKind:
    """
    根据扩展名判断媒体类型，无法识别时默认为图片

    Examples:
        >>> classify("a.mp4")
        <MediaKind.VIDEO: 'video'>
        >>> classify("https://cdn.example.com/x.WEBM?token=1")
        <MediaKind.VIDEO: 'video'>
        >>> classify("a.unknownext")
        <MediaKind.IMAGE: 'image'>
    """
    if _VIDEO_PATTERN.search(_path_of(url)):
        return MediaKind.VIDEO
    return MediaKind.IMAGE
