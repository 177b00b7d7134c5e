"""
媒体处理模块 - 提供代理请求头与图片转码

该模块包含:
- processor: 转码档位、WebP 转码、代理请求头
"""
from .processor import PROFILE_LOW, PROFILE_NORMAL, TranscodeError, get_profile, transform

__all__ = [
    'PROFILE_LOW',
    'PROFILE_NORMAL',
    'TranscodeError',
    'get_profile',
    'transform',
]
