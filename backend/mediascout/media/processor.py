"""媒体处理工具

- 代理请求使用的浏览器样式请求头
- 图片转码：两个固定的 WebP 转码档位（low 占位图 / normal 限宽压缩）
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from PIL import Image, ImageFilter

from mediascout.core.config import settings
from mediascout.utils.url_utils import origin_of

WEBP_CONTENT_TYPE = "image/webp"


class TranscodeError(Exception):
    """输入无法解码为图片"""


@dataclass(frozen=True)
class TranscodeProfile:
    name: str
    max_width: int
    quality: int
    blur_radius: float = 0.0


# 极小、模糊、高压缩的占位图
PROFILE_LOW = TranscodeProfile(name="low", max_width=48, quality=20, blur_radius=2.0)
# 限宽、适度压缩
PROFILE_NORMAL = TranscodeProfile(name="normal", max_width=1280, quality=75)

PROFILES = {
    PROFILE_LOW.name: PROFILE_LOW,
    PROFILE_NORMAL.name: PROFILE_NORMAL,
}


def get_profile(quality: Optional[str]) -> TranscodeProfile:
    """根据 quality 参数选择档位，未识别的取值使用 normal"""
    return PROFILES.get((quality or "").strip().lower(), PROFILE_NORMAL)


def request_headers_for_url(url: str, accept: str = "*/*") -> dict[str, str]:
    """生成浏览器样式的请求头，Referer 取目标 URL 的 origin"""
    return {
        "User-Agent": settings.browser_user_agent,
        "Accept": accept,
        "Referer": origin_of(url),
    }


def transform(data: bytes, profile: TranscodeProfile) -> bytes:
    """按档位缩放、模糊并重新编码为 WebP（动画只保留首帧）"""
    try:
        with Image.open(BytesIO(data)) as im:
            im.load()
            if im.mode in ("P", "LA"):
                im = im.convert("RGBA")
            elif im.mode not in ("RGB", "RGBA"):
                im = im.convert("RGB")

            width, height = im.size
            if width > profile.max_width:
                new_height = max(1, round(height * profile.max_width / width))
                im = im.resize((profile.max_width, new_height), Image.Resampling.LANCZOS)

            if profile.blur_radius:
                im = im.filter(ImageFilter.GaussianBlur(profile.blur_radius))

            out = BytesIO()
            im.save(out, format="WEBP", quality=profile.quality, method=6)
            return out.getvalue()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise TranscodeError(f"无法转码图片: {e}") from e
