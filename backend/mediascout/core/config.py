"""
Configuration management.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


_DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # 运行环境
    app_env: Literal["dev", "prod"] = "dev"

    # 应用配置
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    debug: bool = True

    # CORS 允许的来源（逗号分隔），"*" 表示全部允许（仅限开发环境）
    cors_allowed_origins: str = "*"

    # 日志配置
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_dir: str = "logs"  # 为空则不写日志文件

    # yt-dlp（结构化元数据提取）
    ytdlp_path: str = "yt-dlp"
    ytdlp_timeout_seconds: float = 120.0
    ytdlp_auto_update: bool = True  # 启动时后台执行 yt-dlp -U

    # ffmpeg：目录或可执行文件路径，留空则从 PATH 查找
    ffmpeg_location: Optional[str] = None

    # 无头浏览器（降级抓取）
    browser_type: Literal["chromium", "webkit", "firefox"] = "chromium"
    browser_navigation_timeout_ms: int = 30000
    browser_user_agent: str = _DESKTOP_CHROME_UA

    # 多个来源并发提取的数量，1 表示逐个处理
    extraction_concurrency: int = 1

    # 下载/转码代理
    http_proxy: Optional[str] = None
    proxy_timeout_seconds: float = 30.0


settings = Settings()


def validate_settings() -> None:
    """基础环境校验"""
    if settings.app_env == "prod" and settings.debug:
        raise RuntimeError("DEBUG must be False in production")

    if settings.app_env == "prod" and settings.cors_allowed_origins == "*":
        raise RuntimeError("CORS_ALLOWED_ORIGINS must not be '*' in production")

    if settings.extraction_concurrency < 1:
        raise RuntimeError("EXTRACTION_CONCURRENCY must be >= 1")

    if settings.browser_navigation_timeout_ms <= 0:
        raise RuntimeError("BROWSER_NAVIGATION_TIMEOUT_MS must be positive")

    if settings.ytdlp_timeout_seconds <= 0 or settings.proxy_timeout_seconds <= 0:
        raise RuntimeError("Timeouts must be positive")

    return None
