"""
URL处理工具模块

提供URL校验、相对地址解析、文件名推断等功能
"""
import ipaddress
import socket
from typing import Optional
from urllib.parse import quote, urljoin, urlparse


_HTTP_SCHEMES = ("http", "https")

# Clash / V2Ray 等代理的 Fake-IP 网段
_FAKE_IP_NETWORK = ipaddress.ip_network("198.18.0.0/15")


def is_absolute_http_url(url: Optional[str]) -> bool:
    """
    判断是否为合法的绝对 http(s) URL

    Examples:
        >>> is_absolute_http_url("https://example.com/a.jpg")
        True
        >>> is_absolute_http_url("/a.jpg")
        False
        >>> is_absolute_http_url("data:image/png;base64,AAAA")
        False
    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
        # 访问 port 会校验端口范围，非法时抛出 ValueError
        parsed.port
    except ValueError:
        return False
    if parsed.scheme.lower() not in _HTTP_SCHEMES:
        return False
    return bool(parsed.hostname)


def hostname_of(url: str) -> str:
    """返回 URL 的主机名（保持小写），解析失败时返回空字符串"""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def origin_of(url: str) -> str:
    """
    返回 URL 的 origin（scheme://host[:port]），不带结尾斜杠

    Examples:
        >>> origin_of("https://cdn.example.com:8443/x/y.mp4?a=1")
        'https://cdn.example.com:8443'
    """
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_url(raw: Optional[str], base_url: str) -> Optional[str]:
    """
    将页面中的（可能是相对的）地址解析为绝对 http(s) URL

    无法得到绝对 http(s) 地址时返回 None（如 data:、javascript:）。

    Examples:
        >>> resolve_url("../img/a.png", "https://example.com/posts/1/")
        'https://example.com/posts/img/a.png'
        >>> resolve_url("//cdn.example.com/v.mp4", "https://example.com/")
        'https://cdn.example.com/v.mp4'
    """
    if not raw:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        resolved = urljoin(base_url, value)
    except ValueError:
        return None
    return resolved if is_absolute_http_url(resolved) else None


def filename_from_url(url: str, default: str = "media.file") -> str:
    """
    取 URL 路径的最后一段作为下载文件名，缺失时使用默认值

    Examples:
        >>> filename_from_url("https://example.com/media/clip.mp4?sig=1")
        'clip.mp4'
        >>> filename_from_url("https://example.com/")
        'media.file'
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return default
    name = path.rsplit("/", 1)[-1]
    # 响应头只允许 latin-1：非 ASCII 字符、引号、换行按百分号编码
    name = quote(name, safe="!#$&'()*+,;=@[]~%")
    return name or default


def is_safe_url(url: str, allow_private: bool = False) -> bool:
    """
    检查 URL 是否安全（防止 SSRF 访问内网）

    域名会被解析，任一地址落在私有、保留、回环或链路本地网段即视为不安全。
    allow_private 为 True 时（调试模式）只校验协议与主机名。

    Examples:
        >>> is_safe_url("http://127.0.0.1/a.jpg")
        False
        >>> is_safe_url("http://169.254.169.254/latest/meta-data/")
        False
        >>> is_safe_url("http://127.0.0.1/a.jpg", allow_private=True)
        True
    """
    if not is_absolute_http_url(url):
        return False
    try:
        hostname = urlparse(url.strip()).hostname
        for info in socket.getaddrinfo(hostname, None):
            # IPv6 地址可能带 scope id（fe80::1%eth0）
            addr = ipaddress.ip_address(info[4][0].split("%", 1)[0])

            # 调试模式下放行所有 IP，避免 Fake-IP (TUN 模式) 或 Loopback 被误判拦截
            if allow_private:
                continue

            if addr.version == 4 and addr in _FAKE_IP_NETWORK:
                continue

            if addr.is_private or addr.is_reserved or addr.is_link_local or addr.is_loopback:
                return False
        return True
    except (ValueError, UnicodeError, socket.gaierror):
        return False
