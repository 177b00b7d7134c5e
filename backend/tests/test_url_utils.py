"""URL helper tests."""

from mediascout.utils.url_utils import (
    filename_from_url,
    hostname_of,
    is_absolute_http_url,
    is_safe_url,
    origin_of,
    resolve_url,
)


def test_is_absolute_http_url():
    assert is_absolute_http_url("https://example.com/a.jpg")
    assert is_absolute_http_url("http://localhost:3001/")
    assert not is_absolute_http_url("not a url")
    assert not is_absolute_http_url("/relative/a.jpg")
    assert not is_absolute_http_url("ftp://example.com/a.jpg")
    assert not is_absolute_http_url("data:image/png;base64,AAAA")
    assert not is_absolute_http_url("https://example.com:99999/")
    assert not is_absolute_http_url("")
    assert not is_absolute_http_url(None)


def test_resolve_url_handles_relative_and_protocol_relative():
    assert resolve_url("img/a.png", "https://example.com/posts/1") == "https://example.com/posts/img/a.png"
    assert resolve_url("/a.png", "https://example.com/posts/1") == "https://example.com/a.png"
    assert resolve_url("//cdn.example.com/v.mp4", "https://example.com/") == "https://cdn.example.com/v.mp4"
    assert resolve_url("https://other.com/x.jpg", "https://example.com/") == "https://other.com/x.jpg"


def test_resolve_url_rejects_non_http_results():
    assert resolve_url("data:image/gif;base64,R0lGOD", "https://example.com/") is None
    assert resolve_url("javascript:void(0)", "https://example.com/") is None
    assert resolve_url("   ", "https://example.com/") is None
    assert resolve_url(None, "https://example.com/") is None


def test_hostname_and_origin():
    assert hostname_of("https://WWW.Example.com/watch?v=1") == "www.example.com"
    assert hostname_of("no scheme") == ""
    assert origin_of("https://cdn.example.com:8443/x/y.mp4?a=1") == "https://cdn.example.com:8443"


def test_filename_from_url_uses_last_path_segment():
    assert filename_from_url("https://example.com/media/clip.mp4?sig=1") == "clip.mp4"
    assert filename_from_url("https://example.com/a/b/photo%20one.jpg") == "photo%20one.jpg"


def test_filename_from_url_falls_back_to_default():
    assert filename_from_url("https://example.com") == "media.file"
    assert filename_from_url("https://example.com/") == "media.file"
    assert filename_from_url("https://example.com/dir/") == "media.file"
    assert filename_from_url("https://example.com/", default="download.bin") == "download.bin"


def test_filename_from_url_is_header_safe():
    name = filename_from_url('https://example.com/视频"x.mp4')
    assert '"' not in name
    name.encode("latin-1")


def test_is_safe_url_rejects_internal_addresses():
    assert not is_safe_url("http://127.0.0.1/a.jpg")
    assert not is_safe_url("http://169.254.169.254/latest/meta-data/")
    assert not is_safe_url("http://192.168.1.10/a.jpg")
    assert not is_safe_url("http://0.0.0.0/")
    assert not is_safe_url("ftp://8.8.8.8/a.jpg")
    assert not is_safe_url("not a url")


def test_is_safe_url_allows_public_and_fake_ip():
    assert is_safe_url("https://8.8.8.8/a.jpg")
    assert is_safe_url("http://198.19.255.1/a.jpg")


def test_is_safe_url_allow_private_skips_address_check():
    assert is_safe_url("http://127.0.0.1/a.jpg", allow_private=True)
    assert not is_safe_url("file:///etc/passwd", allow_private=True)
