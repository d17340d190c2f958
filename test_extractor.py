import pytest
from yt_dlp.utils import DownloadError

import extractor
from errors import ExtractionError


@pytest.mark.parametrize("url", [
    "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
    "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://music.youtube.com/watch?v=dQw4w9WgXcQ&list=RDAMVM",
    "https://youtu.be/dQw4w9WgXcQ",
    "https://youtu.be/dQw4w9WgXcQ?si=abc",
    "https://www.youtube.com/shorts/dQw4w9WgXcQ",
    "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ",
    "http://www.youtube.com/live/dQw4w9WgXcQ",
])
def test_valid_urls(url):
    assert extractor.is_valid_url(url)
    assert extractor.video_id(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", [
    "",
    None,
    "not a url",
    "https://www.youtube.com/",
    "https://www.youtube.com/watch?v=short",
    "https://www.tiktok.com/@user/video/1234567890",
    "https://evil.com/watch?v=dQw4w9WgXcQ",
    "ftp://youtu.be/dQw4w9WgXcQ",
])
def test_invalid_urls(url):
    assert not extractor.is_valid_url(url)


def test_build_ydl_opts_defaults(monkeypatch, tmp_path):
    monkeypatch.setattr(extractor, "PROXY_URL", "")
    monkeypatch.setattr(extractor, "COOKIES_PATH", tmp_path / "missing.txt")
    opts = extractor.build_ydl_opts()
    assert opts["noplaylist"] is True
    assert opts["quiet"] is True
    assert "User-Agent" in opts["http_headers"]
    assert "outtmpl" not in opts
    assert "proxy" not in opts
    assert "cookiefile" not in opts


def test_build_ydl_opts_with_proxy_and_cookies(monkeypatch, tmp_path):
    cookies = tmp_path / "cookies.txt"
    cookies.write_text("# Netscape HTTP Cookie File\n")
    monkeypatch.setattr(extractor, "PROXY_URL", "http://proxy:3128")
    monkeypatch.setattr(extractor, "COOKIES_PATH", cookies)
    opts = extractor.build_ydl_opts("/tmp/out.mp4")
    assert opts["outtmpl"] == "/tmp/out.mp4"
    assert opts["proxy"] == "http://proxy:3128"
    assert opts["cookiefile"] == str(cookies)


class FakeYDL:
    result = None
    error = None

    def __init__(self, opts):
        self.opts = opts

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        assert download is False
        if self.error:
            raise self.error
        return self.result


def test_probe_returns_info(monkeypatch, video_info):
    monkeypatch.setattr(FakeYDL, "result", video_info)
    monkeypatch.setattr(extractor, "YoutubeDL", FakeYDL)
    assert extractor.probe("https://youtu.be/dQw4w9WgXcQ")["title"] == video_info["title"]


def test_probe_wraps_download_error(monkeypatch):
    monkeypatch.setattr(FakeYDL, "error", DownloadError("ERROR: Video unavailable"))
    monkeypatch.setattr(extractor, "YoutubeDL", FakeYDL)
    with pytest.raises(ExtractionError, match="Video unavailable"):
        extractor.probe("https://youtu.be/dQw4w9WgXcQ")


def test_probe_empty_result(monkeypatch):
    monkeypatch.setattr(FakeYDL, "result", None)
    monkeypatch.setattr(extractor, "YoutubeDL", FakeYDL)
    with pytest.raises(ExtractionError):
        extractor.probe("https://youtu.be/dQw4w9WgXcQ")


def test_video_details(video_info):
    details = extractor.video_details(video_info)
    assert details == {
        "title": video_info["title"],
        "duration": 212,
        "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/default.jpg",
        "uploader": "Rick Astley",
        "view_count": 1500000000,
    }


def test_video_details_falls_back_to_single_thumbnail():
    details = extractor.video_details({"title": "t", "thumbnail": "https://img/x.jpg", "channel": "c"})
    assert details["thumbnail"] == "https://img/x.jpg"
    assert details["uploader"] == "c"
