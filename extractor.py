"""
yt-dlp adapter: URL validation, option building and metadata probing.
"""

import re
from urllib.parse import urlparse, parse_qs

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from errors import ExtractionError
from settings import COOKIES_PATH, PROXY_URL, USER_AGENT, REQUEST_TIMEOUT, logger

# -----------------------------
# Helpers: URL validation
# -----------------------------
QUERY_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "gaming.youtube.com",
}
PATH_HOSTS = QUERY_HOSTS | {
    "youtu.be",
    "www.youtube-nocookie.com",
    "youtube-nocookie.com",
}
PATH_PREFIXES = ("embed", "v", "shorts", "live")
_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")


def video_id(url: str):
    """Return the 11 character video id, or None when the URL is not a video URL."""
    if not url or not isinstance(url, str):
        return None
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        return None
    host = (parsed.hostname or "").lower()
    parts = [p for p in parsed.path.split("/") if p]

    candidate = None
    if host in QUERY_HOSTS and parts[:1] == ["watch"]:
        candidate = parse_qs(parsed.query).get("v", [None])[0]
    elif host == "youtu.be" and parts:
        candidate = parts[0]
    elif host in PATH_HOSTS and len(parts) >= 2 and parts[0] in PATH_PREFIXES:
        candidate = parts[1]

    if candidate and _ID_RE.match(candidate):
        return candidate
    return None


def is_valid_url(url: str) -> bool:
    return video_id(url) is not None


# -----------------------------
# Helpers: ytdl
# -----------------------------
def build_ydl_opts(output_template: str = None):
    base = {
        "noplaylist": True,
        "quiet": True,
        "no_warnings": True,
        "http_headers": {"User-Agent": USER_AGENT},
        "socket_timeout": REQUEST_TIMEOUT,
        "retries": 3,
        "fragment_retries": 3,
        "skip_unavailable_fragments": True,
        "keep_fragments": False,
    }

    # Add output template only if provided (for actual downloads)
    if output_template:
        base["outtmpl"] = output_template

    if PROXY_URL:
        base["proxy"] = PROXY_URL
        logger.info("Using proxy: %s", PROXY_URL)

    if COOKIES_PATH.exists():
        base["cookiefile"] = str(COOKIES_PATH)
        logger.info("Using cookies file: %s", COOKIES_PATH)

    return base


def probe(url: str) -> dict:
    """Fetch metadata and the full format list without downloading anything."""
    logger.info("Getting info for: %s", url)
    try:
        with YoutubeDL(build_ydl_opts()) as ydl:
            info = ydl.extract_info(url, download=False)
    except DownloadError as e:
        raise ExtractionError(str(e)) from e
    if not info:
        raise ExtractionError("Failed to extract video info")
    logger.info("Available formats: %d", len(info.get("formats") or []))
    return info


def video_details(info: dict) -> dict:
    thumbnails = info.get("thumbnails") or []
    thumbnail = thumbnails[0].get("url") if thumbnails else info.get("thumbnail")
    return {
        "title": info.get("title", "video"),
        "duration": info.get("duration"),
        "thumbnail": thumbnail,
        "uploader": info.get("uploader") or info.get("channel"),
        "view_count": info.get("view_count"),
    }
