"""
Write a single media stream to disk while reporting byte progress.

Progressive http(s) formats are streamed with requests. Fragmented formats
(HLS/DASH) are left to yt-dlp, whose progress hook feeds the same callback.
"""

from pathlib import Path

import requests
from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from errors import FetchError
from extractor import build_ydl_opts
from formats import size_bytes
from settings import CHUNK_SIZE, PROXY_URL, REQUEST_TIMEOUT, USER_AGENT, logger

DIRECT_PROTOCOLS = ("http", "https")


def _remove(path: Path):
    if path.exists():
        path.unlink()


def fetch_stream(page_url: str, fmt: dict, dest, on_progress=None) -> Path:
    dest = Path(dest)
    logger.info("Fetching format %s (%s) -> %s", fmt.get("format_id"), fmt.get("protocol"), dest.name)
    try:
        if fmt.get("protocol") in DIRECT_PROTOCOLS and fmt.get("url"):
            _fetch_direct(fmt, dest, on_progress)
        else:
            _fetch_with_ytdlp(page_url, fmt, dest, on_progress)
    except Exception:
        _remove(dest)
        raise
    return dest


def _fetch_direct(fmt: dict, dest: Path, on_progress):
    headers = {"User-Agent": USER_AGENT}
    headers.update(fmt.get("http_headers") or {})
    proxies = {"http": PROXY_URL, "https": PROXY_URL} if PROXY_URL else None

    try:
        with requests.get(fmt["url"], headers=headers, stream=True,
                          timeout=REQUEST_TIMEOUT, proxies=proxies) as r:
            r.raise_for_status()
            total = int(r.headers.get("Content-Length") or 0) or size_bytes(fmt)
            downloaded = 0
            with dest.open("wb") as out:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    out.write(chunk)
                    downloaded += len(chunk)
                    if on_progress:
                        on_progress(downloaded, total)
    except requests.exceptions.RequestException as e:
        logger.error("Request error fetching stream: %s", e)
        raise FetchError(f"Failed to fetch stream {fmt.get('format_id')}: {e}") from e


def _fetch_with_ytdlp(page_url: str, fmt: dict, dest: Path, on_progress):
    def hook(d):
        if d.get("status") != "downloading" or not on_progress:
            return
        total = d.get("total_bytes") or d.get("total_bytes_estimate")
        on_progress(d.get("downloaded_bytes") or 0, total)

    opts = build_ydl_opts(str(dest))
    opts["format"] = fmt["format_id"]
    opts["progress_hooks"] = [hook]
    try:
        with YoutubeDL(opts) as ydl:
            ydl.download([page_url])
    except DownloadError as e:
        raise FetchError(str(e)) from e
    if not dest.exists():
        raise FetchError(f"yt-dlp produced no file for format {fmt.get('format_id')}")
