#!/usr/bin/env python3
"""
Environment diagnostic for TubeFetch.

Checks that yt-dlp and FFmpeg are usable and that a video can be probed.

    python diagnose.py [url]
"""

import sys

from yt_dlp.version import __version__ as ytdlp_version

from errors import TubeFetchError
from extractor import is_valid_url, probe
from formats import debug_formats
from merger import ffmpeg_version

DEFAULT_TEST_URL = "https://youtu.be/NY0u1DEKrug"


def check_ytdlp() -> bool:
    print("1. Checking yt-dlp...")
    print(f"✅ yt-dlp {ytdlp_version}")
    return True


def check_ffmpeg() -> bool:
    print("\n2. Checking FFmpeg...")
    version = ffmpeg_version()
    if not version:
        print("❌ FFmpeg not found! Install it and make sure it is on PATH (or set FFMPEG_BINARY)")
        return False
    print(f"✅ {version}")
    return True


def check_probe(url: str) -> bool:
    print(f"\n3. Testing info extraction: {url}")
    if not is_valid_url(url):
        print("❌ Not a valid YouTube URL")
        return False
    try:
        info = probe(url)
    except TubeFetchError as e:
        print(f"❌ Extraction failed: {e}")
        return False

    formats = info.get("formats") or []
    print("✅ Success")
    print(f"Title: {info.get('title')}")
    print(f"Duration: {info.get('duration')} seconds")
    print(f"Formats available: {len(formats)}")

    print("\n4. Format table")
    for f in debug_formats(formats):
        flags = ("V" if f["hasVideo"] else "-") + ("A" if f["hasAudio"] else "-")
        print(f"  {str(f['itag']):>8}  {flags}  {str(f['container']):<5} {f['quality']:<12} {f['filesize']}")
    return True


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    url = argv[0] if argv else DEFAULT_TEST_URL

    print("=== TubeFetch Diagnostic Tool ===\n")
    results = [check_ytdlp(), check_ffmpeg(), check_probe(url)]
    print("\n=== Diagnostic Complete ===")
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
