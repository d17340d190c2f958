"""
Format option building and stream selection.

Works purely on the ``formats`` list yt-dlp returns from ``extract_info`` so it
can be exercised without network access.
"""

import re

from errors import FormatNotFound
from settings import MAX_VIDEO_OPTIONS, MAX_AUDIO_OPTIONS

PRESET_MERGE_BEST = "ffmpeg-best"
PRESET_MERGE_MEDIUM = "ffmpeg-medium"
PRESET_BEST_COMBINED = "highest-audio"
MERGE_PRESETS = (PRESET_MERGE_BEST, PRESET_MERGE_MEDIUM)
AUTO_ITAGS = ("highest", PRESET_BEST_COMBINED)

PRESET_OPTIONS = [
    {"quality": "Best Quality (FFmpeg merge)", "itag": PRESET_MERGE_BEST, "type": "preset"},
    {"quality": "Best Combined Format", "itag": PRESET_BEST_COMBINED, "type": "preset"},
    {"quality": "Medium Quality (FFmpeg merge)", "itag": PRESET_MERGE_MEDIUM, "type": "preset"},
]

_HEIGHT_RE = re.compile(r"(\d+)p")


def _codec(value) -> bool:
    return bool(value) and value != "none"


def has_video(fmt: dict) -> bool:
    return _codec(fmt.get("vcodec"))


def has_audio(fmt: dict) -> bool:
    return _codec(fmt.get("acodec"))


def quality_label(fmt: dict) -> str:
    height = fmt.get("height")
    if height:
        fps = fmt.get("fps") or 0
        return f"{height}p{int(fps) if fps > 30 else ''}"
    return fmt.get("format_note") or "Unknown"


def mime_type(fmt: dict) -> str:
    kind = "video" if has_video(fmt) else "audio"
    codecs = [c for c in (fmt.get("vcodec"), fmt.get("acodec")) if _codec(c)]
    mime = f"{kind}/{fmt.get('ext', 'unknown')}"
    if codecs:
        mime += f'; codecs="{", ".join(codecs)}"'
    return mime


def size_bytes(fmt: dict):
    return fmt.get("filesize") or fmt.get("filesize_approx")


def size_mb(fmt: dict):
    size = size_bytes(fmt)
    return round(size / 1024 / 1024) if size else None


def label_height(label: str) -> int:
    match = _HEIGHT_RE.search(label or "")
    return int(match.group(1)) if match else 0


def describe_format(fmt: dict) -> dict:
    return {
        "itag": fmt.get("format_id"),
        "quality": quality_label(fmt),
        "container": fmt.get("ext"),
        "hasVideo": has_video(fmt),
        "hasAudio": has_audio(fmt),
        "mimeType": mime_type(fmt),
        "filesize": size_mb(fmt),
        "fps": fmt.get("fps"),
        "bitrate": fmt.get("tbr"),
        "audioBitrate": fmt.get("abr"),
    }


def debug_formats(formats) -> list:
    """Every format, unfiltered, for the debug endpoint and CLI."""
    listing = []
    for fmt in formats:
        entry = describe_format(fmt)
        entry["filesize"] = f"{entry['filesize']} MB" if entry["filesize"] is not None else "Unknown"
        listing.append(entry)
    return listing


# -----------------------------
# Option lists for the info endpoint
# -----------------------------
def _is_mp4(fmt: dict) -> bool:
    return fmt.get("ext") == "mp4"


def _option(fmt: dict, label: str, kind: str, audio: bool) -> dict:
    return {
        "quality": label,
        "itag": fmt.get("format_id"),
        "fps": fmt.get("fps"),
        "bitrate": fmt.get("tbr"),
        "mimeType": mime_type(fmt),
        "filesize": size_mb(fmt),
        "type": kind,
        "hasAudio": audio,
    }


def combined_formats(formats) -> list:
    return [
        _option(f, f"{quality_label(f)} (combined)", "combined", True)
        for f in formats
        if has_video(f) and has_audio(f) and _is_mp4(f)
    ]


def video_only_formats(formats) -> list:
    return [
        _option(f, f"{quality_label(f)} (video-only, will merge with audio)", "video-only", False)
        for f in formats
        if has_video(f) and not has_audio(f) and f.get("height") and _is_mp4(f)
    ]


def video_options(formats, limit: int = MAX_VIDEO_OPTIONS) -> list:
    """Presets first, then combined and video-only options, tallest first."""
    options = combined_formats(formats) + video_only_formats(formats)
    # stable sort: ties keep combined ahead of video-only
    options.sort(key=lambda o: (-label_height(o["quality"]), not o["hasAudio"]))
    return [dict(p) for p in PRESET_OPTIONS] + options[:limit]


def audio_options(formats, limit: int = MAX_AUDIO_OPTIONS) -> list:
    options = [
        {
            "quality": f"{round(f['abr'])}kbps" if f.get("abr") else "Unknown",
            "itag": f.get("format_id"),
            "bitrate": f.get("abr"),
            "mimeType": mime_type(f),
            "filesize": size_mb(f),
        }
        for f in formats
        if has_audio(f) and not has_video(f)
    ]
    options.sort(key=lambda o: o["bitrate"] or 0, reverse=True)
    return options[:limit]


def format_counts(formats, audio_count: int = None) -> dict:
    if audio_count is None:
        audio_count = len(audio_options(formats))
    return {
        "totalFormats": len(formats),
        "combinedFormats": len(combined_formats(formats)),
        "videoOnlyFormats": len(video_only_formats(formats)),
        "audioOnlyFormats": audio_count,
    }


# -----------------------------
# Stream selection for the download pipeline
# -----------------------------
def find_format(formats, itag) -> dict:
    for fmt in formats:
        if fmt.get("format_id") == str(itag):
            return fmt
    raise FormatNotFound(f"Requested format {itag} is not available")


def _height_bitrate(fmt: dict):
    return (fmt.get("height") or 0, fmt.get("tbr") or 0)


def pick_combined(formats, itag=None) -> dict:
    if itag and itag not in AUTO_ITAGS:
        return find_format(formats, itag)

    combined = [f for f in formats if has_video(f) and has_audio(f)]
    mp4 = [f for f in combined if _is_mp4(f)]
    if mp4:
        return max(mp4, key=_height_bitrate)
    if combined:
        return max(combined, key=_height_bitrate)
    raise FormatNotFound("No format with both video and audio found")


def pick_video_stream(formats, best: bool = True) -> dict:
    candidates = [f for f in formats if has_video(f) and not has_audio(f)]
    if not candidates:
        raise FormatNotFound("No video-only formats found")
    # tallest first; mp4 wins ties so stream copy into the mp4 container stays safe
    candidates.sort(key=lambda f: (f.get("height") or 0, _is_mp4(f), f.get("tbr") or 0), reverse=True)
    return candidates[0] if best else candidates[len(candidates) // 2]


def pick_audio_stream(formats, itag=None) -> dict:
    if itag and itag not in AUTO_ITAGS + MERGE_PRESETS:
        return find_format(formats, itag)
    candidates = [f for f in formats if has_audio(f) and not has_video(f)]
    if not candidates:
        raise FormatNotFound("No audio-only formats found")
    return max(candidates, key=lambda f: (f.get("abr") or f.get("tbr") or 0))
