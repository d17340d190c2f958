"""
Download orchestration.

A DownloadJob runs on its own thread and walks one session through
probe -> select -> fetch -> (merge | convert) while writing progress into the
shared ProgressStore. It never raises: failures end up in the progress record.
"""

import threading
from pathlib import Path

from werkzeug.utils import secure_filename

import extractor
import fetcher
import merger
from formats import (
    MERGE_PRESETS, PRESET_MERGE_BEST, pick_audio_stream, pick_combined, pick_video_stream,
)
from progress import STATUS_DOWNLOADING, STATUS_MERGING
from settings import TEMP_DIR, logger


def safe_title(title: str) -> str:
    return secure_filename(title or "") or "video"


def scaled(base: int, span: int, fraction: float) -> int:
    """Map a 0..1 fraction of one stage onto its slice of the overall percent."""
    fraction = max(0.0, min(1.0, fraction))
    return base + round(fraction * span)


class DownloadJob:
    def __init__(self, session_id: str, url: str, store, media_format: str = "mp4",
                 itag=None, temp_dir=None):
        self.session_id = session_id
        self.url = url
        self.store = store
        self.media_format = str(media_format or "mp4").lower()
        self.itag = itag
        self.temp_dir = Path(temp_dir or TEMP_DIR)
        self._paths = []

    # -----------------------------
    # Entry points
    # -----------------------------
    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name=f"download-{self.session_id[:8]}", daemon=True)
        thread.start()
        return thread

    def run(self):
        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
            info = extractor.probe(self.url)
            title = safe_title(info.get("title"))
            formats = info.get("formats") or []
            duration = info.get("duration")

            if self.media_format == "mp3":
                self.download_audio(formats, title, duration)
            elif self.itag in MERGE_PRESETS:
                self.download_and_merge(formats, title, duration, self.itag == PRESET_MERGE_BEST)
            else:
                self.download_regular(formats, title)
        except Exception as e:
            logger.exception("Download error for session %s", self.session_id)
            self.cleanup()
            self.store.fail(self.session_id, str(e))

    # -----------------------------
    # Pipelines
    # -----------------------------
    def download_audio(self, formats, title, duration):
        fmt = pick_audio_stream(formats, self.itag)
        logger.info("Selected audio format: %s (%s kbps)", fmt.get("format_id"), fmt.get("abr"))
        self.store.set(self.session_id, status=STATUS_DOWNLOADING, progress=0, stage="Downloading audio...")

        ext = fmt.get("ext") or "m4a"
        output = self._path(title, "", "mp3")
        if ext == "mp3":
            self._fetch(fmt, output, "Downloading audio...", 0, 100)
        else:
            source = self._path(title, "audio", ext)
            self._fetch(fmt, source, "Downloading audio...", 0, 80)
            self.store.set(self.session_id, status=STATUS_DOWNLOADING, progress=80, stage="Converting to MP3...")
            merger.convert_audio(source, output, duration, self._converting_progress)
            self._discard(source)

        self.store.complete(self.session_id, output, f"{title}.mp3")

    def download_regular(self, formats, title):
        fmt = pick_combined(formats, self.itag)
        ext = fmt.get("ext") or "mp4"
        logger.info("Selected combined format: %s (%sp)", fmt.get("format_id"), fmt.get("height"))
        self.store.set(self.session_id, status=STATUS_DOWNLOADING, progress=0, stage="Downloading video...")

        output = self._path(title, "", ext)
        self._fetch(fmt, output, "Downloading video...", 0, 100)
        self.store.complete(self.session_id, output, f"{title}.{ext}")

    def download_and_merge(self, formats, title, duration, best):
        video_fmt = pick_video_stream(formats, best)
        audio_fmt = pick_audio_stream(formats)
        logger.info("Selected video format: %s (%sp), audio format: %s",
                    video_fmt.get("format_id"), video_fmt.get("height"), audio_fmt.get("format_id"))

        video_path = self._path(title, "video", video_fmt.get("ext") or "mp4")
        audio_path = self._path(title, "audio", audio_fmt.get("ext") or "m4a")
        output = self._path(title, "merged", "mp4")

        self.store.set(self.session_id, status=STATUS_DOWNLOADING, progress=0,
                       stage="Downloading video stream...")
        self._fetch(video_fmt, video_path, "Downloading video stream...", 0, 50)

        self.store.set(self.session_id, status=STATUS_DOWNLOADING, progress=50,
                       stage="Downloading audio stream...")
        self._fetch(audio_fmt, audio_path, "Downloading audio stream...", 50, 25)

        fetched = video_path.stat().st_size + audio_path.stat().st_size
        self.store.set(self.session_id, status=STATUS_MERGING, progress=75,
                       stage="Merging video and audio with FFmpeg...",
                       downloaded_bytes=fetched, total_bytes=fetched)
        merger.merge(video_path, audio_path, output, duration, self._merging_progress)

        self._discard(video_path)
        self._discard(audio_path)
        self.store.complete(self.session_id, output, f"{title}_merged.mp4",
                            stage="Download and merge completed!")

    # -----------------------------
    # Progress callbacks
    # -----------------------------
    def _fetch(self, fmt, dest, label, base, span):
        def on_progress(downloaded, total):
            fraction = downloaded / total if total else 0
            self.store.update(
                self.session_id,
                progress=scaled(base, span, fraction),
                stage=f"{label} {round(min(fraction, 1) * 100)}%",
                downloaded_bytes=downloaded,
                total_bytes=total,
            )

        fetcher.fetch_stream(self.url, fmt, dest, on_progress)

    def _merging_progress(self, percent, timemark, target_size):
        self.store.update(
            self.session_id,
            progress=scaled(75, 25, percent / 100),
            stage=f"Merging with FFmpeg... {percent}%",
            ffmpeg_progress={"percent": percent, "currentTime": timemark, "targetSize": target_size},
        )

    def _converting_progress(self, percent, timemark, target_size):
        self.store.update(
            self.session_id,
            progress=scaled(80, 20, percent / 100),
            stage=f"Converting to MP3... {percent}%",
        )

    # -----------------------------
    # Temp files
    # -----------------------------
    def _path(self, title, part, ext) -> Path:
        name = f"{title}_{part}_{self.session_id}.{ext}" if part else f"{title}_{self.session_id}.{ext}"
        path = self.temp_dir / name
        self._paths.append(path)
        return path

    def _discard(self, path: Path):
        if path.exists():
            path.unlink()

    def cleanup(self):
        for path in self._paths:
            try:
                self._discard(path)
            except OSError as e:
                logger.warning("Could not remove %s: %s", path, e)
