"""
ffmpeg adapter used to mux separate video/audio streams and to transcode audio.
"""

import shlex
import subprocess
import threading
from collections import deque

from errors import MergeError
from settings import FFMPEG_BINARY, logger


def ffmpeg_version():
    """First line of ``ffmpeg -version`` or None when the binary is missing."""
    try:
        out = subprocess.run([FFMPEG_BINARY, "-version"], capture_output=True, text=True, timeout=15)
    except (OSError, subprocess.TimeoutExpired):
        return None
    if out.returncode != 0 or not out.stdout:
        return None
    return out.stdout.splitlines()[0]


def parse_progress(lines, duration):
    """
    Turn ``-progress pipe:1`` output into (percent, timemark, target_size_kb)
    tuples, one per reported block.

    ffmpeg reports ``out_time_ms`` in microseconds despite the name.
    """
    block = {}
    for line in lines:
        line = line.strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        block[key] = value
        if key != "progress":
            continue

        percent = 0
        try:
            seconds = int(block.get("out_time_ms", "0")) / 1_000_000
        except ValueError:
            seconds = 0
        if duration:
            percent = max(0, min(100, round(seconds / float(duration) * 100)))
        if value == "end":
            percent = 100

        try:
            target_size = int(block.get("total_size", "0")) // 1024
        except ValueError:
            target_size = None
        yield percent, block.get("out_time"), target_size
        block = {}


def _drain(stream, tail):
    for line in stream:
        line = line.strip()
        if line:
            tail.append(line)


def _run(args, duration, on_progress):
    cmd = [FFMPEG_BINARY, "-y", "-hide_banner", "-loglevel", "error"] + args
    logger.info("FFmpeg started: %s", " ".join(shlex.quote(a) for a in cmd))
    try:
        process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                   stdin=subprocess.DEVNULL, text=True)
    except FileNotFoundError as e:
        raise MergeError(f"ffmpeg not found ({FFMPEG_BINARY}). Install FFmpeg and add it to PATH") from e

    # stderr is drained concurrently; a full pipe would stall ffmpeg and this loop
    stderr_tail = deque(maxlen=5)
    drain = threading.Thread(target=_drain, args=(process.stderr, stderr_tail), daemon=True)
    drain.start()

    for percent, timemark, target_size in parse_progress(process.stdout, duration):
        if on_progress:
            on_progress(percent, timemark, target_size)

    returncode = process.wait()
    drain.join()
    if returncode != 0:
        tail = "\n".join(stderr_tail)
        logger.error("FFmpeg error (exit %s): %s", returncode, tail)
        raise MergeError(f"ffmpeg exited with code {returncode}: {tail}")
    logger.info("FFmpeg finished")


def merge(video_path, audio_path, output_path, duration=None, on_progress=None):
    """Copy the video stream and re-encode audio to AAC into one mp4."""
    _run([
        "-i", str(video_path),
        "-i", str(audio_path),
        "-map", "0:v:0", "-map", "1:a:0",
        "-c:v", "copy",
        "-c:a", "aac",
        "-strict", "experimental",
        "-progress", "pipe:1", "-nostats",
        str(output_path),
    ], duration, on_progress)


def convert_audio(input_path, output_path, duration=None, on_progress=None):
    _run([
        "-i", str(input_path),
        "-vn",
        "-c:a", "libmp3lame", "-q:a", "2",
        "-progress", "pipe:1", "-nostats",
        str(output_path),
    ], duration, on_progress)
