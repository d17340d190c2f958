"""
Cleanup of served files, stale progress records and orphaned temp files.
"""

import time
import threading
from pathlib import Path

from settings import PROGRESS_TTL_MINUTES, SWEEP_INTERVAL_SECONDS, TEMP_DIR, logger

_janitor_lock = threading.Lock()
_janitor_thread = None


def remove_file(path) -> bool:
    if not path:
        return False
    p = Path(path)
    try:
        if p.is_file():
            p.unlink()
            logger.info("Removed file: %s", p)
            return True
    except OSError as e:
        logger.warning("Failed to remove %s: %s", p, e)
    return False


def schedule_file_removal(store, session_id: str, path, delay: float) -> threading.Timer:
    """Delete a served file and forget its session once ``delay`` seconds pass."""
    def _remove():
        remove_file(path)
        store.delete(session_id)

    timer = threading.Timer(delay, _remove)
    timer.daemon = True
    timer.start()
    return timer


def sweep_once(store, temp_dir: Path, max_age: float, now: float = None) -> int:
    now = now if now is not None else time.time()
    removed = 0

    for session_id, record in store.sweep(max_age, now=now).items():
        if remove_file(record.get("file_path")):
            removed += 1

    if temp_dir.is_dir():
        for p in temp_dir.iterdir():
            try:
                if p.is_file() and now - p.stat().st_mtime > max_age:
                    logger.info("Removing old file: %s", p)
                    p.unlink()
                    removed += 1
            except OSError as e:
                logger.debug("Skipping during cleanup %s: %s", p, e)
    return removed


def cleanup_loop(store, temp_dir: Path, ttl_minutes: int, interval: int):
    max_age = ttl_minutes * 60
    logger.info("Cleanup thread starting: remove entries older than %s minutes", ttl_minutes)
    while True:
        try:
            sweep_once(store, temp_dir, max_age)
        except Exception as e:
            logger.exception("Cleanup loop error: %s", e)
        time.sleep(interval)


def start_janitor(store, temp_dir: Path = TEMP_DIR, ttl_minutes: int = PROGRESS_TTL_MINUTES,
                  interval: int = SWEEP_INTERVAL_SECONDS) -> threading.Thread:
    global _janitor_thread
    with _janitor_lock:
        if _janitor_thread is None or not _janitor_thread.is_alive():
            _janitor_thread = threading.Thread(
                target=cleanup_loop, args=(store, temp_dir, ttl_minutes, interval),
                name="janitor", daemon=True,
            )
            _janitor_thread.start()
        return _janitor_thread
