"""
In-memory progress tracking for download sessions.

Each session id maps to one record. Route handlers read records while worker
threads write them, so every access goes through a single lock.
"""

import time
import threading

from settings import logger

STATUS_INITIALIZING = "initializing"
STATUS_DOWNLOADING = "downloading"
STATUS_MERGING = "merging"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"
STATUS_NOT_FOUND = "not_found"

# record field -> key sent to the browser
_PUBLIC_KEYS = {
    "status": "status",
    "progress": "progress",
    "stage": "stage",
    "downloaded_bytes": "downloadedBytes",
    "total_bytes": "totalBytes",
    "error": "error",
    "filename": "filename",
    "ffmpeg_progress": "ffmpegProgress",
    "updated_at": "timestamp",
}


def clamp_percent(value) -> int:
    try:
        value = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, value))


class ProgressStore:
    def __init__(self):
        self._records = {}
        self._lock = threading.Lock()

    def _stamp(self, fields: dict) -> dict:
        if "progress" in fields:
            fields["progress"] = clamp_percent(fields["progress"])
        fields["updated_at"] = time.time()
        return fields

    def start(self, session_id: str):
        self.set(session_id, status=STATUS_INITIALIZING, progress=0,
                 stage="Getting video information...")

    def set(self, session_id: str, **fields):
        """Replace the whole record (stage transitions)."""
        with self._lock:
            self._records[session_id] = self._stamp(fields)

    def update(self, session_id: str, **fields):
        """Merge fields into an existing record. Unknown sessions are ignored."""
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return
            record.update(self._stamp(fields))

    def complete(self, session_id: str, file_path, filename: str, stage="Download completed!"):
        self.set(session_id, status=STATUS_COMPLETED, progress=100, stage=stage,
                 file_path=str(file_path), filename=filename)

    def fail(self, session_id: str, message: str):
        self.set(session_id, status=STATUS_ERROR, progress=0,
                 stage="Error occurred", error=message)

    def get(self, session_id: str):
        with self._lock:
            record = self._records.get(session_id)
            return dict(record) if record is not None else None

    def view(self, session_id: str) -> dict:
        record = self.get(session_id)
        if record is None:
            return {"status": STATUS_NOT_FOUND}
        return {_PUBLIC_KEYS[k]: v for k, v in record.items() if k in _PUBLIC_KEYS}

    def delete(self, session_id: str):
        with self._lock:
            return self._records.pop(session_id, None)

    def sweep(self, max_age: float, now: float = None) -> dict:
        """Drop records not touched for ``max_age`` seconds and return them."""
        cutoff = (now if now is not None else time.time()) - max_age
        with self._lock:
            expired = {sid: rec for sid, rec in self._records.items()
                       if rec.get("updated_at", 0) < cutoff}
            for sid in expired:
                del self._records[sid]
        if expired:
            logger.info("Swept %d stale progress records", len(expired))
        return expired

    def __len__(self):
        with self._lock:
            return len(self._records)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._records
