#!/usr/bin/env python3
"""
TubeFetch app.py
Flask API behind the browser downloader:
 - Inspect a YouTube URL and list combined / video-only / audio-only options
 - Start a download in the background and poll its progress by session id
 - Merge separate video and audio streams with FFmpeg
 - Serve the finished file once, then clean it up
"""

import uuid
from pathlib import Path

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from flask_cors import CORS

import extractor
from errors import TubeFetchError
from formats import audio_options, debug_formats, format_counts, video_options
from janitor import schedule_file_removal, start_janitor
from merger import ffmpeg_version
from pipeline import DownloadJob
from progress import ProgressStore, STATUS_COMPLETED
from settings import (
    CORS_ORIGINS, FILE_RETENTION_SECONDS, FLASK_DEBUG, PORT, TEMP_DIR, logger,
)

api = Blueprint("api", __name__)


def _store() -> ProgressStore:
    return current_app.extensions["progress_store"]


def _request_url():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    url = data.get("url")
    url = url.strip() if isinstance(url, str) else ""
    return data, url


def _invalid_url():
    return jsonify({"error": "Invalid YouTube URL"}), 400


# -----------------------------
# Routes
# -----------------------------
@api.route("/", methods=["GET"])
def health():
    return jsonify({"message": "YouTube Downloader API with FFmpeg merging!"})


@api.route("/api/progress/<session_id>", methods=["GET"])
def get_progress(session_id):
    return jsonify(_store().view(session_id))


@api.route("/api/debug", methods=["POST"])
def debug_info():
    """Every format yt-dlp reports, unfiltered."""
    _, url = _request_url()
    if not extractor.is_valid_url(url):
        return _invalid_url()

    try:
        info = extractor.probe(url)
        formats = info.get("formats") or []
        return jsonify({
            "success": True,
            "totalFormats": len(formats),
            "formats": debug_formats(formats),
        })
    except TubeFetchError as e:
        logger.error("Debug error: %s", e)
        return jsonify({"error": str(e)}), 500


@api.route("/api/info", methods=["POST"])
def video_info():
    _, url = _request_url()
    if not extractor.is_valid_url(url):
        return _invalid_url()

    try:
        info = extractor.probe(url)
    except TubeFetchError as e:
        logger.error("Info error: %s", e)
        return jsonify({
            "success": False,
            "error": "Failed to get video information",
            "details": str(e),
        }), 500

    formats = info.get("formats") or []
    audio = audio_options(formats)
    payload = {"success": True}
    payload.update(extractor.video_details(info))
    payload.update({
        "videoFormats": video_options(formats),
        "audioFormats": audio,
        "debug": format_counts(formats, len(audio)),
    })
    return jsonify(payload)


@api.route("/api/download", methods=["POST"])
def start_download():
    """Start a download job and hand back the session id to poll."""
    data, url = _request_url()
    session_id = str(uuid.uuid4())
    media_format = str(data.get("format") or "mp4")
    itag = data.get("itag")
    logger.info("Download request: url=%s format=%s quality=%s itag=%s session=%s",
                url, media_format, data.get("quality"), itag, session_id)

    if not extractor.is_valid_url(url):
        return _invalid_url()

    store = _store()
    store.start(session_id)
    job = DownloadJob(session_id, url, store, media_format=media_format,
                      itag=str(itag) if itag is not None else None,
                      temp_dir=current_app.config["TEMP_DIR"])
    job.start()

    return jsonify({
        "success": True,
        "sessionId": session_id,
        "message": "Download started. Use the session ID to track progress.",
    })


@api.route("/api/file/<session_id>", methods=["GET"])
def serve_file(session_id):
    store = _store()
    record = store.get(session_id)
    if not record or record.get("status") != STATUS_COMPLETED:
        return jsonify({"error": "File not found or not ready"}), 404

    file_path = record.get("file_path")
    if not file_path or not Path(file_path).is_file():
        return jsonify({"error": "File not found on disk"}), 404

    response = send_file(file_path, as_attachment=True, download_name=record.get("filename"))
    delay = current_app.config["FILE_RETENTION_SECONDS"]
    response.call_on_close(lambda: schedule_file_removal(store, session_id, file_path, delay))
    return response


# -----------------------------
# Error handlers
# -----------------------------
@api.app_errorhandler(404)
def not_found(e):
    return jsonify({"error": "Not found"}), 404


@api.app_errorhandler(500)
def internal_err(e):
    logger.error("Unhandled error: %s", e)
    return jsonify({"error": "Internal server error"}), 500


# -----------------------------
# App factory
# -----------------------------
def create_app(store: ProgressStore = None, start_worker: bool = True, temp_dir=None) -> Flask:
    app = Flask(__name__)
    app.config["TEMP_DIR"] = Path(temp_dir or TEMP_DIR)
    app.config["FILE_RETENTION_SECONDS"] = FILE_RETENTION_SECONDS
    app.config["TEMP_DIR"].mkdir(parents=True, exist_ok=True)

    store = store if store is not None else ProgressStore()
    app.extensions["progress_store"] = store

    CORS(app, origins=[o.strip() for o in CORS_ORIGINS.split(",")] if "," in CORS_ORIGINS else CORS_ORIGINS)
    app.register_blueprint(api)

    if start_worker:
        start_janitor(store, app.config["TEMP_DIR"])
    return app


# -----------------------------
# Run
# -----------------------------
if __name__ == "__main__":
    app = create_app()
    version = ffmpeg_version()
    if version:
        logger.info("Using %s", version)
    else:
        logger.warning("FFmpeg not found. Make sure FFmpeg is installed and available in PATH")
    logger.info("Starting TubeFetch (dev server) on http://localhost:%s. Use gunicorn 'app:create_app()' in production.", PORT)
    app.run(host="0.0.0.0", port=PORT, debug=FLASK_DEBUG)
