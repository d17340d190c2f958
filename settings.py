"""
TubeFetch settings.

Every value can be overridden through the environment (or a .env file next to
this module).
"""

import os
import logging
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")

# -----------------------------
# Configuration (override via ENV)
# -----------------------------
PORT = int(os.getenv("PORT", "5000"))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"

TEMP_DIR = Path(os.getenv("TEMP_DIR", BASE_DIR / "temp"))
COOKIES_PATH = Path(os.getenv("COOKIES_PATH", BASE_DIR / "cookies/cookies.txt"))
PROXY_URL = os.getenv("PROXY_URL", "")
USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")

PROGRESS_TTL_MINUTES = int(os.getenv("PROGRESS_TTL_MINUTES", "60"))
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "3600"))
FILE_RETENTION_SECONDS = int(os.getenv("FILE_RETENTION_SECONDS", "60"))

MAX_VIDEO_OPTIONS = int(os.getenv("MAX_VIDEO_OPTIONS", "15"))
MAX_AUDIO_OPTIONS = int(os.getenv("MAX_AUDIO_OPTIONS", "5"))

CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "65536"))
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "30"))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Logging
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("TubeFetch")
