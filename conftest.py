import pytest

from app import create_app
from progress import ProgressStore


def _fmt(format_id, ext, vcodec="none", acodec="none", height=None, fps=None, tbr=None, abr=None,
         filesize=None, protocol="https"):
    return {
        "format_id": format_id,
        "ext": ext,
        "vcodec": vcodec,
        "acodec": acodec,
        "height": height,
        "width": height and height * 16 // 9,
        "fps": fps,
        "tbr": tbr,
        "abr": abr,
        "filesize": filesize,
        "protocol": protocol,
        "url": f"https://media.example.com/videoplayback?itag={format_id}",
    }


SAMPLE_FORMATS = [
    _fmt("139", "m4a", acodec="mp4a.40.5", abr=48, tbr=48, filesize=1 * 1024 * 1024),
    _fmt("140", "m4a", acodec="mp4a.40.2", abr=128, tbr=128, filesize=3 * 1024 * 1024),
    _fmt("251", "webm", acodec="opus", abr=160, tbr=160),
    _fmt("18", "mp4", vcodec="avc1.42001E", acodec="mp4a.40.2", height=360, fps=30, tbr=500,
         filesize=10 * 1024 * 1024),
    _fmt("22", "mp4", vcodec="avc1.64001F", acodec="mp4a.40.2", height=720, fps=30, tbr=1200),
    _fmt("134", "mp4", vcodec="avc1.4d401e", height=360, fps=30, tbr=300),
    _fmt("136", "mp4", vcodec="avc1.4d401f", height=720, fps=30, tbr=1100),
    _fmt("137", "mp4", vcodec="avc1.640028", height=1080, fps=30, tbr=4000, filesize=80 * 1024 * 1024),
    _fmt("248", "webm", vcodec="vp9", height=1080, fps=30, tbr=2600),
]

SAMPLE_INFO = {
    "id": "dQw4w9WgXcQ",
    "title": "Never Gonna Give You Up / Official Video",
    "duration": 212,
    "uploader": "Rick Astley",
    "view_count": 1500000000,
    "thumbnails": [{"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/default.jpg"}],
    "formats": SAMPLE_FORMATS,
}

VALID_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def formats():
    return [dict(f) for f in SAMPLE_FORMATS]


@pytest.fixture
def video_info(formats):
    info = dict(SAMPLE_INFO)
    info["formats"] = formats
    return info


@pytest.fixture
def store():
    return ProgressStore()


@pytest.fixture
def app(store, tmp_path):
    app = create_app(store=store, start_worker=False, temp_dir=tmp_path)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
