import io
import sys

import pytest

import merger
from errors import MergeError

PROGRESS_OUTPUT = """\
frame=120
out_time_ms=53000000
out_time=00:00:53.000000
total_size=2097152
progress=continue
frame=400
out_time_ms=106000000
out_time=00:01:46.000000
total_size=4194304
progress=continue
out_time_ms=212000000
out_time=00:03:32.000000
total_size=8388608
progress=end
"""


def test_parse_progress():
    updates = list(merger.parse_progress(io.StringIO(PROGRESS_OUTPUT), 212))
    assert updates == [
        (25, "00:00:53.000000", 2048),
        (50, "00:01:46.000000", 4096),
        (100, "00:03:32.000000", 8192),
    ]


def test_parse_progress_without_duration():
    updates = list(merger.parse_progress(io.StringIO(PROGRESS_OUTPUT), None))
    assert [u[0] for u in updates] == [0, 0, 100]


def test_parse_progress_never_exceeds_100():
    lines = ["out_time_ms=999000000", "progress=continue"]
    assert list(merger.parse_progress(lines, 10))[0][0] == 100


class FakeProcess:
    def __init__(self, stdout="", stderr="", returncode=0):
        self.stdout = io.StringIO(stdout)
        self.stderr = io.StringIO(stderr)
        self.returncode = returncode

    def wait(self):
        return self.returncode


def test_merge_builds_command_and_reports(monkeypatch):
    calls = []

    def fake_popen(cmd, **kwargs):
        calls.append(cmd)
        return FakeProcess(stdout=PROGRESS_OUTPUT)

    monkeypatch.setattr(merger.subprocess, "Popen", fake_popen)
    seen = []
    merger.merge("v.mp4", "a.m4a", "out.mp4", 212, lambda *args: seen.append(args))

    cmd = calls[0]
    assert cmd[0] == merger.FFMPEG_BINARY
    assert cmd[cmd.index("-c:v") + 1] == "copy"
    assert cmd[cmd.index("-c:a") + 1] == "aac"
    assert cmd[cmd.index("-progress") + 1] == "pipe:1"
    assert cmd[-1] == "out.mp4"
    assert [s[0] for s in seen] == [25, 50, 100]


def test_convert_audio_uses_mp3_encoder(monkeypatch):
    calls = []
    monkeypatch.setattr(merger.subprocess, "Popen", lambda cmd, **kw: calls.append(cmd) or FakeProcess())
    merger.convert_audio("a.webm", "a.mp3")
    assert "libmp3lame" in calls[0]
    assert "-vn" in calls[0]


def test_merge_failure_raises(monkeypatch):
    monkeypatch.setattr(merger.subprocess, "Popen",
                        lambda cmd, **kw: FakeProcess(stderr="v.mp4: Invalid data found\n", returncode=1))
    with pytest.raises(MergeError, match="Invalid data found"):
        merger.merge("v.mp4", "a.m4a", "out.mp4", 10)


def test_missing_binary(monkeypatch):
    def missing(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(merger.subprocess, "Popen", missing)
    with pytest.raises(MergeError, match="ffmpeg not found"):
        merger.merge("v.mp4", "a.m4a", "out.mp4", 10)


def test_ffmpeg_version_missing(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("ffmpeg")

    monkeypatch.setattr(merger.subprocess, "run", missing)
    assert merger.ffmpeg_version() is None


def test_noisy_stderr_does_not_stall(monkeypatch, tmp_path):
    script = tmp_path / "fake-ffmpeg"
    script.write_text(
        f"#!{sys.executable}\n"
        "import sys\n"
        "for i in range(4000):\n"
        "    sys.stderr.write('[h264 @ 0x55] error while decoding MB %d, bytestream -7\\n' % i)\n"
        "sys.stderr.write('v.mp4: Invalid data found when processing input\\n')\n"
        "sys.exit(1)\n"
    )
    script.chmod(0o755)
    monkeypatch.setattr(merger, "FFMPEG_BINARY", str(script))

    with pytest.raises(MergeError) as excinfo:
        merger.merge("v.mp4", "a.m4a", "out.mp4", 10)
    message = str(excinfo.value)
    assert "exited with code 1" in message
    assert message.endswith("Invalid data found when processing input")
