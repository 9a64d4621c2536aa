# File: tests/test_probe.py
import json
import subprocess

import pytest

import media_scout.probe as probe_module
from media_scout.config import ProbeConfig
from media_scout.probe import VideoProber, build_command, parse_frame_rate, parse_probe_output

FFPROBE_JSON = {
    "streams": [
        {"codec_type": "video", "codec_name": "h264", "width": 1920, "height": 1080, "r_frame_rate": "30000/1001"},
        {"codec_type": "audio", "codec_name": "aac", "sample_fmt": "fltp", "channels": 2},
        {"codec_type": "video", "codec_name": "mjpeg", "width": 300, "height": 300, "r_frame_rate": "0/0"},
    ],
    "format": {"size": "1048576", "duration": "12.500000", "bit_rate": "671088"},
}


@pytest.mark.parametrize(
    "value,expected",
    [
        ("30/1", 30.0),
        ("30000/1001", 29.97),
        ("25", 25.0),
        ("0/0", None),
        ("", None),
        (None, None),
        ("abc/1", None),
    ],
)
def test_parse_frame_rate(value, expected):
    assert parse_frame_rate(value) == expected


def test_parse_probe_output_uses_first_video_stream():
    result = parse_probe_output(FFPROBE_JSON)

    assert result.error is False
    assert result.codec == "h264"
    assert (result.width, result.height) == (1920, 1080)
    assert result.frame_rate == 29.97
    assert result.has_audio is True
    assert result.duration == 12.5
    assert result.size == 1048576
    assert result.bit_rate == 671088


def test_parse_probe_output_without_bit_rate_or_audio():
    result = parse_probe_output({"streams": [{"codec_type": "video", "codec_name": "vp9"}], "format": {}})

    assert result.bit_rate == 0
    assert result.has_audio is False
    assert result.width is None


def test_build_command_requests_json():
    cmd = build_command("/usr/bin/ffprobe", "https://example.com/v.mp4")
    assert cmd[0] == "/usr/bin/ffprobe"
    assert cmd[-1] == "https://example.com/v.mp4"
    assert cmd[cmd.index("-of") + 1] == "json"


def test_probe_sync_success(monkeypatch):
    def fake_run(cmd, **kwargs):
        assert kwargs["timeout"] == 5
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(FFPROBE_JSON), stderr="")

    monkeypatch.setattr(probe_module.subprocess, "run", fake_run)
    result = VideoProber(ProbeConfig(timeout=5)).probe_sync("https://example.com/v.mp4")

    assert result.codec == "h264"
    assert result.error is False


@pytest.mark.parametrize(
    "exc",
    [
        FileNotFoundError("ffprobe"),
        subprocess.CalledProcessError(1, ["ffprobe"], stderr="Server returned 403 Forbidden"),
        subprocess.TimeoutExpired(["ffprobe"], 60),
    ],
)
def test_probe_sync_failure_marker(monkeypatch, exc):
    def fake_run(cmd, **kwargs):
        raise exc

    monkeypatch.setattr(probe_module.subprocess, "run", fake_run)
    result = VideoProber().probe_sync("https://example.com/broken.mp4")

    assert result.error is True
    assert result.url == "https://example.com/broken.mp4"
    assert result.to_dict() == {"url": "https://example.com/broken.mp4", "error": True}


def test_probe_sync_invalid_json(monkeypatch):
    monkeypatch.setattr(
        probe_module.subprocess,
        "run",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr=""),
    )
    assert VideoProber().probe_sync("https://example.com/v.mp4").error is True


@pytest.mark.asyncio()
async def test_probe_sources_probes_each_source_once(monkeypatch):
    seen = []

    def fake_run(cmd, **kwargs):
        seen.append(cmd[-1])
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(FFPROBE_JSON), stderr="")

    monkeypatch.setattr(probe_module.subprocess, "run", fake_run)
    sources = ["https://a.example/v.mp4", "https://b.example/v.webm", "https://a.example/v.mp4"]

    async with VideoProber(ProbeConfig(workers=1)) as prober:
        results = await prober.probe_sources(sources)

    assert seen == ["https://a.example/v.mp4", "https://b.example/v.webm"]
    assert list(results) == ["https://a.example/v.mp4", "https://b.example/v.webm"]
    assert all(r.codec == "h264" for r in results.values())
