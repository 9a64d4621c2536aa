# media_scout/probe.py
"""
Video metadata prober built on the ``ffprobe`` executable.

``ffprobe`` is a blocking subprocess, so every call runs on a dedicated
thread pool and the event loop keeps serving other site scans meanwhile.
"""
from __future__ import annotations

import asyncio
import json
import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional

from media_scout.config import ProbeConfig
from media_scout.models import ProbeResult

logger = logging.getLogger("MediaScout")

SHOW_ENTRIES = (
    "format=size,duration,bit_rate:"
    "stream=codec_name,codec_type,width,height,r_frame_rate,sample_fmt,channels"
)


def build_command(ffprobe_path: str, url: str) -> List[str]:
    return [ffprobe_path, "-v", "error", "-show_entries", SHOW_ENTRIES, "-of", "json", url]


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_frame_rate(value: Optional[str]) -> Optional[float]:
    """``"30000/1001"`` → ``29.97``; ``None`` for missing or degenerate rates."""
    if not value:
        return None
    numerator, _, denominator = value.partition("/")
    num = _to_float(numerator)
    den = _to_float(denominator) if denominator else 1.0
    if num is None or not den:
        return None
    return round(num / den, 2)


def parse_probe_output(data: Dict[str, Any]) -> ProbeResult:
    """Build a :class:`ProbeResult` from ffprobe's JSON document."""
    fmt = data.get("format") or {}
    result = ProbeResult(
        duration=_to_float(fmt.get("duration")),
        bit_rate=_to_int(fmt.get("bit_rate")) or 0,
        size=_to_int(fmt.get("size")),
    )
    video_seen = False
    for stream in data.get("streams") or []:
        codec_type = stream.get("codec_type")
        if codec_type == "video" and not video_seen:
            video_seen = True
            result.frame_rate = parse_frame_rate(stream.get("r_frame_rate"))
            result.width = _to_int(stream.get("width"))
            result.height = _to_int(stream.get("height"))
            result.codec = stream.get("codec_name")
        elif codec_type == "audio":
            result.has_audio = True
    return result


class VideoProber:
    """Runs ffprobe for media URLs on a bounded worker pool."""

    def __init__(self, config: Optional[ProbeConfig] = None) -> None:
        self.config = config or ProbeConfig()
        self._executor: Optional[ThreadPoolExecutor] = None

    async def __aenter__(self) -> VideoProber:
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="ffprobe"
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def probe_sync(self, url: str) -> ProbeResult:
        """Blocking probe of one URL; never raises, returns a failure marker instead."""
        cmd = build_command(self.config.ffprobe_path, url)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.config.timeout,
            )
            data = json.loads(proc.stdout or "{}")
        except (OSError, subprocess.SubprocessError, ValueError) as exc:
            logger.debug("ffprobe failed for %s: %s", url, exc)
            return ProbeResult.failure(url)
        if not isinstance(data, dict):
            return ProbeResult.failure(url)
        return parse_probe_output(data)

    async def probe(self, url: str) -> ProbeResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.probe_sync, url)

    async def probe_sources(self, sources: Iterable[str]) -> Dict[str, ProbeResult]:
        """Probe each distinct source once, sequentially, in list order."""
        results: Dict[str, ProbeResult] = {}
        for src in sources:
            if src not in results:
                results[src] = await self.probe(src)
        return results


__all__ = ["VideoProber", "build_command", "parse_frame_rate", "parse_probe_output"]
