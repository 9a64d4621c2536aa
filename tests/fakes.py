# File: tests/fakes.py
"""Fakes for the Playwright page, element and session objects used by the scan pipeline."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from media_scout.browser.selector import ATTRIBUTES_JS, CURRENT_SRC_JS, IS_PLAYING_JS
from media_scout.models import MetricsResult, ProbeResult, Viewport


# --------------------------------------------------------------------------- #
#                          Fake rendering collaborator                         #
# --------------------------------------------------------------------------- #


class FakeElement:
    """Minimal stand-in for a Playwright ElementHandle."""

    def __init__(
        self,
        *,
        box: Optional[Dict[str, float]] = None,
        attrs: Optional[Dict[str, str]] = None,
        playing: bool = False,
        current_src: Optional[str] = None,
        children: Optional[Dict[str, List["FakeElement"]]] = None,
        snapshot: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.box = box
        self.attrs = attrs or {}
        self.playing = playing
        self.current_src = current_src
        self.children = children or {}
        self.snapshot = snapshot

    async def bounding_box(self):
        return self.box

    async def get_attribute(self, name: str):
        return self.attrs.get(name)

    async def query_selector_all(self, selector: str):
        return list(self.children.get(selector, []))

    async def evaluate(self, expression: str):
        if expression == IS_PLAYING_JS:
            return self.playing
        if expression == CURRENT_SRC_JS:
            return self.current_src or self.attrs.get("src", "")
        if expression == ATTRIBUTES_JS:
            if self.snapshot is not None:
                return dict(self.snapshot)
            return {
                "Video Source": self.current_src or self.attrs.get("src", ""),
                "Autoplay": "autoplay" in self.attrs,
                "Muted": "muted" in self.attrs,
                "Loop": "loop" in self.attrs,
                "Poster": self.attrs.get("poster"),
            }
        raise AssertionError(f"unexpected script: {expression}")


def make_video(
    *,
    y: float = 0,
    playing: bool = False,
    src: Optional[str] = None,
    sources: Sequence[str] = (),
    current_src: Optional[str] = None,
    tracks: Sequence[Dict[str, str]] = (),
    attrs: Optional[Dict[str, str]] = None,
    visible: bool = True,
) -> FakeElement:
    all_attrs = dict(attrs or {})
    if src:
        all_attrs["src"] = src
    return FakeElement(
        box={"x": 0, "y": y, "width": 320, "height": 180} if visible else None,
        attrs=all_attrs,
        playing=playing,
        current_src=current_src,
        children={
            "source": [FakeElement(attrs={"src": s}) for s in sources],
            "track": [FakeElement(attrs=dict(t)) for t in tracks],
        },
    )


def make_iframe(src: Optional[str], *, y: float = 0, width: float = 300, height: float = 150) -> FakeElement:
    return FakeElement(
        box={"x": 0, "y": y, "width": width, "height": height},
        attrs={"src": src} if src is not None else {},
    )


class FakePage:
    def __init__(self, url: str, videos: Sequence[FakeElement] = (), iframes: Sequence[FakeElement] = ()) -> None:
        self.url = url
        self.videos = list(videos)
        self.iframes = list(iframes)
        self.screenshots: List[str] = []

    async def query_selector_all(self, selector: str):
        return {"video": self.videos, "iframe": self.iframes}.get(selector, [])

    async def screenshot(self, path: str):
        Path(path).write_bytes(b"")
        self.screenshots.append(path)


class HangingPage(FakePage):
    """Page whose element lookup never returns; sets *started* once it is reached."""

    def __init__(self, url: str, started: asyncio.Event) -> None:
        super().__init__(url)
        self.started = started

    async def query_selector_all(self, selector: str):
        self.started.set()
        await asyncio.Event().wait()


PageOrError = Union[FakePage, BaseException]


class FakeSession:
    """Fake browser session serving pages per viewport kind: mobile, desktop, motion."""

    def __init__(self, pages: Dict[str, PageOrError], mobile_width: int = 390) -> None:
        self.pages = pages
        self.mobile_width = mobile_width
        self.closed = False
        self.close_calls = 0
        self.opened: List[str] = []
        self.contexts_open = 0
        self.viewports: List[Viewport] = []

    def _kind(self, viewport: Viewport, reduced_motion: bool) -> str:
        if reduced_motion:
            return "motion"
        return "mobile" if viewport.width == self.mobile_width else "desktop"

    @asynccontextmanager
    async def open_page(self, url: str, viewport: Viewport, *, reduced_motion: bool = False):
        kind = self._kind(viewport, reduced_motion)
        self.opened.append(kind)
        self.viewports.append(viewport)
        self.contexts_open += 1
        try:
            page = self.pages.get(kind)
            if page is None:
                page = FakePage(url)
            if isinstance(page, BaseException):
                raise page
            yield page
        finally:
            self.contexts_open -= 1

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeProber:
    def __init__(self, results: Optional[Dict[str, ProbeResult]] = None) -> None:
        self.results = results or {}
        self.calls: List[List[str]] = []

    async def probe_sources(self, sources):
        self.calls.append(list(sources))
        return {src: self.results.get(src, ProbeResult.failure(src)) for src in sources}


class FakeMetrics:
    def __init__(self, result: Union[MetricsResult, BaseException, None] = None) -> None:
        self.result = result
        self.calls: List[str] = []

    async def fetch(self, url: str):
        self.calls.append(url)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result

