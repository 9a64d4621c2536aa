# media_scout/scan.py
"""
Per-site scan state machine.

One :class:`SiteScan` drives a single URL through::

    Init → ResourceAcquired → MobileCaptured → DesktopCaptured
         → MetricsFetched → MotionChecked → Persisted → ResourceReleased → Done

Mobile navigation failures are fatal to the site (the record is persisted
with its outcome flag), desktop capture and the metrics lookup are
best-effort, and the browser session is released on every exit path.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from media_scout.aggregator import build_record
from media_scout.browser.registry import SessionRegistry
from media_scout.browser.selector import select_iframes, select_video
from media_scout.config import ScannerConfig
from media_scout.errors import ScanError, classify_failure, describe_failure
from media_scout.models import (
    MetricsResult,
    ProbeResult,
    ScanObservations,
    ScanOutcome,
    ScanRequest,
    SiteRecord,
    Viewport,
    ViewportCapture,
)
from media_scout.utils import normalize_url, sanitize_url_for_filename

logger = logging.getLogger("MediaScout")


class ScanState(str, enum.Enum):
    INIT = "Init"
    RESOURCE_ACQUIRED = "ResourceAcquired"
    MOBILE_CAPTURED = "MobileCaptured"
    DESKTOP_CAPTURED = "DesktopCaptured"
    METRICS_FETCHED = "MetricsFetched"
    MOTION_CHECKED = "MotionChecked"
    PERSISTED = "Persisted"
    RESOURCE_RELEASED = "ResourceReleased"
    DONE = "Done"


class Session(Protocol):
    closed: bool

    def open_page(
        self, url: str, viewport: Viewport, *, reduced_motion: bool = False
    ) -> AbstractAsyncContextManager[Any]: ...

    async def close(self) -> None: ...


class Prober(Protocol):
    async def probe_sources(self, sources: List[str]) -> Dict[str, ProbeResult]: ...


class MetricsLookup(Protocol):
    async def fetch(self, url: str) -> Optional[MetricsResult]: ...


class RecordSink(Protocol):
    def append(self, record: SiteRecord) -> None: ...


SessionFactory = Callable[[str], Awaitable[Session]]


@dataclass
class ScanContext:
    """Everything a single site scan needs, passed explicitly instead of globals."""

    request: ScanRequest
    slot: int
    config: ScannerConfig
    registry: SessionRegistry
    session_factory: SessionFactory
    prober: Prober
    metrics: MetricsLookup
    sink: RecordSink

    @property
    def url(self) -> str:
        return self.request.url


class SiteScan:
    """Drives one :class:`ScanRequest` from browser launch to persisted record."""

    def __init__(self, context: ScanContext) -> None:
        self.context = context
        self.config = context.config
        self.url = context.url
        self.observations = ScanObservations(context.request)
        self.session: Optional[Session] = None
        self.state = ScanState.INIT
        self.history: List[ScanState] = [ScanState.INIT]
        self.record: Optional[SiteRecord] = None

    def _enter(self, state: ScanState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("[slot %d] %s - %s", self.context.slot, self.url, state.value)

    def _require_session(self) -> Session:
        if self.session is None:
            raise ScanError(f"No browser session for {self.url}")
        return self.session

    # ------------------------------------------------------------------ #
    # Entry point                                                        #
    # ------------------------------------------------------------------ #

    async def run(self) -> Optional[SiteRecord]:
        persist = True
        try:
            self.session = await self.context.session_factory(self.url)
            await self.context.registry.register(self.session)
            self._enter(ScanState.RESOURCE_ACQUIRED)

            if await self._capture_mobile():
                await self._capture_desktop()
                await self._fetch_metrics()
                await self._check_motion()
        except asyncio.CancelledError:
            persist = False
            raise
        except Exception as exc:  # pylint: disable=broad-except
            message = f"Error scanning {self.url}: {exc}"
            self.observations.fail(ScanOutcome.GENERAL_ERROR, message)
            logger.error(message)
        finally:
            try:
                if persist:
                    self._persist()
            finally:
                await self._release()
                self._enter(ScanState.DONE)
        return self.record

    # ------------------------------------------------------------------ #
    # Stages                                                             #
    # ------------------------------------------------------------------ #

    async def _capture(self, page: Any, viewport: Viewport, label: str) -> ViewportCapture:
        """Select video and iframes on *page*; screenshot when anything was found."""
        video = await select_video(page, viewport.height)
        if video is not None:
            video.metadata = await self.context.prober.probe_sources(video.sources)
        iframes = await select_iframes(page, viewport.height, self.config.iframe_blocklist)

        capture = ViewportCapture(viewport=viewport, page_url=page.url, video=video, iframes=iframes)
        setattr(self.observations, label, capture)

        if capture.above_fold:
            path = self.config.screenshot_path / f"{sanitize_url_for_filename(self.url)}-{label}.png"
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path))
            capture.screenshot = str(path)
        return capture

    async def _capture_mobile(self) -> bool:
        """Returns False when the scan must stop (404, DNS failure or other navigation error)."""
        session = self._require_session()
        viewport = self.config.mobile_viewport
        try:
            async with session.open_page(self.url, viewport) as page:
                capture = await self._capture(page, viewport, "mobile")
                if capture.page_url and normalize_url(capture.page_url) != self.url:
                    self.observations.redirected_to = capture.page_url
        except Exception as exc:  # pylint: disable=broad-except
            outcome = classify_failure(exc)
            message = describe_failure(self.url, outcome, exc)
            self.observations.fail(outcome, message)
            logger.error(message)
            return False
        self._enter(ScanState.MOBILE_CAPTURED)
        return True

    async def _capture_desktop(self) -> None:
        session = self._require_session()
        viewport = self.config.desktop_viewport
        try:
            async with session.open_page(self.url, viewport) as page:
                await self._capture(page, viewport, "desktop")
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error during desktop scan for %s: %s", self.url, exc)
        self._enter(ScanState.DESKTOP_CAPTURED)

    async def _fetch_metrics(self) -> None:
        try:
            self.observations.metrics = await self.context.metrics.fetch(self.url)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error fetching metrics for URL: %s - %s", self.url, exc)
        self._enter(ScanState.METRICS_FETCHED)

    async def _check_motion(self) -> None:
        """Re-check a playing video with reduced motion emulated.

        Runs on the viewport where the video was seen playing (mobile first).
        Errors here are not contained; they reach the outer handler.
        """
        session = self._require_session()
        capture = self.observations.playing_capture()
        if capture is None:
            return
        viewport = capture.viewport
        async with session.open_page(self.url, viewport, reduced_motion=True) as page:
            video = await select_video(page, viewport.height)
            self.observations.low_motion_playing = bool(video is not None and video.playing)
        self._enter(ScanState.MOTION_CHECKED)

    def _persist(self) -> None:
        self.record = build_record(self.observations)
        self.context.sink.append(self.record)
        self._enter(ScanState.PERSISTED)

    async def _release(self) -> None:
        if self.session is None:
            return
        try:
            await self.context.registry.release(self.session)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Error closing browser: %s", exc)
        self._enter(ScanState.RESOURCE_RELEASED)


__all__ = ["ScanContext", "ScanState", "SiteScan", "SessionFactory"]
