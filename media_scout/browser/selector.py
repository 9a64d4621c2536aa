# media_scout/browser/selector.py
"""
Media candidate selection over a rendered page.

``select_video`` picks the one representative ``<video>`` of a page and
``select_iframes`` returns the iframes that are visible above the fold.
Both only query the element handles they are given; probing the selected
sources is left to the caller.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from media_scout.models import IframeSet, MediaCandidate, VideoTrack
from media_scout.utils import cdn_domain, hostname, resolve_url

__all__ = (
    "IS_PLAYING_JS",
    "CURRENT_SRC_JS",
    "ATTRIBUTES_JS",
    "is_above_the_fold",
    "select_video",
    "select_iframes",
)

IS_PLAYING_JS = "v => !v.paused && !v.ended && v.readyState > 2"
CURRENT_SRC_JS = "v => v.currentSrc || v.src"
ATTRIBUTES_JS = """v => ({
    'Video Source': v.currentSrc,
    'Autoplay': v.autoplay,
    'Controls': v.controls,
    'Controlslist': v.getAttribute('controlslist'),
    'Crossorigin': v.crossOrigin,
    'Disable Picture-in-Picture': v.disablePictureInPicture,
    'Disable Remote Playback': v.disableRemotePlayback,
    'Playsinline': v.playsInline,
    'Preload': v.preload,
    'Muted': v.muted,
    'Loop': v.loop,
    'Poster': v.getAttribute('poster'),
    'Role': v.getAttribute('role'),
})"""


class ElementLike(Protocol):
    async def bounding_box(self) -> Optional[Dict[str, float]]: ...

    async def evaluate(self, expression: str) -> Any: ...

    async def get_attribute(self, name: str) -> Optional[str]: ...

    async def query_selector_all(self, selector: str) -> Sequence[Any]: ...


class PageLike(Protocol):
    url: str

    async def query_selector_all(self, selector: str) -> Sequence[Any]: ...


async def is_above_the_fold(element: ElementLike, viewport_height: int) -> bool:
    """True when the element is rendered and its top edge lies within the viewport."""
    box = await element.bounding_box()
    return bool(box) and box["y"] <= viewport_height


async def _static_sources(video: ElementLike, base_url: str) -> List[str]:
    sources: List[str] = []
    src = await video.get_attribute("src")
    if src:
        sources.append(resolve_url(src, base_url))
    for source in await video.query_selector_all("source"):
        src = await source.get_attribute("src")
        if src:
            sources.append(resolve_url(src, base_url))
    return sources


async def _tracks(video: ElementLike, base_url: str) -> List[VideoTrack]:
    tracks: List[VideoTrack] = []
    for track in await video.query_selector_all("track"):
        src = await track.get_attribute("src")
        tracks.append(
            VideoTrack(
                default=await track.get_attribute("default"),
                kind=await track.get_attribute("kind"),
                label=await track.get_attribute("label"),
                src=resolve_url(src, base_url) if src else None,
                srclang=await track.get_attribute("srclang"),
            )
        )
    return tracks


async def _attributes(video: ElementLike, base_url: str) -> Dict[str, Any]:
    attrs = dict(await video.evaluate(ATTRIBUTES_JS) or {})
    poster = attrs.get("Poster")
    if poster:
        attrs["Poster"] = resolve_url(poster, base_url)
    return attrs


def _is_self_hosted(sources: List[str], page_url: str) -> bool:
    page_host = hostname(page_url)
    return bool(page_host) and all(hostname(src) == page_host for src in sources)


async def select_video(page: PageLike, viewport_height: int, base_url: Optional[str] = None) -> Optional[MediaCandidate]:
    """Pick the representative video element of *page*.

    A single pass in document order: the first element that is both playing
    and above the fold wins with its live source only.  Otherwise each
    visited element replaces the collected source list, and the pass stops
    at the first above-the-fold element or ends on the last video.
    """
    base = base_url or page.url
    above_fold = False
    playing = False
    sources: List[str] = []
    chosen: Optional[ElementLike] = None

    for video in await page.query_selector_all("video"):
        above_fold = await is_above_the_fold(video, viewport_height)
        is_playing = bool(await video.evaluate(IS_PLAYING_JS))

        if is_playing:
            playing = True
            sources = [await video.evaluate(CURRENT_SRC_JS)]
            if above_fold:
                chosen = video
                break

        sources = await _static_sources(video, base)
        chosen = video
        if above_fold:
            break

    sources = [src for src in sources if src]
    if not sources or chosen is None:
        return None

    self_hosted = _is_self_hosted(sources, base)
    return MediaCandidate(
        sources=sources,
        attributes=await _attributes(chosen, base),
        tracks=await _tracks(chosen, base),
        above_fold=above_fold,
        playing=playing,
        self_hosted=self_hosted,
        cdn_domain="" if self_hosted else cdn_domain(sources[0]),
    )


async def select_iframes(
    page: PageLike,
    viewport_height: int,
    blocklist: Sequence[str],
) -> IframeSet:
    """Return above-the-fold iframe sources, or ``""`` when none qualify."""
    found: List[str] = []
    for iframe in await page.query_selector_all("iframe"):
        src = await iframe.get_attribute("src")
        if not src:
            continue
        src = resolve_url(src, page.url)
        box = await iframe.bounding_box()
        if box is None:
            continue
        if any(entry in src for entry in blocklist):
            continue
        if box["width"] == 0 or box["height"] == 0:
            continue
        if box["y"] <= viewport_height:
            found.append(src)
    return found if found else ""
