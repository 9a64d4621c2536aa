# media_scout/models.py
"""
Data models for the MediaScout scan pipeline.

Each pipeline stage produces its own explicit result object
(:class:`ViewportCapture`, :class:`MetricsResult`, low-motion flag, ...),
collected in :class:`ScanObservations`.  Only the aggregator turns those into
the flat, ordered :class:`SiteRecord` that is written to the output sink.
"""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Dict, List, Optional, Union

from media_scout.utils import normalize_url, remove_duplicates


@dataclass(frozen=True, slots=True)
class Viewport:
    width: int
    height: int

    def as_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class ScanRequest:
    """A normalized URL queued for scanning."""

    url: str

    @classmethod
    def from_raw(cls, raw: str) -> ScanRequest:
        return cls(normalize_url(raw))


def build_requests(urls: Iterable[str]) -> List[ScanRequest]:
    """Normalize and deduplicate *urls*, keeping first-seen order."""
    normalized = [normalize_url(u) for u in urls if u and u.strip()]
    return [ScanRequest(u) for u in remove_duplicates(normalized)]


class ScanOutcome(str, enum.Enum):
    SUCCESS = "Success"
    NOT_FOUND = "NotFound"
    UNRESOLVED = "Unresolved"
    GENERAL_ERROR = "GeneralError"


@dataclass(slots=True)
class ProbeResult:
    """Technical metadata of one media source, or a failure marker."""

    duration: Optional[float] = None
    bit_rate: Optional[int] = None
    size: Optional[int] = None
    frame_rate: Optional[float] = None
    codec: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    has_audio: bool = False
    error: bool = False
    url: Optional[str] = None

    @classmethod
    def failure(cls, url: str) -> ProbeResult:
        return cls(error=True, url=url)

    def to_dict(self) -> Dict[str, Any]:
        if self.error:
            return {"url": self.url, "error": True}
        return {
            "duration": self.duration,
            "has_audio": self.has_audio,
            "bit_rate": self.bit_rate,
            "size": self.size,
            "frame_rate": self.frame_rate,
            "width": self.width,
            "height": self.height,
            "codec": self.codec,
        }


@dataclass(slots=True)
class VideoTrack:
    """One ``<track>`` child of a video element."""

    default: Optional[str] = None
    kind: Optional[str] = None
    label: Optional[str] = None
    src: Optional[str] = None
    srclang: Optional[str] = None


@dataclass(slots=True)
class MediaCandidate:
    """The representative video element chosen on one rendered page."""

    sources: List[str]
    attributes: Dict[str, Any] = field(default_factory=dict)
    tracks: List[VideoTrack] = field(default_factory=list)
    above_fold: bool = False
    playing: bool = False
    self_hosted: bool = False
    cdn_domain: str = ""
    metadata: Dict[str, ProbeResult] = field(default_factory=dict)

    @property
    def active_source(self) -> Optional[str]:
        return self.attributes.get("Video Source")

    @property
    def active_probe(self) -> Optional[ProbeResult]:
        source = self.active_source
        return self.metadata.get(source) if source else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "src": list(self.sources),
            "srcMetadata": {src: result.to_dict() for src, result in self.metadata.items()},
            "attrs": dict(self.attributes),
            "isInInitialViewport": self.above_fold,
            "tracks": [asdict(t) for t in self.tracks],
            "Self-hosted": self.self_hosted,
            "CDN Domain": self.cdn_domain,
            "playing": self.playing,
        }


# Either a list of iframe URLs or the empty-string sentinel.
IframeSet = Union[List[str], str]


@dataclass(slots=True)
class ViewportCapture:
    """Everything observed on one rendered viewport."""

    viewport: Viewport
    page_url: str = ""
    video: Optional[MediaCandidate] = None
    iframes: IframeSet = ""
    screenshot: Optional[str] = None

    @property
    def above_fold(self) -> bool:
        return self.video is not None or bool(self.iframes)


@dataclass(slots=True)
class MetricsResult:
    """Performance scores of a site as reported by the external service."""

    link: str = ""
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    type: Optional[str] = None
    score: Optional[int] = None
    rank: Optional[int] = None
    performance: Optional[int] = None
    accessibility: Optional[int] = None
    best_practices: Optional[int] = None
    seo: Optional[int] = None
    total_weight: Optional[int] = None


@dataclass(slots=True)
class ScanObservations:
    """Per-stage results of one site scan, merged later by the aggregator."""

    request: ScanRequest
    outcome: ScanOutcome = ScanOutcome.SUCCESS
    error: Optional[str] = None
    redirected_to: str = ""
    mobile: Optional[ViewportCapture] = None
    desktop: Optional[ViewportCapture] = None
    metrics: Optional[MetricsResult] = None
    low_motion_playing: Optional[bool] = None

    def fail(self, outcome: ScanOutcome, message: str) -> None:
        """Set the terminal failure outcome; the first classification wins."""
        if self.outcome is ScanOutcome.SUCCESS:
            self.outcome = outcome
            self.error = message

    def playing_capture(self) -> Optional[ViewportCapture]:
        """Mobile capture if its video plays, else desktop if its video plays."""
        for capture in (self.mobile, self.desktop):
            if capture is not None and capture.video is not None and capture.video.playing:
                return capture
        return None


RECORD_FIELDS: Dict[str, Any] = {
    "URL": "",
    "General Error": False,
    "Unresolved": False,
    "Error - 404": False,
    "Redirected To": "",
    "Above Fold - Mobile": False,
    "Above Fold - Desktop": False,
    "Iframe Source": "",
    "Video Source": "",
    "Self-Hosted": False,
    "CDN Domain": "",
    "Playing": "",
    "CC or Descriptive Track Found": "",
    "Mobile and Desktop Difference Src": "",
    "Width": "",
    "Height": "",
    "Bitrate": "",
    "Audio Present": "",
    "Codec": "",
    "Duration": "",
    "Framerate": "",
    "File Size": "",
    "Loop": "",
    "Muted": "",
    "Preload": "",
    "Autoplay": "",
    "Poster": "",
    "Controls": "",
    "Playsinline": "",
    "Number of Video Sources": "",
    "Controlslist": "",
    "Crossorigin": "",
    "Disable Picture-in-Picture": "",
    "Disable Remote Playback": "",
    "Role": "",
    "SpeedyU - Link": "",
    "SpeedyU - Name": "",
    "SpeedyU - City": "",
    "SpeedyU - State": "",
    "SpeedyU - Country": "",
    "SpeedyU - Type": "",
    "SpeedyU - Score": "",
    "SpeedyU - Rank": "",
    "LH - Performance": "",
    "LH - Accessibility": "",
    "LH - BestPractices": "",
    "LH - SEO": "",
    "LH - Total Weight": "",
    "Playing - Low Motion": "",
    "Iframe Sources - Mobile": "",
    "Iframe Sources - Desktop": "",
    "Video Data - Mobile": "",
    "Video Data - Desktop": "",
}


class SiteRecord(Mapping[str, Any]):
    """Fixed-shape, ordered output row for one URL.

    Created with the defaults of :data:`RECORD_FIELDS`.  Unknown field names
    are rejected and, once :meth:`freeze` has been called, so is any write.
    """

    __slots__ = ("_values", "_frozen")

    def __init__(self, url: str) -> None:
        self._values: Dict[str, Any] = dict(RECORD_FIELDS)
        self._values["URL"] = url
        self._frozen = False

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __setitem__(self, key: str, value: Any) -> None:
        if self._frozen:
            raise TypeError(f"SiteRecord for {self._values['URL']} is already persisted")
        if key not in self._values:
            raise KeyError(f"Unknown record field: {key!r}")
        self._values[key] = value

    def update(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self[key] = value

    def freeze(self) -> SiteRecord:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def url(self) -> str:
        return self._values["URL"]

    def row(self) -> List[Any]:
        return list(self._values.values())

    def __repr__(self) -> str:
        return f"<SiteRecord url={self.url} frozen={self._frozen}>"
