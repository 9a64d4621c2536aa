# File: media_scout/aggregator.py
"""media_scout.aggregator: Сведение наблюдений сканирования в итоговую запись SiteRecord и сводку пакета."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from media_scout.models import (
    MediaCandidate,
    MetricsResult,
    ScanObservations,
    ScanOutcome,
    SiteRecord,
    ViewportCapture,
)

_OUTCOME_FLAGS = {
    ScanOutcome.NOT_FOUND: "Error - 404",
    ScanOutcome.UNRESOLVED: "Unresolved",
    ScanOutcome.GENERAL_ERROR: "General Error",
}


@dataclass(slots=True)
class ScanSummary:
    """Итог пакетного запуска: сохранённые записи и число запрошенных URL."""

    records: List[SiteRecord] = field(default_factory=list)
    requested: int = 0
    interrupted: bool = False

    @property
    def persisted(self) -> int:
        return len(self.records)

    def counts(self) -> Dict[str, int]:
        """Количество записей по флагам исхода."""
        counts = {"total": self.persisted, "404": 0, "unresolved": 0, "general_error": 0, "video": 0}
        for record in self.records:
            counts["404"] += bool(record["Error - 404"])
            counts["unresolved"] += bool(record["Unresolved"])
            counts["general_error"] += bool(record["General Error"])
            counts["video"] += bool(record["Video Source"])
        return counts

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление сводки."""
        output = {
            "requested": self.requested,
            "interrupted": self.interrupted,
            "counts": self.counts(),
            "records": [dict(r) for r in self.records],
        }
        return json.dumps(output, ensure_ascii=False, indent=2 if pretty else None, default=str)


def _video_fields(video: MediaCandidate) -> Dict[str, Any]:
    """Колонки видео по активному источнику; пусто, если для него нет результата ffprobe."""
    probe = video.active_probe
    if probe is None:
        return {}
    fields: Dict[str, Any] = {
        "CC or Descriptive Track Found": len(video.tracks) > 0,
        "Number of Video Sources": len(video.sources),
        "Self-Hosted": video.self_hosted,
        "CDN Domain": video.cdn_domain,
    }
    if not probe.error:
        fields.update(
            {
                "Width": probe.width,
                "Height": probe.height,
                "Bitrate": probe.bit_rate,
                "Audio Present": probe.has_audio,
                "Codec": probe.codec,
                "Duration": probe.duration,
                "Framerate": probe.frame_rate,
                "File Size": probe.size,
            }
        )
    fields.update(video.attributes)
    return fields


def _metrics_fields(metrics: MetricsResult) -> Dict[str, Any]:
    return {
        "SpeedyU - Link": metrics.link,
        "SpeedyU - Name": metrics.name,
        "SpeedyU - City": metrics.city,
        "SpeedyU - State": metrics.state,
        "SpeedyU - Country": metrics.country,
        "SpeedyU - Type": metrics.type,
        "SpeedyU - Rank": metrics.rank,
        "SpeedyU - Score": metrics.score,
        "LH - Performance": metrics.performance,
        "LH - Accessibility": metrics.accessibility,
        "LH - BestPractices": metrics.best_practices,
        "LH - SEO": metrics.seo,
        "LH - Total Weight": metrics.total_weight,
    }


def _capture_fields(capture: Optional[ViewportCapture], suffix: str) -> Dict[str, Any]:
    if capture is None:
        return {}
    return {
        f"Above Fold - {suffix}": capture.above_fold,
        f"Iframe Sources - {suffix}": capture.iframes,
        f"Video Data - {suffix}": capture.video.to_dict() if capture.video else False,
    }


def sources_differ(observations: ScanObservations) -> bool:
    """True, если мобильное и десктопное наблюдения нашли видео с разными активными источниками."""
    mobile, desktop = observations.mobile, observations.desktop
    if not (mobile and mobile.video and desktop and desktop.video):
        return False
    return mobile.video.active_source != desktop.video.active_source


def build_record(observations: ScanObservations) -> SiteRecord:
    """Собирает итоговую запись по правилам приоритета (мобильная версия, затем десктоп)."""
    record = SiteRecord(observations.request.url)

    flag = _OUTCOME_FLAGS.get(observations.outcome)
    if flag:
        record[flag] = True
    if observations.redirected_to:
        record["Redirected To"] = observations.redirected_to

    record.update(_capture_fields(observations.mobile, "Mobile"))
    record.update(_capture_fields(observations.desktop, "Desktop"))

    # Сводка по iframe берётся из мобильного списка (десктопный хранится отдельно).
    mobile_iframes = observations.mobile.iframes if observations.mobile else ""
    if mobile_iframes:
        record["Iframe Source"] = mobile_iframes[0]

    video = None
    for capture in (observations.mobile, observations.desktop):
        if capture is not None and capture.video is not None:
            video = capture.video
            break
    if video is not None:
        record.update(_video_fields(video))

    if sources_differ(observations):
        record["Mobile and Desktop Difference Src"] = True

    if observations.playing_capture() is not None:
        record["Playing"] = True
    if observations.low_motion_playing is not None:
        record["Playing - Low Motion"] = observations.low_motion_playing

    if observations.metrics is not None:
        record.update(_metrics_fields(observations.metrics))

    return record.freeze()


__all__ = ["ScanSummary", "build_record", "sources_differ"]
