# media_scout/metrics.py
"""
Client for the external performance-scoring service.

The lookup is best-effort: every failure is logged and reported as ``None``
so that the site scan carries on with default metric columns.
"""
from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Dict, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from media_scout.config import MetricsConfig
from media_scout.models import MetricsResult

logger = logging.getLogger("MediaScout")

FIELDS = (
    "Name,CurrentTotal,Rank,City,State,Country,Control,LighthousePerformance,"
    "LighthouseAccessibility,LighthouseBestPractices,LighthouseSeo,LighthouseTotalByteWeight"
)


def _percent(value: Any) -> Optional[int]:
    """Score in [0, 1] → integer percent, rounded half up."""
    if value is None or value == "":
        return None
    try:
        return int(math.floor(float(value) * 100 + 0.5))
    except (TypeError, ValueError):
        return None


def build_where(url: str, country: Optional[str] = None) -> str:
    where = f"(Url,eq,{url})~or(Url,eq,{url}/)"
    if country:
        where = f"({where})~and(Country,eq,{country})"
    return where


def site_link(link_base: str, url: str) -> str:
    return link_base + url.replace("https://", "").replace("http://", "")


def parse_metrics(row: Dict[str, Any], url: str, link_base: str) -> MetricsResult:
    return MetricsResult(
        link=site_link(link_base, url),
        name=row.get("Name"),
        city=row.get("City"),
        state=row.get("State"),
        country=row.get("Country"),
        type=row.get("Control"),
        rank=row.get("Rank"),
        score=_percent(row.get("CurrentTotal")),
        performance=_percent(row.get("LighthousePerformance")),
        accessibility=_percent(row.get("LighthouseAccessibility")),
        best_practices=_percent(row.get("LighthouseBestPractices")),
        seo=_percent(row.get("LighthouseSeo")),
        total_weight=row.get("LighthouseTotalByteWeight"),
    )


class MetricsClient:
    """Async lookup of Lighthouse-style scores for a site URL."""

    def __init__(self, config: MetricsConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> MetricsClient:
        if self.session is None and self.config.enabled:
            self.session = ClientSession(timeout=ClientTimeout(total=self.config.timeout))
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def fetch(self, url: str) -> Optional[MetricsResult]:
        if not self.config.enabled:
            logger.debug("Metrics lookup disabled, skipping %s", url)
            return None
        if self.session is None:
            raise RuntimeError("Session not initialized")

        params = {"where": build_where(url, self.config.country), "fields": FIELDS}
        headers = {"xc-token": self.config.api_key.get_secret_value()}  # type: ignore[union-attr]
        try:
            async with self.session.get(self.config.api_url, params=params, headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    logger.warning(
                        "Error: Received status code %s from metrics API for URL: %s", resp.status, url
                    )
                    return None
                data = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Error fetching metrics for URL: %s - %s", url, exc)
            return None

        rows = data.get("list") if isinstance(data, dict) else None
        if not rows:
            logger.debug("No metrics record for %s", url)
            return None
        return parse_metrics(rows[0], url, self.config.link_base)


__all__ = ["MetricsClient", "build_where", "parse_metrics", "site_link"]
