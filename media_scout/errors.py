# media_scout/errors.py
"""
Exceptions raised while rendering a site and the classifier that maps
navigation failures onto scan outcomes.
"""
from __future__ import annotations

from typing import Tuple

from media_scout.models import ScanOutcome

__all__ = (
    "ScanError",
    "NavigationError",
    "PageNotFoundError",
    "classify_failure",
    "describe_failure",
)

_UNRESOLVED_MARKERS: Tuple[str, ...] = (
    "ENOTFOUND",
    "ERR_NAME_NOT_RESOLVED",
    "NS_ERROR_UNKNOWN_HOST",
)


class ScanError(Exception):
    """Base class for MediaScout failures."""


class NavigationError(ScanError):
    """The browser could not load the page."""


class PageNotFoundError(NavigationError):
    """The site answered the navigation with HTTP 404."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Page not found (404): {url}")
        self.url = url


def classify_failure(exc: BaseException) -> ScanOutcome:
    """Map a mobile-capture failure onto a terminal outcome."""
    if isinstance(exc, PageNotFoundError):
        return ScanOutcome.NOT_FOUND
    message = str(exc)
    if "404" in message:
        return ScanOutcome.NOT_FOUND
    if any(marker in message for marker in _UNRESOLVED_MARKERS):
        return ScanOutcome.UNRESOLVED
    return ScanOutcome.GENERAL_ERROR


def describe_failure(url: str, outcome: ScanOutcome, exc: BaseException) -> str:
    """Diagnostics line for a classified mobile-capture failure."""
    if outcome is ScanOutcome.NOT_FOUND:
        return f"{url} - 404 - {exc}"
    if outcome is ScanOutcome.UNRESOLVED:
        return f"{url} - Unresolved - {exc}"
    return f"{url} - Error during mobile - Mobile - Error loading mobile page for URL: {url} - {exc}"
