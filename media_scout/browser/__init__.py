# File: media_scout/browser/__init__.py
"""media_scout.browser: Сессии браузера, реестр живых сессий и выбор медиа-кандидатов на странице."""

from .registry import SessionRegistry
from .selector import select_iframes, select_video
from .session import BrowserSession

__all__ = ["BrowserSession", "SessionRegistry", "select_iframes", "select_video"]
