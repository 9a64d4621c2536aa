# media_scout/browser/session.py
"""
Browser session: one isolated Chromium instance per scanned site.

Pages are opened through :meth:`BrowserSession.open_page`, an async context
manager that creates a fresh browsing context (viewport + motion preference),
navigates, waits for media to settle and always closes the context on exit.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from playwright.async_api import Browser, Page, Playwright

from media_scout.config import BrowserConfig
from media_scout.errors import NavigationError, PageNotFoundError
from media_scout.models import Viewport

logger = logging.getLogger("MediaScout")


class BrowserSession:
    """Wraps a Playwright :class:`Browser` dedicated to one scan."""

    def __init__(self, browser: Browser, config: BrowserConfig, label: str = "") -> None:
        self._browser = browser
        self.config = config
        self.label = label
        self.closed = False
        self.contexts_opened = 0
        self.contexts_closed = 0

    @classmethod
    async def launch(cls, playwright: Playwright, config: BrowserConfig, label: str = "") -> BrowserSession:
        options: Dict[str, Any] = {"headless": config.headless}
        if config.executable_path:
            options["executable_path"] = config.executable_path
        browser = await playwright.chromium.launch(**options)
        logger.debug("Browser launched for %s", label or "scan")
        return cls(browser, config, label)

    @asynccontextmanager
    async def open_page(
        self,
        url: str,
        viewport: Viewport,
        *,
        reduced_motion: bool = False,
    ) -> AsyncIterator[Page]:
        """Navigate a new context to *url* and yield the loaded page.

        Raises :class:`PageNotFoundError` on HTTP 404 and
        :class:`NavigationError` when the browser returns no response.
        Playwright errors (timeouts, DNS failures) propagate unchanged.
        """
        if self.closed:
            raise NavigationError(f"Browser session for {url} is already closed")
        context = await self._browser.new_context(
            viewport=viewport.as_dict(),
            reduced_motion="reduce" if reduced_motion else "no-preference",
        )
        self.contexts_opened += 1
        try:
            page = await context.new_page()
            response = await page.goto(
                url,
                timeout=self.config.navigation_timeout * 1000,
                wait_until="domcontentloaded",
            )
            if response is None:
                raise NavigationError(f"Failed to load page: {url}")
            if response.status == 404:
                raise PageNotFoundError(url)
            if self.config.settle_delay:
                await page.wait_for_timeout(self.config.settle_delay * 1000)
            yield page
        finally:
            await self._close_context(context)

    async def _close_context(self, context: Any) -> None:
        try:
            await context.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing browser context for %s: %s", self.label, exc)
        finally:
            self.contexts_closed += 1

    async def close(self) -> None:
        """Close the browser; repeated calls are no-ops."""
        if self.closed:
            return
        self.closed = True
        await self._browser.close()

    def __repr__(self) -> str:
        return f"<BrowserSession {self.label or id(self)} closed={self.closed}>"


__all__ = ["BrowserSession"]
