# media_scout/browser/registry.py
"""
Process-wide registry of live browser sessions.

The registry never owns a session: it keeps weak references so that a
shutdown sweep can reach every browser still open, while each site scan
remains responsible for releasing its own session.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from typing import List, Protocol

logger = logging.getLogger("MediaScout")


class ClosableSession(Protocol):
    closed: bool

    async def close(self) -> None: ...


class SessionRegistry:
    """Weak, lock-guarded set of live sessions with open/close accounting."""

    def __init__(self) -> None:
        self._sessions: "weakref.WeakSet[ClosableSession]" = weakref.WeakSet()
        self._lock = asyncio.Lock()
        self.opened = 0
        self.closed = 0

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session: object) -> bool:
        return session in self._sessions

    async def register(self, session: ClosableSession) -> None:
        async with self._lock:
            self._sessions.add(session)
            self.opened += 1

    async def release(self, session: ClosableSession) -> bool:
        """Close and deregister *session*; returns False if it was already released."""
        async with self._lock:
            if session not in self._sessions:
                return False
            self._sessions.discard(session)
        try:
            await session.close()
        finally:
            self.closed += 1
        return True

    async def close_all(self) -> int:
        """Force-close every session still registered. Used only at shutdown."""
        async with self._lock:
            pending: List[ClosableSession] = list(self._sessions)
            self._sessions.clear()
        for session in pending:
            try:
                await session.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Error closing browser during shutdown: %s", exc)
            finally:
                self.closed += 1
        if pending:
            logger.warning("Force-closed %d browser session(s) at shutdown", len(pending))
        return len(pending)


__all__ = ["SessionRegistry", "ClosableSession"]
