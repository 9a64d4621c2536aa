# File: tests/test_engine.py
import asyncio
import csv
import logging
import os
import signal
import sys
from contextlib import contextmanager

import pytest

import media_scout.engine as engine_module
from media_scout.engine import Engine, start_scan
from media_scout.errors import PageNotFoundError
from media_scout.logger import ErrorLogHandler
from tests.fakes import FakePage, FakeSession, HangingPage, make_iframe


class SessionPool:
    """Session factory handing out one FakeSession per URL."""

    def __init__(self, pages_by_url=None, delay=0.0):
        self.pages_by_url = pages_by_url or {}
        self.delay = delay
        self.sessions = {}
        self.active = 0
        self.peak = 0

    async def __call__(self, url):
        await asyncio.sleep(self.delay)
        session = TrackedSession(self, self.pages_by_url.get(url, {}))
        self.sessions[url] = session
        return session


class TrackedSession(FakeSession):
    def __init__(self, pool, pages):
        super().__init__(pages)
        self.pool = pool
        pool.active += 1
        pool.peak = max(pool.peak, pool.active)

    async def close(self):
        await asyncio.sleep(self.pool.delay)
        self.pool.active -= 1
        await super().close()


@pytest.fixture(autouse=True)
def detach_error_log():
    yield
    lg = logging.getLogger("MediaScout")
    for handler in list(lg.handlers):
        if isinstance(handler, ErrorLogHandler):
            lg.removeHandler(handler)
            handler.close()


@pytest.mark.asyncio()
async def test_start_scan_processes_each_unique_url(basic_config):
    urls = [f"https://site{i}.example" for i in range(7)] + ["https://site0.example/", "  "]
    pool = SessionPool(delay=0.005)

    summary = await start_scan(basic_config, urls, session_factory=pool)

    assert summary.requested == 7
    assert summary.persisted == 7
    assert summary.interrupted is False
    assert sorted(r.url for r in summary.records) == sorted(urls[:7])
    assert pool.peak <= basic_config.max_concurrent
    assert all(s.close_calls == 1 for s in pool.sessions.values())
    assert pool.active == 0

    with basic_config.csv_path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 7


@pytest.mark.asyncio()
async def test_failures_go_to_error_log(basic_config):
    pool = SessionPool(
        {
            "https://gone.example": {"mobile": PageNotFoundError("https://gone.example")},
            "https://ok.example": {
                "mobile": FakePage("https://ok.example", iframes=[make_iframe("https://player.vimeo.com/v/1")])
            },
        }
    )

    summary = await start_scan(basic_config, ["https://gone.example", "https://ok.example"], session_factory=pool)

    by_url = {r.url: r for r in summary.records}
    assert by_url["https://gone.example"]["Error - 404"] is True
    assert by_url["https://ok.example"]["Iframe Source"] == "https://player.vimeo.com/v/1"
    assert summary.counts()["404"] == 1

    log_lines = basic_config.error_log_path.read_text(encoding="utf-8").splitlines()
    assert any("https://gone.example - 404" in line for line in log_lines)
    assert all(line.startswith("[") for line in log_lines)


@pytest.mark.asyncio()
async def test_start_scan_with_no_urls_writes_header_only(basic_config):
    summary = await start_scan(basic_config, [], session_factory=SessionPool())

    assert summary.persisted == 0
    assert len(basic_config.csv_path.read_text(encoding="utf-8").splitlines()) == 1


@pytest.fixture()
def captured_interrupts(monkeypatch):
    """Записывает callback, который start_scan вешает на SIGINT/SIGTERM."""
    callbacks = []
    install = engine_module._signal_handlers

    @contextmanager
    def recording(callback):
        callbacks.append(callback)
        with install(callback):
            yield

    monkeypatch.setattr(engine_module, "_signal_handlers", recording)
    return callbacks


def hanging_pool(urls, started):
    return SessionPool({url: {"mobile": HangingPage(url, started)} for url in urls})


@pytest.mark.asyncio()
async def test_interrupt_callback_cancels_scan_midway(basic_config, captured_interrupts):
    urls = [f"https://site{i}.example" for i in range(6)]
    started = asyncio.Event()
    pool = hanging_pool(urls, started)

    async def interrupt():
        await started.wait()
        captured_interrupts[0]()

    summary, _ = await asyncio.gather(start_scan(basic_config, urls, session_factory=pool), interrupt())

    assert len(captured_interrupts) == 1
    assert summary.interrupted is True
    assert summary.requested == 6
    assert summary.persisted == 0
    assert 0 < len(pool.sessions) <= basic_config.max_concurrent
    assert all(s.close_calls == 1 for s in pool.sessions.values())
    assert pool.active == 0
    assert len(basic_config.csv_path.read_text(encoding="utf-8").splitlines()) == 1


@pytest.mark.skipif(sys.platform == "win32", reason="loop signal handlers need a Unix event loop")
@pytest.mark.asyncio()
async def test_sigterm_interrupts_scan(basic_config):
    urls = [f"https://site{i}.example" for i in range(4)]
    started = asyncio.Event()
    pool = hanging_pool(urls, started)

    async def send_sigterm():
        await started.wait()
        os.kill(os.getpid(), signal.SIGTERM)

    summary, _ = await asyncio.gather(start_scan(basic_config, urls, session_factory=pool), send_sigterm())

    assert summary.interrupted is True
    assert summary.persisted < summary.requested
    assert all(s.closed for s in pool.sessions.values())
    assert pool.active == 0


def test_engine_facade_runs_scan(basic_config, monkeypatch):
    seen = {}

    async def fake_start_scan(config, urls):
        seen["urls"] = list(urls)
        return "summary"

    monkeypatch.setattr("media_scout.engine.start_scan", fake_start_scan)
    engine = Engine(basic_config)

    assert engine.start_scan(["https://example.com"]) == "summary"
    assert seen["urls"] == ["https://example.com"]


def test_engine_facade_timeout(basic_config, monkeypatch):
    async def slow_start_scan(config, urls):
        await asyncio.sleep(10)

    monkeypatch.setattr("media_scout.engine.start_scan", slow_start_scan)

    with pytest.raises(asyncio.TimeoutError):
        Engine(basic_config).start_scan(["https://example.com"], timeout=0.05)
