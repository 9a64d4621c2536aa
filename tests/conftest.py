# File: tests/conftest.py
import asyncio
from typing import Any, Optional

import pytest

from media_scout.browser.registry import SessionRegistry
from media_scout.config import BrowserConfig, ScannerConfig
from media_scout.models import ScanRequest
from media_scout.report.csv_report import CsvSink
from media_scout.scan import ScanContext
from tests.fakes import FakeMetrics, FakeProber


@pytest.fixture()
def basic_config(tmp_path) -> ScannerConfig:
    """
    Return a ScannerConfig writing into a temporary output folder.
    """
    return ScannerConfig(
        max_concurrent=3,
        output_dir=tmp_path / "output",
        browser=BrowserConfig(executable_path=None, settle_delay=0, navigation_timeout=5),
    )


@pytest.fixture()
def csv_sink(basic_config) -> CsvSink:
    """
    Provide an initialized CSV sink inside the temporary output folder.
    """
    sink = CsvSink(basic_config.csv_path)
    sink.initialize()
    return sink


@pytest.fixture()
def make_context(basic_config, csv_sink):
    """
    Factory building a ScanContext around a fake browser session.
    """

    def _make(
        session: Any,
        *,
        url: str = "https://example.com",
        prober: Optional[FakeProber] = None,
        metrics: Optional[FakeMetrics] = None,
        registry: Optional[SessionRegistry] = None,
        factory_error: Optional[BaseException] = None,
    ) -> ScanContext:
        async def factory(_url: str):
            await asyncio.sleep(0)
            if factory_error is not None:
                raise factory_error
            return session

        return ScanContext(
            request=ScanRequest(url),
            slot=0,
            config=basic_config,
            registry=registry if registry is not None else SessionRegistry(),
            session_factory=factory,
            prober=prober if prober is not None else FakeProber(),
            metrics=metrics if metrics is not None else FakeMetrics(),
            sink=csv_sink,
        )

    return _make
