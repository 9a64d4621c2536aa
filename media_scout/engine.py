# File: media_scout/engine.py
"""media_scout.engine: Оркестрация пакетного сканирования сайтов."""

from __future__ import annotations

import asyncio
import signal
import time
from contextlib import AsyncExitStack, contextmanager
from typing import Callable, Iterable, Iterator, Optional

from playwright.async_api import async_playwright

from media_scout.aggregator import ScanSummary
from media_scout.browser.registry import SessionRegistry
from media_scout.browser.session import BrowserSession
from media_scout.config import ScannerConfig, load_config
from media_scout.logger import attach_error_log, logger
from media_scout.metrics import MetricsClient
from media_scout.models import ScanRequest, build_requests
from media_scout.probe import VideoProber
from media_scout.report.csv_report import CsvSink
from media_scout.scan import ScanContext, SessionFactory, SiteScan
from media_scout.scheduler import ScanScheduler

__all__ = ["Engine", "start_scan"]


@contextmanager
def _signal_handlers(callback: Callable[[], None]) -> Iterator[None]:
    """Вызывает callback по SIGINT/SIGTERM на время работы блока (где это поддерживается)."""
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, callback)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s is not supported here", sig)
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def start_scan(
    config: ScannerConfig,
    urls: Iterable[str],
    *,
    session_factory: Optional[SessionFactory] = None,
) -> ScanSummary:
    """
    Сканирует список URL не более чем в config.max_concurrent потоков и пишет CSV.

    Возвращает ScanSummary с сохранёнными записями в порядке завершения.
    По SIGINT/SIGTERM новые сайты не запускаются, активные сканы отменяются
    и сами освобождают свои браузеры; незавершённые записи не сохраняются.
    """
    requests = build_requests(urls)
    attach_error_log(config.error_log_path)
    sink = CsvSink(config.csv_path)
    sink.initialize()
    registry = SessionRegistry()
    summary = ScanSummary(requested=len(requests))

    logger.info("Starting scan of %d site(s), %d at a time", len(requests), config.max_concurrent)
    start = time.monotonic()

    async with AsyncExitStack() as stack:
        if session_factory is None:
            playwright = await stack.enter_async_context(async_playwright())

            async def session_factory(url: str) -> BrowserSession:
                return await BrowserSession.launch(playwright, config.browser, label=url)

        prober = await stack.enter_async_context(VideoProber(config.probe))
        metrics = await stack.enter_async_context(MetricsClient(config.metrics))

        async def runner(request: ScanRequest, slot: int) -> None:
            context = ScanContext(
                request=request,
                slot=slot,
                config=config,
                registry=registry,
                session_factory=session_factory,
                prober=prober,
                metrics=metrics,
                sink=sink,
            )
            await SiteScan(context).run()

        scheduler = ScanScheduler(config.max_concurrent, runner)
        with _signal_handlers(scheduler.cancel):
            try:
                await scheduler.run(requests)
            finally:
                await registry.close_all()

    summary.records = list(sink.records)
    summary.interrupted = scheduler.cancelled
    duration = time.monotonic() - start
    logger.info(
        "Завершено: %d из %d сайтов за %.2f с (браузеров открыто %d, закрыто %d)",
        summary.persisted,
        summary.requested,
        duration,
        registry.opened,
        registry.closed,
    )
    return summary


class Engine:
    """Фасад для CLI и тестов: загрузка конфига и синхронный запуск сканирования."""

    @staticmethod
    def load_config(path: Optional[str]) -> ScannerConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(self, config: ScannerConfig) -> None:
        """Инициализирует Engine с заданной конфигурацией сканирования."""
        self.config = config

    def start_scan(self, urls: Iterable[str], timeout: Optional[float] = None) -> ScanSummary:
        """Запускает сканирование (с необязательным общим таймаутом) и возвращает сводку."""
        logger.info("Starting scan…")
        coro = start_scan(self.config, urls)
        try:
            if timeout:
                return asyncio.run(asyncio.wait_for(coro, timeout=timeout))
            return asyncio.run(coro)
        except asyncio.TimeoutError:
            logger.error("Scanning did not finish within %s seconds", timeout)
            raise
        except Exception as exc:
            logger.error("Scanning failed: %s", exc)
            raise
