# File: media_scout/utils.py
"""media_scout.utils: Утилиты для нормализации URL, загрузки списков сайтов и работы с доменами."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Collection, List, Sequence, Union
from urllib.parse import urljoin, urlparse

from media_scout.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "is_http_url",
    "read_url_list",
    "remove_duplicates",
    "resolve_url",
    "hostname",
    "cdn_domain",
    "sanitize_url_for_filename",
)

_SCHEME_RE = re.compile(r"^https?://")


def normalize_url(url: str) -> str:
    """Нормализует URL запроса: обрезает пробелы и один завершающий слеш."""
    normalized = url.strip()
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def is_http_url(value: str) -> bool:
    """Проверяет, что строка выглядит как http(s)-адрес."""
    return value.strip().startswith(("http://", "https://"))


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def read_url_list(path: Union[str, Path]) -> List[str]:
    """Читает файл со списком URL (по одному в строке) и возвращает нормализованные уникальные адреса."""
    p = Path(path)
    if not p.is_file():
        logger.error("URL list not found: %s", p)
        raise FileNotFoundError(f"URL list file not found: {p}")
    lines = [normalize_url(line) for line in p.read_text(encoding="utf-8").splitlines()]
    urls = remove_duplicates([line for line in lines if line])
    logger.debug("Loaded %d URLs from %s", len(urls), p)
    return urls


def resolve_url(src: str, base_url: str) -> str:
    """Приводит относительный src к абсолютному URL относительно адреса страницы."""
    if src.startswith("//"):
        return "https:" + src
    return urljoin(base_url, src)


def hostname(url: str) -> str:
    """Возвращает hostname из URL ('' при ошибке разбора)."""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def cdn_domain(url: str) -> str:
    """Две последние метки hostname (или весь hostname, если меток не больше двух)."""
    host = hostname(url)
    if not host:
        return ""
    parts = host.split(".")
    return ".".join(parts[-2:]) if len(parts) > 2 else host


def sanitize_url_for_filename(url: str) -> str:
    """Превращает URL в безопасное имя файла."""
    return _SCHEME_RE.sub("", url, count=1).replace("/", "_")
