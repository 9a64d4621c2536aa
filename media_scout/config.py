# === FILE: media_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации сканера MediaScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
import platform
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)

from media_scout.models import Viewport

# Системный Chrome: в сборке Chromium от Playwright нет проприетарных кодеков.
_CHROME_PATHS = {
    "Darwin": "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "Windows": r"C:\Program Files\Google\Chrome\Application\chrome.exe",
}
_CHROME_LINUX = "/usr/bin/google-chrome"

DEFAULT_IFRAME_BLOCKLIST: tuple[str, ...] = (
    "googletagmanager",
    "doubleclick",
    "adsrvr",
    "facebook",
    "force.com",
    "google.com",
    "admithub",
    "hubspot",
    "WixWorker",
    "syndicatedsearch",
    "cookiebot",
    "sharethis",
    "unibuddy",
)


def detect_chrome_executable() -> Optional[str]:
    """Возвращает путь к установленному Google Chrome или None (встроенный Chromium)."""
    candidate = _CHROME_PATHS.get(platform.system(), _CHROME_LINUX)
    return candidate if Path(candidate).is_file() else None


class BrowserConfig(BaseModel):
    """Параметры запуска браузера и навигации."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    executable_path: Optional[str] = Field(
        default_factory=detect_chrome_executable,
        description="Путь к Chrome; при None используется Chromium из комплекта Playwright.",
    )
    headless: bool = Field(True, description="Запуск без окна.")
    navigation_timeout: float = Field(60.0, gt=0, description="Таймаут навигации (секунд).")
    settle_delay: float = Field(2.0, ge=0, description="Пауза после загрузки для автозапуска видео.")


class ProbeConfig(BaseModel):
    """Параметры запуска ffprobe."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    ffprobe_path: str = Field("ffprobe", min_length=1, description="Исполняемый файл ffprobe.")
    timeout: float = Field(60.0, gt=0, description="Таймаут одного запуска ffprobe (секунд).")
    workers: int = Field(2, ge=1, description="Размер пула потоков для ffprobe.")


class MetricsConfig(BaseModel):
    """Доступ к внешнему сервису оценок производительности."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_url: Optional[str] = Field(None, description="URL таблицы сервиса метрик.")
    api_key: Optional[SecretStr] = Field(None, description="Токен xc-token.")
    link_base: str = Field(
        "https://speedyu.bravery.co/site/", description="Префикс публичной ссылки на сайт."
    )
    country: Optional[str] = Field(None, description="Фильтр по стране для запроса метрик.")
    timeout: float = Field(30.0, gt=0, description="Таймаут HTTP-запроса (секунд).")

    @property
    def enabled(self) -> bool:
        return bool(self.api_url and self.api_key)


class ScannerConfig(BaseModel):
    """Конфигурация для одного запуска сканирования."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_concurrent: int = Field(10, ge=1, description="Число одновременно сканируемых сайтов.")
    output_dir: Path = Field(Path("output"), description="Каталог для результатов.")
    csv_name: str = Field("scan_results.csv", min_length=1, description="Имя CSV-файла.")
    error_log_name: str = Field("error.log", min_length=1, description="Имя журнала ошибок.")
    screenshots_dir: str = Field("screenshots", min_length=1, description="Подкаталог скриншотов.")

    mobile_viewport: Viewport = Field(default_factory=lambda: Viewport(390, 800))
    desktop_viewport: Viewport = Field(default_factory=lambda: Viewport(1440, 900))
    iframe_blocklist: List[str] = Field(
        default_factory=lambda: list(DEFAULT_IFRAME_BLOCKLIST),
        description="Подстроки src, исключающие iframe из результатов.",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("mobile_viewport", "desktop_viewport", mode="before")
    def _coerce_viewport(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return Viewport(int(v["width"]), int(v["height"]))
        if isinstance(v, (list, tuple)) and len(v) == 2:
            return Viewport(int(v[0]), int(v[1]))
        return v

    @property
    def csv_path(self) -> Path:
        return self.output_dir / self.csv_name

    @property
    def error_log_path(self) -> Path:
        return self.output_dir / self.error_log_name

    @property
    def screenshot_path(self) -> Path:
        return self.output_dir / self.screenshots_dir


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ScannerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ScannerConfig.
    Без пути используется configs/default.yaml, а при его отсутствии значения по умолчанию.
    """
    if path is None:
        if not _DEFAULT_CFG.is_file():
            return ScannerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ScannerConfig(**data)


def load_secrets(config: ScannerConfig, path: Union[str, Path]) -> ScannerConfig:
    """
    Подмешивает api_key и api_url из JSON-файла секретов в раздел metrics.
    Возвращает новый объект конфигурации (исходный заморожен).
    """
    secrets = _read_json(Path(path).expanduser())
    update: dict[str, Any] = {}
    if secrets.get("api_key"):
        update["api_key"] = SecretStr(str(secrets["api_key"]))
    if secrets.get("api_url"):
        update["api_url"] = str(secrets["api_url"])
    if not update:
        return config
    metrics = config.metrics.model_copy(update=update)
    return config.model_copy(update={"metrics": metrics})


__all__ = [
    "BrowserConfig",
    "DEFAULT_IFRAME_BLOCKLIST",
    "MetricsConfig",
    "ProbeConfig",
    "ScannerConfig",
    "ValidationError",
    "detect_chrome_executable",
    "load_config",
    "load_secrets",
]
