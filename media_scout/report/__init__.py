# File: media_scout/report/__init__.py
"""media_scout.report: Приёмник CSV и генерация сводных отчётов (JSON и HTML)."""

from __future__ import annotations

from .csv_report import CsvSink, encode_value
from .html_report import render_html
from .json_report import render_json

__all__ = ["CsvSink", "encode_value", "render_html", "render_json"]
