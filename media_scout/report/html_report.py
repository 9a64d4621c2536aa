# File: media_scout/report/html_report.py
"""media_scout.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from media_scout.aggregator import ScanSummary
from media_scout.report.csv_report import encode_value

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "report.html.j2"

# Колонки, показываемые в сводной таблице.
SUMMARY_COLUMNS = (
    "URL",
    "Error - 404",
    "Unresolved",
    "General Error",
    "Above Fold - Mobile",
    "Above Fold - Desktop",
    "Video Source",
    "Self-Hosted",
    "CDN Domain",
    "Playing",
    "Playing - Low Motion",
    "Iframe Source",
    "Codec",
    "Width",
    "Height",
    "LH - Performance",
)


def render_html(
    summary: ScanSummary,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт из шаблона и сохраняет его по указанному пути.

    Args:
        summary: объект ScanSummary.
        template_dir: директория с Jinja2-шаблонами (None: шаблоны пакета).
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {
        "columns": SUMMARY_COLUMNS,
        "rows": [[encode_value(r[c]) for c in SUMMARY_COLUMNS] for r in summary.records],
        "counts": summary.counts(),
        "requested": summary.requested,
        "interrupted": summary.interrupted,
    }

    html_content = template.render(**context)
    output_path.write_text(html_content, encoding="utf-8")

    return output_path
