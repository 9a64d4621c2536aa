# media_scout/report/json_report.py

"""
Генерация JSON-отчёта для проекта MediaScout.

Сериализация объекта ScanSummary в файл.
"""
from pathlib import Path

from media_scout.aggregator import ScanSummary


def render_json(summary: ScanSummary, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет сводку summary в формате JSON по указанному пути.

    :param summary: объект ScanSummary с записями сканирования
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла

    Пример:
    ```python
    from media_scout.report.json_report import render_json
    report_path = render_json(summary, 'output/summary.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(summary.json(pretty=pretty), encoding="utf-8")
    return output
