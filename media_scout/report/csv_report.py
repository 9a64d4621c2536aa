# media_scout/report/csv_report.py
"""
Append-only CSV output sink.

The header row is the fixed record field list; one row is appended per
completed scan, in completion order.  Structured values (lists, dicts) are
stored as JSON with double quotes swapped for single quotes.
"""
from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, List, Union

from media_scout.logger import logger
from media_scout.models import RECORD_FIELDS, SiteRecord


def encode_value(value: Any) -> Any:
    """Encode one record value for the CSV cell."""
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, default=str).replace('"', "'")
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class CsvSink:
    """Writes the header once and appends frozen records as rows."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.records: List[SiteRecord] = []

    def initialize(self) -> Path:
        """Create the file (truncating an old one) and write the header row."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(list(RECORD_FIELDS))
        return self.path

    def append(self, record: SiteRecord) -> None:
        if not record.frozen:
            record.freeze()
        with self.path.open("a", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow([encode_value(v) for v in record.row()])
        self.records.append(record)
        logger.debug("Saved row for %s", record.url)

    def __len__(self) -> int:
        return len(self.records)


__all__ = ["CsvSink", "encode_value"]
