"""GA4 Reports: CSV Report Files.

One CSV file per execution, named ``report_<YYYY-MM-DD>_<HH>-<MM>.csv``.
The filename is the only source of execution identity and ordering.
"""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from ga4report.analyzer.record_parser import parse_row
from ga4report.config import settings
from ga4report.core.logging import get_logger
from ga4report.core.metric_registry import (
    COL_BREAKDOWN,
    COL_DATA_FOUND,
    COL_INSIGHTS,
    COL_QUERY_DATE,
    COL_URL,
    COL_WARNINGS,
    CSV_COLUMNS,
    LIST_SEPARATOR,
    URL_METRICS,
)
from ga4report.models.report_models import MetricsRecord

logger = get_logger("reports.csv")

REPORT_GLOB = "report_*.csv"


def report_filename(now: Optional[datetime] = None) -> str:
    """Timestamped report filename in the GA4 timezone."""
    now = now or datetime.now(ZoneInfo(settings.ga4_timezone))
    return f"report_{now:%Y-%m-%d}_{now:%H-%M}.csv"


def list_report_files(data_dir: str | Path) -> List[Path]:
    """All report CSVs in ``data_dir``, sorted by filename (i.e. chronologically)."""
    directory = Path(data_dir)
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.glob(REPORT_GLOB) if p.is_file()), key=lambda p: p.name
    )


def record_to_row(record: MetricsRecord) -> dict:
    """Flatten a record into a CSV row keyed by header title."""
    row = {
        COL_URL: record.url,
        COL_QUERY_DATE: record.query_date,
        COL_DATA_FOUND: "true" if record.data_found else "false",
        COL_BREAKDOWN: json.dumps(record.traffic_breakdown, ensure_ascii=False),
        COL_WARNINGS: LIST_SEPARATOR.join(record.warnings),
        COL_INSIGHTS: LIST_SEPARATOR.join(record.insights),
    }
    for name, metric in URL_METRICS.items():
        value = getattr(record.metrics, name)
        row[metric.csv_column] = str(value) if metric.is_integer else f"{value:.2f}"
    return row


def write_report(records: Iterable[MetricsRecord], path: str | Path) -> Path:
    """Write one execution's records to ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(record))
            count += 1
    logger.info(f"📁 Report written: {path} ({count} rows)", extra={"file": str(path)})
    return path


def read_report(path: str | Path) -> List[MetricsRecord]:
    """Parse every row of a report file.

    A row that fails to parse is logged and skipped; I/O and CSV format
    errors for the file itself propagate to the caller.
    """
    path = Path(path)
    records: List[MetricsRecord] = []
    with path.open("r", encoding="utf-8-sig", newline="") as fh:
        reader = csv.DictReader(fh)
        for line_no, row in enumerate(reader, start=2):
            if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
                continue
            try:
                records.append(parse_row(row))
            except ValueError as e:  # MalformedRowError or model validation
                logger.warning(
                    f"Skipping row {line_no} in {path.name}: {e}",
                    extra={"file": path.name},
                )
    logger.info(f"📄 Parsed {path.name} ({len(records)} records)", extra={"file": path.name})
    return records
