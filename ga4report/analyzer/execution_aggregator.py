"""GA4 Reports: Execution Aggregator.

Groups the records of one report file into an Execution. The execution
identity and ordering come only from the report filename.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from ga4report.config import settings
from ga4report.core.logging import get_logger
from ga4report.models.report_models import (
    Execution,
    ExecutionMetadata,
    MetricsRecord,
    utc_now_iso,
)

logger = get_logger("analyzer.execution_aggregator")

REPORT_FILENAME = re.compile(r"report_(\d{4}-\d{2}-\d{2})_(\d{2})-(\d{2})\.csv")
UNKNOWN = "unknown"


@dataclass(frozen=True)
class ExecutionInfo:
    """Date/time identity extracted from a report filename."""

    execution_id: str
    date: str
    time: str
    timestamp: str

    @property
    def is_degraded(self) -> bool:
        return self.date == UNKNOWN


def parse_execution_filename(filename: str, tz: Optional[str] = None) -> ExecutionInfo:
    """Extract the execution identity from ``report_YYYY-MM-DD_HH-MM.csv``.

    The clock time in the filename is local to ``tz`` (the GA4 timezone by
    default); the returned timestamp is UTC. Filenames that do not match fall
    back to the filename stem as id, with the current instant as timestamp.
    """
    name = Path(filename).name
    match = REPORT_FILENAME.search(name)
    if not match:
        logger.warning(f"Could not extract date/time from {name}", extra={"file": name})
        return ExecutionInfo(
            execution_id=name[:-4] if name.endswith(".csv") else name,
            date=UNKNOWN,
            time=UNKNOWN,
            timestamp=utc_now_iso(),
        )

    date, hours, minutes = match.groups()
    local = datetime.strptime(f"{date} {hours}:{minutes}", "%Y-%m-%d %H:%M")
    local = local.replace(tzinfo=ZoneInfo(tz or settings.ga4_timezone))
    return ExecutionInfo(
        execution_id=f"{date}_{hours}-{minutes}",
        date=date,
        time=f"{hours}:{minutes}",
        timestamp=local.astimezone(timezone.utc).isoformat(),
    )


def build_execution(
    records: Iterable[MetricsRecord],
    filename: str,
    info: Optional[ExecutionInfo] = None,
) -> Execution:
    """Aggregate one file's records into an Execution.

    ``successful_urls`` counts records GA4 reported data for, while
    ``urls_with_data`` counts records with at least one view. The two are
    tracked separately on purpose.
    """
    records = list(records)
    info = info or parse_execution_filename(filename)

    urls = {}
    for record in records:
        if record.url in urls:
            logger.warning(
                f"Duplicate URL {record.url} in {filename}; keeping the last row",
                extra={"execution_id": info.execution_id, "url": record.url},
            )
        urls[record.url] = record

    metadata = ExecutionMetadata(
        date=info.date,
        time=info.time,
        timestamp=info.timestamp,
        source_file=Path(filename).name,
        total_urls=len(records),
        successful_urls=sum(1 for r in records if r.data_found),
        urls_with_data=sum(1 for r in records if r.metrics.views > 0),
    )
    return Execution(id=info.execution_id, metadata=metadata, urls=urls)
