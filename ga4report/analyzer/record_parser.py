"""GA4 Reports: Record Parser.

Turns one CSV report row into a normalized MetricsRecord. Numeric cells are
parsed permissively: anything unparsable becomes 0 instead of failing the row.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional

from ga4report.core.metric_registry import (
    COL_BREAKDOWN,
    COL_DATA_FOUND,
    COL_INSIGHTS,
    COL_QUERY_DATE,
    COL_URL,
    COL_WARNINGS,
    URL_METRICS,
)
from ga4report.analyzer.validation import bounce_rate_warning
from ga4report.core.url_utils import normalize_url
from ga4report.core.logging import get_logger
from ga4report.models.report_models import Metrics, MetricsRecord

logger = get_logger("analyzer.record_parser")

_INT_PREFIX = re.compile(r"^\s*([-+]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


class MalformedRowError(ValueError):
    """Raised when a row cannot produce a record at all."""


def parse_int(value: Any) -> int:
    """Parse the leading integer of a cell ("12.7" -> 12), else 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(int(value), 0)
    match = _INT_PREFIX.match(str(value or ""))
    return max(int(match.group(1)), 0) if match else 0


def parse_float(value: Any) -> float:
    """Parse the leading float of a cell, else 0.0."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value or ""))
    return float(match.group(1)) if match else 0.0


def parse_list_cell(value: Optional[str]) -> List[str]:
    """Split a ``; ``-joined cell back into its items."""
    if not value:
        return []
    return [item.strip() for item in value.split(";") if item.strip()]


def parse_breakdown(value: Optional[str], url: str = "") -> Dict[str, Dict[str, Any]]:
    """Decode the embedded per-source JSON; failures yield an empty mapping."""
    if not value:
        return {}
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not parse traffic breakdown for {url}: {e}", extra={"url": url})
        return {}
    if not isinstance(decoded, dict):
        logger.warning(f"Traffic breakdown for {url} is not an object", extra={"url": url})
        return {}
    return {str(k): v for k, v in decoded.items() if isinstance(v, dict)}


def parse_row(row: Mapping[str, Optional[str]]) -> MetricsRecord:
    """Build a MetricsRecord from a CSV row keyed by header title."""
    raw_url = (row.get(COL_URL) or "").strip()
    if not raw_url:
        raise MalformedRowError("row has no URL")
    url = normalize_url(raw_url)

    values: Dict[str, Any] = {}
    for name, metric in URL_METRICS.items():
        cell = row.get(metric.csv_column)
        values[name] = parse_int(cell) if metric.is_integer else parse_float(cell)

    metrics = Metrics(**values)
    warnings = parse_list_cell(row.get(COL_WARNINGS))
    bounce = bounce_rate_warning(metrics)
    if bounce and bounce not in warnings:
        warnings.append(bounce)

    return MetricsRecord(
        url=url,
        query_date=(row.get(COL_QUERY_DATE) or "").strip(),
        metrics=metrics,
        data_found=(row.get(COL_DATA_FOUND) or "").strip() == "true",
        traffic_breakdown=parse_breakdown(row.get(COL_BREAKDOWN), url),
        warnings=warnings,
        insights=parse_list_cell(row.get(COL_INSIGHTS)),
    )
