"""GA4 Reports: GA4 Report Queries.

Builds the per-URL report requests and returns plain row dicts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List
from zoneinfo import ZoneInfo

from google.analytics.data_v1beta.types import (
    DateRange,
    Dimension,
    Filter,
    FilterExpression,
    Metric,
    OrderBy,
    RunReportRequest,
)

from ga4report.config import settings
from ga4report.connectors.ga4.client import GA4Client
from ga4report.core.logging import get_logger
from ga4report.core.metric_registry import GA4_REPORT_METRICS

logger = get_logger("ga4.endpoints")

SIMILAR_PATHS_LIMIT = 5


@dataclass(frozen=True)
class QueryWindow:
    start_date: str
    end_date: str


def yesterday_window(tz: str | None = None) -> QueryWindow:
    """Yesterday's date in the configured GA4 timezone."""
    today = datetime.now(ZoneInfo(tz or settings.ga4_timezone)).date()
    day = (today - timedelta(days=1)).isoformat()
    return QueryWindow(start_date=day, end_date=day)


def _path_filter(value: str, match_type: Filter.StringFilter.MatchType) -> FilterExpression:
    return FilterExpression(
        filter=Filter(
            field_name="pagePath",
            string_filter=Filter.StringFilter(
                value=value, match_type=match_type, case_sensitive=False
            ),
        )
    )


class GA4Endpoints:
    """Per-URL GA4 report queries."""

    def __init__(self, client: GA4Client):
        self.client = client

    # ── Page Metrics by Source ──

    def fetch_page_rows(self, url: str, window: QueryWindow) -> List[Dict[str, Any]]:
        """One row per session source for an exact page path."""
        request = RunReportRequest(
            property=self.client.property_name,
            date_ranges=[DateRange(start_date=window.start_date, end_date=window.end_date)],
            dimensions=[Dimension(name="pagePath"), Dimension(name="sessionSource")],
            metrics=[Metric(name=name) for name in GA4_REPORT_METRICS],
            dimension_filter=_path_filter(url, Filter.StringFilter.MatchType.EXACT),
            keep_empty_rows=True,
            return_property_quota=True,
            order_bys=[
                OrderBy(
                    metric=OrderBy.MetricOrderBy(metric_name="screenPageViews"),
                    desc=True,
                )
            ],
        )
        response = self.client.run_report(request)

        rows = []
        for row in response.rows:
            rows.append(
                {
                    "source": row.dimension_values[1].value,
                    **{
                        name: row.metric_values[i].value
                        for i, name in enumerate(GA4_REPORT_METRICS)
                    },
                }
            )
        sampled = len(response.metadata.sampling_metadatas) > 0
        logger.info(
            f"GA4 returned {len(rows)} rows for {url} ({'SAMPLED' if sampled else 'UNSAMPLED'})",
            extra={"url": url},
        )
        return rows

    # ── Fallback Lookup ──

    def fetch_similar_paths(self, url: str, window: QueryWindow) -> List[Dict[str, Any]]:
        """Paths containing ``url`` (without slashes), for diagnostics."""
        request = RunReportRequest(
            property=self.client.property_name,
            date_ranges=[DateRange(start_date=window.start_date, end_date=window.end_date)],
            dimensions=[Dimension(name="pagePath")],
            metrics=[Metric(name="screenPageViews")],
            dimension_filter=_path_filter(
                url.strip("/"), Filter.StringFilter.MatchType.CONTAINS
            ),
            limit=SIMILAR_PATHS_LIMIT,
        )
        response = self.client.run_report(request)
        return [
            {"path": row.dimension_values[0].value, "views": row.metric_values[0].value}
            for row in response.rows
        ]
