"""GA4 Reports: GA4 Rows → MetricsRecord Transformer.

Combines the per-source rows GA4 returns for one page into a single record.
Counts are summed; duration and bounce rate are weighted by sessions.
"""

from typing import Any, Dict, List, Optional

from ga4report.analyzer.record_parser import parse_float, parse_int
from ga4report.analyzer.validation import validate_consistency
from ga4report.core.logging import get_logger
from ga4report.models.report_models import Metrics, MetricsRecord

logger = get_logger("ga4.transformer")


def empty_record(url: str, query_date: str, error: Optional[str] = None) -> MetricsRecord:
    """Zeroed record for a URL GA4 had no data for, or failed on."""
    return MetricsRecord(
        url=url,
        query_date=query_date,
        data_found=False,
        warnings=[f"Error: {error}"] if error else [],
    )


def transform_page_rows(
    url: str, rows: List[Dict[str, Any]], query_date: str
) -> MetricsRecord:
    """Aggregate the per-source rows of one page into a MetricsRecord."""
    if not rows:
        return empty_record(url, query_date)

    views = sessions = active_users = new_users = engaged = 0
    weighted_duration = 0.0
    weighted_bounce = 0.0
    breakdown: Dict[str, Dict[str, Any]] = {}

    for row in rows:
        source = row.get("source") or "(not set)"
        row_views = parse_int(row.get("screenPageViews"))
        row_sessions = parse_int(row.get("sessions"))
        row_users = parse_int(row.get("activeUsers"))
        duration = parse_float(row.get("averageSessionDuration"))
        bounce = parse_float(row.get("bounceRate"))  # GA4 reports a 0-1 fraction

        views += row_views
        sessions += row_sessions
        active_users += row_users
        new_users += parse_int(row.get("newUsers"))
        engaged += parse_int(row.get("engagedSessions"))

        if row_sessions > 0:
            weighted_duration += duration * row_sessions
            weighted_bounce += bounce * row_sessions

        breakdown[source] = {
            "views": row_views,
            "sessions": row_sessions,
            "users": row_users,
            "duration": round(duration, 2),
            "bounce": round(bounce * 100, 2),
        }

    metrics = Metrics(
        views=views,
        sessions=sessions,
        active_users=active_users,
        new_users=new_users,
        engaged_sessions=engaged,
        engagement_rate=round(engaged / sessions * 100, 2) if sessions else 0.0,
        avg_duration=round(weighted_duration / sessions, 2) if sessions else 0.0,
        bounce_rate=round(weighted_bounce / sessions * 100, 2) if sessions else 0.0,
    )
    warnings, insights = validate_consistency(metrics)
    for w in warnings:
        logger.warning(f"{url}: {w}", extra={"url": url})

    return MetricsRecord(
        url=url,
        query_date=query_date,
        metrics=metrics,
        data_found=True,
        traffic_breakdown=breakdown,
        warnings=warnings,
        insights=insights,
    )
