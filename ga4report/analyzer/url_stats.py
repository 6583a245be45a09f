"""GA4 Reports: URL Statistics Reducer.

Derives cross-execution aggregates from the consolidated store on demand.
Nothing here is cached; every call recomputes from the store it is given.

Rate metrics are averaged arithmetically across appearances. The GA4 fetch
step weights duration/bounce by sessions when combining traffic sources; the
two are deliberately left different.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ga4report.core.logging import get_logger
from ga4report.core.url_utils import normalize_url
from ga4report.models.analysis_models import (
    ExecutionListItem,
    ExecutionSummary,
    GlobalStats,
    Period,
    UrlAggregate,
    UrlExecutionPoint,
    UrlHistory,
    UrlHistoryEntry,
    UrlSummary,
)
from ga4report.models.report_models import ConsolidatedStore, Execution, MetricsRecord

logger = get_logger("analyzer.url_stats")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def timestamp_key(value: str) -> datetime:
    """Sort key for ISO timestamps; unparsable values sort first."""
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return _EPOCH
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _mean(total: float, count: int) -> float:
    return round(total / count, 2) if count else 0.0


def _summarize(records: List[MetricsRecord]) -> UrlSummary:
    """Totals, plain means and success rate over one URL's appearances."""
    n = len(records)
    success = sum(1 for r in records if r.data_found)
    return UrlSummary(
        appearances=n,
        total_views=sum(r.metrics.views for r in records),
        total_sessions=sum(r.metrics.sessions for r in records),
        total_users=sum(r.metrics.active_users for r in records),
        avg_engagement_rate=_mean(sum(r.metrics.engagement_rate for r in records), n),
        avg_bounce_rate=_mean(sum(r.metrics.bounce_rate for r in records), n),
        success_count=success,
        success_rate=round(success / n * 100, 2) if n else 0.0,
    )


# ── Per-URL Aggregates ──


def compute_url_stats(store: ConsolidatedStore) -> List[UrlAggregate]:
    """Aggregate every URL across all executions, sorted by total views desc."""
    records: Dict[str, List[MetricsRecord]] = {}
    points: Dict[str, List[UrlExecutionPoint]] = {}

    for execution_id, execution in store.data.items():
        for url, record in execution.urls.items():
            records.setdefault(url, []).append(record)
            points.setdefault(url, []).append(
                UrlExecutionPoint(
                    id=execution_id,
                    date=execution.metadata.date,
                    views=record.metrics.views,
                    sessions=record.metrics.sessions,
                    users=record.metrics.active_users,
                )
            )

    aggregates = [
        UrlAggregate(url=url, executions=points[url], **_summarize(recs).model_dump())
        for url, recs in records.items()
    ]
    # sorted() is stable, so ties keep store order
    return sorted(aggregates, key=lambda a: a.total_views, reverse=True)


def find_url(store: ConsolidatedStore, query: str) -> Tuple[Optional[str], List[str]]:
    """Fuzzy URL lookup.

    Case-insensitive substring match in either direction. The normalized
    exact form ``/<query>/`` wins when present, otherwise the first match in
    store order. Returns ``(target, all_matches)``.
    """
    needle = query.lower()
    matches = [
        url
        for url in store.metadata.distinct_urls
        if needle in url.lower() or url.lower() in needle
    ]
    if not matches:
        return None, []

    exact = normalize_url(query) if query.strip() else None
    target = exact if exact in matches else matches[0]
    if len(matches) > 1:
        logger.info(f"Query '{query}' matched {len(matches)} URLs, using {target}", extra={"url": target})
    return target, matches


def url_history(store: ConsolidatedStore, url: str) -> UrlHistory:
    """Full per-execution history of one URL, oldest first."""
    entries: List[UrlHistoryEntry] = []
    for execution_id, execution in store.data.items():
        record = execution.urls.get(url)
        if record is None:
            continue
        entries.append(
            UrlHistoryEntry(
                execution_id=execution_id,
                date=execution.metadata.date,
                time=execution.metadata.time,
                timestamp=execution.metadata.timestamp,
                **record.model_dump(),
            )
        )
    entries.sort(key=lambda e: timestamp_key(e.timestamp))
    return UrlHistory(
        url=url,
        total_executions=len(entries),
        history=entries,
        summary=_summarize(entries),
    )


def lookup_url(store: ConsolidatedStore, query: str) -> Optional[UrlHistory]:
    """Fuzzy-resolve ``query`` then build that URL's history."""
    target, matches = find_url(store, query)
    if target is None:
        return None
    history = url_history(store, target)
    history.search_term = query
    history.matches = matches
    return history


# ── Executions ──


def execution_summary(execution: Execution) -> ExecutionSummary:
    records = list(execution.urls.values())
    return ExecutionSummary(
        total_urls=len(records),
        urls_with_data=sum(1 for r in records if r.data_found),
        total_views=sum(r.metrics.views for r in records),
        total_sessions=sum(r.metrics.sessions for r in records),
        total_users=sum(r.metrics.active_users for r in records),
    )


def list_executions(store: ConsolidatedStore) -> List[ExecutionListItem]:
    """Execution metadata, oldest first."""
    items = [
        ExecutionListItem(
            id=execution_id,
            urls_processed=len(execution.urls),
            **execution.metadata.model_dump(),
        )
        for execution_id, execution in store.data.items()
    ]
    return sorted(items, key=lambda item: timestamp_key(item.timestamp))


# ── Global ──


def global_stats(store: ConsolidatedStore) -> GlobalStats:
    ids = sorted(store.data)
    period = None
    if len(ids) > 1:
        period = Period(
            from_=store.data[ids[0]].metadata.date,
            to=store.data[ids[-1]].metadata.date,
        )
    return GlobalStats(
        total_executions=store.metadata.total_executions,
        distinct_url_count=len(store.metadata.distinct_urls),
        last_updated=store.metadata.last_updated,
        period=period,
        urls=store.metadata.distinct_urls,
        source_files=len(store.metadata.source_files),
    )
