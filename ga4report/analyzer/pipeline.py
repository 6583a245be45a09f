"""GA4 Reports: Report Pipeline Orchestrator.

Runs one execution end to end:
  resolve URLs → query GA4 per URL → write CSV → consolidate incrementally

A GA4 or decoding failure for one URL never aborts the run; that URL is stored with
zeroed metrics, ``dataFound=false`` and the error in its warnings.
"""

import time
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from ga4report.analyzer.execution_aggregator import parse_execution_filename
from ga4report.config import ConfigurationError, settings
from ga4report.connectors.ga4.client import GA4APIError, GA4Client
from ga4report.connectors.ga4.endpoints import GA4Endpoints, QueryWindow, yesterday_window
from ga4report.connectors.ga4.transformer import empty_record, transform_page_rows
from ga4report.connectors.sheets import UrlCache, load_urls_from_sheet
from ga4report.core.logging import get_logger
from ga4report.core.url_utils import normalize_url
from ga4report.models.report_models import MetricsRecord
from ga4report.reports.csv_report import report_filename, write_report
from ga4report.repositories.consolidated_store import (
    ConsolidationRepository,
    get_store_repository,
)
from ga4report.repositories.url_config import UrlConfigRepository, get_url_repository

logger = get_logger("analyzer.pipeline")


@dataclass
class ReportResult:
    """Outcome of one fetch-and-consolidate run."""

    csv_path: str
    execution_id: str
    query_date: str
    total_urls: int = 0
    successful: int = 0
    with_warnings: int = 0
    with_insights: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def resolve_urls(
    url_repo: UrlConfigRepository,
    cache: Optional[UrlCache] = None,
    sheet_loader: Callable[[], Optional[List[str]]] = load_urls_from_sheet,
) -> List[str]:
    """URL list: Google Sheets, else its cache, else the local config."""
    sheet_urls = sheet_loader()
    cache = cache or UrlCache()
    if sheet_urls:
        cache.save(sheet_urls)
        return list(dict.fromkeys(normalize_url(u) for u in sheet_urls))

    if settings.google_sheet_id:
        cached = cache.load()
        if cached:
            return list(dict.fromkeys(normalize_url(u) for u in cached))

    return url_repo.list_urls().urls


def fetch_url_record(endpoints: GA4Endpoints, url: str, window: QueryWindow) -> MetricsRecord:
    """Query GA4 for one URL; errors become a zeroed record."""
    logger.info(f"📅 Querying {window.start_date} for {url}", extra={"url": url})
    try:
        rows = endpoints.fetch_page_rows(url, window)
        if not rows:
            logger.warning(f"No data for {url} on {window.start_date}", extra={"url": url})
            similar = endpoints.fetch_similar_paths(url, window)
            if similar:
                found = ", ".join(f"{s['path']} ({s['views']} views)" for s in similar)
                logger.info(f"🔍 Similar paths: {found}", extra={"url": url})
            return empty_record(url, window.start_date)
        return transform_page_rows(url, rows, window.start_date)
    except ConfigurationError:
        raise
    except GA4APIError as e:
        logger.error(f"❌ GA4 query failed for {url}: {e}", extra={"url": url})
        return empty_record(url, window.start_date, error=str(e))
    except Exception as e:
        logger.exception(f"❌ Unexpected error processing {url}: {e}", extra={"url": url})
        return empty_record(url, window.start_date, error=str(e))


def run_report(
    client: Optional[GA4Client] = None,
    store_repo: Optional[ConsolidationRepository] = None,
    url_repo: Optional[UrlConfigRepository] = None,
    urls: Optional[List[str]] = None,
    now: Optional[datetime] = None,
    pause_seconds: Optional[float] = None,
) -> ReportResult:
    """Fetch every configured URL, write the CSV and merge it into the store.

    Raises ConfigurationError when the GA4 property id or credentials are
    missing.
    """
    store_repo = store_repo or get_store_repository()
    url_repo = url_repo or get_url_repository()
    client = client or GA4Client()
    endpoints = GA4Endpoints(client)
    pause = settings.request_pause_seconds if pause_seconds is None else pause_seconds

    urls = urls if urls is not None else resolve_urls(url_repo)
    if not urls:
        logger.warning("No URLs configured; the report will be empty")

    now = now or datetime.now(ZoneInfo(settings.ga4_timezone))
    window = yesterday_window()
    logger.info(f"🔍 Querying {len(urls)} URLs in GA4 property {client.property_id}")

    records: List[MetricsRecord] = []
    for i, url in enumerate(urls):
        if i and pause > 0:
            time.sleep(pause)
        records.append(fetch_url_record(endpoints, url, window))

    csv_path = Path(store_repo.data_dir) / report_filename(now)
    write_report(records, csv_path)
    store_repo.consolidate_incremental(csv_path)
    execution_id = parse_execution_filename(csv_path.name).execution_id

    result = ReportResult(
        csv_path=str(csv_path),
        execution_id=execution_id,
        query_date=window.start_date,
        total_urls=len(records),
        successful=sum(1 for r in records if r.data_found),
        with_warnings=sum(1 for r in records if r.warnings),
        with_insights=sum(1 for r in records if r.insights),
        errors=sum(1 for r in records if not r.data_found),
    )
    logger.info(
        f"📊 Summary: {result.successful}/{result.total_urls} successful, "
        f"{result.with_warnings} with warnings, {result.errors} without data",
        extra={"execution_id": execution_id},
    )
    return result
