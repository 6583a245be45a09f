"""End-to-end fetch step with GA4 mocked: URL resolution, per-URL error
isolation, CSV output and incremental consolidation."""

from datetime import datetime
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import httplib2
import pytest

from ga4report.analyzer.pipeline import fetch_url_record, resolve_urls, run_report
from ga4report.config import ConfigurationError
from ga4report.connectors.ga4.client import GA4APIError
from ga4report.connectors.ga4.endpoints import QueryWindow
from ga4report.connectors.sheets import UrlCache, load_urls_from_sheet
from ga4report.storage import InMemoryStorage

WINDOW = QueryWindow(start_date="2025-05-31", end_date="2025-05-31")
NOW = datetime(2025, 6, 1, 6, 0, tzinfo=ZoneInfo("America/Mexico_City"))

PAGE_ROW = {
    "source": "google", "screenPageViews": "10", "sessions": "8",
    "averageSessionDuration": "20", "bounceRate": "0.5",
    "activeUsers": "7", "newUsers": "2", "engagedSessions": "4",
}


class TestResolveUrls:
    def test_local_config_without_sheet(self, url_repo):
        url_repo.add_url("/a/")
        urls = resolve_urls(url_repo, cache=UrlCache(InMemoryStorage()), sheet_loader=lambda: None)
        assert urls == ["/a/"]

    def test_sheet_wins_and_is_cached(self, url_repo):
        url_repo.add_url("/local/")
        cache = UrlCache(InMemoryStorage())
        urls = resolve_urls(url_repo, cache=cache, sheet_loader=lambda: ["/s1/", "s2", "/s1/"])
        assert urls == ["/s1/", "/s2/"]
        assert cache.load() == ["/s1/", "s2", "/s1/"]

    def test_cache_used_when_sheet_fails(self, url_repo):
        url_repo.add_url("/local/")
        cache = UrlCache(InMemoryStorage())
        cache.save(["/cached/"])
        with patch("ga4report.analyzer.pipeline.settings") as settings:
            settings.google_sheet_id = "sheet-1"
            urls = resolve_urls(url_repo, cache=cache, sheet_loader=lambda: None)
        assert urls == ["/cached/"]

    def test_cache_used_when_sheets_unreachable(self, url_repo):
        url_repo.add_url("/local/")
        cache = UrlCache(InMemoryStorage())
        cache.save(["/cached/"])
        service = MagicMock()
        service.spreadsheets.return_value.values.return_value.get.return_value.execute.side_effect = (
            httplib2.ServerNotFoundError("Unable to find the server at sheets.googleapis.com")
        )
        with patch("ga4report.connectors.sheets.settings") as sheet_settings, \
                patch("ga4report.analyzer.pipeline.settings") as settings:
            sheet_settings.google_sheet_id = settings.google_sheet_id = "sheet-1"
            sheet_settings.google_sheet_range = "URLs!A:A"
            urls = resolve_urls(url_repo, cache=cache, sheet_loader=lambda: load_urls_from_sheet(service))
        assert urls == ["/cached/"]


class TestFetchUrlRecord:
    def test_rows_become_record(self):
        endpoints = MagicMock()
        endpoints.fetch_page_rows.return_value = [PAGE_ROW]
        record = fetch_url_record(endpoints, "/a/", WINDOW)
        assert record.data_found is True
        assert record.metrics.views == 10
        assert record.query_date == "2025-05-31"

    def test_no_rows_runs_similar_lookup(self):
        endpoints = MagicMock()
        endpoints.fetch_page_rows.return_value = []
        endpoints.fetch_similar_paths.return_value = [{"path": "/a/b/", "views": "3"}]
        record = fetch_url_record(endpoints, "/a/", WINDOW)
        assert record.data_found is False
        endpoints.fetch_similar_paths.assert_called_once_with("/a/", WINDOW)

    def test_api_error_becomes_error_record(self):
        endpoints = MagicMock()
        endpoints.fetch_page_rows.side_effect = GA4APIError("quota exceeded", 429)
        record = fetch_url_record(endpoints, "/a/", WINDOW)
        assert record.data_found is False
        assert record.warnings == ["Error: quota exceeded"]

    def test_unexpected_error_becomes_error_record(self):
        endpoints = MagicMock()
        endpoints.fetch_page_rows.side_effect = ValueError("bad row")
        record = fetch_url_record(endpoints, "/a/", WINDOW)
        assert record.data_found is False
        assert record.metrics.views == 0
        assert record.warnings == ["Error: bad row"]

    def test_configuration_error_propagates(self):
        endpoints = MagicMock()
        endpoints.fetch_page_rows.side_effect = ConfigurationError("GA4_PROPERTY_ID is not set")
        with pytest.raises(ConfigurationError):
            fetch_url_record(endpoints, "/a/", WINDOW)


class TestRunReport:
    def test_writes_csv_and_consolidates(self, store_repo, url_repo, tmp_path):
        def page_rows(url, window):
            if url == "/broken/":
                raise GA4APIError("backend error", 500)
            return [PAGE_ROW] if url == "/a/" else []

        endpoints = MagicMock()
        endpoints.fetch_page_rows.side_effect = page_rows
        endpoints.fetch_similar_paths.return_value = []

        with patch("ga4report.analyzer.pipeline.GA4Endpoints", return_value=endpoints):
            result = run_report(
                client=MagicMock(property_id="123"),
                store_repo=store_repo,
                url_repo=url_repo,
                urls=["/a/", "/empty/", "/broken/"],
                now=NOW,
                pause_seconds=0,
            )

        assert result.execution_id == "2025-06-01_06-00"
        assert result.total_urls == 3
        assert result.successful == 1
        assert result.errors == 2
        assert (tmp_path / "report_2025-06-01_06-00.csv").is_file()

        store = store_repo.load()
        execution = store.data["2025-06-01_06-00"]
        assert execution.metadata.total_urls == 3
        assert execution.metadata.successful_urls == 1
        assert execution.urls["/broken/"].warnings == ["Error: backend error"]
        assert store.metadata.distinct_urls == ["/a/", "/empty/", "/broken/"]

    def test_second_run_adds_execution(self, store_repo, url_repo):
        endpoints = MagicMock()
        endpoints.fetch_page_rows.return_value = [PAGE_ROW]

        with patch("ga4report.analyzer.pipeline.GA4Endpoints", return_value=endpoints):
            for hour in (6, 12):
                run_report(
                    client=MagicMock(property_id="123"),
                    store_repo=store_repo,
                    url_repo=url_repo,
                    urls=["/a/"],
                    now=NOW.replace(hour=hour),
                    pause_seconds=0,
                )

        store = store_repo.load()
        assert sorted(store.data) == ["2025-06-01_06-00", "2025-06-01_12-00"]
        assert store.metadata.total_executions == 2

    def test_to_dict(self, store_repo, url_repo):
        with patch("ga4report.analyzer.pipeline.GA4Endpoints", return_value=MagicMock()):
            result = run_report(
                client=MagicMock(property_id="123"),
                store_repo=store_repo,
                url_repo=url_repo,
                urls=[],
                now=NOW,
                pause_seconds=0,
            )
        assert result.to_dict()["total_urls"] == 0
