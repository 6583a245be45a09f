"""Execution identity from report filenames and per-file aggregation."""

from datetime import datetime, timezone

from conftest import make_record

from ga4report.analyzer.execution_aggregator import (
    build_execution,
    parse_execution_filename,
)


class TestParseExecutionFilename:
    def test_standard_name(self):
        info = parse_execution_filename("report_2025-06-01_06-00.csv", tz="UTC")
        assert info.execution_id == "2025-06-01_06-00"
        assert info.date == "2025-06-01"
        assert info.time == "06:00"
        assert info.timestamp == "2025-06-01T06:00:00+00:00"
        assert not info.is_degraded

    def test_local_time_is_converted_to_utc(self):
        info = parse_execution_filename("report_2025-06-01_06-00.csv", tz="Asia/Tokyo")
        assert info.timestamp == "2025-05-31T21:00:00+00:00"

    def test_directory_is_ignored(self):
        info = parse_execution_filename("/data/x/report_2025-06-01_18-30.csv", tz="UTC")
        assert info.execution_id == "2025-06-01_18-30"

    def test_ids_sort_chronologically(self):
        names = [
            "report_2025-06-02_00-00.csv",
            "report_2025-06-01_18-00.csv",
            "report_2025-06-01_06-00.csv",
        ]
        ids = sorted(parse_execution_filename(n, tz="UTC").execution_id for n in names)
        assert ids == ["2025-06-01_06-00", "2025-06-01_18-00", "2025-06-02_00-00"]

    def test_unrecognized_name_degrades(self):
        before = datetime.now(timezone.utc)
        info = parse_execution_filename("manual-export.csv")
        assert info.execution_id == "manual-export"
        assert info.date == "unknown"
        assert info.time == "unknown"
        assert info.is_degraded
        assert datetime.fromisoformat(info.timestamp) >= before


class TestBuildExecution:
    def test_counts(self):
        records = [
            make_record("/a/", views=10, data_found=True),
            make_record("/b/", views=0, data_found=True),
            make_record("/c/", views=0, data_found=False),
        ]
        execution = build_execution(records, "report_2025-06-01_06-00.csv")
        meta = execution.metadata
        assert execution.id == "2025-06-01_06-00"
        assert meta.source_file == "report_2025-06-01_06-00.csv"
        assert meta.total_urls == 3
        assert meta.successful_urls == 2
        assert meta.urls_with_data == 1
        assert list(execution.urls) == ["/a/", "/b/", "/c/"]

    def test_duplicate_url_keeps_last_row(self):
        records = [make_record("/a/", views=1), make_record("/a/", views=2)]
        execution = build_execution(records, "report_2025-06-01_06-00.csv")
        assert execution.urls["/a/"].metrics.views == 2
        assert execution.metadata.total_urls == 2

    def test_empty_file(self):
        execution = build_execution([], "report_2025-06-01_06-00.csv")
        assert execution.urls == {}
        assert execution.metadata.total_urls == 0
