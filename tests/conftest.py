"""Shared fixtures: in-memory repositories and report-file builders."""

from pathlib import Path

import pytest

from ga4report.models.report_models import Metrics, MetricsRecord
from ga4report.reports.csv_report import write_report
from ga4report.repositories.consolidated_store import ConsolidationRepository
from ga4report.repositories.url_config import UrlConfigRepository
from ga4report.storage import InMemoryStorage


def make_record(
    url: str,
    views: int = 0,
    sessions: int = 0,
    users: int = 0,
    engagement_rate: float = 0.0,
    bounce_rate: float = 0.0,
    data_found: bool = True,
    query_date: str = "2025-05-31",
) -> MetricsRecord:
    return MetricsRecord(
        url=url,
        query_date=query_date,
        metrics=Metrics(
            views=views,
            sessions=sessions,
            active_users=users,
            engagement_rate=engagement_rate,
            bounce_rate=bounce_rate,
        ),
        data_found=data_found,
    )


@pytest.fixture
def write_csv(tmp_path):
    """Write records to ``tmp_path/<name>`` and return the path."""

    def _write(name: str, records) -> Path:
        return write_report(records, tmp_path / name)

    return _write


@pytest.fixture
def store_storage():
    return InMemoryStorage(location="memory://consolidated-reports.json")


@pytest.fixture
def store_repo(store_storage, tmp_path):
    return ConsolidationRepository(store_storage, data_dir=tmp_path)


@pytest.fixture
def url_repo():
    return UrlConfigRepository(InMemoryStorage(location="memory://urls.json"))
