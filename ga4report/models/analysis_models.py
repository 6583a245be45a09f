"""GA4 Reports: Derived Statistics Models (query API output)."""

from typing import List, Optional

from pydantic import Field

from ga4report.models.report_models import (
    CamelModel,
    ExecutionMetadata,
    MetricsRecord,
)


class UrlExecutionPoint(CamelModel):
    """One URL's headline numbers in one execution."""

    id: str
    date: str
    views: int = 0
    sessions: int = 0
    users: int = 0


class UrlSummary(CamelModel):
    """Cross-execution totals and means for a URL.

    Rates are plain arithmetic means over appearances, not weighted by
    sessions. The totals and success rate keep the published API names.
    """

    appearances: int = 0
    total_views: int = Field(0, alias="totalVistas")
    total_sessions: int = Field(0, alias="totalSesiones")
    total_users: int = Field(0, alias="totalUsuarios")
    avg_engagement_rate: float = 0.0
    avg_bounce_rate: float = 0.0
    success_count: int = 0
    success_rate: float = Field(0.0, alias="tasaExito")


class UrlAggregate(UrlSummary):
    url: str
    executions: List[UrlExecutionPoint] = []


class UrlHistoryEntry(MetricsRecord):
    """A URL record annotated with the execution it belongs to."""

    execution_id: str
    date: str
    time: str
    timestamp: str


class UrlHistory(CamelModel):
    url: str
    search_term: str = ""
    matches: List[str] = []
    total_executions: int = 0
    history: List[UrlHistoryEntry] = []
    summary: UrlSummary = UrlSummary()


class ExecutionListItem(ExecutionMetadata):
    id: str
    urls_processed: int = 0


class ExecutionSummary(CamelModel):
    total_urls: int = 0
    urls_with_data: int = 0
    total_views: int = 0
    total_sessions: int = 0
    total_users: int = 0


class Period(CamelModel):
    from_: str = Field(alias="from")
    to: str


class GlobalStats(CamelModel):
    total_executions: int = 0
    distinct_url_count: int = 0
    last_updated: str = ""
    period: Optional[Period] = None
    urls: List[str] = []
    source_files: int = 0
