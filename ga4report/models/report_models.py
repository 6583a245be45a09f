"""GA4 Reports: Consolidated Store Models.

The persisted JSON uses camelCase keys; attributes are snake_case and the
aliases are generated. Always dump with ``by_alias=True``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Base model serialising to camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────
# RECORDS: one URL within one execution
# ─────────────────────────────────────────────


class Metrics(CamelModel):
    """Per-URL metric values."""

    views: int = 0
    sessions: int = 0
    active_users: int = 0
    new_users: int = 0
    engaged_sessions: int = 0
    engagement_rate: float = 0.0
    avg_duration: float = 0.0
    bounce_rate: float = 0.0


class MetricsRecord(CamelModel):
    """Normalized metrics for one URL in one execution.

    ``processed_at`` is when the row was parsed, not when the analytics
    events happened.
    """

    url: str
    query_date: str = ""
    metrics: Metrics = Field(default_factory=Metrics)
    data_found: bool = False
    traffic_breakdown: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    processed_at: str = Field(default_factory=utc_now_iso)


# ─────────────────────────────────────────────
# EXECUTIONS
# ─────────────────────────────────────────────


class ExecutionMetadata(CamelModel):
    date: str
    time: str
    timestamp: str
    source_file: str
    total_urls: int = 0
    successful_urls: int = 0  # dataFound == true
    urls_with_data: int = 0  # views > 0


class Execution(CamelModel):
    """One completed run of the fetch step."""

    id: str
    metadata: ExecutionMetadata
    urls: Dict[str, MetricsRecord] = Field(default_factory=dict)


# ─────────────────────────────────────────────
# CONSOLIDATED STORE: persisted root entity
# ─────────────────────────────────────────────


class SourceFileEntry(CamelModel):
    file: str
    execution_id: str
    date: str
    time: str
    record_count: int = 0


class StoreMetadata(CamelModel):
    total_executions: int = 0
    distinct_urls: List[str] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utc_now_iso)
    source_files: List[SourceFileEntry] = Field(default_factory=list)


class ConsolidatedStore(CamelModel):
    """Cumulative store of every execution, keyed by execution id."""

    data: Dict[str, Execution] = Field(default_factory=dict)
    metadata: StoreMetadata = Field(default_factory=StoreMetadata)


# ─────────────────────────────────────────────
# URL CONFIG: independent store
# ─────────────────────────────────────────────


class UrlConfig(CamelModel):
    urls: List[str] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utc_now_iso)
    description: str = "URLs to query in Google Analytics 4"
