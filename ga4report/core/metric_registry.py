"""GA4 Reports: Metric & CSV Column Registry.

Single source for the metrics collected per URL, the GA4 metric each one is
read from, and the CSV header title it is written under. The CSV titles are
the historical on-disk format; changing them breaks reading older reports.
"""

from enum import Enum
from typing import Dict, List


class MetricType(str, Enum):
    """How a metric is categorised."""

    COUNT = "count"  # Integer volumes: views, sessions, users
    RATE = "rate"  # Percentages in [0, 100]
    DURATION = "duration"  # Seconds


class MetricDefinition:
    """Describes a single per-URL metric."""

    def __init__(
        self,
        name: str,
        metric_type: MetricType,
        csv_column: str,
        ga4_metric: str = "",
        description: str = "",
    ):
        self.name = name
        self.metric_type = metric_type
        self.csv_column = csv_column
        self.ga4_metric = ga4_metric
        self.description = description

    @property
    def is_integer(self) -> bool:
        return self.metric_type == MetricType.COUNT

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.metric_type.value})>"


# ─────────────────────────────────────────────
# URL METRICS: in CSV column order
# ─────────────────────────────────────────────

URL_METRICS: Dict[str, MetricDefinition] = {
    "views": MetricDefinition(
        "views", MetricType.COUNT, "Vistas página", "screenPageViews", "Page views"
    ),
    "sessions": MetricDefinition(
        "sessions", MetricType.COUNT, "Sesiones", "sessions", "Sessions"
    ),
    "active_users": MetricDefinition(
        "active_users", MetricType.COUNT, "Usuarios activos", "activeUsers"
    ),
    "new_users": MetricDefinition(
        "new_users", MetricType.COUNT, "Usuarios nuevos", "newUsers"
    ),
    "engaged_sessions": MetricDefinition(
        "engaged_sessions",
        MetricType.COUNT,
        "Sesiones comprometidas",
        "engagedSessions",
    ),
    "engagement_rate": MetricDefinition(
        "engagement_rate",
        MetricType.RATE,
        "Tasa compromiso (%)",
        description="engagedSessions / sessions * 100",
    ),
    "avg_duration": MetricDefinition(
        "avg_duration",
        MetricType.DURATION,
        "Duración prom. (s)",
        "averageSessionDuration",
        "Session-weighted average session duration",
    ),
    "bounce_rate": MetricDefinition(
        "bounce_rate",
        MetricType.RATE,
        "Tasa rebote (%)",
        "bounceRate",
        "Session-weighted bounce rate, scaled to percent",
    ),
}


# ─────────────────────────────────────────────
# CSV LAYOUT
# ─────────────────────────────────────────────

COL_URL = "URL"
COL_QUERY_DATE = "Fecha consulta"
COL_DATA_FOUND = "Datos encontrados"
COL_BREAKDOWN = "Desglose por fuente"
COL_WARNINGS = "Advertencias"
COL_INSIGHTS = "Insights"

CSV_COLUMNS: List[str] = [
    COL_URL,
    COL_QUERY_DATE,
    *(m.csv_column for m in URL_METRICS.values()),
    COL_DATA_FOUND,
    COL_BREAKDOWN,
    COL_WARNINGS,
    COL_INSIGHTS,
]

# Separator used to flatten warnings/insights lists into one CSV cell
LIST_SEPARATOR = "; "

# GA4 metrics requested per URL, in response column order
GA4_REPORT_METRICS: List[str] = [
    "screenPageViews",
    "sessions",
    "averageSessionDuration",
    "bounceRate",
    "activeUsers",
    "newUsers",
    "engagedSessions",
]
