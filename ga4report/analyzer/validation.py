"""GA4 Reports: Data Sanity Heuristics.

Checks here only annotate a record with warnings/insights. They never
reject data.
"""

from typing import List, Optional, Tuple

from ga4report.models.report_models import Metrics

BOUNCE_ABOVE_100 = "Bounce rate above 100% (calculation error)"
BOUNCE_NEGATIVE = "Negative bounce rate (data error)"
VIEWS_WITHOUT_SESSIONS = "Views without sessions (possible timing inconsistency)"
MULTIPLE_SESSIONS = "Normal: users can have several sessions on the same page"
SHORT_SESSIONS = "More users than sessions may indicate very short sessions"


def bounce_rate_warning(metrics: Metrics) -> Optional[str]:
    """Bounce rate is expected in [0, 100]."""
    if metrics.bounce_rate > 100:
        return BOUNCE_ABOVE_100
    if metrics.bounce_rate < 0:
        return BOUNCE_NEGATIVE
    return None


def validate_consistency(metrics: Metrics) -> Tuple[List[str], List[str]]:
    """Return ``(warnings, insights)`` for one URL's metrics."""
    warnings: List[str] = []
    insights: List[str] = []

    if metrics.sessions > metrics.views > 0:
        insights.append(MULTIPLE_SESSIONS)
    if metrics.views > 0 and metrics.sessions == 0:
        warnings.append(VIEWS_WITHOUT_SESSIONS)

    bounce = bounce_rate_warning(metrics)
    if bounce:
        warnings.append(bounce)

    if metrics.active_users > metrics.sessions > 0:
        insights.append(SHORT_SESSIONS)

    return warnings, insights
