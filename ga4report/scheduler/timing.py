"""GA4 Reports: Fixed-Hour Schedule Arithmetic."""

from datetime import datetime, timedelta
from typing import List, Sequence

DEFAULT_HOURS = (0, 6, 12, 18)


def next_fire_time(now: datetime, hours: Sequence[int] = DEFAULT_HOURS) -> datetime:
    """Next instant strictly after ``now`` at one of ``hours`` (minute 0).

    ``now`` keeps its tzinfo; pass an aware datetime in the schedule's
    timezone.
    """
    ordered = sorted(set(hours))
    if not ordered:
        raise ValueError("at least one schedule hour is required")

    for hour in ordered:
        candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
        if candidate > now:
            return candidate

    tomorrow = now + timedelta(days=1)
    return tomorrow.replace(hour=ordered[0], minute=0, second=0, microsecond=0)


def upcoming_fire_times(
    now: datetime, hours: Sequence[int] = DEFAULT_HOURS, count: int = 5
) -> List[datetime]:
    times: List[datetime] = []
    current = now
    for _ in range(count):
        current = next_fire_time(current, hours)
        times.append(current)
    return times
