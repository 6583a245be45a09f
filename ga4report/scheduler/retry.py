"""GA4 Reports: Run Retry Policies.

The scheduler does not retry by default: a failed run is logged and the next
fixed tick is awaited. A policy only says how long to wait before each
extra attempt.
"""

from typing import List

from ga4report.config import settings


class RetryPolicy:
    """Base policy: no extra attempts."""

    def delays(self) -> List[float]:
        return []


class NoRetry(RetryPolicy):
    pass


class FixedRetry(RetryPolicy):
    """Retry ``attempts`` more times, ``delay`` seconds apart."""

    def __init__(self, attempts: int, delay: float):
        if attempts < 0 or delay < 0:
            raise ValueError("attempts and delay must be non-negative")
        self.attempts = attempts
        self.delay = delay

    def delays(self) -> List[float]:
        return [self.delay] * self.attempts


def policy_from_settings() -> RetryPolicy:
    if settings.retry_attempts > 0:
        return FixedRetry(settings.retry_attempts, settings.retry_delay_seconds)
    return NoRetry()
