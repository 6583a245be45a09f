"""GA4 Reports: Google Analytics 4 Data API Client.

Handles credential loading and wraps ``BetaAnalyticsDataClient`` so callers
only ever see ``GA4APIError``.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import RunReportRequest, RunReportResponse
from google.api_core import exceptions as google_exceptions
from google.oauth2 import service_account

from ga4report.config import ConfigurationError, settings
from ga4report.core.logging import get_logger

logger = get_logger("ga4.client")


class GA4APIError(Exception):
    """Raised when the GA4 Data API call fails."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


def load_credentials_info() -> Dict[str, Any]:
    """Service-account info from ``GOOGLE_CREDENTIALS`` or the credentials file."""
    if settings.google_credentials:
        logger.info("📡 Loading Google credentials from environment")
        try:
            return json.loads(settings.google_credentials)
        except ValueError as e:
            raise ConfigurationError(f"GOOGLE_CREDENTIALS is not valid JSON: {e}") from e

    path = Path(settings.ga4_credentials_path).resolve()
    if not path.is_file():
        raise ConfigurationError(
            f"Credentials file not found: {path}. "
            "Set GOOGLE_CREDENTIALS or GA4_CREDENTIALS_PATH"
        )
    logger.info(f"Loading Google credentials from {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_credentials(scopes: Optional[list] = None) -> service_account.Credentials:
    return service_account.Credentials.from_service_account_info(
        load_credentials_info(), scopes=scopes
    )


class GA4Client:
    """Thin synchronous wrapper around the GA4 Data API."""

    def __init__(
        self,
        property_id: str | None = None,
        client: BetaAnalyticsDataClient | None = None,
    ):
        self.property_id = property_id or settings.require_property_id()
        self._client = client

    @property
    def property_name(self) -> str:
        return f"properties/{self.property_id}"

    def _get_client(self) -> BetaAnalyticsDataClient:
        if self._client is None:
            self._client = BetaAnalyticsDataClient(credentials=load_credentials())
            logger.info("Connected to Google Analytics 4")
        return self._client

    def run_report(self, request: RunReportRequest) -> RunReportResponse:
        """Run a report request, translating API failures into GA4APIError."""
        try:
            return self._get_client().run_report(request)
        except google_exceptions.GoogleAPICallError as e:
            raise GA4APIError(e.message or str(e), getattr(e, "code", 0) or 0) from e
        except google_exceptions.RetryError as e:
            raise GA4APIError(f"GA4 request retries exhausted: {e}") from e
