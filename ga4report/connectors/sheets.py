"""GA4 Reports: Google Sheets URL Source.

Optional source for the URL list. When ``GOOGLE_SHEET_ID`` is set the sheet
wins; the last good sheet read is cached so a Sheets outage falls back to it.
"""

from typing import List, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ga4report.config import ConfigurationError, settings
from ga4report.connectors.ga4.client import load_credentials
from ga4report.core.logging import get_logger
from ga4report.models.report_models import UrlConfig
from ga4report.storage import DocumentStorage, JsonFileStorage

logger = get_logger("sheets")

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"


def load_urls_from_sheet(service=None) -> Optional[List[str]]:
    """Read page paths from the configured sheet range.

    Returns None when no sheet is configured, the sheet is empty, or the
    read fails.
    """
    if not settings.google_sheet_id:
        logger.info("GOOGLE_SHEET_ID not set, using local URL config")
        return None

    try:
        if service is None:
            service = build(
                "sheets",
                "v4",
                credentials=load_credentials(scopes=[SHEETS_SCOPE]),
                cache_discovery=False,
            )
        response = (
            service.spreadsheets()
            .values()
            .get(spreadsheetId=settings.google_sheet_id, range=settings.google_sheet_range)
            .execute()
        )
    except (HttpError, httplib2.HttpLib2Error, GoogleAuthError, ConfigurationError, OSError) as e:
        logger.error(f"❌ Could not load URLs from Google Sheets: {e}")
        return None

    cells = [cell for row in response.get("values", []) for cell in row]
    urls = [c.strip() for c in cells if isinstance(c, str) and c.strip().startswith("/")]
    if not urls:
        logger.warning("No URLs found in Google Sheets")
        return None

    logger.info(f"📊 Loaded {len(urls)} URLs from Google Sheets")
    return urls


class UrlCache:
    """Local copy of the last URL list read from Sheets."""

    def __init__(self, storage: DocumentStorage | None = None):
        self.storage = storage or JsonFileStorage(settings.url_cache_path)

    def save(self, urls: List[str]) -> None:
        cache = UrlConfig(urls=urls, description="Cache of URLs from Google Sheets")
        self.storage.write({**cache.model_dump(by_alias=True), "source": "google-sheets"})
        logger.info("💾 URL cache saved")

    def load(self) -> Optional[List[str]]:
        if not self.storage.exists():
            return None
        try:
            cache = UrlConfig.model_validate(self.storage.read())
        except (OSError, ValueError) as e:
            logger.error(f"❌ Could not read URL cache: {e}")
            return None
        logger.info(f"📂 Loaded {len(cache.urls)} URLs from cache (updated {cache.last_updated})")
        return cache.urls
