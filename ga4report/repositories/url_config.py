"""GA4 Reports: URL Config Repository.

Manages the list of page paths queried on every run. Paths are stored
normalized (leading and trailing ``/``) with no duplicates.
"""

from typing import Dict, List, Sequence

from ga4report.config import settings
from ga4report.core.logging import get_logger
from ga4report.core.url_utils import normalize_url
from ga4report.models.report_models import UrlConfig, utc_now_iso
from ga4report.storage import DocumentStorage, JsonFileStorage

logger = get_logger("repositories.url_config")


class UrlConfigError(Exception):
    """Raised when a URL-list change is rejected."""

    def __init__(self, message: str, status_code: int = 400, url: str | None = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class UrlConfigRepository:
    """CRUD over the URL config document."""

    def __init__(self, storage: DocumentStorage):
        self.storage = storage

    def load(self) -> UrlConfig:
        """Load the config, creating a default document on first use."""
        if not self.storage.exists():
            config = UrlConfig()
            self.storage.write(config.model_dump(by_alias=True))
            logger.info(f"🆕 Created URL config at {self.storage.location}")
            return config
        return UrlConfig.model_validate(self.storage.read())

    def save(self, config: UrlConfig) -> UrlConfig:
        config.last_updated = utc_now_iso()
        self.storage.write(config.model_dump(by_alias=True))
        return config

    # ── Operations ──

    def list_urls(self) -> UrlConfig:
        return self.load()

    def add_url(self, url: str) -> Dict:
        if not isinstance(url, str) or not url.strip():
            raise UrlConfigError("URL is empty or invalid")

        normalized = normalize_url(url)
        config = self.load()
        if normalized in config.urls:
            raise UrlConfigError(f'URL "{normalized}" already exists', url=normalized)

        config.urls.append(normalized)
        self.save(config)
        logger.info(f"➕ Added URL {normalized}", extra={"url": normalized})
        return {
            "success": True,
            "message": "URL added",
            "url": normalized,
            "total": len(config.urls),
        }

    def remove_url(self, url_or_index: str) -> Dict:
        """Remove by path, or by 1-based position when given digits only."""
        if not url_or_index or not str(url_or_index).strip():
            raise UrlConfigError("A URL or index is required")

        value = str(url_or_index).strip()
        config = self.load()
        index = -1
        removed = value

        if value.isdigit():
            position = int(value) - 1
            if 0 <= position < len(config.urls):
                index = position
                removed = config.urls[index]
        else:
            removed = normalize_url(value)
            if removed in config.urls:
                index = config.urls.index(removed)

        if index == -1:
            raise UrlConfigError(f'URL "{removed}" not found', status_code=404, url=removed)

        config.urls.pop(index)
        self.save(config)
        logger.info(f"➖ Removed URL {removed}", extra={"url": removed})
        return {
            "success": True,
            "message": "URL removed",
            "url": removed,
            "total": len(config.urls),
        }

    def clear_urls(self) -> Dict:
        config = self.load()
        count = len(config.urls)
        config.urls = []
        self.save(config)
        return {"success": True, "message": f"Removed {count} URLs", "count": count}

    def replace_urls(self, urls: Sequence[str]) -> Dict:
        """Replace the whole list; duplicates after normalization are rejected."""
        if isinstance(urls, str) or not isinstance(urls, (list, tuple)):
            raise UrlConfigError("Expected a list of URLs")
        if any(not isinstance(u, str) or not u.strip() for u in urls):
            raise UrlConfigError("URL is empty or invalid")

        normalized: List[str] = [normalize_url(u) for u in urls]
        if len(set(normalized)) != len(normalized):
            raise UrlConfigError("The list contains duplicate URLs")

        config = self.load()
        config.urls = normalized
        self.save(config)
        return {"success": True, "message": "URLs updated", "total": len(config.urls)}


def get_url_repository() -> UrlConfigRepository:
    """Dependency: repository over the configured URL list file."""
    return UrlConfigRepository(JsonFileStorage(settings.url_config_path))
