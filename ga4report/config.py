"""GA4 Reports: Central Configuration via Pydantic Settings."""

from typing import List, Optional

from pydantic_settings import BaseSettings


class ConfigurationError(Exception):
    """Raised when a required setting for the fetch step is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Google Analytics 4 ──
    ga4_property_id: str = ""
    ga4_timezone: str = "America/Mexico_City"
    ga4_credentials_path: str = "./credentials/ga4-credentials.json"
    google_credentials: Optional[str] = None  # Inline service-account JSON

    # ── Google Sheets (optional URL source) ──
    google_sheet_id: str = ""
    google_sheet_range: str = "URLs!A:A"

    # ── Storage ──
    data_dir: str = "./data"
    consolidated_json: str = "./data/consolidated-reports.json"
    url_config_path: str = "./config/urls.json"
    url_cache_path: str = "./config/urls-cache.json"

    # ── Scheduler ──
    scheduler_enabled: bool = True
    schedule_hours: str = "0,6,12,18"
    run_on_startup: bool = False
    log_dir: str = "./logs"
    max_log_files: int = 7
    retry_attempts: int = 0  # 0 = no retry, wait for the next tick
    retry_delay_seconds: float = 60.0

    # ── Fetch ──
    request_pause_seconds: float = 0.2

    # ── App ──
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    @property
    def schedule_hour_list(self) -> List[int]:
        """Parse `schedule_hours` into a sorted list of clock hours."""
        hours = {int(h) for h in self.schedule_hours.split(",") if h.strip()}
        return sorted(h for h in hours if 0 <= h <= 23)

    def require_property_id(self) -> str:
        """Return the GA4 property id or fail the fetch step."""
        if not self.ga4_property_id:
            raise ConfigurationError(
                "GA4_PROPERTY_ID is not set in the environment"
            )
        return self.ga4_property_id

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
