"""
Configuration management for funnel-sync
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Funnel Metrics Sheet Sync"
    environment: str = "development"
    log_level: str = "INFO"
    log_dir: str = "logs"  # Empty = console logging only

    # Google Analytics 4
    ga4_property_id: str = ""
    ga4_credentials_path: str = "./credentials/ga4-credentials.json"
    # REST fallbacks tried in order after the client library (comma-separated)
    ga4_rest_versions: str = "v1beta,v1alpha"
    ga4_request_timeout: int = 30

    # Google Sheets (tracking spreadsheet)
    google_sheets_credentials_path: str = "./credentials/google-sheets-credentials.json"
    tracking_sheet_id: str = ""

    # CSV file drop
    csv_drop_dir: str = "./data/drop"
    completed_inquiry_prefix: str = "daily-bookings-non-ib"
    confirmed_ib_prefix: str = "ib-daily-bookings"

    # Daily / backfill behaviour
    rolling_recalc_days: int = 2  # Recompute the past N days each run to catch late GA4/CSV data
    backfill_delay_seconds: float = 0.3  # Pause between dates (GA4 rate limits)

    # AB test bucket dimension (off until the dimension is live in GA4)
    ab_bucket_enabled: bool = False
    ab_bucket_dimension: str = "customEvent:ab_bucket"

    # Default first dates for backfills with no explicit start
    tripcart_events_start_date: str = "2025-08-01"
    tripcart_users_start_date: str = "2025-09-19"
    ab_test_daily_start_date: str = "2025-09-26"
    ab_summary_start_date: str = "2025-09-26"

    # Sync Schedules (UTC cron)
    tripcart_events_schedule: str = "15 6 * * *"
    tripcart_users_schedule: str = "30 6 * * *"
    ab_test_daily_schedule: str = "45 6 * * *"
    ab_summary_schedule: str = "0 7 * * *"

    # Optional override for the sheet tab names
    tripcart_events_sheet: Optional[str] = None
    tripcart_users_sheet: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def ga4_rest_version_list(self) -> List[str]:
        return [v.strip() for v in self.ga4_rest_versions.split(",") if v.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
