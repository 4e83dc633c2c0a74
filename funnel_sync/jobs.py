"""
Job registry

Wires settings, connectors, layouts and metric specs into the runnable jobs:

    tripcart_events  - TripCart-Events (event counts, rolling recompute)
    tripcart_users   - TripCart-Users (distinct users)
    ab_test_daily    - AB-Test-SI-RQ-Daily (distinct users per AB bucket)
    ab_summary       - AB-Test-SI-RQ-Summary cumulative grid
"""
import time
from typing import Any, Callable, Dict, List, Optional, Union

from funnel_sync.config import Settings, get_settings
from funnel_sync.connectors.csv_drop import CsvDropReader
from funnel_sync.connectors.ga4_connector import GA4Connector
from funnel_sync.connectors.google_sheets import GoogleSheetsStorage
from funnel_sync.models import FetchOptions, MetricKind, MetricSource, MetricSpec
from funnel_sync.services.daily_metrics_service import DailyMetricsJob
from funnel_sync.services.metric_fetcher import MetricFetcher
from funnel_sync.services.summary_service import (
    REQUEST_QUOTE_BUCKET,
    SEND_INQUIRY_BUCKET,
    AbSummaryJob,
)
from funnel_sync.sheets.layouts import ab_test_daily_schema, tripcart_events_schema, tripcart_users_schema
from funnel_sync.sheets.storage import SheetStorage
from funnel_sync.sheets.upsert import DailyRowUpserter

Job = Union[DailyMetricsJob, AbSummaryJob]

PRICE_CALCULATED = "trip-cart_price-calculated"
BOOK_NOW_CLICK = "trip-cart_book-now-click"
PROCEED_TO_PAYMENT = "trip-cart_book-now-proceed-to-payment-cl"

JOB_NAMES = ("tripcart_events", "tripcart_users", "ab_test_daily", "ab_summary")


def tripcart_specs(settings: Settings, kind: MetricKind) -> List[MetricSpec]:
    """Specs for both TripCart tabs; column B is sessions for events, all users otherwise."""
    if kind == MetricKind.EVENT_COUNT:
        first = MetricSpec("sessions", event_name="session_start", kind=kind)
    else:
        first = MetricSpec("total_users", event_name=None, kind=kind)

    return [
        first,
        MetricSpec("listing_views", event_name="listing_page_view", kind=kind),
        MetricSpec("send_inquiry_cart", event_name=PRICE_CALCULATED,
                   filters={"customEvent:p2": "false"}, kind=kind),
        MetricSpec("inquiry_start", event_name="inquiry_start", kind=kind),
        MetricSpec("inquiry_submit", event_name="inquiry_submit_success", kind=kind),
        MetricSpec("completed_inquiry", source=MetricSource.CSV,
                   csv_prefix=settings.completed_inquiry_prefix),
        MetricSpec("book_now_cart", event_name=PRICE_CALCULATED,
                   filters={"customEvent:p2": "true"}, kind=kind),
        MetricSpec("book_now_click", event_name=BOOK_NOW_CLICK, kind=kind),
        MetricSpec("proceed_to_payment", event_name=PROCEED_TO_PAYMENT, kind=kind),
        MetricSpec("confirmed_ib", source=MetricSource.CSV,
                   csv_prefix=settings.confirmed_ib_prefix),
    ]


def ab_test_daily_specs() -> List[MetricSpec]:
    users = MetricKind.DISTINCT_USERS
    p2_false = {"customEvent:p2": "false"}
    p1_p2_true = {"customEvent:p1": "true", "customEvent:p2": "true"}
    p1_true = {"customEvent:p1": "true"}
    si = dict(ab_bucket=SEND_INQUIRY_BUCKET, kind=users)
    rq = dict(ab_bucket=REQUEST_QUOTE_BUCKET, kind=users, requires_ab_bucket=True)

    return [
        MetricSpec("si_price_calculated", event_name=PRICE_CALCULATED, filters=p2_false, **si),
        MetricSpec("si_inquiry_start", event_name="inquiry_start", **si),
        MetricSpec("rq_price_calculated", event_name=PRICE_CALCULATED, filters=p2_false, **rq),
        MetricSpec("rq_inquiry_start", event_name="inquiry_start", **rq),
        MetricSpec("si_price_calculated_p1", event_name=PRICE_CALCULATED, filters=p1_p2_true, **si),
        MetricSpec("si_book_now_click", event_name=BOOK_NOW_CLICK, **si),
        MetricSpec("si_inquiry_start_p1", event_name="inquiry_start", filters=p1_true, **si),
        MetricSpec("rq_price_calculated_p1", event_name=PRICE_CALCULATED, filters=p1_p2_true, **rq),
        MetricSpec("rq_book_now_click", event_name=BOOK_NOW_CLICK, **rq),
        MetricSpec("rq_inquiry_start_p1", event_name="inquiry_start", filters=p1_true, **rq),
    ]


def build_jobs(
    settings: Optional[Settings] = None,
    storage: Optional[SheetStorage] = None,
    ga4: Optional[GA4Connector] = None,
    sleep: Callable[[float], Any] = time.sleep
) -> Dict[str, Job]:
    """
    Build every job from settings.

    storage and ga4 default to the Google Sheets / GA4 connectors built from
    settings; tests pass in-memory replacements.
    """
    settings = settings or get_settings()
    storage = storage or GoogleSheetsStorage.from_settings(settings)
    ga4 = ga4 or GA4Connector.from_settings(settings)

    fetcher = MetricFetcher(ga4, CsvDropReader(settings.csv_drop_dir))
    upserter = DailyRowUpserter(storage)
    options = FetchOptions(
        ab_bucket_enabled=settings.ab_bucket_enabled,
        ab_bucket_dimension=settings.ab_bucket_dimension
    )
    common = dict(fetcher=fetcher, upserter=upserter, options=options,
                  delay_seconds=settings.backfill_delay_seconds, sleep=sleep)

    return {
        "tripcart_events": DailyMetricsJob(
            "tripcart_events",
            tripcart_events_schema(settings.tripcart_events_sheet),
            tripcart_specs(settings, MetricKind.EVENT_COUNT),
            daily_days=settings.rolling_recalc_days,
            default_start=settings.tripcart_events_start_date,
            **common
        ),
        "tripcart_users": DailyMetricsJob(
            "tripcart_users",
            tripcart_users_schema(settings.tripcart_users_sheet),
            tripcart_specs(settings, MetricKind.DISTINCT_USERS),
            default_start=settings.tripcart_users_start_date,
            **common
        ),
        "ab_test_daily": DailyMetricsJob(
            "ab_test_daily",
            ab_test_daily_schema(),
            ab_test_daily_specs(),
            default_start=settings.ab_test_daily_start_date,
            **common
        ),
        "ab_summary": AbSummaryJob(
            fetcher,
            storage,
            start_date=settings.ab_summary_start_date,
            options=options
        ),
    }


def run_daily(job: Job) -> Dict[str, Any]:
    """Parameterless daily entry point for any job"""
    if isinstance(job, AbSummaryJob):
        return job.update()
    return job.daily_update()
