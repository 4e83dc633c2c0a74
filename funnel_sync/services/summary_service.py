"""
AB test summary

Cumulative send-inquiry vs request-a-quote grid on the summary tab:

    row 2: send-inquiry,    p2=false
    row 3: request-a-quote, p2=false
    row 4: send-inquiry,    p2=true
    row 5: request-a-quote, p2=true

    B Users    - activeUsers of trip-cart_price-calculated (bucket + p2)
    C Start    - inquiry_start events (bucket + row's p1 button)
    D Submit   - inquiry_submit_success events (bucket)
    E Purchase - purchase events (bucket)

Users is the sum of daily active users over the period (one query per
day); Start, Submit and Purchase are one event-count query each over the
whole period. The grid is rewritten from scratch each run.
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from funnel_sync.date_window import date_range, format_date, parse_date, yesterday
from funnel_sync.exceptions import InvalidRangeError, MissingSheetError
from funnel_sync.models import FetchOptions, MetricKind
from funnel_sync.services.metric_fetcher import MetricFetcher
from funnel_sync.sheets.layouts import AB_TEST_SUMMARY_SHEET
from funnel_sync.sheets.storage import SheetStorage
from funnel_sync.utils.logger import log

SEND_INQUIRY_BUCKET = "trip-cart-cta:send-inquiry"
REQUEST_QUOTE_BUCKET = "trip-cart-cta:request-a-quote"

PRICE_CALCULATED_EVENT = "trip-cart_price-calculated"
GRID_RANGE = "B2:E5"
UPDATED_CELL = "A8"


@dataclass(frozen=True)
class SummaryRow:
    ab_bucket: str
    p2: bool
    start_button: str


SUMMARY_ROWS = (
    SummaryRow(SEND_INQUIRY_BUCKET, False, "send-inquiry-button"),
    SummaryRow(REQUEST_QUOTE_BUCKET, False, "send-inquiry-button"),
    SummaryRow(SEND_INQUIRY_BUCKET, True, "contact-owner-button"),
    SummaryRow(REQUEST_QUOTE_BUCKET, True, "contact-owner-button"),
)


class AbSummaryJob:
    """Rebuilds the AB summary grid for start_date..yesterday"""

    def __init__(
        self,
        fetcher: MetricFetcher,
        storage: SheetStorage,
        start_date: str,
        options: Optional[FetchOptions] = None,
        sheet_name: str = AB_TEST_SUMMARY_SHEET
    ):
        self.name = "ab_summary"
        self.fetcher = fetcher
        self.storage = storage
        self.start_date = start_date
        self.options = options or FetchOptions()
        self.sheet_name = sheet_name

    def row_values(self, row: SummaryRow, start: str, end: str) -> List[int]:
        bucket = {self.options.ab_bucket_dimension: row.ab_bucket}
        # Daily active users, summed over the period
        users = sum(
            self.fetcher.fetch_metric(
                format_date(day), PRICE_CALCULATED_EVENT,
                {**bucket, "customEvent:p2": row.p2},
                MetricKind.DISTINCT_USERS
            )
            for day in date_range(start, end)
        )
        starts = self.fetcher.fetch_range_metric(
            start, end, "inquiry_start",
            {**bucket, "customEvent:p1": row.start_button}
        )
        submits = self.fetcher.fetch_range_metric(start, end, "inquiry_submit_success", bucket)
        purchases = self.fetcher.fetch_range_metric(start, end, "purchase", bucket)
        return [users, starts, submits, purchases]

    def update(self, today: Optional[date] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Recompute and write the grid plus the last-updated stamp.

        Raises:
            MissingSheetError: the summary tab does not exist
            InvalidRangeError: start date is malformed or after yesterday
        """
        if not self.storage.has_sheet(self.sheet_name):
            raise MissingSheetError(self.sheet_name)

        end = format_date(yesterday(today))
        if parse_date(self.start_date) > parse_date(end):
            raise InvalidRangeError(f"Summary start {self.start_date} is after {end}")

        grid = []
        for i, row in enumerate(SUMMARY_ROWS):
            values = self.row_values(row, self.start_date, end)
            log.info(
                f"Row {i + 2}: Users (B{i + 2}) = {values[0]}, Start (C{i + 2}) = {values[1]}, "
                f"Submit (D{i + 2}) = {values[2]}, Purchase (E{i + 2}) = {values[3]}"
            )
            grid.append(values)

        self.storage.write_range(self.sheet_name, GRID_RANGE, grid)

        stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M:%S")
        self.storage.write_range(self.sheet_name, f"{UPDATED_CELL}:{UPDATED_CELL}", [[stamp]])

        log.info(f"Summary updated through {end}")
        return {"job": self.name, "success": True, "through": end, "grid": grid, "updated_at": stamp}
