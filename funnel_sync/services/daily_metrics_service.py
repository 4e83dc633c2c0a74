"""
Daily Metrics Service

A DailyMetricsJob binds a sheet layout to the metric specs that fill it and
runs the fetch -> upsert cycle for one date, a rolling window or a backfill
range. Dates are processed one at a time, oldest first, with a fixed pause
between them.
"""
import time
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from funnel_sync.date_window import (
    WindowMode,
    coerce_date_str,
    format_date,
    normalize_date_str,
    resolve_window,
    yesterday,
)
from funnel_sync.exceptions import InvalidRangeError
from funnel_sync.models import FetchOptions, MetricSpec
from funnel_sync.services.metric_fetcher import MetricFetcher
from funnel_sync.sheets.schema import SheetSchema
from funnel_sync.sheets.upsert import DailyRowUpserter
from funnel_sync.utils.logger import log


class DailyMetricsJob:
    """
    One tracking tab kept up to date from GA4 and the CSV drop.

    Args:
        name: job key used by the scheduler and CLI
        schema: target tab layout
        specs: one MetricSpec per value column
        fetcher: metric source
        upserter: row writer
        options: fetch toggles (AB bucket filter)
        daily_days: dates recomputed by daily_update, ending at yesterday
        default_start: first date used by backfill() when none is given
        delay_seconds: pause between dates
        sleep: pause function (replaced in tests)
    """

    def __init__(
        self,
        name: str,
        schema: SheetSchema,
        specs: Sequence[MetricSpec],
        fetcher: MetricFetcher,
        upserter: DailyRowUpserter,
        options: Optional[FetchOptions] = None,
        daily_days: int = 1,
        default_start: Optional[str] = None,
        delay_seconds: float = 0.3,
        sleep: Callable[[float], Any] = time.sleep
    ):
        self.name = name
        self.schema = schema
        self.specs = list(specs)
        self.fetcher = fetcher
        self.upserter = upserter
        self.options = options or FetchOptions()
        self.daily_days = max(1, daily_days)
        self.default_start = default_start
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def update_for_date(self, date_input: Any = None, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Fetch and upsert the row for one date (default: yesterday UTC).

        Raises:
            MissingSheetError: the tab is absent and is not auto-created
        """
        date_str = coerce_date_str(date_input, today)
        log.info(f"{self.name}: updating {self.schema.name} for {date_str}")

        values = self.fetcher.fetch_row(date_str, self.specs, self.options)
        row = self.upserter.upsert(self.schema, date_str, values)

        log.info(f"{self.name}: wrote {date_str} to row {row}")
        return {"date": date_str, "row": row, "values": values}

    def run_dates(self, dates: Iterable[Any]) -> Dict[str, Any]:
        """
        Process dates in order. A failing date is logged and skipped; a
        missing tab is raised before any date is attempted.
        """
        date_strs = [normalize_date_str(d) for d in dates]
        self.upserter.ensure_sheet(self.schema)

        start = time.time()
        rows_written: List[Dict[str, Any]] = []
        failed: List[Dict[str, str]] = []

        for i, date_str in enumerate(date_strs):
            try:
                result = self.update_for_date(date_str)
                rows_written.append({"date": date_str, "row": result["row"]})
            except Exception as e:
                log.error(f"{self.name}: {date_str} failed: {e}")
                failed.append({"date": date_str, "error": str(e)})

            if i < len(date_strs) - 1 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

        duration = time.time() - start
        log.info(
            f"{self.name}: processed {len(date_strs)} date(s) in {duration:.1f}s "
            f"({len(failed)} failed)"
        )
        return {
            "job": self.name,
            "sheet": self.schema.name,
            "success": not failed,
            "dates_processed": len(date_strs),
            "rows_written": rows_written,
            "failed": failed,
            "duration_seconds": duration,
        }

    def daily_update(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Recompute the last daily_days dates ending at yesterday"""
        if self.daily_days == 1:
            dates = resolve_window(WindowMode.YESTERDAY, today=today)
        else:
            dates = resolve_window(WindowMode.LAST_N_DAYS, days=self.daily_days, today=today)
        return self.run_dates(dates)

    def backfill(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Process every date from start to end inclusive.

        start defaults to the job's first tracked date, end to yesterday UTC.

        Raises:
            InvalidRangeError: malformed bounds or start after end
        """
        start = start or self.default_start
        if not start:
            raise InvalidRangeError(f"{self.name}: no start date given and no default configured")
        end = end or format_date(yesterday(today))
        dates = resolve_window(WindowMode.RANGE, start=start, end=end)
        log.info(f"{self.name}: backfill {start} to {end} ({len(dates)} dates)")
        return self.run_dates(dates)
