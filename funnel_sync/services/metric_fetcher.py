"""
Metric Fetcher

Turns MetricSpecs into numbers for one date. GA4 failures never escape a
single metric: they are logged and reported as 0, so one broken query does
not blank a whole row.
"""
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from funnel_sync.connectors.csv_drop import CsvDropReader
from funnel_sync.connectors.ga4_connector import GA4Connector
from funnel_sync.models import FetchOptions, MetricKind, MetricQuery, MetricSource, MetricSpec
from funnel_sync.utils.logger import log

Number = Union[int, float]


class MetricFetcher:
    """Reads GA4 aggregates and CSV drop totals for a single date"""

    def __init__(self, ga4: GA4Connector, csv_reader: Optional[CsvDropReader] = None):
        self.ga4 = ga4
        self.csv_reader = csv_reader

    def fetch_metric(
        self,
        date_str: str,
        event_name: Optional[str],
        filters: Optional[Mapping[str, Any]] = None,
        kind: MetricKind = MetricKind.EVENT_COUNT
    ) -> int:
        """Aggregate value of one metric on one date (0 on failure)"""
        return self.fetch_range_metric(date_str, date_str, event_name, filters, kind)

    def fetch_range_metric(
        self,
        start_date: str,
        end_date: str,
        event_name: Optional[str],
        filters: Optional[Mapping[str, Any]] = None,
        kind: MetricKind = MetricKind.EVENT_COUNT
    ) -> int:
        """
        Aggregate value of one metric over an inclusive date range.

        Returns:
            The metric total, or 0 when every report strategy failed or the
            response could not be read
        """
        query = MetricQuery(
            event_name=event_name,
            date_start=start_date,
            date_end=end_date,
            equality_filters=filters or {},
            kind=kind
        )
        try:
            return self.ga4.metric_total(query)
        except Exception as e:
            log.warning(
                f"GA4 {kind.value} for {event_name or '*'} {query.equality_filters} "
                f"for {start_date}..{end_date} failed, using 0: {e}"
            )
            return 0

    def fetch_csv_metric(self, prefix: str, date_str: str) -> Number:
        if self.csv_reader is None:
            log.warning(f"No CSV drop directory configured; {prefix} on {date_str} = 0")
            return 0
        return self.csv_reader.read_total(prefix, date_str)

    def fetch_spec(self, date_str: str, spec: MetricSpec, options: FetchOptions) -> Optional[Number]:
        """
        Value for one column spec.

        None means the metric was not attempted (it depends on the AB bucket
        dimension while the toggle is off).
        """
        if spec.source == MetricSource.CSV:
            return self.fetch_csv_metric(spec.csv_prefix, date_str)

        if spec.requires_ab_bucket and not options.ab_bucket_enabled:
            return None

        filters = dict(spec.filters)
        if spec.ab_bucket and options.ab_bucket_enabled:
            filters[options.ab_bucket_dimension] = spec.ab_bucket
        return self.fetch_metric(date_str, spec.event_name, filters, spec.kind)

    def fetch_row(
        self,
        date_str: str,
        specs: Iterable[MetricSpec],
        options: Optional[FetchOptions] = None
    ) -> Dict[str, Optional[Number]]:
        """Values for every spec, keyed by field name"""
        options = options or FetchOptions()
        row: Dict[str, Optional[Number]] = {}
        for spec in specs:
            value = self.fetch_spec(date_str, spec, options)
            if value is None:
                log.debug(f"{date_str} {spec.field}: skipped ({spec.describe()})")
            else:
                log.debug(f"{date_str} {spec.field} = {value} ({spec.describe()})")
            row[spec.field] = value
        return row
