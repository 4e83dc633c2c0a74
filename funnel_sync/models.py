"""
Plain data passed between the date window, the metric fetcher and the row upsert.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


class MetricKind(str, Enum):
    """GA4 metric requested by a query; one kind per query."""
    EVENT_COUNT = "eventCount"
    DISTINCT_USERS = "activeUsers"


class MetricSource(str, Enum):
    GA4 = "ga4"
    CSV = "csv"


@dataclass(frozen=True)
class MetricQuery:
    """
    A single aggregate GA4 read.

    event_name=None means no event filter (site-wide total).
    equality_filters maps a GA4 dimension (e.g. 'customEvent:p2') to the
    exact string value it must match; filters are applied in insertion order.
    """
    event_name: Optional[str]
    date_start: str
    date_end: str
    equality_filters: Mapping[str, str] = field(default_factory=dict)
    kind: MetricKind = MetricKind.EVENT_COUNT

    def __post_init__(self):
        # GA4 stores boolean params as 'true'/'false'
        filters = {
            str(k): (str(v).lower() if isinstance(v, bool) else str(v))
            for k, v in dict(self.equality_filters).items()
        }
        object.__setattr__(self, "equality_filters", filters)

    @property
    def filter_pairs(self) -> Tuple[Tuple[str, str], ...]:
        pairs = []
        if self.event_name is not None:
            pairs.append(("eventName", self.event_name))
        pairs.extend(self.equality_filters.items())
        return tuple(pairs)


@dataclass(frozen=True)
class FetchOptions:
    """Per-call toggles for the metric fetcher."""
    ab_bucket_enabled: bool = False
    ab_bucket_dimension: str = "customEvent:ab_bucket"


@dataclass(frozen=True)
class MetricSpec:
    """
    Where one sheet column's value comes from.

    GA4 specs name an event (or None for site totals), equality filters and a
    metric kind. CSV specs name a file-drop prefix. ab_bucket adds the AB
    bucket filter when the toggle is on; requires_ab_bucket marks columns
    that are not attempted at all while the toggle is off.
    """
    field: str
    source: MetricSource = MetricSource.GA4
    event_name: Optional[str] = None
    filters: Dict[str, str] = field(default_factory=dict)
    kind: MetricKind = MetricKind.EVENT_COUNT
    csv_prefix: Optional[str] = None
    ab_bucket: Optional[str] = None
    requires_ab_bucket: bool = False

    def describe(self) -> str:
        if self.source == MetricSource.CSV:
            return f"csv:{self.csv_prefix}"
        parts = [f"event={self.event_name or '*'}"]
        if self.filters:
            parts.append(f"filters={self.filters}")
        if self.ab_bucket:
            parts.append(f"ab_bucket={self.ab_bucket}")
        parts.append(f"metric={self.kind.value}")
        return ", ".join(parts)
