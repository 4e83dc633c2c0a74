"""
Google Analytics 4 data connector

Runs single-aggregate runReport queries (event count or distinct users with
exact-match dimension filters). Each query is tried against an ordered list
of strategies, stopping at the first one that answers:

1. the google-analytics-data client library
2. raw REST runReport, once per configured API version

A strategy either returns a ReportResult or raises ReportStrategyError.
"""
import math
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import google.auth
from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import (
    DateRange,
    Filter,
    FilterExpression,
    FilterExpressionList,
    Metric,
    RunReportRequest,
)
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from funnel_sync.config import Settings, get_settings
from funnel_sync.exceptions import ConfigurationError, ReportFailedError, ReportStrategyError
from funnel_sync.models import MetricQuery
from funnel_sync.utils.logger import log

GA4_SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]
GA4_REST_BASE = "https://analyticsdata.googleapis.com"


@dataclass
class ReportResult:
    """Normalized runReport response: metric header names and per-row metric values."""
    metric_headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    strategy: str = ""

    def total(self, metric_name: str) -> int:
        """
        Sum a metric across all returned rows.

        No rows means no matching events (0). Raises ValueError when the
        metric header is missing from a non-empty response or a value is
        not a finite number.
        """
        if not self.rows:
            return 0
        if metric_name not in self.metric_headers:
            raise ValueError(f"metric {metric_name} missing from response headers {self.metric_headers}")
        idx = self.metric_headers.index(metric_name)
        total = 0.0
        for row in self.rows:
            raw = row[idx] if idx < len(row) else None
            value = float(raw or 0)
            if not math.isfinite(value):
                raise ValueError(f"non-numeric {metric_name} value: {raw!r}")
            total += value
        return int(round(total))


def _load_credentials(credentials_path: Optional[str]):
    """Service account file if present, else the host's default credentials."""
    if credentials_path and os.path.exists(credentials_path):
        return service_account.Credentials.from_service_account_file(
            credentials_path,
            scopes=GA4_SCOPES
        )
    credentials, _ = google.auth.default(scopes=GA4_SCOPES)
    return credentials


class ReportStrategy(ABC):
    """One way of executing a runReport request"""

    name: str = "strategy"

    @abstractmethod
    def run(self, property_id: str, query: MetricQuery) -> ReportResult:
        """Execute the query or raise ReportStrategyError"""


class ClientLibraryStrategy(ReportStrategy):
    """runReport through BetaAnalyticsDataClient"""

    name = "client"

    def __init__(self, client: Any = None, credentials_path: Optional[str] = None):
        self.client = client
        self.credentials_path = credentials_path

    def _get_client(self):
        if self.client is None:
            self.client = BetaAnalyticsDataClient(credentials=_load_credentials(self.credentials_path))
        return self.client

    def build_request(self, property_id: str, query: MetricQuery) -> RunReportRequest:
        kwargs: Dict[str, Any] = {
            "property": f"properties/{property_id}",
            "date_ranges": [DateRange(start_date=query.date_start, end_date=query.date_end)],
            "metrics": [Metric(name=query.kind.value)],
            "keep_empty_rows": False,
        }
        expressions = [
            FilterExpression(filter=Filter(
                field_name=name,
                string_filter=Filter.StringFilter(
                    value=value,
                    match_type=Filter.StringFilter.MatchType.EXACT
                )
            ))
            for name, value in query.filter_pairs
        ]
        if expressions:
            kwargs["dimension_filter"] = FilterExpression(
                and_group=FilterExpressionList(expressions=expressions)
            )
        return RunReportRequest(**kwargs)

    def run(self, property_id: str, query: MetricQuery) -> ReportResult:
        try:
            response = self._get_client().run_report(self.build_request(property_id, query))
            headers = [h.name for h in response.metric_headers]
            rows = [[mv.value for mv in r.metric_values] for r in response.rows]
        except Exception as e:
            raise ReportStrategyError(self.name, str(e)) from e
        return ReportResult(metric_headers=headers, rows=rows, strategy=self.name)


class RestApiStrategy(ReportStrategy):
    """runReport over HTTP against one Data API version (v1beta, v1alpha, ...)"""

    def __init__(
        self,
        version: str,
        session: Any = None,
        credentials_path: Optional[str] = None,
        timeout: int = 30
    ):
        self.version = version
        self.name = f"rest:{version}"
        self.session = session
        self.credentials_path = credentials_path
        self.timeout = timeout

    def _get_session(self):
        if self.session is None:
            self.session = AuthorizedSession(_load_credentials(self.credentials_path))
        return self.session

    @staticmethod
    def build_body(query: MetricQuery) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "dateRanges": [{"startDate": query.date_start, "endDate": query.date_end}],
            "metrics": [{"name": query.kind.value}],
            "keepEmptyRows": False,
        }
        expressions = [
            {"filter": {"fieldName": name, "stringFilter": {"value": value, "matchType": "EXACT"}}}
            for name, value in query.filter_pairs
        ]
        if expressions:
            body["dimensionFilter"] = {"andGroup": {"expressions": expressions}}
        return body

    def run(self, property_id: str, query: MetricQuery) -> ReportResult:
        url = f"{GA4_REST_BASE}/{self.version}/properties/{property_id}:runReport"
        try:
            resp = self._get_session().post(url, json=self.build_body(query), timeout=self.timeout)
        except Exception as e:
            raise ReportStrategyError(self.name, str(e)) from e

        if not 200 <= resp.status_code < 300:
            raise ReportStrategyError(self.name, f"HTTP {resp.status_code}: {resp.text[:300]}")

        try:
            payload = resp.json()
            headers = [h["name"] for h in payload.get("metricHeaders", [])]
            rows = [
                [mv.get("value") for mv in r.get("metricValues", [])]
                for r in payload.get("rows", [])
            ]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ReportStrategyError(self.name, f"malformed response: {e}") from e
        return ReportResult(metric_headers=headers, rows=rows, strategy=self.name)


class GA4Connector:
    """Connector for Google Analytics 4"""

    def __init__(self, property_id: str, strategies: Sequence[ReportStrategy]):
        if not property_id:
            raise ConfigurationError("GA4_PROPERTY_ID is not set")
        self.property_id = property_id
        self.strategies = list(strategies)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GA4Connector":
        settings = settings or get_settings()
        strategies: List[ReportStrategy] = [
            ClientLibraryStrategy(credentials_path=settings.ga4_credentials_path)
        ]
        for version in settings.ga4_rest_version_list:
            strategies.append(RestApiStrategy(
                version,
                credentials_path=settings.ga4_credentials_path,
                timeout=settings.ga4_request_timeout
            ))
        return cls(settings.ga4_property_id, strategies)

    def run_report(self, query: MetricQuery) -> ReportResult:
        """Try each strategy in order; raise ReportFailedError if none answers."""
        errors: List[ReportStrategyError] = []
        for strategy in self.strategies:
            try:
                return strategy.run(self.property_id, query)
            except ReportStrategyError as e:
                log.debug(f"GA4 strategy {strategy.name} failed: {e}")
                errors.append(e)
            except Exception as e:
                log.debug(f"GA4 strategy {strategy.name} raised: {e}")
                errors.append(ReportStrategyError(strategy.name, str(e)))
        raise ReportFailedError(errors)

    def metric_total(self, query: MetricQuery) -> int:
        """Aggregate value of the query's metric (raises on failure)"""
        return self.run_report(query).total(query.kind.value)
