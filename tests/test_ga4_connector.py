"""
Tests for the GA4 connector: response totals, request construction and the
ordered strategy chain (client library, then REST versions).
"""
from types import SimpleNamespace

import pytest

from funnel_sync.config import Settings
from funnel_sync.connectors.ga4_connector import (
    ClientLibraryStrategy,
    GA4Connector,
    ReportResult,
    ReportStrategy,
    RestApiStrategy,
)
from funnel_sync.exceptions import ConfigurationError, ReportFailedError, ReportStrategyError
from funnel_sync.models import MetricKind, MetricQuery


def _query(**kwargs):
    defaults = dict(event_name="inquiry_start", date_start="2025-09-20", date_end="2025-09-20")
    defaults.update(kwargs)
    return MetricQuery(**defaults)


class ScriptedStrategy(ReportStrategy):
    """Returns a fixed result or raises a fixed error; counts calls."""

    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    def run(self, property_id, query):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def post(self, url, json=None, timeout=None):
        self.requests.append({"url": url, "json": json, "timeout": timeout})
        return self.response


# ────────────────────────────────────────────
# REPORT RESULT
# ────────────────────────────────────────────


class TestReportResult:

    def test_no_rows_is_zero(self):
        assert ReportResult(metric_headers=[], rows=[]).total("eventCount") == 0

    def test_sums_rows(self):
        result = ReportResult(metric_headers=["eventCount"], rows=[["3"], ["4"]])
        assert result.total("eventCount") == 7

    def test_picks_named_metric(self):
        result = ReportResult(metric_headers=["eventCount", "activeUsers"], rows=[["30", "12"]])
        assert result.total("activeUsers") == 12

    def test_missing_header_raises(self):
        with pytest.raises(ValueError):
            ReportResult(metric_headers=["eventCount"], rows=[["3"]]).total("activeUsers")

    def test_non_numeric_value_raises(self):
        with pytest.raises(ValueError):
            ReportResult(metric_headers=["eventCount"], rows=[["abc"]]).total("eventCount")
        with pytest.raises(ValueError):
            ReportResult(metric_headers=["eventCount"], rows=[["nan"]]).total("eventCount")


# ────────────────────────────────────────────
# REQUEST CONSTRUCTION
# ────────────────────────────────────────────


class TestRequestBody:

    def test_event_filter_first_then_params(self):
        query = _query(
            event_name="trip-cart_price-calculated",
            equality_filters={"customEvent:p2": False},
        )
        body = RestApiStrategy.build_body(query)
        expressions = body["dimensionFilter"]["andGroup"]["expressions"]
        assert [e["filter"]["fieldName"] for e in expressions] == ["eventName", "customEvent:p2"]
        assert expressions[1]["filter"]["stringFilter"] == {"value": "false", "matchType": "EXACT"}
        assert body["metrics"] == [{"name": "eventCount"}]
        assert body["dateRanges"] == [{"startDate": "2025-09-20", "endDate": "2025-09-20"}]

    def test_sitewide_total_has_no_filter(self):
        body = RestApiStrategy.build_body(_query(event_name=None, kind=MetricKind.DISTINCT_USERS))
        assert "dimensionFilter" not in body
        assert body["metrics"] == [{"name": "activeUsers"}]

    def test_client_request(self):
        query = _query(equality_filters={"customEvent:p1": "true"}, kind=MetricKind.DISTINCT_USERS)
        request = ClientLibraryStrategy(client=object()).build_request("123", query)
        assert request.property == "properties/123"
        assert request.metrics[0].name == "activeUsers"
        expressions = request.dimension_filter.and_group.expressions
        assert expressions[0].filter.field_name == "eventName"
        assert expressions[0].filter.string_filter.value == "inquiry_start"
        assert expressions[1].filter.field_name == "customEvent:p1"


# ────────────────────────────────────────────
# STRATEGIES
# ────────────────────────────────────────────


class TestRestApiStrategy:

    def test_success(self):
        session = FakeSession(FakeResponse(200, {
            "metricHeaders": [{"name": "eventCount", "type": "TYPE_INTEGER"}],
            "rows": [{"metricValues": [{"value": "42"}]}],
        }))
        strategy = RestApiStrategy("v1beta", session=session)
        result = strategy.run("123", _query())

        assert session.requests[0]["url"] == (
            "https://analyticsdata.googleapis.com/v1beta/properties/123:runReport"
        )
        assert result.strategy == "rest:v1beta"
        assert result.total("eventCount") == 42

    def test_empty_report(self):
        session = FakeSession(FakeResponse(200, {"metricHeaders": [{"name": "eventCount"}]}))
        result = RestApiStrategy("v1alpha", session=session).run("123", _query())
        assert result.total("eventCount") == 0

    def test_http_error(self):
        session = FakeSession(FakeResponse(403, text="PERMISSION_DENIED"))
        with pytest.raises(ReportStrategyError) as exc:
            RestApiStrategy("v1beta", session=session).run("123", _query())
        assert exc.value.strategy == "rest:v1beta"
        assert "HTTP 403" in str(exc.value)

    def test_malformed_body(self):
        session = FakeSession(FakeResponse(200, payload=None))
        with pytest.raises(ReportStrategyError):
            RestApiStrategy("v1beta", session=session).run("123", _query())


class TestClientLibraryStrategy:

    def test_success(self):
        response = SimpleNamespace(
            metric_headers=[SimpleNamespace(name="eventCount")],
            rows=[SimpleNamespace(metric_values=[SimpleNamespace(value="5")])],
        )
        client = SimpleNamespace(run_report=lambda request: response)
        result = ClientLibraryStrategy(client=client).run("123", _query())
        assert result.strategy == "client"
        assert result.total("eventCount") == 5

    def test_client_error_wrapped(self):
        def boom(request):
            raise RuntimeError("quota exceeded")

        with pytest.raises(ReportStrategyError) as exc:
            ClientLibraryStrategy(client=SimpleNamespace(run_report=boom)).run("123", _query())
        assert exc.value.strategy == "client"
        assert "quota exceeded" in str(exc.value)


# ────────────────────────────────────────────
# STRATEGY CHAIN
# ────────────────────────────────────────────


class TestGA4Connector:

    def test_stops_at_first_success(self):
        first = ScriptedStrategy("client", error=ReportStrategyError("client", "down"))
        second = ScriptedStrategy("rest:v1beta", result=ReportResult(["eventCount"], [["8"]], "rest:v1beta"))
        third = ScriptedStrategy("rest:v1alpha", result=ReportResult(["eventCount"], [["99"]], "rest:v1alpha"))

        connector = GA4Connector("123", [first, second, third])
        assert connector.metric_total(_query()) == 8
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)

    def test_all_failures_collected(self):
        strategies = [
            ScriptedStrategy("client", error=ReportStrategyError("client", "down")),
            ScriptedStrategy("rest:v1beta", error=RuntimeError("socket closed")),
        ]
        with pytest.raises(ReportFailedError) as exc:
            GA4Connector("123", strategies).run_report(_query())

        assert [e.strategy for e in exc.value.errors] == ["client", "rest:v1beta"]
        assert "socket closed" in str(exc.value)

    def test_no_strategies(self):
        with pytest.raises(ReportFailedError):
            GA4Connector("123", []).run_report(_query())

    def test_property_id_required(self):
        with pytest.raises(ConfigurationError):
            GA4Connector("", [])

    def test_from_settings_order(self):
        settings = Settings(_env_file=None, ga4_property_id="123", ga4_rest_versions="v1beta, v1alpha")
        connector = GA4Connector.from_settings(settings)
        assert [s.name for s in connector.strategies] == ["client", "rest:v1beta", "rest:v1alpha"]
