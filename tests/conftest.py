"""
Shared fixtures: an in-memory spreadsheet, a scripted GA4 connector and a
CSV drop directory. Nothing here touches the network.
"""
import os

# Console logging only while testing
os.environ.setdefault("LOG_DIR", "")

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from funnel_sync.config import Settings
from funnel_sync.connectors.csv_drop import CsvDropReader
from funnel_sync.exceptions import MissingSheetError
from funnel_sync.models import MetricQuery
from funnel_sync.services.metric_fetcher import MetricFetcher
from funnel_sync.sheets.a1 import parse_cell, parse_range
from funnel_sync.sheets.storage import SheetStorage
from funnel_sync.sheets.upsert import DailyRowUpserter


class InMemorySheetStorage(SheetStorage):
    """Grid of {(row, col): value} per tab; stores formulas as typed."""

    def __init__(self, sheets: Sequence[str] = ()):
        self.cells: Dict[str, Dict[Tuple[int, int], Any]] = {name: {} for name in sheets}
        self.formats: Dict[str, Dict[str, str]] = {name: {} for name in sheets}
        self.writes: List[Tuple[str, str]] = []

    def _grid(self, name: str) -> Dict[Tuple[int, int], Any]:
        if name not in self.cells:
            raise MissingSheetError(name)
        return self.cells[name]

    def has_sheet(self, name: str) -> bool:
        return name in self.cells

    def add_sheet(self, name: str) -> None:
        self.cells[name] = {}
        self.formats[name] = {}

    def read_range(self, name: str, a1_range: str) -> List[List[Any]]:
        grid = self._grid(name)
        c1, r1, c2, r2 = parse_range(a1_range)
        r1 = r1 or 1
        if r2 is None:
            r2 = max([r for (r, _c) in grid] or [0])

        rows = []
        for r in range(r1, r2 + 1):
            row = [grid.get((r, c), "") for c in range(c1, c2 + 1)]
            while row and row[-1] == "":
                row.pop()
            rows.append(row)
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def write_range(self, name: str, a1_range: str, rows: Sequence[Sequence[Any]]) -> None:
        grid = self._grid(name)
        c1, r1, _c2, _r2 = parse_range(a1_range)
        self.writes.append((name, a1_range))
        for i, values in enumerate(rows):
            for j, value in enumerate(values):
                key = (r1 + i, c1 + j)
                if value is None:
                    continue
                if value == "":
                    grid.pop(key, None)
                else:
                    grid[key] = value

    def format_ranges(self, name: str, formats: Dict[str, str]) -> None:
        self._grid(name)
        self.formats[name].update(formats)

    # Test helpers

    def cell(self, name: str, ref: str) -> Any:
        col, row = parse_cell(ref)
        return self._grid(name).get((row, col), "")

    def set_cell(self, name: str, ref: str, value: Any) -> None:
        col, row = parse_cell(ref)
        self._grid(name)[(row, col)] = value

    def row(self, name: str, row: int, width: int = 17) -> List[Any]:
        grid = self._grid(name)
        return [grid.get((row, c), "") for c in range(1, width + 1)]


class FakeGA4Connector:
    """
    Answers metric_total() from a resolver callable.

    The resolver receives the MetricQuery and returns a number or raises.
    Every query is recorded.
    """

    def __init__(self, resolver: Optional[Callable[[MetricQuery], int]] = None):
        self.resolver = resolver or (lambda query: 0)
        self.queries: List[MetricQuery] = []

    def metric_total(self, query: MetricQuery) -> int:
        self.queries.append(query)
        return self.resolver(query)


@pytest.fixture
def storage():
    return InMemorySheetStorage()


@pytest.fixture
def upserter(storage):
    return DailyRowUpserter(storage)


@pytest.fixture
def fake_ga4():
    return FakeGA4Connector()


@pytest.fixture
def csv_dir(tmp_path):
    drop = tmp_path / "drop"
    drop.mkdir()
    return drop


@pytest.fixture
def fetcher(fake_ga4, csv_dir):
    return MetricFetcher(fake_ga4, CsvDropReader(csv_dir))


@pytest.fixture
def settings(csv_dir):
    return Settings(
        _env_file=None,
        ga4_property_id="123456",
        tracking_sheet_id="sheet-id",
        csv_drop_dir=str(csv_dir),
        log_dir="",
        backfill_delay_seconds=0.3,
    )
