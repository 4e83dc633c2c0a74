"""
CSV file-drop reader

Export files are named ``<prefix>-<YYYY-MM-DD>.csv`` for the day *after* the
day whose data they hold, so the lookup for a date tries, in order:
date+1, date, date+2 (late delivery). Each file is a two-column
(date, value) table.
"""
import csv
import io
import math
from pathlib import Path
from typing import List, Optional, Union

from funnel_sync.date_window import normalize_date_str, plus_days
from funnel_sync.utils.logger import log

# Filename date offsets tried in order
FILENAME_DAY_OFFSETS = (1, 0, 2)


def _to_number(raw: str) -> Optional[float]:
    try:
        value = float(raw.replace(",", "").strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def detect_delimiter(first_line: str) -> str:
    if "\t" in first_line:
        return "\t"
    if ";" in first_line:
        return ";"
    return ","


def sum_for_date(text: str, date_str: str) -> float:
    """
    Sum the second column of every row whose first column is date_str.

    The first row is treated as a header only when its second field is
    non-numeric. Rows with an empty or non-numeric value are skipped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return 0

    delim = detect_delimiter(lines[0])
    rows = [
        row for row in csv.reader(io.StringIO(text), delimiter=delim)
        if any(cell.strip() for cell in row)
    ]
    if not rows:
        return 0

    first_value = rows[0][1] if len(rows[0]) > 1 else ""
    start = 1 if _to_number(first_value) is None else 0

    total = 0.0
    for row in rows[start:]:
        d_raw = row[0].strip() if row else ""
        n_raw = row[1].strip() if len(row) > 1 else ""
        if not d_raw or not n_raw:
            continue
        n = _to_number(n_raw)
        if n is None:
            continue
        if normalize_date_str(d_raw) == date_str:
            total += n
    return int(total) if total.is_integer() else total


class CsvDropReader:
    """Reads daily totals out of a flat directory of CSV exports"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def candidate_names(self, prefix: str, date_str: str) -> List[str]:
        return [f"{prefix}-{plus_days(date_str, offset)}.csv" for offset in FILENAME_DAY_OFFSETS]

    def find_file(self, prefix: str, date_str: str) -> Optional[Path]:
        """
        First existing candidate file.

        Falls back to a scan for a .csv whose name starts with the prefix and
        contains a candidate date (e.g. re-downloaded ``prefix-2025-09-21 (1).csv``).
        """
        names = self.candidate_names(prefix, date_str)
        for name in names:
            path = self.directory / name
            if path.is_file():
                return path

        if not self.directory.is_dir():
            return None
        file_dates = [plus_days(date_str, offset) for offset in FILENAME_DAY_OFFSETS]
        entries = sorted(p for p in self.directory.iterdir() if p.is_file())
        for file_date in file_dates:
            for path in entries:
                if (path.suffix.lower() == ".csv" and path.name.startswith(prefix)
                        and file_date in path.name):
                    return path
        return None

    def read_total(self, prefix: str, date_str: str) -> float:
        """
        Total for date_str from the matching export, 0 when no file matches.

        Read or parse errors are logged and reported as 0.
        """
        path = self.find_file(prefix, date_str)
        if path is None:
            log.warning(
                f"CSV not found for {prefix} on {date_str}: tried "
                f"{', '.join(self.candidate_names(prefix, date_str))} in {self.directory}"
            )
            return 0

        try:
            text = path.read_text(encoding="utf-8", errors="replace")
            total = sum_for_date(text, date_str)
        except Exception as e:
            log.error(f"CSV parse error for {path.name}: {e}")
            return 0

        log.debug(f"CSV {path.name}: {prefix} total for {date_str} = {total}")
        return total
