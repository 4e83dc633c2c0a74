"""
Per-sheet column contracts for date-keyed daily rows.

Column A always holds the date. Value columns are filled from fetched
metrics; ratio columns always receive an IFERROR division formula so the
spreadsheet recomputes them from the latest numerator and denominator.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from funnel_sync.sheets.a1 import column_index, column_letter

DATE_COLUMN = "A"
PERCENT_FORMAT = "0.00%"
COUNT_FORMAT = "#,##0"
DATE_NUMBER_FORMAT = "yyyy-mm-dd"


@dataclass(frozen=True)
class RatioFormula:
    """numerator_col / denominator_col, or fallback when the division fails"""
    numerator: str
    denominator: str
    fallback: str = "0"  # '0' or '""' (blank)

    def render(self, row: int) -> str:
        return f"=IFERROR({self.numerator}{row}/{self.denominator}{row},{self.fallback})"


@dataclass(frozen=True)
class SheetSchema:
    """
    Column layout of one tracking tab.

    Args:
        name: tab title
        columns: field name -> column letter for fetched values
        ratios: column letter -> RatioFormula
        header: header row written when the tab is empty (None = no header)
        create_if_missing: create the tab instead of raising MissingSheetError
        count_format: number format for value columns (None = leave as is)
    """
    name: str
    columns: Dict[str, str]
    ratios: Dict[str, RatioFormula] = field(default_factory=dict)
    header: Optional[Tuple[str, ...]] = None
    create_if_missing: bool = False
    count_format: Optional[str] = None
    header_rows: int = 1

    def __post_init__(self):
        used = [DATE_COLUMN] + list(self.columns.values()) + list(self.ratios)
        if len(used) != len(set(used)):
            raise ValueError(f"{self.name}: overlapping column assignments {used}")

    @property
    def first_data_row(self) -> int:
        return self.header_rows + 1

    @property
    def width(self) -> int:
        used = [DATE_COLUMN] + list(self.columns.values()) + list(self.ratios)
        return max(column_index(c) for c in used)

    @property
    def last_column(self) -> str:
        return column_letter(self.width)

    def build_row(self, date_str: str, row: int, fields: Dict[str, Any]) -> List[Any]:
        """
        Full A..last_column row for one write.

        Fields not present in `fields` stay None (cell untouched); a present
        None is written as '' (blank). Unknown fields raise KeyError.
        """
        unknown = set(fields) - set(self.columns)
        if unknown:
            raise KeyError(f"{self.name}: unknown fields {sorted(unknown)}")

        values: List[Any] = [None] * self.width
        values[0] = date_str
        for name, value in fields.items():
            values[column_index(self.columns[name]) - 1] = "" if value is None else value
        for col, ratio in self.ratios.items():
            values[column_index(col) - 1] = ratio.render(row)
        return values

    def formats_for_row(self, row: int) -> Dict[str, str]:
        formats = {f"{DATE_COLUMN}{row}:{DATE_COLUMN}{row}": DATE_NUMBER_FORMAT}
        for col in self.ratios:
            formats[f"{col}{row}:{col}{row}"] = PERCENT_FORMAT
        if self.count_format:
            for col in self.columns.values():
                formats[f"{col}{row}:{col}{row}"] = self.count_format
        return formats
