"""
Spreadsheet storage interface

The upsert only needs a handful of grid operations; GoogleSheetsStorage
implements them on the Sheets API and tests use an in-memory grid.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence


class SheetStorage(ABC):
    """Addressable grid with named tabs"""

    @abstractmethod
    def has_sheet(self, name: str) -> bool:
        """Whether a tab with this title exists"""

    @abstractmethod
    def add_sheet(self, name: str) -> None:
        """Create an empty tab"""

    @abstractmethod
    def read_range(self, name: str, a1_range: str) -> List[List[Any]]:
        """
        Displayed values of a range, row-major.

        Trailing empty rows and trailing empty cells of each row are
        omitted, so len(result) is the last used row of the range.
        """

    @abstractmethod
    def write_range(self, name: str, a1_range: str, rows: Sequence[Sequence[Any]]) -> None:
        """
        Write values as if typed by a user (strings starting with '=' become
        formulas). None leaves a cell untouched; '' clears it.
        """

    def write_formula(self, name: str, cell: str, formula: str) -> None:
        self.write_range(name, f"{cell}:{cell}", [[formula]])

    @abstractmethod
    def format_ranges(self, name: str, formats: Dict[str, str]) -> None:
        """Apply number format patterns, keyed by A1 range"""
