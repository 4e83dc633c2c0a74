"""
Date-keyed row upsert

One row per date per tab. The date column is scanned before inserting, so
re-running a date overwrites its row in place and never appends a second one.
"""
from typing import Any, Dict, List, Optional

from funnel_sync.date_window import normalize_date_str
from funnel_sync.exceptions import MissingSheetError
from funnel_sync.sheets.a1 import row_range
from funnel_sync.sheets.schema import SheetSchema
from funnel_sync.sheets.storage import SheetStorage
from funnel_sync.utils.logger import log


class DailyRowUpserter:
    """Writes DailyRows into a SheetStorage according to a SheetSchema"""

    def __init__(self, storage: SheetStorage):
        self.storage = storage

    def ensure_sheet(self, schema: SheetSchema) -> None:
        """
        Make sure the tab exists (creating it and its header when allowed).

        Raises:
            MissingSheetError: the tab is absent and the schema does not create it
        """
        if not self.storage.has_sheet(schema.name):
            if not schema.create_if_missing:
                raise MissingSheetError(schema.name)
            self.storage.add_sheet(schema.name)

        if schema.header:
            existing = self.storage.read_range(schema.name, f"A1:{schema.last_column}{schema.header_rows}")
            if not existing:
                self.storage.write_range(
                    schema.name,
                    row_range(1, 1, len(schema.header)),
                    [list(schema.header)]
                )
                log.info(f"Wrote header row on '{schema.name}'")

    def find_row(self, schema: SheetSchema, date_str: str) -> Optional[int]:
        """Row number holding date_str in the date column, or None"""
        rows = self._read_table(schema)
        return self._match_row(schema, rows, date_str)

    def _read_table(self, schema: SheetSchema) -> List[List[Any]]:
        return self.storage.read_range(schema.name, f"A1:{schema.last_column}")

    @staticmethod
    def _match_row(schema: SheetSchema, rows: List[List[Any]], date_str: str) -> Optional[int]:
        for idx in range(schema.first_data_row - 1, len(rows)):
            row = rows[idx]
            cell = row[0] if row else ""
            if normalize_date_str(cell) == date_str:
                return idx + 1
        return None

    def upsert(self, schema: SheetSchema, date_str: str, fields: Dict[str, Any]) -> int:
        """
        Insert or overwrite the row for date_str.

        Values, the date and every ratio formula go out in a single range
        write; number formats follow in one batch.

        Returns:
            The 1-based row number written
        """
        self.ensure_sheet(schema)

        rows = self._read_table(schema)
        row = self._match_row(schema, rows, date_str)
        if row is None:
            row = max(len(rows), schema.header_rows) + 1
            log.debug(f"{schema.name}: appending {date_str} at row {row}")
        else:
            log.debug(f"{schema.name}: updating {date_str} in row {row}")

        values = schema.build_row(date_str, row, fields)
        self.storage.write_range(schema.name, row_range(row, 1, schema.width), [values])
        self.storage.format_ranges(schema.name, schema.formats_for_row(row))
        return row

