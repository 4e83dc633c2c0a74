"""A1-notation helpers"""
import re
from typing import Optional, Tuple

_CELL_RE = re.compile(r"^([A-Za-z]+)(\d*)$")


def column_letter(index: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA"""
    if index < 1:
        raise ValueError(f"column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def column_index(letter: str) -> int:
    """A -> 1, Z -> 26, AA -> 27"""
    index = 0
    for ch in letter.upper():
        if not "A" <= ch <= "Z":
            raise ValueError(f"invalid column letter: {letter!r}")
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index


def parse_cell(ref: str) -> Tuple[int, Optional[int]]:
    """'B7' -> (2, 7); 'B' -> (2, None)"""
    m = _CELL_RE.match(ref.strip())
    if not m:
        raise ValueError(f"invalid cell reference: {ref!r}")
    col = column_index(m.group(1))
    row = int(m.group(2)) if m.group(2) else None
    return col, row


def parse_range(a1: str) -> Tuple[int, Optional[int], int, Optional[int]]:
    """
    'A2:Q10' -> (1, 2, 17, 10). Open-ended rows ('A:A', 'A2:Q') return None
    for the missing row bounds.
    """
    if "!" in a1:
        a1 = a1.split("!", 1)[1]
    start, _, end = a1.partition(":")
    start_col, start_row = parse_cell(start)
    if not end:
        return start_col, start_row, start_col, start_row
    end_col, end_row = parse_cell(end)
    return start_col, start_row, end_col, end_row


def row_range(row: int, first_col: int, last_col: int) -> str:
    return f"{column_letter(first_col)}{row}:{column_letter(last_col)}{row}"
