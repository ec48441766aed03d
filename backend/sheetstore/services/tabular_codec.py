"""Conversion between spreadsheet rows and stored ``rowsData`` records.

Document records cannot hold nested arrays, so each row is stored as a flat
mapping of positional keys (``col_0``, ``col_1``, ...) plus a ``rowIndex``
field recording the original row order. Every cell is stored as text; numbers
and booleans keep only their string form after a round trip.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

ROW_INDEX_KEY = "rowIndex"


class CellKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    EMPTY = "empty"


@dataclass(frozen=True)
class Cell:
    """A single spreadsheet value, tagged with its kind"""
    kind: CellKind
    value: Any = None

    @classmethod
    def from_value(cls, value: Any) -> "Cell":
        if isinstance(value, Cell):
            return value
        if value is None:
            return EMPTY_CELL
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return cls(CellKind.BOOLEAN, value)
        if isinstance(value, (int, float)):
            if isinstance(value, float) and math.isnan(value):
                return EMPTY_CELL
            return cls(CellKind.NUMBER, value)
        return cls(CellKind.STRING, str(value))

    def as_text(self) -> str:
        if self.kind is CellKind.EMPTY:
            return ""
        if self.kind is CellKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind is CellKind.NUMBER:
            return format_number(self.value)
        return self.value


EMPTY_CELL = Cell(CellKind.EMPTY)


def format_number(value: Any) -> str:
    """Render a number the way spreadsheet tools display it (``3.0`` -> ``"3"``)"""
    if isinstance(value, float):
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def cell_text(value: Any) -> str:
    return Cell.from_value(value).as_text()


def column_key(index: int) -> str:
    return f"col_{index}"


@dataclass
class TabularDataset:
    """One uploaded sheet: header names plus positional data rows"""
    headers: List[str]
    rows: List[List[Any]]
    file_name: str
    row_count: int = field(init=False)

    def __post_init__(self) -> None:
        self.row_count = len(self.rows)


def encode_rows(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """
    Flatten rows into stored records.

    Every row yields exactly one record with ``rowIndex`` set to its position.
    Missing cells become empty strings; cells past the last header are
    dropped on purpose.
    """
    column_count = len(headers)
    records: List[Dict[str, Any]] = []
    for index, row in enumerate(rows):
        record: Dict[str, Any] = {ROW_INDEX_KEY: index}
        for position in range(column_count):
            value = row[position] if position < len(row) else None
            record[column_key(position)] = cell_text(value)
        records.append(record)
    return records


def decode_rows(headers: Sequence[str], rows_data: Optional[Sequence[Dict[str, Any]]]) -> List[List[str]]:
    """
    Rebuild positional rows from stored records.

    Rows come back in the order the store returned them; ``rowIndex`` is not
    used for re-sorting.
    """
    column_count = len(headers)
    return [
        [record.get(column_key(position), "") for position in range(column_count)]
        for record in rows_data or []
    ]
