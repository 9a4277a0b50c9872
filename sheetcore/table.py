from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

Row = Dict[str, str]


def normalize_cell(value: object) -> str:
    """Coerce a decoded cell (or an expression result) to its text form."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return ""
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        out = float(value)
        if out.is_integer():
            return str(int(out))
        return repr(out)
    if isinstance(value, (pd.Timestamp, dt.datetime)):
        if value.hour == value.minute == value.second == 0 and not value.microsecond:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class Table:
    columns: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[object, object]], *, columns: Optional[Sequence[object]] = None) -> "Table":
        """Build a table whose column list is the union of keys over all records.

        Columns keep first-seen order; a record missing a column gets ``""``.
        """
        ordered: List[str] = [str(c) for c in (columns or [])]
        seen = set(ordered)
        keyed: List[Dict[str, object]] = []
        for rec in records:
            item = {str(k): v for k, v in rec.items()}
            for key in item:
                if key not in seen:
                    seen.add(key)
                    ordered.append(key)
            keyed.append(item)
        rows = [{c: normalize_cell(item.get(c)) for c in ordered} for item in keyed]
        return cls(columns=ordered, rows=rows)

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "Table":
        df = df.loc[:, ~df.columns.duplicated()]
        return cls.from_records(df.to_dict(orient="records"), columns=list(df.columns))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.columns, dtype=object)

    def head(self, n: int) -> "Table":
        return Table(columns=list(self.columns), rows=[dict(r) for r in self.rows[: max(0, n)]])

    def column_values(self, column: str) -> List[str]:
        return [row.get(column, "") for row in self.rows]

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def __len__(self) -> int:
        return len(self.rows)


class TableStore:
    """Session-scoped holder of the one table being edited."""

    def __init__(self) -> None:
        self.table = Table()
        self.source_name: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.table)

    def load(self, table: Table, source_name: Optional[str] = None) -> None:
        self.table = table
        self.source_name = source_name
        logger.info("Loaded %s: %d rows, %d columns", source_name or "<table>", len(table), len(table.columns))

    def replace(self, table: Table) -> None:
        self.table = table
        logger.info("Committed table: %d rows, %d columns", len(table), len(table.columns))

    def clear(self) -> None:
        self.table = Table()
        self.source_name = None
