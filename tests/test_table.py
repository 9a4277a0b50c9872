"""
Tests for the table model and the table store.
"""

import datetime as dt

import numpy as np
import pandas as pd

from sheetcore.table import Table, TableStore, normalize_cell


def test_normalize_cell_missing_values():
    """None, NaN and pd.NA all become empty text."""
    assert normalize_cell(None) == ""
    assert normalize_cell(float("nan")) == ""
    assert normalize_cell(pd.NA) == ""
    assert normalize_cell(np.nan) == ""


def test_normalize_cell_numbers():
    """Integral floats drop the trailing .0, other numbers keep their text."""
    assert normalize_cell(3) == "3"
    assert normalize_cell(3.0) == "3"
    assert normalize_cell(np.float64(4.0)) == "4"
    assert normalize_cell(np.int64(7)) == "7"
    assert normalize_cell(4.5) == "4.5"


def test_normalize_cell_other_types():
    assert normalize_cell(True) == "true"
    assert normalize_cell(np.bool_(False)) == "false"
    assert normalize_cell(dt.date(2024, 1, 2)) == "2024-01-02"
    assert normalize_cell(pd.Timestamp("2024-01-02")) == "2024-01-02"
    assert normalize_cell(pd.Timestamp("2024-01-02 10:30")) == "2024-01-02T10:30:00"
    assert normalize_cell("  kept  ") == "  kept  "


def test_from_records_unions_columns_in_first_seen_order():
    """Columns missing from the first row are still picked up and backfilled."""
    table = Table.from_records([{"a": "1"}, {"b": "2", "a": "3"}, {"c": None}])
    assert table.columns == ["a", "b", "c"]
    assert table.rows == [
        {"a": "1", "b": "", "c": ""},
        {"a": "3", "b": "2", "c": ""},
        {"a": "", "b": "", "c": ""},
    ]


def test_from_records_explicit_columns_without_rows():
    table = Table.from_records([], columns=["x", "y"])
    assert table.columns == ["x", "y"]
    assert table.is_empty
    assert len(table) == 0


def test_from_frame_and_to_frame():
    df = pd.DataFrame({"a": [1, 2], "b": ["x", None]})
    table = Table.from_frame(df)
    assert table.columns == ["a", "b"]
    assert table.rows == [{"a": "1", "b": "x"}, {"a": "2", "b": ""}]

    back = table.to_frame()
    assert list(back.columns) == ["a", "b"]
    assert back.to_dict(orient="records") == table.rows


def test_head_copies_rows():
    table = Table.from_records([{"a": str(i)} for i in range(20)])
    head = table.head(5)
    assert len(head) == 5
    head.rows[0]["a"] = "changed"
    assert table.rows[0]["a"] == "0"


def test_column_values():
    table = Table.from_records([{"a": "1"}, {"a": "2"}])
    assert table.column_values("a") == ["1", "2"]


def test_table_store_lifecycle():
    store = TableStore()
    assert store.row_count == 0
    assert store.source_name is None

    first = Table.from_records([{"a": "1"}])
    store.load(first, "first.csv")
    assert store.table is first
    assert store.source_name == "first.csv"

    second = Table.from_records([{"a": "2"}, {"a": "3"}])
    store.replace(second)
    assert store.table is second
    assert store.row_count == 2
    assert store.source_name == "first.csv"

    store.clear()
    assert store.table.is_empty
    assert store.source_name is None
