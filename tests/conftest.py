"""Shared fixtures for the sheet editor tests."""

import io

import pandas as pd
import pytest

from sheetcore.session import EditorSession
from sheetcore.settings import EditorSettings
from sheetcore.table import Table


@pytest.fixture
def people() -> Table:
    return Table.from_records(
        [
            {"name": "Ada Lovelace", "email": "ada@example.com", "code": "A-1!"},
            {"name": " Grace\tHopper ", "email": "grace@navy.mil", "code": "B@2#"},
            {"name": "alan", "email": "", "code": ""},
        ]
    )


@pytest.fixture
def session(people) -> EditorSession:
    s = EditorSession(EditorSettings())
    s.load_table(people, "people.csv")
    return s


@pytest.fixture
def xlsx_bytes() -> bytes:
    out = io.BytesIO()
    df = pd.DataFrame({"sku": ["A 1", "B 2"], "qty": [3, 4.5], "note": ["x", None]})
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Data", index=False)
        pd.DataFrame({"other": [1]}).to_excel(writer, sheet_name="Second", index=False)
    return out.getvalue()
