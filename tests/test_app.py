"""
Tests for the Streamlit page, driven through streamlit's AppTest.
"""

from streamlit.testing.v1 import AppTest

from sheetcore.operations import RemoveSpaces
from sheetcore.session import EditorSession
from sheetcore.settings import EditorSettings
from sheetcore.table import Table


def make_app(source_name="people.csv"):
    editor = EditorSession(EditorSettings())
    editor.load_table(Table.from_records([{"name": "Ada Lovelace"}, {"name": "Grace"}]), source_name)
    at = AppTest.from_file("../app.py", default_timeout=30)
    at.session_state["editor"] = editor
    return at, editor


def click(at, label):
    next(b for b in at.button if b.label == label).click()
    return at.run()


def test_edit_column_starts_from_a_fresh_draft():
    at, editor = make_app()
    # Values left behind by an earlier dialog on the same column.
    at.session_state["op_kind_name"] = "custom_expression"
    at.session_state["expr_name"] = "value.upper()"
    at.run()

    click(at, "Edit column")

    assert "expr_name" not in at.session_state
    assert editor.state.name == "editing"
    assert editor.state.column == "name"
    assert editor.state.draft == RemoveSpaces()


def test_file_name_is_escaped():
    at, _ = make_app(source_name="<b>bold</b>.csv")
    at.run()
    header = [m.value for m in at.markdown if "file-name" in m.value]
    assert header
    assert "&lt;b&gt;bold&lt;/b&gt;.csv" in header[0]
    assert "<b>bold</b>" not in header[0]
