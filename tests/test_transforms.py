"""
Tests for the column transform engine.
"""

import copy
import re

import pytest

from sheetcore.errors import InvalidExpression, UnknownColumn
from sheetcore.operations import CustomExpression, RemoveSpaces, RemoveSpecial, SplitByChar
from sheetcore.table import Table
from sheetcore.transforms import (
    PREVIEW_ROWS,
    apply_operation,
    preview_operation,
    remove_spaces,
    remove_special,
    split_column_name,
)


SAMPLES = ["", "A B C", " lead and trail ", "tab\tnew\nline", "ümlaut nbsp", "A!B@C# 123$%^", "plain"]


@pytest.mark.parametrize("text", SAMPLES)
def test_remove_spaces_strips_every_whitespace_run(text):
    out = remove_spaces(text)
    assert not re.search(r"\s", out)
    assert out == "".join(text.split())


@pytest.mark.parametrize("text", SAMPLES)
def test_remove_special_keeps_letters_digits_spaces_in_order(text):
    out = remove_special(text)
    assert re.fullmatch(r"[A-Za-z0-9 ]*", out)
    assert out == "".join(c for c in text if c in " " or (c.isascii() and c.isalnum()))


def test_remove_special_example():
    assert remove_special("A!B@C# 123$%^") == "ABC 123"


def test_apply_remove_spaces(people):
    result = apply_operation(people, "name", RemoveSpaces())
    assert result.column_values("name") == ["AdaLovelace", "GraceHopper", "alan"]
    assert result.column_values("email") == people.column_values("email")


def test_apply_remove_special(people):
    result = apply_operation(people, "code", RemoveSpecial())
    assert result.column_values("code") == ["A1", "B2", ""]


def test_apply_does_not_mutate_input(people):
    before = copy.deepcopy(people.rows)
    apply_operation(people, "name", RemoveSpaces())
    apply_operation(people, "email", SplitByChar("@"))
    assert people.rows == before
    assert people.columns == ["name", "email", "code"]


@pytest.mark.parametrize(
    "text, delimiter",
    [
        ("user@example.com", "@"),
        ("a,b,c", ","),
        ("no delimiter here", "|"),
        ("ends with -", "-"),
        ("a::b::c", "::"),
        ("", "@"),
    ],
)
def test_split_by_reconstructs_the_original(text, delimiter):
    table = Table.from_records([{"col": text}])
    result = apply_operation(table, "col", SplitByChar(delimiter))
    row = result.rows[0]
    head, tail = row["col"], row["col_split"]
    if delimiter in text:
        assert head + delimiter + tail == text
        assert delimiter not in head
    else:
        assert head == text
        assert tail == ""


def test_split_by_joins_remaining_segments_with_delimiter():
    table = Table.from_records([{"path": "a/b/c"}])
    result = apply_operation(table, "path", SplitByChar("/"))
    assert result.rows == [{"path": "a", "path_split": "b/c"}]


def test_split_by_adds_column_once(people):
    once = apply_operation(people, "email", SplitByChar("@"))
    twice = apply_operation(once, "email", SplitByChar("."))
    assert once.columns == ["name", "email", "code", "email_split"]
    assert twice.columns.count(split_column_name("email")) == 1
    assert all(set(row) == set(twice.columns) for row in twice.rows)
    assert twice.column_values("email_split") == ["", "", ""]


def test_split_by_empty_delimiter_is_a_noop(people):
    assert apply_operation(people, "email", SplitByChar("")) is people


def test_custom_expression_upper_cases_every_row():
    table = Table.from_records([{"name": "a"}, {"name": "b"}])
    result = apply_operation(table, "name", CustomExpression("value.upper()"))
    assert result.rows == [{"name": "A"}, {"name": "B"}]


def test_custom_expression_results_are_text():
    table = Table.from_records([{"n": "4"}, {"n": "5"}])
    result = apply_operation(table, "n", CustomExpression("int(value) * 2"))
    assert result.column_values("n") == ["8", "10"]
    result = apply_operation(table, "n", CustomExpression("None"))
    assert result.column_values("n") == ["", ""]


def test_custom_expression_syntax_error_raises(people):
    before = copy.deepcopy(people.rows)
    with pytest.raises(InvalidExpression):
        apply_operation(people, "name", CustomExpression("value.("))
    assert people.rows == before


def test_custom_expression_runtime_failure_reports_row():
    table = Table.from_records([{"n": "1"}, {"n": "2"}, {"n": "x"}])
    with pytest.raises(InvalidExpression) as excinfo:
        apply_operation(table, "n", CustomExpression("int(value) + 1"))
    assert excinfo.value.row == 3
    assert table.column_values("n") == ["1", "2", "x"]


def test_blank_custom_expression_is_a_noop(people):
    assert apply_operation(people, "name", CustomExpression("   ")) is people


def test_unknown_column(people):
    with pytest.raises(UnknownColumn):
        apply_operation(people, "missing", RemoveSpaces())


def test_empty_table_is_a_noop():
    table = Table.from_records([], columns=["a"])
    assert apply_operation(table, "a", SplitByChar(",")) is table
    assert apply_operation(table, "a", CustomExpression("value.(")) is table


def test_remove_ops_are_idempotent(people):
    for op in (RemoveSpaces(), RemoveSpecial()):
        once = apply_operation(people, "name", op)
        assert apply_operation(once, "name", op).rows == once.rows


def test_preview_is_capped():
    table = Table.from_records([{"v": f"row {i}"} for i in range(1000)])
    preview = preview_operation(table, "v", RemoveSpaces())
    assert len(preview) == PREVIEW_ROWS == 10
    assert preview.rows[0] == {"v": "row0"}
    assert table.rows[0] == {"v": "row 0"}


def test_preview_small_table_and_custom_limit(people):
    assert len(preview_operation(people, "name", RemoveSpaces())) == 3
    assert len(preview_operation(people, "name", RemoveSpaces(), limit=2)) == 2


def test_preview_split_shows_new_column(people):
    preview = preview_operation(people, "email", SplitByChar("@"))
    assert preview.columns[-1] == "email_split"
    assert preview.rows[0]["email_split"] == "example.com"
