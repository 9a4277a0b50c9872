"""Column transform engine.

Every function here is pure: rows are copied, never modified in place, and
the caller decides whether the returned table replaces the stored one.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List

from sheetcore.errors import InvalidExpression, UnknownColumn
from sheetcore.expressions import compile_expression
from sheetcore.operations import CustomExpression, Operation, RemoveSpaces, RemoveSpecial, SplitByChar
from sheetcore.table import Row, Table, normalize_cell


logger = logging.getLogger(__name__)

PREVIEW_ROWS = 10
SPLIT_SUFFIX = "_split"

_WHITESPACE_RE = re.compile(r"\s+")
_SPECIAL_RE = re.compile(r"[^A-Za-z0-9 ]")


def remove_spaces(text: str) -> str:
    return _WHITESPACE_RE.sub("", text)


def remove_special(text: str) -> str:
    return _SPECIAL_RE.sub("", text)


def split_column_name(column: str) -> str:
    return f"{column}{SPLIT_SUFFIX}"


def _map_column(table: Table, column: str, fn: Callable[[str], str]) -> Table:
    rows: List[Row] = []
    for row in table.rows:
        new_row = dict(row)
        new_row[column] = fn(normalize_cell(row.get(column)))
        rows.append(new_row)
    return Table(columns=list(table.columns), rows=rows)


def _split_by(table: Table, column: str, delimiter: str) -> Table:
    target = split_column_name(column)
    columns = list(table.columns)
    if target not in columns:
        columns.append(target)
    rows: List[Row] = []
    for row in table.rows:
        head, _, tail = normalize_cell(row.get(column)).partition(delimiter)
        new_row = dict(row)
        new_row[column] = head
        new_row[target] = tail
        rows.append(new_row)
    return Table(columns=columns, rows=rows)


def _custom(table: Table, column: str, source: str, *, max_length: int) -> Table:
    expression = compile_expression(source, max_length=max_length)
    rows: List[Row] = []
    for idx, row in enumerate(table.rows):
        try:
            result = expression.evaluate(normalize_cell(row.get(column)))
        except InvalidExpression as exc:
            raise InvalidExpression(exc.detail, source=source, row=idx + 1) from exc
        new_row = dict(row)
        new_row[column] = normalize_cell(result)
        rows.append(new_row)
    return Table(columns=list(table.columns), rows=rows)


def apply_operation(table: Table, column: str, op: Operation, *, max_expression_length: int = 500) -> Table:
    """Return a new table with ``op`` applied to every cell of ``column``.

    Zero-row tables, an empty split delimiter and a blank expression are
    no-ops that hand back ``table`` itself. A failing custom expression
    raises :class:`InvalidExpression` and produces no table at all.
    """
    if column not in table.columns:
        raise UnknownColumn(column)
    if table.is_empty:
        return table

    if isinstance(op, RemoveSpaces):
        return _map_column(table, column, remove_spaces)
    if isinstance(op, RemoveSpecial):
        return _map_column(table, column, remove_special)
    if isinstance(op, SplitByChar):
        if not op.delimiter:
            return table
        return _split_by(table, column, op.delimiter)
    if isinstance(op, CustomExpression):
        if not op.source.strip():
            return table
        return _custom(table, column, op.source, max_length=max_expression_length)
    raise TypeError(f"Unsupported operation: {op!r}")


def preview_operation(
    table: Table,
    column: str,
    op: Operation,
    *,
    limit: int = PREVIEW_ROWS,
    max_expression_length: int = 500,
) -> Table:
    """Run ``op`` on the first ``limit`` rows only."""
    return apply_operation(table.head(limit), column, op, max_expression_length=max_expression_length)
