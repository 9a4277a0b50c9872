from __future__ import annotations

from typing import Optional


class EditorError(Exception):
    """Base class for failures surfaced to the user."""

    status_code = 400


class UnsupportedFileType(EditorError):
    status_code = 415

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Unsupported file type: {filename!r}. Please upload a CSV or Excel file.")


class FileDecodeError(EditorError):
    status_code = 422


class InvalidExpression(EditorError):
    status_code = 422

    def __init__(self, message: str, *, source: str = "", row: Optional[int] = None):
        self.detail = message
        self.source = source
        self.row = row
        if row is not None:
            message = f"{message} (row {row})"
        super().__init__(f"Invalid expression: {message}")


class UnknownColumn(EditorError):
    status_code = 404

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Unknown column: {column!r}")


class UnknownOperation(EditorError):
    status_code = 422


class InvalidTransition(EditorError):
    status_code = 409


class EmptyTable(EditorError):
    status_code = 409

    def __init__(self, message: str = "The table has no rows."):
        super().__init__(message)


class ExportDisabled(EditorError):
    status_code = 404
