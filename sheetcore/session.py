"""Editor state machine.

One ``EditorSession`` owns the table store of one user session and the state
of the column-edit dialog:

    Idle --select_column--> Editing --preview--> Previewing
    Editing / Previewing --change_operation--> Editing
    Editing / Previewing --apply / cancel--> Idle
    any --load--> Idle

Transitions not listed raise :class:`InvalidTransition`. A failed preview or
apply leaves both the state and the stored table as they were.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Union

from sheetcore.errors import EmptyTable, ExportDisabled, InvalidExpression, InvalidTransition, UnknownColumn
from sheetcore.files import read_table, write_csv, write_xlsx
from sheetcore.operations import Operation, RemoveSpaces, operation_to_dict
from sheetcore.settings import EditorSettings
from sheetcore.table import Table, TableStore
from sheetcore.transforms import apply_operation, preview_operation


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Editing:
    name: ClassVar[str] = "editing"
    column: str
    draft: Operation


@dataclass(frozen=True)
class Previewing:
    name: ClassVar[str] = "previewing"
    column: str
    draft: Operation
    preview: Table


EditorState = Union[Idle, Editing, Previewing]


class EditorSession:
    def __init__(self, settings: Optional[EditorSettings] = None):
        self.settings = settings or EditorSettings()
        self.store = TableStore()
        self.state: EditorState = Idle()

    @property
    def table(self) -> Table:
        return self.store.table

    @property
    def columns(self) -> List[str]:
        return list(self.store.table.columns)

    @property
    def can_export(self) -> bool:
        return not self.store.table.is_empty

    # --- loading ---
    def load(self, filename: str, content: bytes) -> Table:
        table = read_table(filename, content)
        self.load_table(table, filename)
        return table

    def load_table(self, table: Table, source_name: Optional[str] = None) -> None:
        self.store.load(table, source_name)
        self.state = Idle()

    # --- dialog ---
    def _active(self, action: str) -> Union[Editing, Previewing]:
        if isinstance(self.state, (Editing, Previewing)):
            return self.state
        raise InvalidTransition(f"Cannot {action} while {self.state.name}; select a column first.")

    def select_column(self, column: str) -> None:
        if not isinstance(self.state, Idle):
            raise InvalidTransition(f"Cannot select a column while {self.state.name}; apply or cancel first.")
        if column not in self.store.table.columns:
            raise UnknownColumn(column)
        self.state = Editing(column=column, draft=RemoveSpaces())

    def change_operation(self, op: Operation) -> None:
        active = self._active("change the operation")
        self.state = Editing(column=active.column, draft=op)

    def preview(self) -> Table:
        active = self._active("preview")
        rows = preview_operation(
            self.store.table,
            active.column,
            active.draft,
            limit=self.settings.preview_rows,
            max_expression_length=self.settings.max_expression_length,
        )
        self.state = Previewing(column=active.column, draft=active.draft, preview=rows)
        return rows

    def apply(self) -> Table:
        active = self._active("apply")
        try:
            result = apply_operation(
                self.store.table,
                active.column,
                active.draft,
                max_expression_length=self.settings.max_expression_length,
            )
        except InvalidExpression as exc:
            logger.warning("Apply %s on %r failed: %s", active.draft.kind, active.column, exc)
            raise
        self.store.replace(result)
        self.state = Idle()
        logger.info("Applied %s to %r", active.draft.kind, active.column)
        return result

    def cancel(self) -> None:
        self._active("cancel")
        self.state = Idle()

    # --- export ---
    def export_xlsx(self) -> bytes:
        if not self.can_export:
            raise EmptyTable("Nothing to export: the table has no rows.")
        data = write_xlsx(self.store.table, sheet_name=self.settings.export_sheet_name)
        logger.info("Exported %d rows to %s", len(self.store.table), self.settings.export_filename)
        return data

    def export_csv(self) -> bytes:
        if not self.settings.csv_export_enabled:
            raise ExportDisabled("CSV export is disabled.")
        if not self.can_export:
            raise EmptyTable("Nothing to export: the table has no rows.")
        data = write_csv(self.store.table)
        logger.info("Exported %d rows to %s", len(self.store.table), self.settings.csv_export_filename)
        return data

    def describe(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "state": self.state.name,
            "source_name": self.store.source_name,
            "row_count": self.store.row_count,
            "columns": self.columns,
            "column": None,
            "draft": None,
            "preview": [],
        }
        if isinstance(self.state, (Editing, Previewing)):
            payload["column"] = self.state.column
            payload["draft"] = operation_to_dict(self.state.draft)
        if isinstance(self.state, Previewing):
            payload["preview"] = self.state.preview.rows
        return payload
