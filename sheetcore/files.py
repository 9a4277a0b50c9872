from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List

import openpyxl
import pandas as pd

from sheetcore.errors import FileDecodeError, UnsupportedFileType
from sheetcore.table import Table, normalize_cell


logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx", "xls")
CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
EXCEL_ENGINES = {"xlsx": "openpyxl", "xls": "xlrd"}

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIME = "text/csv"


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower().lstrip(".")


def is_supported(filename: str) -> bool:
    return file_extension(filename) in SUPPORTED_EXTENSIONS


def read_csv_table(content: bytes) -> Table:
    if not content.strip():
        return Table()
    for encoding in CSV_ENCODINGS:
        try:
            df = pd.read_csv(
                io.BytesIO(content),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding=encoding,
            )
        except UnicodeDecodeError:
            logger.debug("CSV is not %s, trying next encoding", encoding)
            continue
        except pd.errors.EmptyDataError:
            return Table()
        except pd.errors.ParserError as exc:
            raise FileDecodeError(f"Could not parse CSV: {exc}") from exc
        return Table.from_frame(df)
    raise FileDecodeError("Could not decode CSV (tried: " + ", ".join(CSV_ENCODINGS) + ").")


def _header_names(cells) -> List[str]:
    names: List[str] = []
    for idx, cell in enumerate(cells):
        name = normalize_cell(cell)
        names.append(name if name else f"Unnamed: {idx}")
    return names


def _read_xlsx_sheet(content: bytes) -> Table:
    # pandas trims trailing rows whose cells are all blank; keep every row
    # up to the sheet's last written row instead.
    wb = openpyxl.load_workbook(io.BytesIO(content), data_only=True)
    try:
        ws = wb.worksheets[0]
        grid = [list(r) for r in ws.iter_rows(min_row=1, max_row=ws.max_row, values_only=True)]
    finally:
        wb.close()
    if not grid or (len(grid) == 1 and all(v is None for v in grid[0])):
        return Table()

    names = _header_names(grid[0])
    keep = [i for i, name in enumerate(names) if name not in names[:i]]
    columns = [names[i] for i in keep]
    rows = []
    for cells in grid[1:]:
        cells = cells + [None] * (len(names) - len(cells))
        rows.append({names[i]: normalize_cell(cells[i]) for i in keep})
    return Table(columns=columns, rows=rows)


def read_excel_table(content: bytes, extension: str = "xlsx") -> Table:
    try:
        if extension == "xlsx":
            return _read_xlsx_sheet(content)
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object, engine=EXCEL_ENGINES.get(extension, "xlrd"))
    except Exception as exc:
        raise FileDecodeError(f"Could not read workbook: {exc}") from exc
    return Table.from_frame(df)


def read_table(filename: str, content: bytes) -> Table:
    """Decode an uploaded ``.csv`` / ``.xlsx`` / ``.xls`` file into a Table."""
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileType(filename)
    table = read_csv_table(content) if ext == "csv" else read_excel_table(content, ext)
    logger.info("Decoded %s (%s): %d rows", filename, ext, len(table))
    return table


def _cells_as_text(worksheet, n_rows: int, n_cols: int) -> None:
    # Blank cells are written as empty text so all-blank rows stay in the
    # file; openpyxl turns any text starting with "=" into a formula.
    if not n_cols:
        return
    for row in worksheet.iter_rows(min_row=1, max_row=n_rows + 1, max_col=n_cols):
        for cell in row:
            if cell.value is None:
                cell.value = ""
            elif cell.data_type == "f":
                cell.data_type = "s"


def write_xlsx(table: Table, sheet_name: str = "Sheet1") -> bytes:
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        table.to_frame().to_excel(writer, sheet_name=sheet_name, index=False)
        _cells_as_text(writer.sheets[sheet_name], len(table), len(table.columns))
    return out.getvalue()


def write_csv(table: Table) -> bytes:
    return table.to_frame().to_csv(index=False).encode("utf-8")
