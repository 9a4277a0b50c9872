from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, File, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response

from api.schemas import (
    EditorStateResponse,
    OperationListResponse,
    OperationModel,
    SelectColumnRequest,
    TableResponse,
    TransformRequest,
)
from sheetcore.errors import EditorError
from sheetcore.files import CSV_MIME, XLSX_MIME
from sheetcore.operations import OPERATION_LIST, parse_operation
from sheetcore.session import EditorSession
from sheetcore.settings import configure_logging, load_settings
from sheetcore.table import Table
from sheetcore.transforms import apply_operation, preview_operation


settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Sheet Expression Editor API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Single-user tool: one table per process.
_session = EditorSession(settings)


def get_session() -> EditorSession:
    return _session


def _error(exc: Exception, action: str) -> JSONResponse:
    if isinstance(exc, EditorError):
        logger.info("%s rejected: %s", action, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc), "type": type(exc).__name__})
    logger.exception("%s failed", action)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _table_page(session: EditorSession, *, offset: int, limit: int) -> dict:
    table = session.table
    return {
        "source_name": session.store.source_name,
        "columns": table.columns,
        "row_count": len(table),
        "offset": offset,
        "rows": table.rows[offset : offset + limit],
    }


def _attachment(data: bytes, media_type: str, filename: str) -> Response:
    return Response(content=data, media_type=media_type, headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.get("/meta/operations", response_model=OperationListResponse)
def meta_operations():
    return {"operations": OPERATION_LIST}


@app.post("/table", response_model=TableResponse)
def upload_table(file: UploadFile = File(...), session: EditorSession = Depends(get_session)):
    try:
        content = file.file.read()
        session.load(file.filename or "", content)
        return _table_page(session, offset=0, limit=50)
    except Exception as exc:
        return _error(exc, "upload_table")


@app.get("/table", response_model=TableResponse)
def get_table(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=1000),
    session: EditorSession = Depends(get_session),
):
    return _table_page(session, offset=offset, limit=limit)


@app.get("/edit/state", response_model=EditorStateResponse)
def edit_state(session: EditorSession = Depends(get_session)):
    return session.describe()


@app.post("/edit/select", response_model=EditorStateResponse)
def edit_select(req: SelectColumnRequest, session: EditorSession = Depends(get_session)):
    try:
        session.select_column(req.column)
        return session.describe()
    except Exception as exc:
        return _error(exc, "edit_select")


@app.post("/edit/operation", response_model=EditorStateResponse)
def edit_operation(op: OperationModel, session: EditorSession = Depends(get_session)):
    try:
        session.change_operation(parse_operation(op.model_dump()))
        return session.describe()
    except Exception as exc:
        return _error(exc, "edit_operation")


@app.post("/edit/preview", response_model=EditorStateResponse)
def edit_preview(session: EditorSession = Depends(get_session)):
    try:
        session.preview()
        return session.describe()
    except Exception as exc:
        return _error(exc, "edit_preview")


@app.post("/edit/apply", response_model=EditorStateResponse)
def edit_apply(session: EditorSession = Depends(get_session)):
    try:
        session.apply()
        return session.describe()
    except Exception as exc:
        return _error(exc, "edit_apply")


@app.post("/edit/cancel", response_model=EditorStateResponse)
def edit_cancel(session: EditorSession = Depends(get_session)):
    try:
        session.cancel()
        return session.describe()
    except Exception as exc:
        return _error(exc, "edit_cancel")


@app.post("/transform", response_model=TableResponse)
def transform(req: TransformRequest):
    try:
        table = Table.from_records(req.rows, columns=req.columns)
        op = parse_operation(req.operation.model_dump())
        if req.preview:
            result = preview_operation(
                table,
                req.column,
                op,
                limit=settings.preview_rows,
                max_expression_length=settings.max_expression_length,
            )
        else:
            result = apply_operation(table, req.column, op, max_expression_length=settings.max_expression_length)
        return {"columns": result.columns, "row_count": len(result), "rows": result.rows}
    except Exception as exc:
        return _error(exc, "transform")


@app.get("/export/xlsx")
def export_xlsx(session: EditorSession = Depends(get_session)):
    try:
        data = session.export_xlsx()
    except Exception as exc:
        return _error(exc, "export_xlsx")
    return _attachment(data, XLSX_MIME, session.settings.export_filename)


@app.get("/export/csv")
def export_csv(session: EditorSession = Depends(get_session)):
    try:
        data = session.export_csv()
    except Exception as exc:
        return _error(exc, "export_csv")
    return _attachment(data, CSV_MIME, session.settings.csv_export_filename)
