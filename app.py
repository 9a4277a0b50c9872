from __future__ import annotations

import html
import logging
from contextlib import contextmanager
from typing import Optional

import streamlit as st

from sheetcore.errors import EditorError
from sheetcore.files import SUPPORTED_EXTENSIONS, XLSX_MIME
from sheetcore.operations import OPERATION_LIST, CustomExpression, SplitByChar, operation_example, parse_operation
from sheetcore.session import EditorSession, Editing, Previewing
from sheetcore.settings import configure_logging, load_settings

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

OPERATION_KINDS = [o["kind"] for o in OPERATION_LIST]
OPERATION_LABELS = {o["kind"]: o["label"] for o in OPERATION_LIST}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .file-name {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def get_session() -> EditorSession:
    if "editor" not in st.session_state:
        st.session_state["editor"] = EditorSession(settings)
    return st.session_state["editor"]


def export_data(session: EditorSession, fmt: str) -> bytes:
    # Built once per committed table, not on every rerun.
    key = f"_export_{fmt}"
    cached = st.session_state.get(key)
    if cached is not None and cached[0] is session.table:
        return cached[1]
    data = session.export_xlsx() if fmt == "xlsx" else session.export_csv()
    st.session_state[key] = (session.table, data)
    return data


def render_page_header(session: EditorSession, file_name: Optional[str]):
    inject_base_styles()
    c1, c2 = st.columns([6, 2])
    with c1:
        label = f"File: {html.escape(file_name)}" if file_name else "No file loaded"
        st.markdown(
            f"<div class='app-top-bar'><div class='file-name'>{label}</div>"
            "<div class='page-title'>CSV/Excel Expression Editor</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        # Export is gated off entirely with zero rows.
        st.download_button(
            "Download Excel",
            data=export_data(session, "xlsx") if session.can_export else b"",
            file_name=settings.export_filename,
            mime=XLSX_MIME,
            disabled=not session.can_export,
        )
        if settings.csv_export_enabled:
            st.download_button(
                "Download CSV",
                data=export_data(session, "csv") if session.can_export else b"",
                file_name=settings.csv_export_filename,
                mime="text/csv",
                disabled=not session.can_export,
            )


def handle_upload(session: EditorSession, uploaded) -> None:
    # The script re-runs on every interaction; decode each upload once.
    key = (uploaded.name, uploaded.size, getattr(uploaded, "file_id", None))
    if st.session_state.get("_loaded_file") == key:
        return
    try:
        session.load(uploaded.name, uploaded.getvalue())
    except EditorError as exc:
        st.error(str(exc))
        return
    st.session_state["_loaded_file"] = key


def dialog_widget_keys(column: str):
    return (f"op_kind_{column}", f"split_{column}", f"expr_{column}")


@st.dialog("Edit column", width="large")
def edit_dialog():
    session = get_session()
    state = session.state
    if not isinstance(state, (Editing, Previewing)):
        return

    kind_key, split_key, expr_key = dialog_widget_keys(state.column)
    st.markdown(f"**Edit Column:** `{state.column}`")
    kind = st.selectbox(
        "Operation",
        OPERATION_KINDS,
        index=OPERATION_KINDS.index(state.draft.kind),
        format_func=lambda k: OPERATION_LABELS.get(k, k),
        key=kind_key,
    )
    example = operation_example(kind)
    if example:
        st.caption(f"Example: {example}")

    raw = {"kind": kind}
    if kind == SplitByChar.kind:
        raw["delimiter"] = st.text_input(
            "Split Character",
            value=getattr(state.draft, "delimiter", ""),
            key=split_key,
        )
    elif kind == CustomExpression.kind:
        raw["source"] = st.text_input(
            "Custom Expression (e.g. value.replace(' ', ''))",
            value=getattr(state.draft, "source", ""),
            key=expr_key,
            help="Use 'value' as the variable for the cell value.",
        )
    draft = parse_operation(raw)
    if draft != state.draft:
        session.change_operation(draft)

    if st.button("Preview"):
        try:
            session.preview()
        except EditorError as exc:
            st.error(str(exc))

    if isinstance(session.state, Previewing) and session.state.preview.rows:
        with st.container(height=220):
            st.json(session.state.preview.rows)
        st.caption(f"Showing first {settings.preview_rows} rows")

    c1, c2 = st.columns(2)
    if c1.button("Cancel", use_container_width=True):
        session.cancel()
        st.rerun()
    if c2.button("Apply", type="primary", use_container_width=True):
        try:
            session.apply()
        except EditorError as exc:
            st.error(str(exc))
        else:
            st.rerun()


# ---------- UI setup ----------
st.set_page_config(page_title="CSV/Excel Expression Editor", layout="wide")
session = get_session()

uploaded = st.file_uploader("Upload CSV/Excel", type=list(SUPPORTED_EXTENSIONS), accept_multiple_files=False)
if uploaded is not None:
    handle_upload(session, uploaded)

render_page_header(session, session.store.source_name)

if not session.columns:
    st.info("Upload a CSV or Excel file to start.")
    st.stop()

with card("Data"):
    pick_col, button_col = st.columns([4, 1])
    column = pick_col.selectbox("Column", session.columns, label_visibility="collapsed")
    if button_col.button("Edit column", use_container_width=True):
        if session.state.name != "idle":
            session.cancel()
        # Widgets keep their values across dialogs; start from a fresh draft.
        for key in dialog_widget_keys(column):
            st.session_state.pop(key, None)
        session.select_column(column)
    st.dataframe(session.table.to_frame(), use_container_width=True, hide_index=True, height=500)
    st.caption(f"{len(session.table):,} rows · {len(session.columns)} columns")

if isinstance(session.state, (Editing, Previewing)):
    edit_dialog()
