"""Core (UI-agnostic) sheet editing logic.

This package contains:
- table model + session-scoped table store
- operation descriptors and the sandboxed expression language
- the column transform engine (apply / preview)
- file decoding (CSV / Excel -> pandas) and XLSX / CSV export
- the editor state machine driven by the Streamlit UI and the API
"""
