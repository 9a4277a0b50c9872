from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


ENV_PREFIX = "SHEET_EDITOR_"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class EditorSettings:
    preview_rows: int = 10
    max_expression_length: int = 500
    export_filename: str = "edited_data.xlsx"
    export_sheet_name: str = "Sheet1"
    csv_export_enabled: bool = False
    csv_export_filename: str = "edited_data.csv"
    log_level: str = "INFO"


def _as_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off", ""}:
        return False
    return default


def _as_int(value: object, default: int, *, lo: int, hi: int) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        out = default
    return max(lo, min(hi, out))


def normalize_settings(raw: Mapping[str, object]) -> EditorSettings:
    defaults = EditorSettings()

    export_filename = str(raw.get("export_filename") or defaults.export_filename).strip()
    if not export_filename.lower().endswith(".xlsx"):
        export_filename = f"{export_filename}.xlsx"
    csv_export_filename = str(raw.get("csv_export_filename") or defaults.csv_export_filename).strip()
    if not csv_export_filename.lower().endswith(".csv"):
        csv_export_filename = f"{csv_export_filename}.csv"

    # Excel caps sheet titles at 31 characters.
    sheet_name = str(raw.get("export_sheet_name") or defaults.export_sheet_name).strip()[:31] or defaults.export_sheet_name

    log_level = str(raw.get("log_level") or defaults.log_level).strip().upper()
    if log_level not in LOG_LEVELS:
        log_level = defaults.log_level

    return EditorSettings(
        preview_rows=_as_int(raw.get("preview_rows"), defaults.preview_rows, lo=1, hi=100),
        max_expression_length=_as_int(raw.get("max_expression_length"), defaults.max_expression_length, lo=1, hi=10_000),
        export_filename=export_filename,
        export_sheet_name=sheet_name,
        csv_export_enabled=_as_bool(raw.get("csv_export_enabled"), defaults.csv_export_enabled),
        csv_export_filename=csv_export_filename,
        log_level=log_level,
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> EditorSettings:
    """Build settings from ``SHEET_EDITOR_*`` environment variables."""
    env = os.environ if environ is None else environ
    raw = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX)
    }
    return normalize_settings(raw)


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
