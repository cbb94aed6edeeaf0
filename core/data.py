from __future__ import annotations

import io
import logging
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import requests

from core.filters import (
    DashboardFilters,
    apply_filters,
    available_departments,
    available_years,
    normalize_filters,
)
from core.settings import load_settings


logger = logging.getLogger(__name__)


class DataSourceError(RuntimeError):
    """The print-log source could not be fetched or parsed as a whole."""


@dataclass(frozen=True)
class PrintRecord:
    date: str
    department: str = "Unknown"
    user_type: str = "Unknown"
    pages_per_sheet: float = 1.0
    total_pages: float = 0.0
    copies: float = 0.0
    sheet_used: float = 0.0


PRINT_RECORD_COLUMNS: List[str] = [f.name for f in fields(PrintRecord)]
TEXT_FIELDS = ["date", "department", "user_type"]
NUMERIC_FIELDS = ["pages_per_sheet", "total_pages", "copies", "sheet_used"]

# Headers are matched after normalize_header(); first alias with a value wins.
COLUMN_ALIASES: Dict[str, List[str]] = {
    "date": ["date", "timestamp", "วันที่", "time"],
    "department": ["department", "dept", "แผนก", "dep"],
    "user_type": ["user_type", "usertype", "user type", "ประเภทผู้ใช้", "ประเภท"],
    "pages_per_sheet": ["pages_per_sheet", "pagespersheet", "pages per sheet", "pps", "จำนวนหน้าต่อแผ่น"],
    "total_pages": ["total_pages", "totalpages", "total pages", "จำนวนหน้าทั้งหมด", "จำนวนหน้า"],
    "copies": ["copies", "copy", "amount", "จำนวนชุด"],
    "sheet_used": [
        "sheet_used",
        "sheetused",
        "sheets used",
        "sheets_used",
        "usage",
        "used",
        "จำนวนกระดาษ",
        "จำนวนกระดาษที่ใช้ไป",
        "กระดาษที่ใช้",
    ],
}

FIELD_DEFAULTS: Dict[str, object] = {
    "date": "",
    "department": "Unknown",
    "user_type": "Unknown",
    "pages_per_sheet": 1.0,
    "total_pages": 0.0,
    "copies": 0.0,
    "sheet_used": 0.0,
}


def normalize_header(name: object) -> str:
    return str(name).strip().lower()


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def column_as_series(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series("", index=df.index, dtype=object)
    val = df[col]
    if isinstance(val, pd.DataFrame):
        return val.iloc[:, 0]
    return val


def empty_records() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=object if c in TEXT_FIELDS else float) for c in PRINT_RECORD_COLUMNS})


def pick_alias(frame: pd.DataFrame, aliases: Iterable[str]) -> pd.Series:
    """Per row, the stripped value of the first alias column that is non-empty ("" if none is)."""
    picked = pd.Series("", index=frame.index, dtype=object)
    for alias in aliases:
        if alias not in frame.columns:
            continue
        values = column_as_series(frame, alias).fillna("").astype(str).str.strip()
        take = (picked == "") & (values != "")
        picked = picked.where(~take, values)
    return picked


# Leading number of a cell, as in "12 sheets" -> 12.
_LEADING_NUMBER = r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"


def parse_numbers(values: pd.Series, default: float) -> pd.Series:
    """Tolerant float parsing: thousands separators stripped, trailing text ignored, anything unusable becomes `default`."""
    cleaned = values.fillna("").astype(str).str.replace(",", "", regex=False).str.strip()
    leading = cleaned.str.extract(_LEADING_NUMBER, expand=False)
    parsed = pd.to_numeric(leading, errors="coerce").astype(float)
    usable = np.isfinite(parsed) & (parsed >= 0)
    return parsed.where(usable, float(default)).astype(float)


def parse_number(value: object, default: float = 0.0) -> float:
    return float(parse_numbers(pd.Series([value], dtype=object), default).iloc[0])


def normalize_records(raw: pd.DataFrame) -> pd.DataFrame:
    """RawRow table -> PrintRecord table, keeping only rows with usage and a date."""
    if raw is None or raw.empty:
        logger.info("Processed 0 valid records out of 0 raw rows.")
        return empty_records()

    frame = drop_duplicate_columns(raw.rename(columns=normalize_header))
    out = pd.DataFrame(index=frame.index)
    for field in TEXT_FIELDS:
        values = pick_alias(frame, COLUMN_ALIASES[field])
        out[field] = values.where(values != "", FIELD_DEFAULTS[field])
    for field in NUMERIC_FIELDS:
        out[field] = parse_numbers(pick_alias(frame, COLUMN_ALIASES[field]), FIELD_DEFAULTS[field])

    out = out[(out["sheet_used"] > 0) & (out["date"] != "")].reset_index(drop=True)
    logger.info("Processed %d valid records out of %d raw rows.", len(out), len(raw))
    return out[PRINT_RECORD_COLUMNS]


def to_records(df: pd.DataFrame) -> List[PrintRecord]:
    return [PrintRecord(**row) for row in df[PRINT_RECORD_COLUMNS].to_dict(orient="records")]


def fetch_csv_text(url: str, *, timeout: float = 30.0) -> str:
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise DataSourceError(f"Could not fetch print log from {url}: {exc}") from exc
    return resp.content.decode("utf-8-sig", errors="replace")


def read_raw_rows(text: str) -> pd.DataFrame:
    """Parse CSV text (first row = headers) into a table of raw string cells.

    Rows longer than the header keep their first fields; shorter rows are padded.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    options = dict(header=None, dtype=str, keep_default_na=False, skip_blank_lines=True, engine="python")
    try:
        header = pd.read_csv(io.StringIO(text), nrows=1, **options).iloc[0].tolist()
        width = len(header)
        grid = pd.read_csv(io.StringIO(text), on_bad_lines=lambda cells: cells[:width], **options)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise DataSourceError(f"Malformed print log: {exc}") from exc
    raw = grid.iloc[1:].reset_index(drop=True)
    raw.columns = [str(c) for c in header]
    return raw


def load_records(url: Optional[str] = None, *, timeout: Optional[float] = None) -> pd.DataFrame:
    settings = load_settings()
    raw = read_raw_rows(fetch_csv_text(url or settings.data_url, timeout=timeout or settings.http_timeout))
    return normalize_records(raw)


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(url: str, timeout: float) -> Dict[str, object]:
    raw = read_raw_rows(fetch_csv_text(url, timeout=timeout))
    records = normalize_records(raw)
    return {
        "records": records,
        "raw_rows": int(len(raw)),
        "departments": available_departments(records),
        "years": available_years(records),
        "source_url": url,
        "loaded_at": datetime.now(timezone.utc).isoformat(),
    }


def load_dashboard_data(*, refresh: bool = False) -> Dict[str, object]:
    """Load (or reuse) the canonical record set; `refresh=True` replaces it wholesale."""
    settings = load_settings()
    if refresh:
        _load_dashboard_data_cached.cache_clear()
    return _load_dashboard_data_cached(settings.data_url, settings.http_timeout)


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    f = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)
    records = data_ctx.get("records")
    if not isinstance(records, pd.DataFrame):
        records = empty_records()
    return {
        "filters": f,
        "records": records,
        "filtered_records": apply_filters(records, f),
        "departments": data_ctx.get("departments", []),
        "years": data_ctx.get("years", []),
    }
