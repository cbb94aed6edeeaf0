from __future__ import annotations

from datetime import date
from typing import List, Optional

import pandas as pd


EXPORT_HEADERS = ["Date", "Department", "User Type", "Sheets Used", "Total Pages", "Copies", "Pages Per Sheet"]
EXPORT_FIELDS = ["date", "department", "user_type", "sheet_used", "total_pages", "copies", "pages_per_sheet"]
TEXT_EXPORT_FIELDS = {"date", "department", "user_type"}


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"ecoprint_analytics_{today.isoformat()}.csv"


def _quote(value: object) -> str:
    text = "" if value is None or (not isinstance(value, str) and pd.isna(value)) else str(value)
    return '"' + text.replace('"', '""') + '"'


def _number(value: object) -> str:
    if value is None or pd.isna(value):
        return "0"
    num = float(value)
    return str(int(num)) if num.is_integer() else repr(num)


def records_to_csv(df: pd.DataFrame) -> bytes:
    """Filtered records as a spreadsheet-friendly CSV (UTF-8 with BOM)."""
    lines: List[str] = [",".join(EXPORT_HEADERS)]
    if not df.empty:
        for row in df[EXPORT_FIELDS].to_dict(orient="records"):
            cells = [_quote(row[f]) if f in TEXT_EXPORT_FIELDS else _number(row[f]) for f in EXPORT_FIELDS]
            lines.append(",".join(cells))
    return "\n".join(lines).encode("utf-8-sig")
