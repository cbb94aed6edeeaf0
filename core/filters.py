from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import pandas as pd
from dateutil import parser as date_parser


ALL = "All"

_FOUR_DIGITS = re.compile(r"^[0-9]{4}$")
_TWO_DIGITS = re.compile(r"^[0-9]{2}$")
# Two defaults that differ in year only; a year both parses agree on was stated in the text.
_PROBE_DEFAULTS = (datetime(1904, 1, 1), datetime(1908, 1, 1))


def _expand_two_digit_year(token: str) -> str:
    # Same pivot as strptime("%y"): 69-99 -> 19xx, 00-68 -> 20xx.
    return str(datetime.strptime(token, "%y").year)


def _parsed_year(text: str) -> Optional[str]:
    years = set()
    for default in _PROBE_DEFAULTS:
        try:
            years.add(date_parser.parse(text, default=default, dayfirst=False, fuzzy=False).year)
        except (ValueError, OverflowError):
            return None
    if len(years) != 1:
        return None
    year = str(years.pop())
    return year if _FOUR_DIGITS.match(year) else None


def year_of(date_text: object) -> Optional[str]:
    """Year (as a 4-digit string) stated by a free-form date, or None.

    Rules are tried in order and fall through when one yields nothing:
    last "/" token (4 digits, or 2 digits century-expanded), first "-" token
    (4 digits), the bare 4-digit string, then a generic date parse.
    """
    if date_text is None or (not isinstance(date_text, str) and pd.isna(date_text)):
        return None
    text = str(date_text).strip()
    if not text:
        return None

    if "/" in text:
        last = text.split("/")[-1].strip()
        if _FOUR_DIGITS.match(last):
            return last
        if _TWO_DIGITS.match(last):
            return _expand_two_digit_year(last)
    if "-" in text:
        first = text.split("-")[0].strip()
        if _FOUR_DIGITS.match(first):
            return first
    if _FOUR_DIGITS.match(text):
        return text
    return _parsed_year(text)


@dataclass(frozen=True)
class DashboardFilters:
    department: Optional[str] = None
    year: Optional[str] = None


def _selector(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    if not s or s == ALL:
        return None
    return s


def normalize_filters(raw: Optional[dict]) -> DashboardFilters:
    raw = raw or {}
    return DashboardFilters(department=_selector(raw.get("department")), year=_selector(raw.get("year")))


def is_filtered(filters: DashboardFilters) -> bool:
    return filters.department is not None or filters.year is not None


def record_years(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=object)
    # Built by hand so undeterminable years stay None rather than NaN.
    return pd.Series([year_of(d) for d in df["date"].tolist()], index=df.index, dtype=object)


def apply_filters(df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    if df.empty or not is_filtered(filters):
        return df.copy()
    mask = pd.Series(True, index=df.index)
    if filters.department is not None:
        mask &= df["department"] == filters.department
    if filters.year is not None:
        mask &= record_years(df) == filters.year
    return df[mask].copy()


def available_departments(df: pd.DataFrame) -> List[str]:
    if df.empty:
        return []
    return sorted({str(d) for d in df["department"].tolist() if str(d).strip()})


def available_years(df: pd.DataFrame) -> List[str]:
    """Determinable years, newest first."""
    if df.empty:
        return []
    return sorted({y for y in record_years(df).tolist() if isinstance(y, str)}, reverse=True)
