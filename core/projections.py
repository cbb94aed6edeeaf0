from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from core.filters import record_years


STANDARD_LABEL = "Standard (1 Page/Sheet)"
ECO_SAVE_LABEL = "Eco-Save (2+ Pages/Sheet)"

ChartDataPoint = Dict[str, Any]
TrendDataPoint = Dict[str, Any]


def department_usage(df: pd.DataFrame) -> List[ChartDataPoint]:
    """Sheets used per department, largest first; ties keep first-seen order."""
    if df.empty:
        return []
    departments = df["department"].fillna("").astype(str).str.strip().replace("", "Unknown")
    totals = (
        df.assign(department=departments)
        .groupby("department", sort=False)["sheet_used"]
        .sum()
        .reset_index()
        .sort_values("sheet_used", ascending=False, kind="mergesort")
    )
    return [{"name": str(r.department), "value": float(r.sheet_used)} for r in totals.itertuples(index=False)]


def top_departments(points: List[ChartDataPoint], n: int = 3) -> List[ChartDataPoint]:
    return list(points[: max(0, n)])


def print_mode_split(df: pd.DataFrame) -> List[ChartDataPoint]:
    if df.empty:
        single = multi = 0.0
    else:
        eco = df["pages_per_sheet"] > 1
        multi = float(df.loc[eco, "sheet_used"].sum())
        single = float(df.loc[~eco, "sheet_used"].sum())
    return [
        {"name": STANDARD_LABEL, "value": single},
        {"name": ECO_SAVE_LABEL, "value": multi},
    ]


def yearly_trend(df: pd.DataFrame) -> List[TrendDataPoint]:
    """Sheets used per year, oldest first. Records without a determinable year are left out."""
    if df.empty:
        return []
    dated = df.assign(year=record_years(df)).dropna(subset=["year"])
    if dated.empty:
        return []
    totals = dated.groupby("year")["sheet_used"].sum().sort_index()
    return [{"date": str(year), "sheets": float(sheets)} for year, sheets in totals.items()]
