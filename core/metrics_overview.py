from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict

import pandas as pd

from core.charts import department_bar_chart, print_mode_donut_chart, to_vega_spec, yearly_trend_chart
from core.filters import DashboardFilters
from core.projections import department_usage, print_mode_split, yearly_trend


# Environmental Paper Network / industry averages for A4 office paper.
SHEETS_PER_TREE = 8333
CO2_GRAMS_PER_SHEET = 4.5
WATER_LITERS_PER_SHEET = 0.3


@dataclass(frozen=True)
class DashboardStats:
    total_sheets_used: float = 0.0
    total_requests: int = 0
    average_sheets_per_request: int = 0
    most_active_department: str = "N/A"
    trees_consumed: float = 0.0
    co2_emitted: float = 0.0  # kg
    water_used: float = 0.0  # liters
    sheets_saved: float = 0.0


def round_half_up(value: object, ndigits: int = 0) -> float:
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def trees_for(sheets: float) -> float:
    return sheets / SHEETS_PER_TREE


def co2_kg_for(sheets: float) -> float:
    return sheets * CO2_GRAMS_PER_SHEET / 1000


def water_liters_for(sheets: float) -> float:
    return sheets * WATER_LITERS_PER_SHEET


def compute_stats(df: pd.DataFrame) -> DashboardStats:
    if df.empty:
        return DashboardStats()

    total = float(df["sheet_used"].sum())
    requests = int(len(df))
    # Logical pages minus physical sheets; can overlap with the Eco-Save bucket.
    saved = float((df["total_pages"] - df["sheet_used"]).clip(lower=0).sum())
    departments = department_usage(df)

    return DashboardStats(
        total_sheets_used=total,
        total_requests=requests,
        average_sheets_per_request=int(round_half_up(total / requests)),
        most_active_department=departments[0]["name"] if departments else "N/A",
        trees_consumed=trees_for(total),
        co2_emitted=co2_kg_for(total),
        water_used=water_liters_for(total),
        sheets_saved=saved,
    )


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())

    stats = compute_stats(filtered)
    dept = department_usage(filtered)
    mode = print_mode_split(filtered)
    trend = yearly_trend(filtered)

    return {
        "filters": asdict(filters),
        "snapshot": {"records": int(len(filtered)), "total_records": int(len(records))},
        "kpis": asdict(stats),
        "department_usage": dept,
        "print_mode": mode,
        "yearly_trend": trend,
        "charts": {
            "department_usage": to_vega_spec(department_bar_chart(dept)),
            "print_mode": to_vega_spec(print_mode_donut_chart(mode)),
            "yearly_trend": to_vega_spec(yearly_trend_chart(trend)),
        },
    }
