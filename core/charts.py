from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

from core.projections import ECO_SAVE_LABEL, STANDARD_LABEL

alt.data_transformers.disable_max_rows()

ECO_GREEN = "#10b981"
MODE_COLORS = {STANDARD_LABEL: "#4ade80", ECO_SAVE_LABEL: "#16a34a"}


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _frame(points: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame(points, columns=columns)


def department_bar_chart(points: List[Dict[str, Any]]) -> alt.Chart:
    df = _frame(points, ["name", "value"])
    return (
        alt.Chart(df)
        .mark_bar(color=ECO_GREEN, cornerRadiusEnd=4)
        .encode(
            x=alt.X("value:Q", title="Sheets Used", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            y=alt.Y("name:N", title=None, sort="-x"),
            tooltip=[alt.Tooltip("name:N", title="Department"), alt.Tooltip("value:Q", title="Sheets", format=",")],
        )
        .properties(title="Usage by Department", height=300)
    )


def print_mode_donut_chart(points: List[Dict[str, Any]]) -> alt.Chart:
    df = _frame(points, ["name", "value"])
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=70, outerRadius=90, padAngle=0.05)
        .encode(
            theta=alt.Theta("value:Q"),
            color=alt.Color(
                "name:N",
                title="Print Mode",
                scale=alt.Scale(domain=list(MODE_COLORS), range=list(MODE_COLORS.values())),
            ),
            tooltip=[alt.Tooltip("name:N", title="Mode"), alt.Tooltip("value:Q", title="Sheets", format=",")],
        )
        .properties(title="Resource Efficiency", height=260)
    )


def yearly_trend_chart(points: List[Dict[str, Any]]) -> alt.Chart:
    df = _frame(points, ["date", "sheets"])
    hover = alt.selection_point(fields=["date"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_line(point={"filled": True, "size": 60}, color=ECO_GREEN)
        .encode(
            x=alt.X("date:O", title="Year", axis=alt.Axis(grid=False)),
            y=alt.Y("sheets:Q", title="Sheets Used", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.4)),
            tooltip=[alt.Tooltip("date:O", title="Year"), alt.Tooltip("sheets:Q", title="Sheets", format=",")],
        )
        .add_params(hover)
        .properties(title="Yearly Usage Trend", height=260)
    )
