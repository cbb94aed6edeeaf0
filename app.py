import logging
from typing import Optional, Tuple

import pandas as pd
import streamlit as st

from core import data as dc
from core.charts import department_bar_chart, print_mode_donut_chart, yearly_trend_chart
from core.export import export_filename, records_to_csv
from core.filters import ALL, DashboardFilters, is_filtered, normalize_filters
from core.insights import generate_insights
from core.metrics_overview import (
    CO2_GRAMS_PER_SHEET,
    SHEETS_PER_TREE,
    DashboardStats,
    compute_stats,
)
from core.projections import department_usage, print_mode_split, yearly_trend

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .eco-card {border: 1px solid #d1fae5;border-radius: 12px;padding: 16px;background: #f0fdf4;margin-bottom: 12px;}
        .eco-card .label {font-size: 0.75rem;font-weight: 600;text-transform: uppercase;color: #047857;}
        .eco-card .value {font-size: 1.5rem;font-weight: 700;color: #1f2937;margin-top: 6px;}
        .eco-card .note {font-size: 0.8rem;color: #6b7280;margin-top: 4px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )


def eco_card(container, label: str, value: str, note: str):
    container.markdown(
        f"""
        <div class="eco-card">
          <div class="label">{label}</div>
          <div class="value">{value}</div>
          <div class="note">{note}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def format_filter_summary(filters: DashboardFilters) -> str:
    dept_chip = f"Department: {filters.department or 'All'}"
    year_chip = f"Year: {filters.year or 'All'}"
    return "".join([f"<span class='chip'>{txt}</span>" for txt in [dept_chip, year_chip]])


def clear_filters():
    st.session_state["filter_department"] = ALL
    st.session_state["filter_year"] = ALL


def insight_key(filters: DashboardFilters, data_ctx: dict) -> Tuple[Optional[str], Optional[str], str]:
    return filters.department, filters.year, str(data_ctx.get("loaded_at", ""))


def load_or_stop(refresh: bool = False) -> dict:
    try:
        return dc.load_dashboard_data(refresh=refresh)
    except dc.DataSourceError as exc:
        logger.error("Dashboard data load failed: %s", exc)
        st.error("Failed to load data. Please check connection.")
        st.caption(str(exc))
        if st.button("Retry Connection"):
            st.session_state["_force_refresh"] = True
            st.rerun()
        st.stop()


def render_kpi_tiles(stats: DashboardStats):
    cols = st.columns(4)
    cols[0].metric("Total Sheets", f"{stats.total_sheets_used:,.0f}", help="Total paper consumption")
    cols[1].metric("Print Jobs", f"{stats.total_requests:,}", help="Total requests processed")
    cols[2].metric("Avg. Sheets / Job", f"{stats.average_sheets_per_request:,}", help="Efficiency metric")
    cols[3].metric("Top Department", stats.most_active_department, help="Highest volume user")


def render_environment(stats: DashboardStats):
    st.subheader("Environmental Footprint & Savings")
    cols = st.columns(4)
    eco_card(cols[0], "Trees Consumed", f"{stats.trees_consumed:.2f} trees", f"Based on standard ~{SHEETS_PER_TREE:,} sheets/tree")
    eco_card(cols[1], "CO2 Emissions", f"{stats.co2_emitted:.1f} kg", f"Approx. {CO2_GRAMS_PER_SHEET}g CO2 per sheet")
    eco_card(cols[2], "Water Footprint", f"{round(stats.water_used):,} liters", "Water used in production lifecycle")
    eco_card(cols[3], "Paper Saved", f"{stats.sheets_saved:,.0f} sheets", "Saved via multi-page/duplex printing")


def render_insight_panel(stats: DashboardStats, dept_points: list, filters: DashboardFilters, data_ctx: dict):
    key = insight_key(filters, data_ctx)
    stored = st.session_state.get("insight")
    if stored and stored.get("key") != key:
        # Filters or dataset changed since the request; the answer no longer applies.
        st.session_state.pop("insight", None)
        stored = None

    with st.expander("AI Data Insight (Powered by Gemini)", expanded=stored is not None):
        if st.button("Generate AI Insight"):
            with st.spinner("Analyzing environmental data..."):
                text = generate_insights(stats, dept_points, filters)
            st.session_state["insight"] = {"key": key, "text": text}
            stored = st.session_state["insight"]
        if stored:
            st.markdown(stored["text"])
            if st.button("Dismiss"):
                st.session_state.pop("insight", None)
                st.rerun()


# ---------- UI setup ----------
st.set_page_config(page_title="EcoPrint Analytics Dashboard", layout="wide")
inject_base_styles()
st.title("EcoPrint Analytics")
st.caption("Track your organization's paper footprint.")

data_ctx = load_or_stop(refresh=bool(st.session_state.pop("_force_refresh", False)))
records: pd.DataFrame = data_ctx.get("records", pd.DataFrame())
if records.empty:
    st.warning("No valid print records found in the data source.")

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    dept_options = [ALL] + list(data_ctx.get("departments", []))
    year_options = [ALL] + list(data_ctx.get("years", []))
    selected_dept = st.selectbox(
        "Department", dept_options, key="filter_department", format_func=lambda d: "All Departments" if d == ALL else d
    )
    selected_year = st.selectbox("Year", year_options, key="filter_year", format_func=lambda y: "All Years" if y == ALL else y)

    filters = normalize_filters({"department": selected_dept, "year": selected_year})
    if is_filtered(filters):
        st.button("Clear filters", on_click=clear_filters)

    st.markdown("---")
    if st.button("Refresh data"):
        st.session_state["_force_refresh"] = True
        st.rerun()
    st.caption(f"Loaded {data_ctx.get('loaded_at', '')}")

ctx = dc.prepare_context(filters, data_ctx)
filtered = ctx["filtered_records"]

stats = compute_stats(filtered)
dept_points = department_usage(filtered)
mode_points = print_mode_split(filtered)
trend_points = yearly_trend(filtered)

# ----- Header -----
top = st.columns([6, 2])
with top[0]:
    st.markdown(
        f"<div class='app-top-bar'><div class='breadcrumb'>EcoPrint / Overview</div><div class='page-title'>Overview</div></div>"
        f"<div class='chip-row'>{format_filter_summary(filters)}</div>",
        unsafe_allow_html=True,
    )
with top[1]:
    st.download_button(
        "Export CSV",
        data=records_to_csv(filtered),
        file_name=export_filename(),
        mime="text/csv",
        disabled=filtered.empty,
    )

render_kpi_tiles(stats)
render_environment(stats)

c1, c2 = st.columns([3, 2])
with c1:
    st.altair_chart(department_bar_chart(dept_points), use_container_width=True)
with c2:
    st.altair_chart(print_mode_donut_chart(mode_points), use_container_width=True)
st.altair_chart(yearly_trend_chart(trend_points), use_container_width=True)

render_insight_panel(stats, dept_points, filters, data_ctx)
