from __future__ import annotations

import logging
from dataclasses import asdict
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    DashboardFiltersModel,
    InsightResponse,
    MetaListResponse,
    PrintRecordModel,
    RecordsResponse,
    RefreshResponse,
)
from core.data import DataSourceError, load_dashboard_data, prepare_context, to_records
from core.export import export_filename, records_to_csv
from core.filters import DashboardFilters, normalize_filters
from core.insights import generate_insights
from core.metrics_overview import compute_overview, compute_stats
from core.projections import department_usage


app = FastAPI(title="EcoPrint Analytics API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, name: str) -> JSONResponse:
    if isinstance(exc, DataSourceError):
        logger.error("%s failed: data source unavailable: %s", name, exc)
        return JSONResponse(status_code=503, content={"error": str(exc), "type": type(exc).__name__, "retry": True})
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/departments")
def meta_departments():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaListResponse(values=list(data_ctx.get("departments", []) or [])).model_dump())
    except Exception as exc:
        return _error(exc, "meta_departments")


@app.get("/meta/years")
def meta_years():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaListResponse(values=list(data_ctx.get("years", []) or [])).model_dump())
    except Exception as exc:
        return _error(exc, "meta_years")


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        return _error(exc, "overview")


@app.post("/records")
def records(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        ctx = prepare_context(_filters_from_model(filters), data_ctx)
        rows = [PrintRecordModel(**asdict(r)) for r in to_records(ctx["filtered_records"])]
        return _json(RecordsResponse(records=rows, total_records=len(ctx["records"])).model_dump())
    except Exception as exc:
        return _error(exc, "records")


@app.post("/export")
def export_records(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        ctx = prepare_context(_filters_from_model(filters), data_ctx)
        csv_bytes = records_to_csv(ctx["filtered_records"])
    except Exception as exc:
        return _error(exc, "export")
    filename = export_filename()
    return Response(
        content=csv_bytes,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.post("/insights")
def insights(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters)
        filtered = prepare_context(f, data_ctx)["filtered_records"]
        text = generate_insights(compute_stats(filtered), department_usage(filtered), f)
        return _json(InsightResponse(text=text).model_dump())
    except Exception as exc:
        return _error(exc, "insights")


@app.post("/refresh")
def refresh():
    try:
        data_ctx = load_dashboard_data(refresh=True)
        payload = RefreshResponse(
            raw_rows=int(data_ctx.get("raw_rows", 0) or 0),
            records=int(len(data_ctx["records"])),
            loaded_at=str(data_ctx.get("loaded_at", "")),
        )
        return _json(payload.model_dump())
    except Exception as exc:
        return _error(exc, "refresh")
