from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
    department: Optional[str] = "All"
    year: Optional[str] = "All"


class PrintRecordModel(BaseModel):
    date: str
    department: str = "Unknown"
    user_type: str = "Unknown"
    pages_per_sheet: float = 1.0
    total_pages: float = 0.0
    copies: float = 0.0
    sheet_used: float = 0.0


class RecordsResponse(BaseModel):
    records: List[PrintRecordModel]
    total_records: int


class MetaListResponse(BaseModel):
    values: List[str]


class InsightResponse(BaseModel):
    text: str


class RefreshResponse(BaseModel):
    raw_rows: int
    records: int
    loaded_at: str
