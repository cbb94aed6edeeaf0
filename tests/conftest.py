# Shared pytest fixtures
from __future__ import annotations

from dataclasses import asdict

import pandas as pd
import pytest

from core.data import NUMERIC_FIELDS, PRINT_RECORD_COLUMNS, PrintRecord, _load_dashboard_data_cached, empty_records


SAMPLE_CSV = """Date,Department,User Type,pages_per_sheet,Total Pages,Copies,sheet_used
03/14/2024,Finance,Staff,1,10,1,10
2024-05-01,HR,Staff,2,8,1,4
2023,Finance,Student,1,"1,200",1,"1,200"
14/3/99,IT,Staff,1,3,1,3
pending,IT,Staff,4,4,1,1
,HR,Staff,1,5,1,5
2024-06-01,HR,Staff,1,5,1,0
"""


@pytest.fixture(autouse=True)
def _clear_loader_cache():
    _load_dashboard_data_cached.cache_clear()
    yield
    _load_dashboard_data_cached.cache_clear()


@pytest.fixture()
def clean_env(monkeypatch):
    for name in ["GEMINI_API_KEY", "API_KEY", "ECOPRINT_DATA_URL", "ECOPRINT_HTTP_TIMEOUT", "ECOPRINT_GEMINI_MODEL"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture()
def sample_csv_text() -> str:
    return SAMPLE_CSV


@pytest.fixture()
def make_records():
    def _make(*records: PrintRecord) -> pd.DataFrame:
        if not records:
            return empty_records()
        df = pd.DataFrame([asdict(r) for r in records], columns=PRINT_RECORD_COLUMNS)
        return df.astype({c: float for c in NUMERIC_FIELDS})

    return _make


@pytest.fixture()
def sample_records(make_records) -> pd.DataFrame:
    """The five rows of SAMPLE_CSV that survive normalization."""
    return make_records(
        PrintRecord("03/14/2024", "Finance", "Staff", 1, 10, 1, 10),
        PrintRecord("2024-05-01", "HR", "Staff", 2, 8, 1, 4),
        PrintRecord("2023", "Finance", "Student", 1, 1200, 1, 1200),
        PrintRecord("14/3/99", "IT", "Staff", 1, 3, 1, 3),
        PrintRecord("pending", "IT", "Staff", 4, 4, 1, 1),
    )


class FakeResponse:
    def __init__(self, content: bytes, status_error: Exception | None = None):
        self.content = content
        self._status_error = status_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error


@pytest.fixture()
def fake_response():
    return FakeResponse


@pytest.fixture()
def fake_http(monkeypatch, sample_csv_text):
    """Serve SAMPLE_CSV from requests.get; returns the list of requested URLs."""
    calls: list[str] = []

    def _get(url, timeout=None, **kwargs):
        calls.append(url)
        return FakeResponse(sample_csv_text.encode("utf-8"))

    monkeypatch.setattr("core.data.requests.get", _get)
    return calls
