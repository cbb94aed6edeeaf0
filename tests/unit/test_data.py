from __future__ import annotations

import pandas as pd
import pytest
import requests

from core.data import (
    DataSourceError,
    NUMERIC_FIELDS,
    PRINT_RECORD_COLUMNS,
    PrintRecord,
    fetch_csv_text,
    load_dashboard_data,
    load_records,
    normalize_header,
    normalize_records,
    parse_number,
    pick_alias,
    read_raw_rows,
    to_records,
)


def _raw(rows):
    return pd.DataFrame(rows, dtype=object)


def test_normalize_header_trims_and_lowercases():
    assert normalize_header("  Sheet_Used ") == "sheet_used"
    assert normalize_header("User Type") == "user type"


@pytest.mark.parametrize(
    "value,default,expected",
    [
        ("1,234.5", 0.0, 1234.5),
        (" 12 ", 0.0, 12.0),
        ("", 1.0, 1.0),
        (None, 1.0, 1.0),
        ("abc", 0.0, 0.0),
        ("-3", 0.0, 0.0),
        ("0", 1.0, 0.0),
        ("12 sheets", 0.0, 12.0),
        ("12 แผ่น", 0.0, 12.0),
        ("2.5x", 1.0, 2.5),
        (".5", 0.0, 0.5),
        ("1e3", 0.0, 1000.0),
        ("x12", 0.0, 0.0),
    ],
)
def test_parse_number_is_tolerant(value, default, expected):
    assert parse_number(value, default) == expected


def test_pick_alias_uses_first_non_empty_alias():
    frame = _raw([{"date": "", "timestamp": "2024-01-02", "time": "ignored"}, {"date": "2023", "timestamp": "x"}])
    picked = pick_alias(frame, ["date", "timestamp", "time"])
    assert picked.tolist() == ["2024-01-02", "2023"]


def test_pick_alias_missing_everywhere_is_empty():
    frame = _raw([{"other": "1"}])
    assert pick_alias(frame, ["date", "timestamp"]).tolist() == [""]


def test_normalize_records_applies_header_aliases_and_defaults():
    raw = _raw([{" DATE ": "2024-02-01", "Dept": "Legal", "Usage": "7"}])
    out = normalize_records(raw)

    assert list(out.columns) == PRINT_RECORD_COLUMNS
    row = out.iloc[0]
    assert row["date"] == "2024-02-01"
    assert row["department"] == "Legal"
    assert row["user_type"] == "Unknown"
    assert row["pages_per_sheet"] == 1.0
    assert row["total_pages"] == 0.0
    assert row["copies"] == 0.0
    assert row["sheet_used"] == 7.0


def test_normalize_records_accepts_thai_headers():
    raw = _raw([{"วันที่": "01/02/2024", "แผนก": "บัญชี", "ประเภท": "อาจารย์", "จำนวนหน้าต่อแผ่น": "2", "จำนวนกระดาษ": "3"}])
    out = normalize_records(raw)

    assert len(out) == 1
    assert out.iloc[0]["department"] == "บัญชี"
    assert out.iloc[0]["user_type"] == "อาจารย์"
    assert out.iloc[0]["pages_per_sheet"] == 2.0
    assert out.iloc[0]["sheet_used"] == 3.0


def test_normalize_records_bad_numbers_fall_back_to_defaults():
    raw = _raw([{"date": "2024", "pages_per_sheet": "two", "copies": "n/a", "total_pages": "", "sheet_used": "5"}])
    row = normalize_records(raw).iloc[0]
    assert row["pages_per_sheet"] == 1.0
    assert row["copies"] == 0.0
    assert row["total_pages"] == 0.0


def test_normalize_records_drops_rows_without_usage_or_date():
    raw = _raw(
        [
            {"date": "2024", "sheet_used": "0"},
            {"date": "2024", "sheet_used": "abc"},
            {"date": "   ", "sheet_used": "4"},
            {"date": "", "sheet_used": "4"},
            {"department": "HR"},
            {"date": "2024", "sheet_used": "2"},
        ]
    )
    out = normalize_records(raw)
    assert len(out) == 1
    assert out.iloc[0]["sheet_used"] == 2.0


def test_normalize_records_empty_input():
    out = normalize_records(pd.DataFrame())
    assert out.empty
    assert list(out.columns) == PRINT_RECORD_COLUMNS


def test_read_raw_rows_and_normalize_sample(sample_csv_text, sample_records):
    raw = read_raw_rows(sample_csv_text)
    out = normalize_records(raw)

    assert len(raw) == 7
    assert len(out) == 5
    pd.testing.assert_frame_equal(out[NUMERIC_FIELDS], sample_records[NUMERIC_FIELDS])
    assert out["date"].tolist() == sample_records["date"].tolist()


def test_read_raw_rows_strips_bom():
    raw = read_raw_rows("\ufeffDate,sheet_used\n2024,3\n")
    assert list(raw.columns) == ["Date", "sheet_used"]


def test_read_raw_rows_trailing_delimiter_keeps_columns_aligned():
    raw = read_raw_rows("Date,Department,sheet_used\n2024-01-01,IT,5,\n2024-02-01,HR,7,\n")
    assert list(raw.columns) == ["Date", "Department", "sheet_used"]
    assert raw["Date"].tolist() == ["2024-01-01", "2024-02-01"]

    out = normalize_records(raw)
    assert out["department"].tolist() == ["IT", "HR"]
    assert out["sheet_used"].tolist() == [5.0, 7.0]


def test_read_raw_rows_extra_fields_are_truncated_not_dropped():
    raw = read_raw_rows("Date,Department,sheet_used\n2024-01-01,IT,5\n2024-02-01,HR,7,extra\n2024-03-01,IT,2\n")
    assert len(raw) == 3
    assert raw.iloc[1].tolist() == ["2024-02-01", "HR", "7"]
    assert len(normalize_records(raw)) == 3


def test_read_raw_rows_short_rows_are_padded():
    out = normalize_records(read_raw_rows("Date,Department,sheet_used\n2024-01-01,IT\n2024-02-01,HR,7\n"))
    assert out["department"].tolist() == ["HR"]


def test_normalize_records_reads_leading_number_of_usage_cells():
    out = normalize_records(read_raw_rows("date,sheet_used\n2024,12 sheets\n2024,3\n"))
    assert out["sheet_used"].tolist() == [12.0, 3.0]


def test_read_raw_rows_header_only():
    raw = read_raw_rows("Date,sheet_used\n")
    assert raw.empty
    assert normalize_records(raw).empty


def test_read_raw_rows_empty_document_is_fatal():
    with pytest.raises(DataSourceError):
        read_raw_rows("")


def test_to_records_returns_print_records(sample_records):
    records = to_records(sample_records)
    assert len(records) == 5
    assert records[0] == PrintRecord("03/14/2024", "Finance", "Staff", 1.0, 10.0, 1.0, 10.0)


def test_fetch_csv_text_transport_error(monkeypatch):
    def _get(url, timeout=None, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr("core.data.requests.get", _get)
    with pytest.raises(DataSourceError):
        fetch_csv_text("http://example.test/print.csv")


def test_fetch_csv_text_http_error(monkeypatch, fake_response):
    monkeypatch.setattr(
        "core.data.requests.get",
        lambda url, timeout=None, **kw: fake_response(b"", status_error=requests.HTTPError("500 Server Error")),
    )
    with pytest.raises(DataSourceError):
        fetch_csv_text("http://example.test/print.csv")


def test_fetch_csv_text_decodes_utf8_with_bom(monkeypatch, fake_response):
    body = "\ufeffวันที่,จำนวนกระดาษ\n2024,1\n".encode("utf-8")
    monkeypatch.setattr("core.data.requests.get", lambda url, timeout=None, **kw: fake_response(body))
    assert fetch_csv_text("http://example.test/print.csv").startswith("วันที่")


def test_load_records_uses_configured_url(clean_env, fake_http):
    clean_env.setenv("ECOPRINT_DATA_URL", "http://example.test/print.csv")
    out = load_records()
    assert len(out) == 5
    assert fake_http == ["http://example.test/print.csv"]


def test_load_dashboard_data_caches_until_refresh(clean_env, fake_http):
    clean_env.setenv("ECOPRINT_DATA_URL", "http://example.test/print.csv")

    first = load_dashboard_data()
    second = load_dashboard_data()
    assert first is second
    assert len(fake_http) == 1
    assert first["raw_rows"] == 7
    assert first["departments"] == ["Finance", "HR", "IT"]
    assert first["years"] == ["2024", "2023", "1999"]

    third = load_dashboard_data(refresh=True)
    assert third is not first
    assert len(fake_http) == 2


def test_load_dashboard_data_failure_is_not_cached(clean_env, monkeypatch, sample_csv_text, fake_response):
    clean_env.setenv("ECOPRINT_DATA_URL", "http://example.test/print.csv")
    state = {"fail": True}

    def _get(url, timeout=None, **kwargs):
        if state["fail"]:
            raise requests.Timeout("slow")
        return fake_response(sample_csv_text.encode("utf-8"))

    monkeypatch.setattr("core.data.requests.get", _get)
    with pytest.raises(DataSourceError):
        load_dashboard_data()

    state["fail"] = False
    assert len(load_dashboard_data()["records"]) == 5
