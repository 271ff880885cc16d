from __future__ import annotations

import pandas as pd
import pytest
import requests

from core import sheets
from core.config import Settings, extract_spreadsheet_id, require_spreadsheet_id, settings_from_env
from core.errors import ConfigError, FetchError
from core.sheets import (
    CANCEL_ORDER_SHEET,
    build_export_url,
    download_sheet,
    fetch_sheet,
    fetch_sheet_result,
    parse_csv_records,
)
from tests.conftest import FakeResponse

CSV_TEXT = '" Year ","Month","AccountName ","Total Amount"\n"2024","Mar","Alpha","₹1,200"\n\n"2025","Jan","Beta",""\n'


def test_extract_spreadsheet_id():
    assert extract_spreadsheet_id("https://docs.google.com/spreadsheets/d/abc123-XYZ_9/edit") == "abc123-XYZ_9"
    assert extract_spreadsheet_id("https://example.com/sheet") is None
    assert extract_spreadsheet_id("") is None
    assert extract_spreadsheet_id(None) is None


def test_require_spreadsheet_id_raises_without_link():
    with pytest.raises(ConfigError, match="Google Sheet ID invalid or missing"):
        require_spreadsheet_id(Settings(sheet_link=""))


def test_build_export_url_encodes_parts():
    url = build_export_url("abc123", "Retailer Under Micro (Indirect Sale)")
    assert url.startswith("https://docs.google.com/spreadsheets/d/abc123/gviz/tq?tqx=out:csv&sheet=")
    assert url.endswith("Retailer%20Under%20Micro%20%28Indirect%20Sale%29")


def test_parse_csv_records_trims_headers_and_skips_blank_lines():
    rows = parse_csv_records(CSV_TEXT)
    assert rows == [
        {"Year": "2024", "Month": "Mar", "AccountName": "Alpha", "Total Amount": "₹1,200"},
        {"Year": "2025", "Month": "Jan", "AccountName": "Beta", "Total Amount": ""},
    ]


def test_parse_csv_records_short_rows_fill_blank():
    rows = parse_csv_records("A,B,C\n1,2\n")
    assert rows == [{"A": "1", "B": "2", "C": ""}]


@pytest.mark.parametrize("text", ["", "   \n"])
def test_parse_csv_records_empty(text):
    assert parse_csv_records(text) == []


def test_parse_csv_records_ignores_trailing_delimiters():
    rows = parse_csv_records("Year,Month\n2025,Jan,\n2024,Feb,\n")
    assert rows == [{"Year": "2025", "Month": "Jan"}, {"Year": "2024", "Month": "Feb"}]


@pytest.mark.filterwarnings("ignore::pandas.errors.ParserWarning")
def test_fetch_sheet_skips_rows_with_extra_cells(monkeypatch, settings):
    monkeypatch.setattr(
        sheets.requests, "get", lambda url, timeout: FakeResponse(text="Year,Month\n2025,Jan\n2024,Feb,x,y\n")
    )
    assert fetch_sheet("Master", settings=settings) == [{"Year": "2025", "Month": "Jan"}]


def test_fetch_sheet_result_reports_undecodable_csv(monkeypatch, settings):
    def bad_csv(*args, **kwargs):
        raise pd.errors.ParserError("Error tokenizing data")

    monkeypatch.setattr(sheets.requests, "get", lambda url, timeout: FakeResponse(text="Year,Month\n2025,Jan\n"))
    monkeypatch.setattr(sheets.pd, "read_csv", bad_csv)
    result = fetch_sheet_result("Master", settings=settings)
    assert result.failed
    assert isinstance(result.error, FetchError)
    assert fetch_sheet("Master", settings=settings) == []


def test_download_sheet_success(monkeypatch, settings):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(text=CSV_TEXT)

    monkeypatch.setattr(sheets.requests, "get", fake_get)
    rows = download_sheet(CANCEL_ORDER_SHEET, settings)
    assert len(rows) == 2
    assert calls[0][0] == build_export_url("abc123-XYZ_9", CANCEL_ORDER_SHEET)
    assert calls[0][1] == 5.0


def test_download_sheet_non_success_status(monkeypatch, settings):
    monkeypatch.setattr(sheets.requests, "get", lambda url, timeout: FakeResponse(status_code=403, reason="Forbidden"))
    with pytest.raises(FetchError, match="403"):
        download_sheet("Master", settings)


def test_download_sheet_network_error(monkeypatch, settings):
    def boom(url, timeout):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(sheets.requests, "get", boom)
    with pytest.raises(FetchError):
        download_sheet("Master", settings)


def test_download_sheet_requires_config(monkeypatch):
    monkeypatch.setattr(sheets.requests, "get", lambda *a, **k: pytest.fail("should not fetch"))
    with pytest.raises(ConfigError):
        download_sheet("Master", Settings(sheet_link="not a sheet url"))


def test_fetch_sheet_result_distinguishes_failure_from_empty(monkeypatch, settings):
    monkeypatch.setattr(sheets.requests, "get", lambda url, timeout: FakeResponse(status_code=500, reason="Server Error"))
    failed = fetch_sheet_result("Master", settings=settings)
    assert failed.failed
    assert failed.records == []
    assert isinstance(failed.error, FetchError)

    monkeypatch.setattr(sheets.requests, "get", lambda url, timeout: FakeResponse(text="ID,Password\n"))
    empty = fetch_sheet_result("Master", settings=settings)
    assert not empty.failed
    assert empty.records == []


def test_fetch_sheet_swallows_config_error():
    assert fetch_sheet("Master", settings=Settings(sheet_link="")) == []


def test_fetch_sheet_via_api(monkeypatch, settings):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params, timeout=timeout)
        return FakeResponse(json_data=[{"ID": "u1"}])

    monkeypatch.setattr(sheets.requests, "get", fake_get)
    rows = fetch_sheet("Master", api_base_url="http://localhost:8000/", settings=settings)
    assert rows == [{"ID": "u1"}]
    assert seen == {"url": "http://localhost:8000/api/sheet", "params": {"sheet": "Master"}, "timeout": 5.0}


def test_fetch_sheet_via_api_error_status(monkeypatch, settings):
    monkeypatch.setattr(
        sheets.requests,
        "get",
        lambda url, params=None, timeout=None: FakeResponse(status_code=500, text='{"error": "Failed to fetch data"}'),
    )
    result = fetch_sheet_result("Master", api_base_url="http://localhost:8000", settings=settings)
    assert result.failed
    assert result.records == []


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEET_LINK", " https://docs.google.com/spreadsheets/d/xyz/edit ")
    monkeypatch.setenv("DASHBOARD_API_URL", "http://localhost:8000/")
    monkeypatch.setenv("DASHBOARD_REQUEST_TIMEOUT", "soon")
    s = settings_from_env()
    assert s.spreadsheet_id == "xyz"
    assert s.api_base_url == "http://localhost:8000"
    assert s.request_timeout == 30.0
