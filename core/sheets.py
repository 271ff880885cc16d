from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import quote

import pandas as pd
import requests

from core.config import Settings, get_settings, require_spreadsheet_id
from core.errors import ConfigError, FetchError

logger = logging.getLogger(__name__)

MASTER_SHEET = "Master"
CANCEL_ORDER_SHEET = "CancelOrder(consignee)"
INDIRECT_SALE_SHEET = "Retailer Under Micro (Indirect Sale)"

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq?tqx=out:csv&sheet={sheet}"

RawRecord = Dict[str, str]


def build_export_url(spreadsheet_id: str, sheet_name: str) -> str:
    return EXPORT_URL_TEMPLATE.format(
        spreadsheet_id=quote(spreadsheet_id, safe=""),
        sheet=quote(sheet_name, safe=""),
    )


def parse_csv_records(text: str) -> List[RawRecord]:
    """Decode CSV text into one dict per row, keyed by the trimmed header row.

    Every value stays a string; cells missing from short rows become "".
    Trailing delimiters are ignored and rows with extra cells are skipped
    with a ParserWarning. Anything pandas still cannot decode is a FetchError.
    """
    if not text or not text.strip():
        return []
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
            on_bad_lines="warn",
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as exc:
        raise FetchError(f"Could not decode CSV: {exc}") from exc
    df.columns = [str(c).strip() for c in df.columns]
    df = df.fillna("")
    return df.to_dict(orient="records")


def download_sheet(sheet_name: str, settings: Optional[Settings] = None) -> List[RawRecord]:
    """Fetch one sheet from the spreadsheet's CSV export endpoint."""
    settings = settings or get_settings()
    spreadsheet_id = require_spreadsheet_id(settings)
    url = build_export_url(spreadsheet_id, sheet_name)
    try:
        resp = requests.get(url, timeout=settings.request_timeout)
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch sheet {sheet_name!r}: {exc}") from exc
    if not resp.ok:
        # Sheets that are not shared publicly answer with 4xx or a login redirect.
        raise FetchError(f"Failed to fetch sheet {sheet_name!r}: {resp.status_code} {resp.reason}")
    return parse_csv_records(resp.text)


def request_sheet_via_api(base_url: str, sheet_name: str, *, timeout: float) -> List[RawRecord]:
    url = f"{base_url.rstrip('/')}/api/sheet"
    try:
        resp = requests.get(url, params={"sheet": sheet_name}, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch sheet {sheet_name!r}: {exc}") from exc
    if not resp.ok:
        raise FetchError(f"Failed to fetch sheet {sheet_name!r}: {resp.status_code} {resp.reason} - {resp.text}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise FetchError(f"Sheet proxy returned invalid JSON for {sheet_name!r}") from exc
    if not isinstance(data, list):
        raise FetchError(f"Sheet proxy returned {type(data).__name__} for {sheet_name!r}, expected a list")
    return data


@dataclass
class SheetResult:
    records: List[RawRecord] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def fetch_sheet_result(
    sheet_name: str,
    *,
    api_base_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> SheetResult:
    """Fetch a sheet without raising.

    Goes through the sheet proxy when ``api_base_url`` is given, otherwise
    straight to the export endpoint. Failures are logged and reported on the
    result so callers can tell an empty sheet from a failed fetch.
    """
    settings = settings or get_settings()
    try:
        if api_base_url:
            records = request_sheet_via_api(api_base_url, sheet_name, timeout=settings.request_timeout)
        else:
            records = download_sheet(sheet_name, settings)
    except (ConfigError, FetchError) as exc:
        logger.exception("Error fetching sheet %r", sheet_name)
        return SheetResult(records=[], error=exc)
    return SheetResult(records=records)


def fetch_sheet(
    sheet_name: str,
    *,
    api_base_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> List[RawRecord]:
    return fetch_sheet_result(sheet_name, api_base_url=api_base_url, settings=settings).records
