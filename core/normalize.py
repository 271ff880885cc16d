from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.sheets import CANCEL_ORDER_SHEET, INDIRECT_SALE_SHEET

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    CANCEL_ORDER = "cancel_order"
    INDIRECT_SALE = "indirect_sale"


SOURCE_SHEETS: Dict[SourceKind, str] = {
    SourceKind.CANCEL_ORDER: CANCEL_ORDER_SHEET,
    SourceKind.INDIRECT_SALE: INDIRECT_SALE_SHEET,
}

# Priority-ordered raw column names per logical field.
CANCEL_ORDER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "year": ("Year",),
    "month": ("Month",),
    "account_name": ("AccountName",),
    "account_beat": ("AccountBeat",),
    "base_cat": ("BaseCat",),
    "consignee": ("Consigneename", "Consignee", "ConsigneeName"),
    "employee": ("EmployeeName", "Employee"),
    "total_amt": ("Total Amount", "Amount", "TotalAmt", "Net Amount"),
}

INDIRECT_SALE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "voucher_date": ("VoucherDate",),
    "account_name": ("AccountName",),
    "account_beat": ("Beat",),
    "base_cat": ("BaseCat",),
    "consignee": ("Parentname",),
    "employee": ("SalesMan_Cloud",),
    "total_amt": ("Amount",),
}

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
DATE_PATTERNS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d")
_NUMERIC_DATE = re.compile(r"^\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}\b")

RECORD_COLUMNS = [
    "year",
    "month",
    "account_name",
    "account_beat",
    "base_cat",
    "consignee",
    "employee",
    "total_amt",
]

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


@dataclass(frozen=True)
class NormalizedRecord:
    year: str = ""
    month: str = ""
    account_name: str = ""
    account_beat: str = ""
    base_cat: str = ""
    consignee: str = ""
    employee: str = ""
    total_amt: float = 0.0


def first_present(raw: Mapping[str, object], aliases: Sequence[str]) -> str:
    for name in aliases:
        value = raw.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def parse_amount(value: object) -> float:
    """Parse a currency-like string ("₹12,345.50") into a float, 0.0 when unusable."""
    if value is None:
        return 0.0
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        out = float(match.group(0))
    except ValueError:
        return 0.0
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def _parse_datetime(text: str) -> Optional[datetime]:
    for fmt in DATE_PATTERNS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    # numeric dates only
    if not _NUMERIC_DATE.match(text):
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed) or parsed.year < 1000:
        return None
    return parsed.to_pydatetime()


def derive_year_month(value: object) -> Tuple[str, str]:
    """Split a voucher date like "2025-01-04 0:00" into ("2025", "Jan")."""
    text = "" if value is None else str(value).strip()
    if not text:
        return "", ""
    try:
        parsed = _parse_datetime(text)
    except (ValueError, OverflowError):
        parsed = None
    if parsed is None:
        logger.warning("Could not parse date %r", text)
        return "", ""
    return str(parsed.year), MONTH_ABBR[parsed.month - 1]


def _normalize_cancel_order(raw: Mapping[str, object]) -> NormalizedRecord:
    a = CANCEL_ORDER_ALIASES
    return NormalizedRecord(
        year=first_present(raw, a["year"]),
        month=first_present(raw, a["month"]),
        account_name=first_present(raw, a["account_name"]),
        account_beat=first_present(raw, a["account_beat"]),
        base_cat=first_present(raw, a["base_cat"]),
        consignee=first_present(raw, a["consignee"]),
        employee=first_present(raw, a["employee"]),
        total_amt=parse_amount(first_present(raw, a["total_amt"])),
    )


def _normalize_indirect_sale(raw: Mapping[str, object]) -> NormalizedRecord:
    a = INDIRECT_SALE_ALIASES
    year, month = derive_year_month(first_present(raw, a["voucher_date"]))
    return NormalizedRecord(
        year=year,
        month=month,
        account_name=first_present(raw, a["account_name"]),
        account_beat=first_present(raw, a["account_beat"]),
        base_cat=first_present(raw, a["base_cat"]),
        consignee=first_present(raw, a["consignee"]),
        employee=first_present(raw, a["employee"]),
        total_amt=parse_amount(first_present(raw, a["total_amt"])),
    )


def normalize(raw: Mapping[str, object], source_kind: SourceKind = SourceKind.CANCEL_ORDER) -> NormalizedRecord:
    if source_kind == SourceKind.INDIRECT_SALE:
        return _normalize_indirect_sale(raw)
    return _normalize_cancel_order(raw)


def normalize_records(
    rows: Iterable[Mapping[str, object]],
    source_kind: SourceKind = SourceKind.CANCEL_ORDER,
) -> List[NormalizedRecord]:
    return [normalize(row, source_kind) for row in rows]


def records_frame(records: Iterable[NormalizedRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    if not rows:
        df = pd.DataFrame(columns=RECORD_COLUMNS)
        df["total_amt"] = df["total_amt"].astype(float)
        return df
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    df["total_amt"] = pd.to_numeric(df["total_amt"], errors="coerce").fillna(0.0).astype(float)
    return df
