from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from core.auth import AuthenticatedUser
from core.filters import ALL, CHART_LIMIT_ALL, DIMENSIONS, PAGE_SIZE, DashboardFilters, group_column
from core.normalize import SOURCE_SHEETS, SourceKind, normalize_records, records_frame
from core.sheets import RawRecord, fetch_sheet

logger = logging.getLogger(__name__)

CHART_TOP_N = 10

# Which other selections narrow each dimension's option list.
OPTION_DEPENDENCIES: Dict[str, Tuple[str, ...]] = {
    "year": (),
    "month": ("year", "consignee", "account_name", "employee"),
    "consignee": (),
    "employee": ("consignee",),
    "account_name": ("consignee",),
}
UNSORTED_OPTIONS = {"month"}


@dataclass(frozen=True)
class SummaryTotals:
    total_amount: float
    record_count: int
    average_amount: float


@dataclass(frozen=True)
class Page:
    page: int
    total_pages: int
    page_size: int
    total: int
    start: int
    end: int
    rows: pd.DataFrame


# ---------------- Loading ----------------
def load_dashboard_records(
    source: SourceKind = SourceKind.CANCEL_ORDER,
    *,
    api_base_url: Optional[str] = None,
    fetch: Optional[Callable[[str], List[RawRecord]]] = None,
) -> pd.DataFrame:
    """Fetch the source's sheet and normalize every row. Nothing is cached."""
    sheet_name = SOURCE_SHEETS[source]
    if fetch is None:
        rows = fetch_sheet(sheet_name, api_base_url=api_base_url)
    else:
        rows = fetch(sheet_name)
    df = records_frame(normalize_records(rows, source))
    logger.info("Loaded %d rows from %r", len(df), sheet_name)
    return df


# ---------------- Filtering ----------------
def restrict_visibility(df: pd.DataFrame, user: AuthenticatedUser) -> pd.DataFrame:
    if user.is_admin or df.empty:
        return df
    return df[df["consignee"] == user.name]


def apply_filters(df: pd.DataFrame, filters: DashboardFilters, exclude: Iterable[str] = ()) -> pd.DataFrame:
    skip = set(exclude)
    out = df
    for name, value in filters.selected().items():
        if name in skip:
            continue
        out = out[out[DIMENSIONS[name]] == value]
    return out


def _distinct(series: pd.Series, *, sort: bool) -> List[str]:
    values = [str(v).strip() for v in series.tolist()]
    unique = [v for v in dict.fromkeys(values) if v]
    return sorted(unique) if sort else unique


def option_lists(visible: pd.DataFrame, filters: DashboardFilters) -> Dict[str, List[str]]:
    options: Dict[str, List[str]] = {}
    for name, depends_on in OPTION_DEPENDENCIES.items():
        source = visible
        for dep in depends_on:
            value = getattr(filters, dep)
            if value != ALL:
                source = source[source[DIMENSIONS[dep]] == value]
        options[name] = _distinct(source[DIMENSIONS[name]], sort=name not in UNSORTED_OPTIONS)
    return options


# ---------------- Aggregation ----------------
def group_totals(df: pd.DataFrame, status: str, limit: str = CHART_LIMIT_ALL) -> List[Tuple[str, float]]:
    if df.empty:
        return []
    col = group_column(status)
    grouped = df.groupby(col, sort=False)["total_amt"].sum()
    # mergesort keeps first-seen order between equal sums
    grouped = grouped.sort_values(ascending=False, kind="mergesort")
    if limit != CHART_LIMIT_ALL:
        grouped = grouped.head(CHART_TOP_N)
    return [(str(label), float(value)) for label, value in grouped.items()]


def summary_totals(df: pd.DataFrame) -> SummaryTotals:
    count = int(len(df))
    total = float(df["total_amt"].sum()) if count else 0.0
    return SummaryTotals(total_amount=total, record_count=count, average_amount=total / count if count else 0.0)


# ---------------- Pagination ----------------
def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(total / page_size) if total > 0 else 0


def clamp_page(page: int, total: int, page_size: int = PAGE_SIZE) -> int:
    last = max(1, page_count(total, page_size))
    return max(1, min(int(page), last))


def paginate(df: pd.DataFrame, page: int = 1, page_size: int = PAGE_SIZE) -> Page:
    total = int(len(df))
    current = clamp_page(page, total, page_size)
    start = (current - 1) * page_size
    end = min(start + page_size, total)
    return Page(
        page=current,
        total_pages=page_count(total, page_size),
        page_size=page_size,
        total=total,
        start=start,
        end=end,
        rows=df.iloc[start:end],
    )


def next_page(page: int, total: int, page_size: int = PAGE_SIZE) -> int:
    return clamp_page(page + 1, total, page_size)


def previous_page(page: int, total: int, page_size: int = PAGE_SIZE) -> int:
    return clamp_page(page - 1, total, page_size)


# ---------------- Formatting ----------------
def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_inr(value: object, decimals: int = 0) -> str:
    """Format an amount with Indian digit grouping: 1234567 -> "₹12,34,567"."""
    rounded = round_half_up(value, decimals)
    if rounded is None:
        return "N/A"
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):.{decimals}f}"
    whole, _, frac = text.partition(".")
    out = f"{sign}₹{_group_indian(whole)}"
    return f"{out}.{frac}" if frac else out


# ---------------- Public API (Streamlit + FastAPI use) ----------------
def prepare_context(filters: DashboardFilters, user: AuthenticatedUser, records: pd.DataFrame) -> Dict[str, object]:
    if records is None or records.empty:
        records = records_frame([])
    visible = restrict_visibility(records, user)
    filtered = apply_filters(visible, filters)
    return {
        "filters": filters,
        "user": user,
        "records": records,
        "visible": visible,
        "filtered": filtered,
        "options": option_lists(visible, filters),
        "group_column": group_column(filters.status),
    }


def table_columns(status: str) -> List[str]:
    return ["year", "month", "account_name", group_column(status), "total_amt"]

