from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional

ALL = "all"

STATUS_BEATWISE = "Beatwise"
STATUS_BASECAT = "BaseCat"
STATUSES = (STATUS_BEATWISE, STATUS_BASECAT)

CHART_LIMIT_TOP = "10"
CHART_LIMIT_ALL = "all"
CHART_LIMITS = (CHART_LIMIT_TOP, CHART_LIMIT_ALL)

PAGE_SIZE = 15

# Filter field -> record column.
DIMENSIONS: Dict[str, str] = {
    "year": "year",
    "month": "month",
    "employee": "employee",
    "consignee": "consignee",
    "account_name": "account_name",
}

GROUP_COLUMNS: Dict[str, str] = {
    STATUS_BEATWISE: "account_beat",
    STATUS_BASECAT: "base_cat",
}


@dataclass(frozen=True)
class DashboardFilters:
    year: str = ALL
    month: str = ALL
    employee: str = ALL
    consignee: str = ALL
    account_name: str = ALL
    status: str = STATUS_BASECAT
    chart_limit: str = CHART_LIMIT_TOP

    def selected(self) -> Dict[str, str]:
        """Dimensions with an active (non-"all") selection."""
        out: Dict[str, str] = {}
        for name in DIMENSIONS:
            value = getattr(self, name)
            if value != ALL:
                out[name] = value
        return out


def _as_selection(value: object) -> str:
    if value is None:
        return ALL
    s = str(value).strip()
    return s or ALL


def normalize_filters(raw: Optional[Mapping[str, object]]) -> DashboardFilters:
    raw = raw or {}
    status = str(raw.get("status") or STATUS_BASECAT).strip()
    if status not in STATUSES:
        status = STATUS_BASECAT
    chart_limit = str(raw.get("chart_limit") or CHART_LIMIT_TOP).strip().lower()
    if chart_limit not in CHART_LIMITS:
        chart_limit = CHART_LIMIT_TOP
    return DashboardFilters(
        year=_as_selection(raw.get("year")),
        month=_as_selection(raw.get("month")),
        employee=_as_selection(raw.get("employee")),
        consignee=_as_selection(raw.get("consignee")),
        account_name=_as_selection(raw.get("account_name")),
        status=status,
        chart_limit=chart_limit,
    )


def group_column(status: str) -> str:
    return GROUP_COLUMNS.get(status, GROUP_COLUMNS[STATUS_BASECAT])


def select_consignee(filters: DashboardFilters, consignee: str) -> DashboardFilters:
    # Employee and account lists depend on the consignee, so stale picks are dropped.
    return replace(filters, consignee=_as_selection(consignee), employee=ALL, account_name=ALL)


def clear_filters(filters: DashboardFilters) -> DashboardFilters:
    return replace(filters, year=ALL, month=ALL, employee=ALL, consignee=ALL, account_name=ALL)
