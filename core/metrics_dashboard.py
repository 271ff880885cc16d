from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.charts import grouped_amount_chart, to_vega_spec
from core.data import group_totals, paginate, summary_totals, table_columns
from core.filters import DashboardFilters


def compute_dashboard(filters: DashboardFilters, ctx: Dict[str, Any], *, page: int = 1) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    user = ctx.get("user")

    summary = summary_totals(filtered)
    groups = group_totals(filtered, filters.status, filters.chart_limit)

    charts: Dict[str, Any] = {}
    if groups:
        charts["grouped_amount"] = to_vega_spec(grouped_amount_chart(groups, filters.status))

    table_page = paginate(filtered, page)
    cols = table_columns(filters.status)
    rows = table_page.rows[cols].rename(columns={cols[3]: "group"})

    return {
        "filters": asdict(filters),
        "user": user.to_dict() if user is not None else None,
        "options": ctx.get("options", {}),
        "summary": asdict(summary),
        "chart": {
            "group_column": ctx.get("group_column"),
            "groups": [{"name": name, "value": value} for name, value in groups],
        },
        "charts": charts,
        "table": {
            "page": table_page.page,
            "total_pages": table_page.total_pages,
            "page_size": table_page.page_size,
            "total": table_page.total,
            "start": table_page.start,
            "end": table_page.end,
            "rows": rows.to_dict(orient="records"),
        },
    }
