from __future__ import annotations

from typing import Any, Dict, List, Tuple

import altair as alt
import pandas as pd

from core.filters import STATUS_BEATWISE

alt.data_transformers.disable_max_rows()

STATUS_COLORS = {
    STATUS_BEATWISE: "hsl(280, 80%, 55%)",
}
DEFAULT_COLOR = "hsl(330, 80%, 55%)"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def grouped_amount_chart(groups: List[Tuple[str, float]], status: str) -> alt.Chart:
    """Bar chart of summed amounts per group, in the order given."""
    df = pd.DataFrame(groups, columns=["name", "value"])
    order = df["name"].tolist()
    return (
        alt.Chart(df)
        .mark_bar(cornerRadiusTopLeft=6, cornerRadiusTopRight=6, color=STATUS_COLORS.get(status, DEFAULT_COLOR))
        .encode(
            x=alt.X("name:N", title=None, sort=order, axis=alt.Axis(labelAngle=-45, labelFontSize=10)),
            y=alt.Y(
                "value:Q",
                title="Total Amount",
                axis=alt.Axis(labelExpr="'₹' + format(datum.value / 1000, ',.0f') + 'K'", gridDash=[3, 3]),
            ),
            tooltip=[
                alt.Tooltip("name:N", title=status),
                alt.Tooltip("value:Q", title="Amount", format=",.2f"),
            ],
        )
        .properties(height=320)
    )
