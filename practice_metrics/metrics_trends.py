from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

from practice_metrics.cache import Snapshot
from practice_metrics.charts import to_vega_spec
from practice_metrics.data import (
    BALANCE,
    BILLING,
    DEPOSITS,
    EXPENSES,
    MONTH,
    PIPELINE,
    UNDER_CONTRACT,
    column_as_series,
    numeric_column,
    records,
)

ROLLING_WINDOW = 3


def compute_trends(snapshot: Snapshot) -> Dict[str, Any]:
    summary = snapshot.monthly_summary
    months = pd.DataFrame(
        {
            "month": column_as_series(summary, MONTH),
            "under_contract": numeric_column(summary, UNDER_CONTRACT),
            "pipeline": numeric_column(summary, PIPELINE),
            "billing": numeric_column(summary, BILLING),
            "expenses": numeric_column(summary, EXPENSES),
            "deposits": numeric_column(summary, DEPOSITS),
            "balance": numeric_column(summary, BALANCE),
        }
    ).reset_index(drop=True)
    # Trailing window shrinks at the start of the series.
    months["billing_rolling3"] = months["billing"].rolling(ROLLING_WINDOW, min_periods=1).mean()
    months["expenses_rolling3"] = months["expenses"].rolling(ROLLING_WINDOW, min_periods=1).mean()

    charts: Dict[str, Any] = {}
    if not months.empty:
        trend = months.assign(order=range(len(months)), month=months["month"].astype(str))
        long = trend.melt(
            id_vars=["order", "month"],
            value_vars=["billing", "billing_rolling3", "expenses_rolling3"],
            var_name="series",
            value_name="amount",
        )
        line = (
            alt.Chart(long)
            .mark_line(point={"filled": True, "size": 40})
            .encode(
                x=alt.X("month:N", title="Month", sort=alt.SortField("order"), axis=alt.Axis(grid=False)),
                y=alt.Y("amount:Q", axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
                color="series:N",
                tooltip=["month", "series", alt.Tooltip("amount:Q", format="$,.0f")],
            )
            .properties(height=260)
        )
        charts["billing_trend"] = to_vega_spec(line)

    return {"months": records(months), "charts": charts}
