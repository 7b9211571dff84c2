from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def stacked_status_bar(df: pd.DataFrame, x: str, *, title: str) -> Dict[str, Any]:
    """Stacked O / PR bars per ``x`` from a frame with ``o`` and ``pr`` columns."""
    long = df.melt(id_vars=[x], value_vars=["o", "pr"], var_name="status", value_name="fee")
    long["status"] = long["status"].str.upper()
    bar = (
        alt.Chart(long)
        .mark_bar()
        .encode(
            x=alt.X(f"{x}:N", title=title, sort=None, axis=alt.Axis(grid=False)),
            y=alt.Y("fee:Q", stack="zero", axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("status:N", title="Status"),
            tooltip=[x, "status", alt.Tooltip("fee:Q", format="$,.0f")],
        )
        .properties(height=260)
    )
    return to_vega_spec(bar)
