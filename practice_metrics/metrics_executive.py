from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from practice_metrics.cache import Snapshot
from practice_metrics.charts import stacked_status_bar
from practice_metrics.config import DEFAULT_CONFIG, MetricsConfig
from practice_metrics.data import (
    BILLING,
    CLIENT,
    EXPENSES,
    FEE,
    FEE_REMAINING,
    MONTH,
    PARTNER,
    PM,
    PROBABILITY,
    EngagementStatus,
    ProposalStatus,
    billing_columns,
    billing_month_label,
    numeric_column,
    rows_with_status,
    text_column,
)
from practice_metrics.dates import parse_month_label


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _fee_by_partner(df: pd.DataFrame, partners) -> Dict[str, float]:
    totals = df.groupby(text_column(df, PARTNER))["_fee"].sum() if not df.empty else pd.Series(dtype=float)
    return {p: float(totals.get(p, 0.0)) for p in partners}


def _fee_by_pm(df: pd.DataFrame) -> Dict[str, float]:
    if df.empty:
        return {}
    pm = text_column(df, PM)
    totals = df[pm != ""].groupby(pm[pm != ""])["_fee"].sum()
    return {str(k): float(v) for k, v in totals.items()}


def recent_complete_months(summary: pd.DataFrame, limit: int) -> pd.DataFrame:
    """Most recent ``limit`` months with billing > 0.

    Sheet order is detected by comparing only the first and last kept month, so
    a summary that is unsorted in the middle is not reordered.
    """
    if summary.empty:
        return summary
    kept = summary[numeric_column(summary, BILLING) > 0]
    if len(kept) >= 2:
        first = parse_month_label(kept[MONTH].iloc[0]) if MONTH in kept.columns else None
        last = parse_month_label(kept[MONTH].iloc[-1]) if MONTH in kept.columns else None
        if first is not None and last is not None and first > last:
            return kept.head(limit)
    return kept.tail(limit)


def compute_executive(snapshot: Snapshot, config: MetricsConfig = DEFAULT_CONFIG) -> Dict[str, Any]:
    engagements = snapshot.engagements.copy()
    engagements["_fee"] = numeric_column(engagements, FEE_REMAINING)
    open_projects = rows_with_status(engagements, EngagementStatus.UNDER_CONTRACT)
    projected_projects = rows_with_status(engagements, EngagementStatus.PROJECTED)

    total_fee_o = float(open_projects["_fee"].sum())
    total_fee_pr = float(projected_projects["_fee"].sum())
    clients = text_column(open_projects, CLIENT)
    client_count = int(clients[clients != ""].nunique())

    fee_by_partner_o = _fee_by_partner(open_projects, config.partners)
    fee_by_partner_pr = _fee_by_partner(projected_projects, config.partners)

    fee_by_pm_o = _fee_by_pm(open_projects)
    fee_by_pm_pr = _fee_by_pm(projected_projects)
    for pm in set(fee_by_pm_o) | set(fee_by_pm_pr):
        fee_by_pm_o.setdefault(pm, 0.0)
        fee_by_pm_pr.setdefault(pm, 0.0)

    monthly_projections = []
    for col in billing_columns(snapshot.engagements)[: config.projection_months]:
        o_total = float(numeric_column(open_projects, col).sum())
        pr_total = float(numeric_column(projected_projects, col).sum())
        monthly_projections.append(
            {"month": billing_month_label(col), "o": o_total, "pr": pr_total, "total": o_total + pr_total}
        )

    recent = recent_complete_months(snapshot.monthly_summary, config.history_months)
    avg_billing_mo = float(numeric_column(recent, BILLING).mean()) if not recent.empty else 0.0
    avg_expenses_mo = float(numeric_column(recent, EXPENSES).mean()) if not recent.empty else 0.0
    avg_margin = (avg_billing_mo - avg_expenses_mo) / avg_billing_mo if avg_billing_mo > 0 else 0.0

    first3 = monthly_projections[:3]
    first6 = monthly_projections[:6]

    proposals = rows_with_status(snapshot.proposals, ProposalStatus.OPEN)
    proposal_fee = numeric_column(proposals, FEE)
    weights = text_column(proposals, PROBABILITY).map(config.probability_weight).astype(float)

    partner_summary = [
        {
            "partner": p,
            "o": fee_by_partner_o[p],
            "pr": fee_by_partner_pr[p],
            "combined": fee_by_partner_o[p] + fee_by_partner_pr[p],
        }
        for p in config.partners
    ]
    pm_summary = sorted(
        (
            {"pm": pm, "o": fee_by_pm_o[pm], "pr": fee_by_pm_pr[pm], "combined": fee_by_pm_o[pm] + fee_by_pm_pr[pm]}
            for pm in fee_by_pm_o
        ),
        key=lambda r: r["combined"],
        reverse=True,
    )

    charts: Dict[str, Any] = {}
    if monthly_projections:
        charts["monthly_projections"] = stacked_status_bar(
            pd.DataFrame(monthly_projections), "month", title="Month"
        )

    return {
        "total_fee_o": total_fee_o,
        "total_fee_pr": total_fee_pr,
        "total_fee_remaining": total_fee_o + total_fee_pr,
        "project_count_o": int(len(open_projects)),
        "client_count": client_count,
        "fee_by_partner_o": fee_by_partner_o,
        "fee_by_partner_pr": fee_by_partner_pr,
        "fee_by_pm_o": fee_by_pm_o,
        "fee_by_pm_pr": fee_by_pm_pr,
        "monthly_projections": monthly_projections,
        "avg_billing_mo": avg_billing_mo,
        "avg_expenses_mo": avg_expenses_mo,
        "avg_margin": avg_margin,
        "avg_3mo_o": _mean([m["o"] for m in first3]),
        "avg_3mo_pr": _mean([m["pr"] for m in first3]),
        "avg_6mo_o": _mean([m["o"] for m in first6]),
        "avg_6mo_pr": _mean([m["pr"] for m in first6]),
        "pipeline_total": float(proposal_fee.sum()),
        "weighted_pipeline": float((proposal_fee * weights).sum()),
        "proposal_count": int(len(proposals)),
        "partner_summary": partner_summary,
        "pm_summary": pm_summary,
        "charts": charts,
    }
