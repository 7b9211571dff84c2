from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from practice_metrics.cache import Snapshot
from practice_metrics.config import DEFAULT_CONFIG, MetricsConfig
from practice_metrics.data import (
    CLIENT,
    FEE,
    LOSS_STATUSES,
    MARKET,
    PARTNER,
    PROBABILITY,
    SUBMITTED,
    YEAR,
    ProposalStatus,
    column_as_series,
    numeric_column,
    records,
    rows_with_status,
    text_column,
)
from practice_metrics.dates import parse_date

PROBABILITY_ORDER = ["H", "M", "L", "XL"]
PROBABILITY_RANK = {"H": 4, "M": 3, "L": 2, "XL": 1}
RANK_TIER = {rank: tier for tier, rank in PROBABILITY_RANK.items()}
LOWEST_TIER = "XL"
UNASSIGNED = "Unassigned"
UNKNOWN = "Unknown"

WARNING_DAYS = 90
CRITICAL_DAYS = 180


def days_open(submitted: object, now: datetime, year: object = None) -> Optional[int]:
    """Whole days since submission; ``None`` when the date cannot be parsed.

    ``year`` resolves month-name submissions ("March" + Year column).
    """
    parsed = parse_date(submitted, year)
    if parsed is None:
        return None
    return int((now - parsed).total_seconds() // 86400)


def risk_bucket(days: Optional[int]) -> Optional[str]:
    if days is None:
        return None
    if days >= CRITICAL_DAYS:
        return "critical"
    if days >= WARNING_DAYS:
        return "warning"
    return None


def _with_fee(df: pd.DataFrame, config: MetricsConfig) -> pd.DataFrame:
    df = df.copy()
    df["fee"] = numeric_column(df, FEE)
    df["weighted"] = df["fee"] * text_column(df, PROBABILITY).map(config.probability_weight).astype(float)
    return df


def _loss_breakdown(losses: pd.DataFrame, col: str, key: str, blank: str) -> List[Dict[str, Any]]:
    if losses.empty:
        return []
    labels = text_column(losses, col).replace("", blank)
    grouped = (
        losses.assign(_label=labels)
        .groupby("_label")
        .agg(count=("fee", "size"), fee=("fee", "sum"))
        .reset_index()
        .rename(columns={"_label": key})
        .sort_values("fee", ascending=False, kind="stable")
    )
    return grouped.to_dict(orient="records")


def _top_clients(open_df: pd.DataFrame, limit: int = 10) -> List[Dict[str, Any]]:
    if open_df.empty:
        return []
    df = open_df.assign(
        _client=text_column(open_df, CLIENT).replace("", UNKNOWN),
        _rank=text_column(open_df, PROBABILITY).map(PROBABILITY_RANK).fillna(0),
    )
    grouped = (
        df.groupby("_client", sort=False)
        .agg(count=("fee", "size"), fee=("fee", "sum"), weighted=("weighted", "sum"), best_rank=("_rank", "max"))
        .reset_index()
        .rename(columns={"_client": "client"})
        .sort_values("fee", ascending=False, kind="stable")
        .head(limit)
    )
    grouped["best_prob"] = grouped["best_rank"].map(lambda r: RANK_TIER.get(int(r), LOWEST_TIER))
    return grouped.drop(columns=["best_rank"]).to_dict(orient="records")


def compute_pipeline(
    snapshot: Snapshot,
    config: MetricsConfig = DEFAULT_CONFIG,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now()
    proposals = snapshot.proposals
    open_df = _with_fee(rows_with_status(proposals, ProposalStatus.OPEN), config)

    tiers = text_column(open_df, PROBABILITY).replace("", LOWEST_TIER)
    by_probability = {tier: records(open_df[tiers == tier]) for tier in PROBABILITY_ORDER}

    partners = text_column(open_df, PARTNER)
    by_partner: Dict[str, Dict[str, Any]] = {}
    for p in config.partners:
        grp = open_df[partners == p]
        by_partner[p] = {"count": int(len(grp)), "fee": float(grp["fee"].sum()), "weighted": float(grp["weighted"].sum())}

    submitted = column_as_series(open_df, SUBMITTED)
    years = column_as_series(open_df, YEAR)
    open_df["days_open"] = pd.Series(
        [days_open(v, now, y) for v, y in zip(submitted, years)], index=open_df.index, dtype=object
    )
    buckets = open_df["days_open"].map(risk_bucket)
    at_risk_90 = open_df[buckets == "warning"]
    at_risk_180 = open_df[buckets == "critical"]

    losses = _with_fee(rows_with_status(proposals, LOSS_STATUSES), config)

    probability_summary = [
        {
            "probability": tier,
            "count": len(by_probability[tier]),
            "total_fee": float(open_df.loc[tiers == tier, "fee"].sum()),
            "weighted_fee": float(open_df.loc[tiers == tier, "weighted"].sum()),
        }
        for tier in PROBABILITY_ORDER
    ]
    partner_summary = [
        {"partner": p, "count": v["count"], "total_fee": v["fee"], "weighted_fee": v["weighted"]}
        for p, v in by_partner.items()
    ]
    unassigned = open_df[partners == ""]
    if not unassigned.empty:
        partner_summary.append(
            {
                "partner": UNASSIGNED,
                "count": int(len(unassigned)),
                "total_fee": float(unassigned["fee"].sum()),
                "weighted_fee": float(unassigned["weighted"].sum()),
            }
        )

    return {
        "open_proposals": records(open_df),
        "by_probability": by_probability,
        "by_partner": by_partner,
        "at_risk_90": records(at_risk_90),
        "at_risk_180": records(at_risk_180),
        "losses": records(losses),
        "total_open": float(open_df["fee"].sum()),
        "total_weighted": float(open_df["weighted"].sum()),
        "warning_fee": float(at_risk_90["fee"].sum()),
        "critical_fee": float(at_risk_180["fee"].sum()),
        "total_lost_fee": float(losses["fee"].sum()),
        "probability_summary": probability_summary,
        "partner_summary": partner_summary,
        "losses_by_client": _loss_breakdown(losses, CLIENT, "client", UNKNOWN)[:10],
        "losses_by_market": _loss_breakdown(losses, MARKET, "market", UNKNOWN),
        "losses_by_partner": _loss_breakdown(losses, PARTNER, "partner", UNASSIGNED),
        "top_clients": _top_clients(open_df),
    }
