"""Client scoring for the marketing pages.

Each client in the marketing directory is joined to the master ledger and the
proposal log by exact client name, then scored:

- traction (0-100): commercial activity from active work, projected work and
  open proposals, with a flat boost for projected work or an H proposal;
- priority (unbounded): ranks clients for relationship attention from tier,
  traction, market and the relationship/touchpoint ratings.

Flags are raised by the same conditions that feed the priority boosts. The
payload also groups clients for the page: protect & build, strategic clients
with and without work, and per-partner and per-market tables.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from practice_metrics.cache import Snapshot
from practice_metrics.coerce import is_truthy, parse_int, round_int
from practice_metrics.config import DEFAULT_CONFIG, MetricsConfig
from practice_metrics.data import (
    CLIENT,
    FEE,
    FEE_REMAINING,
    MARKET,
    OFFICE_LOCATION,
    OFFICE_STATE,
    PARTNER,
    PROBABILITY,
    RELATIONSHIP,
    STRATEGIC,
    TIER,
    TOUCHPOINT,
    EngagementStatus,
    ProposalStatus,
    numeric_column,
    rows_with_status,
    text_column,
)
from practice_metrics.dates import resolve_proposal_date

HIGH_PROBABILITY = "H"
TIERS = (1, 2, 3, 4, 5)
DEFAULT_RATING = 5
LOWEST_TIER = 5
TRACTION_CAP = 100
UNASSIGNED = "Unassigned"
UNKNOWN_MARKET = "Unknown"

FLAG_GOING_COLD = "Going cold"
FLAG_HIGH_PROBABILITY = "H-probability proposal"
FLAG_PR_PENDING = "PR work pending"
FLAG_ACTIVE_GONE_COLD = "Active client gone cold"
FLAG_WEAK_RELATIONSHIP = "Weak relationship with active work"


def filter_by_office(clients: pd.DataFrame, office: Optional[str], config: MetricsConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    if not office:
        return clients
    mask = text_column(clients, OFFICE_LOCATION) == office
    state = config.office_states.get(office)
    if state:
        mask = mask | (text_column(clients, OFFICE_STATE) == state)
    return clients[mask]


def traction_score(
    active_count: int, active_fee: float, projected_fee: float, proposal_count: int, proposal_fee: float, has_high_prob: bool
) -> float:
    base = (
        (active_count * 10 + active_fee / 10000) * 0.45
        + (projected_fee / 10000) * 0.20
        + (proposal_count * 5 + proposal_fee / 10000) * 0.35
    )
    boost = 15 if (projected_fee > 0 or has_high_prob) else 0
    return min(TRACTION_CAP, base + boost)


def score_client(
    client: Dict[str, Any],
    *,
    active_count: int,
    active_fee: float,
    projected_fee: float,
    proposal_count: int,
    proposal_fee: float,
    has_high_prob: bool,
    config: MetricsConfig = DEFAULT_CONFIG,
) -> Dict[str, Any]:
    tier = parse_int(client.get(TIER), LOWEST_TIER)
    if tier not in TIERS:
        tier = LOWEST_TIER
    relationship = parse_int(client.get(RELATIONSHIP), DEFAULT_RATING)
    touchpoint = parse_int(client.get(TOUCHPOINT), DEFAULT_RATING)
    is_critical = str(client.get(MARKET, "")).strip() in config.critical_markets

    traction = traction_score(active_count, active_fee, projected_fee, proposal_count, proposal_fee, has_high_prob)
    going_cold = relationship >= 7 and touchpoint <= 4
    weak_with_active = relationship <= 4 and active_fee > 0

    priority = (6 - tier) * 2.0 + traction * 0.25
    if is_critical:
        priority += 8
    if touchpoint <= 4:
        priority += 12
    if weak_with_active:
        priority += 10
    if going_cold:
        priority += 15
    if has_high_prob:
        priority += 12
    if projected_fee > 0:
        priority += 10

    flags: List[str] = []
    if going_cold:
        flags.append(FLAG_GOING_COLD)
    if has_high_prob:
        flags.append(FLAG_HIGH_PROBABILITY)
    if projected_fee > 0:
        flags.append(FLAG_PR_PENDING)
    if active_fee > 0 and touchpoint <= 4:
        flags.append(FLAG_ACTIVE_GONE_COLD)
    if weak_with_active:
        flags.append(FLAG_WEAK_RELATIONSHIP)

    return {
        **client,
        "tier": tier,
        "relationship": relationship,
        "touchpoint": touchpoint,
        "strategic": is_truthy(client.get(STRATEGIC)),
        "active_projects": active_count,
        "active_fee": active_fee,
        "projected_fee": projected_fee,
        "proposal_count": proposal_count,
        "proposal_fee": proposal_fee,
        "has_high_prob": has_high_prob,
        "traction": round_int(traction),
        "priority": round_int(priority),
        "flags": flags,
    }


def _by_client(df: pd.DataFrame, fee_col: str) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=["count", "fee"])
    return (
        df.assign(_client=text_column(df, CLIENT), _fee=numeric_column(df, fee_col))
        .groupby("_client")
        .agg(count=("_fee", "size"), fee=("_fee", "sum"))
    )


def _lookup(table: pd.DataFrame, client: str, col: str) -> float:
    if client in table.index:
        return table.at[client, col]
    return 0


def _partner_analysis(enriched: List[Dict[str, Any]], config: MetricsConfig) -> List[Dict[str, Any]]:
    """Client counts per relationship partner; partners with no clients are left out."""
    if not enriched:
        return []
    df = pd.DataFrame(enriched)
    df["_partner"] = text_column(df, PARTNER).replace("", UNASSIGNED)
    grouped = df.groupby("_partner", sort=False).agg(
        total=("tier", "size"),
        tier1=("tier", lambda t: int((t == 1).sum())),
        tier2=("tier", lambda t: int((t == 2).sum())),
        active=("active_projects", lambda a: int((a > 0).sum())),
        proposals=("proposal_count", "sum"),
    )
    order = [*config.partners, UNASSIGNED]
    order += [p for p in grouped.index if p not in order]
    return [{"partner": p, **{k: int(v) for k, v in grouped.loc[p].items()}} for p in order if p in grouped.index]


def _market_analysis(enriched: List[Dict[str, Any]], config: MetricsConfig) -> List[Dict[str, Any]]:
    if not enriched:
        return []
    df = pd.DataFrame(enriched)
    df["_market"] = text_column(df, MARKET).replace("", UNKNOWN_MARKET)
    grouped = (
        df.groupby("_market", sort=False)
        .agg(
            total=("tier", "size"),
            active=("active_projects", lambda a: int((a > 0).sum())),
            fee=("active_fee", "sum"),
        )
        .reset_index()
        .rename(columns={"_market": "market"})
        .sort_values("fee", ascending=False, kind="stable")
    )
    grouped["critical"] = grouped["market"].isin(config.critical_markets)
    return grouped.to_dict(orient="records")


def _recent_by_status(
    proposals: pd.DataFrame, status: ProposalStatus, cutoff: datetime
) -> List[Dict[str, Any]]:
    """Proposals with ``status`` resolved on or after ``cutoff``, most recent first."""
    rows = rows_with_status(proposals, status)
    if rows.empty:
        return []
    rows["fee"] = numeric_column(rows, FEE)
    dated = []
    for row in rows.to_dict(orient="records"):
        resolved = resolve_proposal_date(row)
        if resolved is None or resolved < cutoff:
            continue
        dated.append((resolved, row))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [row for _, row in dated]


def compute_clients(
    snapshot: Snapshot,
    config: MetricsConfig = DEFAULT_CONFIG,
    *,
    office: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now()
    clients = filter_by_office(snapshot.clients, office, config)

    active = _by_client(rows_with_status(snapshot.engagements, EngagementStatus.UNDER_CONTRACT), FEE_REMAINING)
    projected = _by_client(rows_with_status(snapshot.engagements, EngagementStatus.PROJECTED), FEE_REMAINING)
    open_proposals = rows_with_status(snapshot.proposals, ProposalStatus.OPEN)
    proposals = _by_client(open_proposals, FEE)
    high_prob_clients = set(
        text_column(open_proposals, CLIENT)[text_column(open_proposals, PROBABILITY) == HIGH_PROBABILITY]
    )

    enriched = []
    for client in clients.to_dict(orient="records"):
        name = str(client.get(CLIENT, "")).strip()
        enriched.append(
            score_client(
                client,
                active_count=int(_lookup(active, name, "count")),
                active_fee=float(_lookup(active, name, "fee")),
                projected_fee=float(_lookup(projected, name, "fee")),
                proposal_count=int(_lookup(proposals, name, "count")),
                proposal_fee=float(_lookup(proposals, name, "fee")),
                has_high_prob=name in high_prob_clients,
                config=config,
            )
        )
    enriched.sort(key=lambda c: c["priority"], reverse=True)

    cutoff = now - timedelta(days=config.recent_window_days)
    wins = _recent_by_status(snapshot.proposals, ProposalStatus.AWARDED, cutoff)
    losses = _recent_by_status(snapshot.proposals, ProposalStatus.NOT_AWARDED, cutoff)

    protect_build = sorted(
        (c for c in enriched if c["relationship"] >= 7 and c["touchpoint"] >= 5 and c["active_projects"] > 0),
        key=lambda c: c["traction"],
        reverse=True,
    )
    strategic = [c for c in enriched if c["strategic"]]

    return {
        "all": enriched,
        "by_tier": {tier: [c for c in enriched if c["tier"] == tier] for tier in TIERS},
        "flagged": [c for c in enriched if c["flags"]],
        "protect_build": protect_build,
        "strategic_with_work": [c for c in strategic if c["active_projects"] > 0],
        "strategic_prospects": [c for c in strategic if c["active_projects"] == 0],
        "by_partner": _partner_analysis(enriched, config),
        "by_market": _market_analysis(enriched, config),
        "wins": wins,
        "losses": losses[: config.recent_losses_limit],
    }
