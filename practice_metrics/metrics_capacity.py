from __future__ import annotations

from typing import Any, Dict

from practice_metrics.cache import Snapshot
from practice_metrics.coerce import round_int
from practice_metrics.config import DEFAULT_CONFIG, CrunchThresholds, MetricsConfig
from practice_metrics.data import PM, EngagementStatus, billing_columns, numeric_column, rows_with_status, text_column

QUARTER_MONTHS = 3

HEALTHY = "healthy"
WATCH = "watch"
HIRE_NOW = "hire-now"


def classify_crunch(crunch: float, thresholds: CrunchThresholds) -> str:
    if crunch > thresholds.watch:
        return HIRE_NOW
    if crunch >= thresholds.healthy:
        return WATCH
    return HEALTHY


def compute_capacity(snapshot: Snapshot, config: MetricsConfig = DEFAULT_CONFIG) -> Dict[str, Any]:
    """Per-principal Q1 billing against team capacity ("crunch")."""
    engagements = snapshot.engagements
    q1_cols = billing_columns(engagements)[:QUARTER_MONTHS]
    open_projects = rows_with_status(engagements, EngagementStatus.UNDER_CONTRACT)
    pms = text_column(open_projects, PM)

    results: Dict[str, Any] = {}
    for team in config.teams:
        projects = open_projects[pms == team.principal]
        q1_billing = float(sum(numeric_column(projects, col).sum() for col in q1_cols))
        q1_capacity = team.size * config.monthly_capacity_per_person * QUARTER_MONTHS
        crunch = q1_billing / q1_capacity if q1_capacity > 0 else 0.0
        results[team.principal] = {
            "name": team.name,
            "office": team.office,
            "team_size": team.size,
            "members": list(team.members),
            "q1_billing": q1_billing,
            "q1_capacity": float(q1_capacity),
            "crunch": crunch,
            "crunch_percent": round_int(crunch * 100),
            "status": classify_crunch(crunch, config.crunch_thresholds),
        }
    return results
