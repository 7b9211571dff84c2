from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

DataType = Literal["all", "executive", "pipeline", "capacity", "marketing", "trends"]


class SnapshotMetaResponse(BaseModel):
    fetched_at: datetime
    row_counts: Dict[str, int] = Field(default_factory=dict)


class TeamModel(BaseModel):
    name: str
    office: str = ""
    members: List[str] = Field(default_factory=list)


class CrunchThresholdsModel(BaseModel):
    healthy: float = 1.00
    watch: float = 1.25


class MetricsConfigModel(BaseModel):
    """Optional overrides for the metrics configuration (``PRACTICE_METRICS_CONFIG`` JSON file)."""

    partners: Optional[List[str]] = None
    teams: Optional[Dict[str, TeamModel]] = None
    probability_weights: Optional[Dict[str, float]] = None
    monthly_capacity_per_person: Optional[float] = None
    crunch_thresholds: Optional[CrunchThresholdsModel] = None
    critical_markets: Optional[List[str]] = None
    office_states: Optional[Dict[str, str]] = None
