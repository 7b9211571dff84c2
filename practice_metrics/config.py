from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Team:
    principal: str
    name: str
    office: str
    members: Tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return len(self.members) + 1


@dataclass(frozen=True)
class CrunchThresholds:
    healthy: float = 1.00
    watch: float = 1.25


DEFAULT_TEAMS: Tuple[Team, ...] = (
    Team(
        "RW",
        "Robert Whittemore",
        "Nashville",
        ("Maggie Ackerman", "Carly Shows", "Elizabeth Crimmins", "John Yakimicki", "Ellie Hyzik"),
    ),
    Team("AB", "Austen Berry", "Nashville", ("Watts Brown", "Margaret Apperson", "Taylor Uren", "Madeline Easter")),
    Team("MM", "Mary Miller", "Nashville", ("Thomas Schneider", "Savannah Alexander", "Samie Hubbard", "Jackson Davis")),
    Team("HD", "Hank Dalton", "Dallas", ("Yuan Ren", "Robert Cunning", "Andy Molina", "Alex Ramirez")),
)

DEFAULT_PROBABILITY_WEIGHTS: Dict[str, float] = {"XL": 0.00, "L": 0.25, "M": 0.65, "H": 0.85}


@dataclass(frozen=True)
class MetricsConfig:
    partners: Tuple[str, ...] = ("RJ", "CB", "MB", "TJ")
    teams: Tuple[Team, ...] = DEFAULT_TEAMS
    probability_weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_PROBABILITY_WEIGHTS))
    monthly_capacity_per_person: float = 21000.0
    crunch_thresholds: CrunchThresholds = field(default_factory=CrunchThresholds)
    critical_markets: Tuple[str, ...] = ("Parks", "Campus", "Mixed-Use", "Civic", "State")
    office_states: Dict[str, str] = field(default_factory=lambda: {"Nashville": "TN", "Dallas": "TX"})
    projection_months: int = 7
    history_months: int = 12
    recent_window_days: int = 120
    recent_losses_limit: int = 30

    @property
    def principals(self) -> List[str]:
        return [t.principal for t in self.teams]

    def probability_weight(self, tier: object) -> float:
        return float(self.probability_weights.get(str(tier).strip(), 0.0))


DEFAULT_CONFIG = MetricsConfig()


def _as_str_tuple(values: Optional[Iterable[object]], fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    if not values:
        return fallback
    out = tuple(str(v).strip() for v in values if v is not None and str(v).strip())
    return out or fallback


def _as_float(value: object, fallback: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except Exception:
        return fallback


def _as_int(value: object, fallback: int, *, low: int = 1, high: int = 1000) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except Exception:
        return fallback
    return max(low, min(high, out))


def load_config(raw: Optional[dict] = None) -> MetricsConfig:
    """Build a config from a raw (e.g. JSON) mapping; bad or missing values keep the defaults."""
    raw = raw or {}
    base = DEFAULT_CONFIG

    teams = base.teams
    raw_teams = raw.get("teams")
    if isinstance(raw_teams, dict) and raw_teams:
        teams = tuple(
            Team(
                principal=str(code),
                name=str(spec.get("name", code)),
                office=str(spec.get("office", "")),
                members=_as_str_tuple(spec.get("members"), ()),
            )
            for code, spec in raw_teams.items()
            if isinstance(spec, dict)
        ) or base.teams

    weights = dict(base.probability_weights)
    for tier, weight in (raw.get("probability_weights") or {}).items():
        weights[str(tier)] = max(0.0, min(1.0, _as_float(weight, weights.get(str(tier), 0.0))))

    t = raw.get("crunch_thresholds") or {}
    thresholds = CrunchThresholds(
        healthy=_as_float(t.get("healthy"), base.crunch_thresholds.healthy),
        watch=_as_float(t.get("watch"), base.crunch_thresholds.watch),
    )

    office_states = dict(base.office_states)
    office_states.update({str(k): str(v) for k, v in (raw.get("office_states") or {}).items()})

    return MetricsConfig(
        partners=_as_str_tuple(raw.get("partners"), base.partners),
        teams=teams,
        probability_weights=weights,
        monthly_capacity_per_person=_as_float(
            raw.get("monthly_capacity_per_person"), base.monthly_capacity_per_person
        ),
        crunch_thresholds=thresholds,
        critical_markets=_as_str_tuple(raw.get("critical_markets"), base.critical_markets),
        office_states=office_states,
        projection_months=_as_int(raw.get("projection_months"), base.projection_months, high=24),
        history_months=_as_int(raw.get("history_months"), base.history_months, high=120),
        recent_window_days=_as_int(raw.get("recent_window_days"), base.recent_window_days, high=3650),
        recent_losses_limit=_as_int(raw.get("recent_losses_limit"), base.recent_losses_limit),
    )


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    master_file: str = "HDLA Master Data.xlsx"
    marketing_file: str = "Marketing.xlsx"
    cache_ttl_seconds: float = 300.0
    config_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        default_dir = Path(__file__).resolve().parents[1] / "data"
        config_file = os.environ.get("PRACTICE_METRICS_CONFIG")
        return cls(
            data_dir=Path(os.environ.get("PRACTICE_METRICS_DATA_DIR", default_dir)),
            master_file=os.environ.get("PRACTICE_METRICS_MASTER_FILE", cls.master_file),
            marketing_file=os.environ.get("PRACTICE_METRICS_MARKETING_FILE", cls.marketing_file),
            cache_ttl_seconds=_as_float(os.environ.get("PRACTICE_METRICS_CACHE_TTL"), cls.cache_ttl_seconds),
            config_file=Path(config_file) if config_file else None,
        )
