"""Date resolution for proposal and summary rows.

The source sheets encode dates three ways: abbreviated ``Mon-YY`` tokens
("Nov-25"), full month names with the year in a separate column ("November" +
2025), and complete date strings ("2025-09-01", "9/1/2025"). Excel date cells
arrive as ``datetime``/``pd.Timestamp`` already.

Each strategy returns ``None`` when it does not apply, and strategies are tried
in a fixed order, most specific first, so an ambiguous token such as "Nov-25" is
never handed to the liberal full-date parser.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Callable, List, Optional

import pandas as pd

from practice_metrics.coerce import parse_int
from practice_metrics.data import AWARDED, SUBMITTED, YEAR

MONTH_ABBREV = {m: i for i, m in enumerate(
    ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"], start=1
)}
MONTH_FULL = {m: i for i, m in enumerate(
    [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
    start=1,
)}

# Month-level tokens resolve to the middle of the month.
MID_MONTH_DAY = 15

_ABBREV_RE = re.compile(r"^([A-Za-z]{3})-(\d{2})$")
_FULL_DATE_RE = re.compile(r"^(\d{4}-\d{1,2}-\d{1,2}|\d{1,2}/\d{1,2}/\d{4})")
_MONTH_YEAR_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{4})$")

Strategy = Callable[[object, object], Optional[datetime]]


def _from_datetime(value: object, year: object) -> Optional[datetime]:
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        return value.tz_localize(None).to_pydatetime() if value.tzinfo else value.to_pydatetime()
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return None


def _from_abbrev_token(value: object, year: object) -> Optional[datetime]:
    match = _ABBREV_RE.match(str(value).strip())
    if not match:
        return None
    month = MONTH_ABBREV.get(match.group(1).title())
    if month is None:
        return None
    year_short = int(match.group(2))
    full_year = 2000 + year_short if year_short < 50 else 1900 + year_short
    return datetime(full_year, month, MID_MONTH_DAY)


def _from_full_month_name(value: object, year: object) -> Optional[datetime]:
    month = MONTH_FULL.get(str(value).strip())
    if month is None:
        return None
    year_num = parse_int(year, 0)
    if not year_num:
        return None
    return datetime(year_num, month, MID_MONTH_DAY)


def _from_full_date(value: object, year: object) -> Optional[datetime]:
    s = str(value).strip()
    if not _FULL_DATE_RE.match(s):
        return None
    parsed = pd.to_datetime(s, errors="coerce")
    if pd.isna(parsed):
        return None
    return _from_datetime(parsed, year)


def _from_month_year(value: object, year: object) -> Optional[datetime]:
    """Summary-sheet labels such as "January 2025" or "Jan 2025"."""
    match = _MONTH_YEAR_RE.match(str(value).strip())
    if not match:
        return None
    name = match.group(1).title()
    month = MONTH_FULL.get(name) or MONTH_ABBREV.get(name[:3])
    if month is None:
        return None
    return datetime(int(match.group(2)), month, 1)


PROPOSAL_DATE_STRATEGIES: List[Strategy] = [
    _from_datetime,
    _from_abbrev_token,
    _from_full_month_name,
    _from_full_date,
]

SUMMARY_MONTH_STRATEGIES: List[Strategy] = [
    _from_datetime,
    _from_full_date,
    _from_month_year,
    _from_abbrev_token,
]


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_date(value: object, year: object = None, strategies: Optional[List[Strategy]] = None) -> Optional[datetime]:
    """Try each strategy in order; ``None`` when no strategy can resolve the value."""
    if _is_blank(value):
        return None
    for strategy in strategies or PROPOSAL_DATE_STRATEGIES:
        out = strategy(value, year)
        if out is not None:
            return out
    return None


def parse_month_label(value: object) -> Optional[datetime]:
    return parse_date(value, strategies=SUMMARY_MONTH_STRATEGIES)


def resolve_proposal_date(row: dict) -> Optional[datetime]:
    """Award date when present, otherwise submission date, read against the row's Year."""
    raw = row.get(AWARDED)
    if _is_blank(raw):
        raw = row.get(SUBMITTED)
    return parse_date(raw, row.get(YEAR))
