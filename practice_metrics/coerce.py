from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from numbers import Number
from typing import Optional

import pandas as pd

SUFFIX_MULTIPLIERS = {"K": 1_000, "M": 1_000_000}
TRUTHY_TOKENS = {"y", "yes", "true", "t", "1", "x", "strategic"}

_SHORTHAND_RE = re.compile(r"^([+-]?[\d.]+)([KM])?$", re.IGNORECASE)
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _leading_number(s: str) -> float:
    """Longest numeric prefix ("12abc" -> 12, "1.2.3" -> 1.2); 0 when there is none."""
    match = _LEADING_NUMBER_RE.match(s)
    return float(match.group(0)) if match else 0


def parse_numeric(value: object) -> float:
    """Coerce a spreadsheet cell to a number.

    Handles currency strings ("$1,234"), "12.5K" / "3M" shorthand, blanks and
    error markers such as "#N/A". Text with a numeric prefix ("12abc") reads as
    that prefix; anything else unparsable becomes 0.
    """
    if _is_missing(value) or value == "":
        return 0
    if isinstance(value, Number) and not isinstance(value, bool):
        if isinstance(value, float) and math.isinf(value):
            return 0
        return value

    s = str(value).replace("$", "").replace(",", "").strip()
    if s in {"", "-"}:
        return 0

    match = _SHORTHAND_RE.match(s)
    if match:
        num = _leading_number(match.group(1))
        mult = SUFFIX_MULTIPLIERS[match.group(2).upper()] if match.group(2) else 1
        return num * mult

    try:
        out = float(s)
    except ValueError:
        return _leading_number(s)
    if math.isnan(out) or math.isinf(out):
        return 0
    return out


def parse_int(value: object, default: int) -> int:
    """Leading-integer parse ("3", "3.0", 3.7 -> 3); blank, unparsable or zero -> default."""
    if _is_missing(value):
        return default
    if isinstance(value, Number) and not isinstance(value, bool):
        try:
            out = int(value)
        except (OverflowError, ValueError):
            return default
    else:
        match = _LEADING_INT_RE.match(str(value))
        if not match:
            return default
        out = int(match.group(1))
    return out or default


def is_truthy(value: object) -> bool:
    if _is_missing(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, Number):
        return value != 0
    return str(value).strip().lower() in TRUTHY_TOKENS


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    out = round_half_up(value)
    return int(out) if out is not None else 0
