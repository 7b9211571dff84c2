from __future__ import annotations

from enum import Enum
from typing import Iterable, List

import pandas as pd

from practice_metrics.coerce import parse_numeric

# Master Data (engagement ledger)
STATUS = "Status"
PARTNER = "Partner"
PM = "PM"
CLIENT = "Client"
FEE_REMAINING = "Fee Remaining"
BILLING_MARKERS = ("Projected Billing", "PM Adjusted Billing")

# Proposal Log
FEE = "Fee"
PROBABILITY = "Probability"
MARKET = "Market"
SUBMITTED = "Submitted"
AWARDED = "Awarded"
YEAR = "Year"

# Summary
MONTH = "Month"
BILLING = "Billing"
EXPENSES = "Expenses"
UNDER_CONTRACT = "Under Contract"
PIPELINE = "Pipeline"
DEPOSITS = "Deposits"
BALANCE = "Balance"

# Marketing client directory
TIER = "Tier"
RELATIONSHIP = "Relationship Status"
TOUCHPOINT = "Touchpoint Value"
OFFICE_LOCATION = "Office Location"
OFFICE_STATE = "Office State"
STRATEGIC = "Strategic"


class EngagementStatus(str, Enum):
    UNDER_CONTRACT = "O"
    PROJECTED = "PR"


class ProposalStatus(str, Enum):
    OPEN = "O"
    AWARDED = "A"
    NOT_AWARDED = "NA"
    DEAD = "D"


LOSS_STATUSES = (ProposalStatus.NOT_AWARDED, ProposalStatus.DEAD)


def column_as_series(df: pd.DataFrame, col: str) -> pd.Series:
    """Column aligned to ``df``'s index; a missing column reads as blanks."""
    if col not in df.columns:
        return pd.Series("", index=df.index, dtype=object)
    val = df[col]
    if isinstance(val, pd.DataFrame):
        return val.iloc[:, 0]
    return val


def text_column(df: pd.DataFrame, col: str) -> pd.Series:
    return column_as_series(df, col).fillna("").astype(str).str.strip()


def numeric_column(df: pd.DataFrame, col: str) -> pd.Series:
    return column_as_series(df, col).map(parse_numeric).astype(float)


def billing_columns(df: pd.DataFrame) -> List[str]:
    """Monthly billing projection columns, in sheet (chronological) order."""
    return [
        str(c)
        for c in df.columns
        if any(marker in str(c) for marker in BILLING_MARKERS) and "%" not in str(c)
    ]


def billing_month_label(col: str) -> str:
    label = col
    for marker in ("PM Adjusted Billing ", "Projected Billing "):
        label = label.replace(marker, "")
    return label.strip()


def rows_with_status(df: pd.DataFrame, statuses: Iterable[Enum] | Enum) -> pd.DataFrame:
    if isinstance(statuses, Enum):
        statuses = [statuses]
    codes = {s.value for s in statuses}
    return df[text_column(df, STATUS).isin(codes)].copy()


def records(df: pd.DataFrame) -> List[dict]:
    if df.empty:
        return []
    return df.to_dict(orient="records")
