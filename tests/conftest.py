"""Pytest fixtures for practice-metrics tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd
import pytest

from practice_metrics.cache import Snapshot

FETCHED_AT = datetime(2025, 11, 1, tzinfo=timezone.utc)


def make_snapshot(
    engagements: list[dict] | None = None,
    proposals: list[dict] | None = None,
    summary: list[dict] | None = None,
    clients: list[dict] | None = None,
) -> Snapshot:
    """Build a snapshot from row dicts; missing cells read as blanks."""

    def _frame(rows: list[dict] | None) -> pd.DataFrame:
        return pd.DataFrame(rows or []).fillna("")

    return Snapshot(
        engagements=_frame(engagements),
        proposals=_frame(proposals),
        monthly_summary=_frame(summary),
        clients=_frame(clients),
        fetched_at=FETCHED_AT,
    )


@pytest.fixture
def now() -> datetime:
    """Fixed clock for date-window tests."""
    return datetime(2025, 11, 1)


@pytest.fixture
def engagement_rows() -> list[dict]:
    """Master Data rows across both statuses with two projection months."""
    return [
        {
            "Status": "O",
            "Partner": "RJ",
            "PM": "RW",
            "Client": "Metro Parks",
            "Fee Remaining": "$100,000",
            "Projected Billing Jan": 50000,
            "Projected Billing Feb": 40000,
            "Projected Billing %": 0.5,
        },
        {
            "Status": "O",
            "Partner": "CB",
            "PM": "AB",
            "Client": "City of Dallas",
            "Fee Remaining": "50K",
            "Projected Billing Jan": 10000,
            "Projected Billing Feb": 10000,
            "Projected Billing %": 0.2,
        },
        {
            "Status": "PR",
            "Partner": "RJ",
            "PM": "RW",
            "Client": "Metro Parks",
            "Fee Remaining": 25000,
            "Projected Billing Jan": 5000,
            "Projected Billing Feb": "",
            "Projected Billing %": 0.1,
        },
        {
            "Status": "C",
            "Partner": "RJ",
            "PM": "RW",
            "Client": "Closed Co",
            "Fee Remaining": 999999,
            "Projected Billing Jan": 999,
            "Projected Billing Feb": 999,
            "Projected Billing %": 0,
        },
    ]


@pytest.fixture
def proposal_rows() -> list[dict]:
    """Proposal Log rows: open, awarded and lost."""
    return [
        {"Status": "O", "Partner": "RJ", "Client": "Metro Parks", "Fee": 100000, "Probability": "H",
         "Market": "Parks", "Submitted": "2025-10-01"},
        {"Status": "O", "Partner": "CB", "Client": "City of Dallas", "Fee": 50000, "Probability": "M",
         "Market": "Civic", "Submitted": "2025-07-15"},
        {"Status": "O", "Partner": "", "Client": "Old Client", "Fee": 20000, "Probability": "",
         "Market": "Campus", "Submitted": "2025-03-01"},
        {"Status": "A", "Partner": "RJ", "Client": "Metro Parks", "Fee": 75000, "Probability": "H",
         "Market": "Parks", "Submitted": "2025-06-01", "Awarded": "Sep-25"},
        {"Status": "NA", "Partner": "MB", "Client": "State Agency", "Fee": 30000, "Probability": "L",
         "Market": "State", "Submitted": "2025-09-01", "Awarded": ""},
        {"Status": "D", "Partner": "", "Client": "", "Fee": 10000, "Probability": "XL",
         "Market": "", "Submitted": "2024-01-01"},
    ]


@pytest.fixture
def summary_rows() -> list[dict]:
    """Summary sheet rows in chronological order."""
    return [
        {"Month": "January 2025", "Billing": 100, "Expenses": 50, "Under Contract": 1000, "Pipeline": 500,
         "Deposits": 90, "Balance": 10},
        {"Month": "February 2025", "Billing": 200, "Expenses": 100, "Under Contract": 1100, "Pipeline": 600,
         "Deposits": 180, "Balance": 20},
        {"Month": "March 2025", "Billing": 300, "Expenses": 150, "Under Contract": 1200, "Pipeline": 700,
         "Deposits": 270, "Balance": 30},
        {"Month": "April 2025", "Billing": 0, "Expenses": 0, "Under Contract": 1300, "Pipeline": 800,
         "Deposits": 0, "Balance": 30},
    ]


@pytest.fixture
def client_rows() -> list[dict]:
    """Marketing client directory rows."""
    return [
        {"Client": "Metro Parks", "Tier": 1, "Relationship Status": 8, "Touchpoint Value": 3,
         "Market": "Parks", "Office Location": "Nashville", "Office State": "TN", "Strategic": "Y", "Partner": "RJ"},
        {"Client": "City of Dallas", "Tier": "2", "Relationship Status": 4, "Touchpoint Value": 6,
         "Market": "Civic", "Office Location": "", "Office State": "TX", "Strategic": "", "Partner": "CB"},
        {"Client": "Quiet Co", "Tier": 9, "Relationship Status": "", "Touchpoint Value": "",
         "Market": "Retail", "Office Location": "Memphis", "Office State": "TN", "Strategic": "no", "Partner": ""},
    ]


@pytest.fixture
def snapshot(engagement_rows, proposal_rows, summary_rows, client_rows) -> Snapshot:
    return make_snapshot(engagement_rows, proposal_rows, summary_rows, client_rows)
