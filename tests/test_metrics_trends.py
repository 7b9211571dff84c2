"""Tests for monthly trends."""

import pytest

from conftest import make_snapshot
from practice_metrics.metrics_trends import compute_trends


class TestComputeTrends:
    def test_months_in_sheet_order(self, snapshot) -> None:
        months = compute_trends(snapshot)["months"]
        assert [m["month"] for m in months] == ["January 2025", "February 2025", "March 2025", "April 2025"]
        assert months[0]["under_contract"] == 1000
        assert months[3]["pipeline"] == 800

    def test_rolling_average_window_grows_to_three(self, snapshot) -> None:
        months = compute_trends(snapshot)["months"]
        assert [m["billing_rolling3"] for m in months] == pytest.approx([100, 150, 200, 500 / 3])
        assert months[2]["expenses_rolling3"] == pytest.approx(100)

    def test_chart(self, snapshot) -> None:
        charts = compute_trends(snapshot)["charts"]
        assert "billing_trend" in charts

    def test_currency_cells(self) -> None:
        snap = make_snapshot(summary=[{"Month": "Jan-25", "Billing": "$1,500", "Expenses": "1K"}])
        month = compute_trends(snap)["months"][0]
        assert month["billing"] == 1500
        assert month["expenses"] == 1000
        assert month["deposits"] == 0

    def test_empty(self) -> None:
        assert compute_trends(make_snapshot()) == {"months": [], "charts": {}}
