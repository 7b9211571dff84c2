"""Tests for the executive summary."""

import pytest

from conftest import make_snapshot
from practice_metrics.metrics_executive import compute_executive, recent_complete_months


class TestComputeExecutive:
    def test_fee_totals(self, snapshot) -> None:
        result = compute_executive(snapshot)
        assert result["total_fee_o"] == 150000
        assert result["total_fee_pr"] == 25000
        assert result["total_fee_remaining"] == result["total_fee_o"] + result["total_fee_pr"]
        assert result["project_count_o"] == 2
        assert result["client_count"] == 2

    def test_partner_and_pm_breakdowns(self, snapshot) -> None:
        result = compute_executive(snapshot)
        assert result["fee_by_partner_o"] == {"RJ": 100000, "CB": 50000, "MB": 0, "TJ": 0}
        assert result["fee_by_partner_pr"]["RJ"] == 25000
        assert sum(result["fee_by_partner_o"].values()) <= result["total_fee_o"]
        assert result["fee_by_pm_o"] == {"RW": 100000, "AB": 50000}
        assert result["fee_by_pm_pr"] == {"RW": 25000, "AB": 0}
        assert [r["pm"] for r in result["pm_summary"]] == ["RW", "AB"]

    def test_monthly_projections_skip_percent_columns(self, snapshot) -> None:
        months = compute_executive(snapshot)["monthly_projections"]
        assert [m["month"] for m in months] == ["Jan", "Feb"]
        assert months[0] == {"month": "Jan", "o": 60000, "pr": 5000, "total": 65000}
        assert months[1]["pr"] == 0

    def test_projection_months_capped(self) -> None:
        row = {"Status": "O", **{f"Projected Billing M{i}": 1 for i in range(10)}}
        months = compute_executive(make_snapshot(engagements=[row]))["monthly_projections"]
        assert len(months) == 7

    def test_short_averages(self, snapshot) -> None:
        result = compute_executive(snapshot)
        assert result["avg_3mo_o"] == 55000
        assert result["avg_6mo_pr"] == 2500

    def test_history_and_margin(self, snapshot) -> None:
        result = compute_executive(snapshot)
        assert result["avg_billing_mo"] == 200
        assert result["avg_expenses_mo"] == 100
        assert result["avg_margin"] == pytest.approx(0.5)

    def test_margin_zero_without_billing(self) -> None:
        result = compute_executive(make_snapshot(summary=[{"Month": "Jan-25", "Billing": 0, "Expenses": 10}]))
        assert result["avg_billing_mo"] == 0
        assert result["avg_margin"] == 0

    def test_pipeline(self, snapshot) -> None:
        result = compute_executive(snapshot)
        assert result["pipeline_total"] == 170000
        assert result["weighted_pipeline"] == pytest.approx(117500)
        assert result["proposal_count"] == 3

    def test_chart_spec(self, snapshot) -> None:
        chart = compute_executive(snapshot)["charts"]["monthly_projections"]
        mark = chart["mark"]
        assert (mark["type"] if isinstance(mark, dict) else mark) == "bar"
        assert chart["encoding"]["color"]["field"] == "status"

    def test_empty_snapshot(self) -> None:
        result = compute_executive(make_snapshot())
        assert result["total_fee_remaining"] == 0
        assert result["monthly_projections"] == []
        assert result["charts"] == {}
        assert result["pm_summary"] == []


class TestRecentCompleteMonths:
    def _summary(self, labels):
        return make_snapshot(
            summary=[{"Month": label, "Billing": i + 1} for i, label in enumerate(labels)]
        ).monthly_summary

    def test_chronological_takes_tail(self) -> None:
        summary = self._summary(["January 2025", "February 2025", "March 2025"])
        assert list(recent_complete_months(summary, 2)["Month"]) == ["February 2025", "March 2025"]

    def test_reverse_chronological_takes_head(self) -> None:
        summary = self._summary(["March 2025", "February 2025", "January 2025"])
        assert list(recent_complete_months(summary, 2)["Month"]) == ["March 2025", "February 2025"]

    def test_zero_billing_months_dropped(self) -> None:
        summary = make_snapshot(
            summary=[{"Month": "January 2025", "Billing": 5}, {"Month": "February 2025", "Billing": 0}]
        ).monthly_summary
        assert list(recent_complete_months(summary, 12)["Month"]) == ["January 2025"]
