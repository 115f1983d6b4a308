"""Tests for summary statistics and tabular views."""

import pandas as pd
import pytest

from feasibility.calculations.cashflow import run_feasibility
from feasibility.calculations.metrics import (
    calculate_summary,
    format_summary_table,
    itemised_cashflow_frame,
    records_to_frame,
)
from feasibility.calculations.waterfall import MonthInput, build_waterfall_terms, run_waterfall
from feasibility.errors import IrrUndefined
from feasibility.models.project import CapitalTier


class TestCalculateSummary:
    """Tests for summary aggregation."""

    def test_peak_debt_and_month(self, make_capital):
        capital = make_capital(senior=CapitalTier(limit=1_000_000, interest_rate=0.0))
        terms = build_waterfall_terms(capital, 4, 0.0, 0.0)
        months = [
            MonthInput(month=0, costs_gross=100_000, costs_net=100_000),
            MonthInput(month=1, costs_gross=200_000, costs_net=200_000),
            MonthInput(month=2, revenue_gross=50_000),
            MonthInput(month=3, revenue_gross=400_000),
        ]
        _, records = run_waterfall(terms, months)
        summary = calculate_summary(records, 10.0)

        assert summary.peak_debt == 300_000.0
        assert summary.peak_debt_month == 1
        assert summary.terminal_debt == 0.0
        assert summary.profit == 150_000.0

    def test_no_revenue_gives_undefined_irr(self, make_capital):
        capital = make_capital(senior=CapitalTier(limit=1_000_000, interest_rate=0.0))
        terms = build_waterfall_terms(capital, 2, 0.0, 0.0)
        _, records = run_waterfall(terms, [
            MonthInput(month=0, costs_gross=100_000, costs_net=100_000),
            MonthInput(month=1),
        ])
        summary = calculate_summary(records, 10.0)

        assert isinstance(summary.project_irr, IrrUndefined)
        assert summary.margin_on_cost == pytest.approx(-100.0)
        # No equity was contributed
        assert summary.margin_on_equity == 0.0

    def test_gst_totals(self, townhouse_result):
        s = townhouse_result.summary
        assert s.gst_collected == pytest.approx(1_000_000.0, abs=0.01)
        assert s.net_gst_payable == pytest.approx(s.gst_collected - s.input_tax_credits, abs=0.01)

    def test_category_totals(self, townhouse_result):
        s = townhouse_result.summary
        assert s.land_total == pytest.approx(2_110_000.0, abs=0.01)
        assert s.construction_total == pytest.approx(6_000_000 / 1.1, abs=0.05)

    def test_finance_costs(self, townhouse_result):
        s = townhouse_result.summary
        assert s.finance_costs == pytest.approx(s.interest_total + s.finance_fees, abs=0.01)
        assert s.finance_fees > 60_000


class TestRatios:
    """Tests for per-unit and per-sqm ratios."""

    def test_townhouse_ratios(self, townhouse_result):
        s = townhouse_result.summary

        assert s.land_cost_per_sqm == 2_000.0
        assert s.profit_per_unit == pytest.approx(s.profit / 10, abs=0.01)
        assert s.tdc_per_sqm == pytest.approx(s.total_cost / 1_000, abs=0.01)

    def test_margin_before_interest_adds_back_finance(self, townhouse_result):
        s = townhouse_result.summary

        assert s.margin_before_interest == pytest.approx(s.profit + s.finance_costs, abs=0.01)
        assert s.margin_before_interest > s.profit

    def test_missing_drivers_give_zero(self, simple_scenario):
        s = run_feasibility(simple_scenario).summary

        assert s.profit_per_unit == 0.0
        assert s.land_cost_per_sqm == 0.0
        assert s.tdc_per_sqm == 0.0
        assert s.margin_before_interest == 500_000.0


class TestLineItems:
    def test_line_items_cover_every_line(self, townhouse_result):
        items = townhouse_result.line_items
        descriptions = [item.description for item in items]

        assert descriptions[:3] == ["Land Deposit", "Land Settlement", "Stamp Duty"]
        assert "Build" in descriptions
        build = next(item for item in items if item.description == "Build")
        assert build.gross_amount == 6_000_000.0
        assert build.net_amount + build.gst_amount == pytest.approx(6_000_000.0, abs=0.01)
        assert not build.is_implicit


class TestFrames:
    """Tests for DataFrame views."""

    def test_records_frame(self, townhouse_result):
        frame = records_to_frame(townhouse_result.records)

        assert len(frame) == 24
        assert frame.index.name == "month"
        assert "senior_balance" in frame.columns
        assert "cost_construction" in frame.columns
        assert frame["cost_land"].iloc[0] == 200_000.0

    def test_empty_records_frame(self):
        assert records_to_frame([]).empty

    def test_itemised_frame(self, townhouse_result):
        frame = itemised_cashflow_frame(townhouse_result.cost_schedule)

        assert isinstance(frame.index, pd.MultiIndex)
        assert frame.loc[("Construction", "Build"), "total"] == pytest.approx(6_000_000.0)
        assert frame.loc[("Land", "Land Deposit"), 0] == 200_000.0

    def test_result_frames(self, townhouse_result):
        assert len(townhouse_result.to_frame()) == 24
        assert len(townhouse_result.itemised_frame()) == len(townhouse_result.cost_schedule.lines)


class TestFormatSummaryTable:
    def test_contains_headline_figures(self, simple_scenario):
        summary = run_feasibility(simple_scenario).summary
        table = format_summary_table(summary, "SIMPLE")

        assert "SIMPLE" in table
        assert "Profit" in table
        assert "500,000" in table

    def test_undefined_irr_shown_as_na(self, make_capital):
        terms = build_waterfall_terms(make_capital(), 1, 0.0, 0.0)
        _, records = run_waterfall(terms, [MonthInput(month=0, costs_gross=10.0, costs_net=10.0)])
        table = format_summary_table(calculate_summary(records, 10.0))
        assert "n/a" in table
