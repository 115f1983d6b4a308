"""Calculation modules for the feasibility engine."""

from .distribution import distribute, distribution_weights, escalation_factors
from .gst import GstSplit, split_gst, revenue_gst, split_gst_series, revenue_gst_series
from .taxes import resolve_brackets, resolve_tax, calculate_stamp_duty, calculate_land_tax
from .costs import CostDrivers, CostLine, CostSchedule, build_cost_schedule, calculate_line_item_total
from .revenue import RevenueLine, RevenueSchedule, build_revenue_schedule
from .waterfall import (
    MonthInput,
    MonthlyCashflowRecord,
    WaterfallState,
    WaterfallTerms,
    CapitalWaterfall,
    build_waterfall_terms,
    run_waterfall,
)
from .dcf import calculate_npv, calculate_irr, annualise_monthly_rate
from .metrics import (
    FeasibilitySummary,
    LineItemSummary,
    calculate_summary,
    calculate_line_item_summaries,
    records_to_frame,
    itemised_cashflow_frame,
    format_summary_table,
)
from .cashflow import FeasibilityResult, run_feasibility  # Single entry point

from .sensitivity import SensitivityCell, generate_sensitivity_matrix, sensitivity_frame
from .solver import TargetMetric, ResidualLandValue, solve_residual_land_value

from .trace import TraceContext, TracedValue, trace
from .formula_registry import FormulaRegistry, FormulaDefinition, FormulaCategory

__all__ = [
    # Distribution
    "distribute",
    "distribution_weights",
    "escalation_factors",
    # GST
    "GstSplit",
    "split_gst",
    "revenue_gst",
    "split_gst_series",
    "revenue_gst_series",
    # Taxes
    "resolve_brackets",
    "resolve_tax",
    "calculate_stamp_duty",
    "calculate_land_tax",
    # Schedules
    "CostDrivers",
    "CostLine",
    "CostSchedule",
    "build_cost_schedule",
    "calculate_line_item_total",
    "RevenueLine",
    "RevenueSchedule",
    "build_revenue_schedule",
    # Waterfall
    "MonthInput",
    "MonthlyCashflowRecord",
    "WaterfallState",
    "WaterfallTerms",
    "CapitalWaterfall",
    "build_waterfall_terms",
    "run_waterfall",
    # DCF
    "calculate_npv",
    "calculate_irr",
    "annualise_monthly_rate",
    # Summary
    "FeasibilitySummary",
    "LineItemSummary",
    "calculate_summary",
    "calculate_line_item_summaries",
    "records_to_frame",
    "itemised_cashflow_frame",
    "format_summary_table",
    # Entry point
    "FeasibilityResult",
    "run_feasibility",
    # Analysis
    "SensitivityCell",
    "generate_sensitivity_matrix",
    "sensitivity_frame",
    "TargetMetric",
    "ResidualLandValue",
    "solve_residual_land_value",
    # Tracing
    "TraceContext",
    "TracedValue",
    "trace",
    "FormulaRegistry",
    "FormulaDefinition",
    "FormulaCategory",
]
