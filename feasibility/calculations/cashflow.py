"""Feasibility simulation entry point.

``run_feasibility`` is the single path from scenario inputs to results:
resolve the configuration, build cost and revenue schedules, fold the
capital stack waterfall over the months and summarise.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import pandas as pd

from ..models.project import ScenarioConfig
from ..models.scenario_config import EngineDefaults, ResolvedScenario, resolve_scenario
from ..models.tax_table import DEFAULT_TAX_TABLE, TaxTable
from .costs import CostSchedule, build_cost_schedule
from .metrics import (
    FeasibilitySummary,
    LineItemSummary,
    calculate_line_item_summaries,
    calculate_summary,
    itemised_cashflow_frame,
    records_to_frame,
)
from .revenue import RevenueSchedule, build_revenue_schedule
from .waterfall import (
    MonthInput,
    MonthlyCashflowRecord,
    WaterfallState,
    build_waterfall_terms,
    run_waterfall,
)

logger = logging.getLogger(__name__)


@dataclass
class FeasibilityResult:
    """Complete output of one feasibility run."""
    scenario: ResolvedScenario
    records: Tuple[MonthlyCashflowRecord, ...]
    cost_schedule: CostSchedule
    revenue_schedule: RevenueSchedule
    line_items: List[LineItemSummary]
    summary: FeasibilitySummary
    terminal_state: WaterfallState

    def to_frame(self) -> pd.DataFrame:
        """Monthly records as a DataFrame."""
        return records_to_frame(self.records)

    def itemised_frame(self) -> pd.DataFrame:
        """Per-line monthly cost table."""
        return itemised_cashflow_frame(self.cost_schedule)


def build_month_inputs(costs: CostSchedule, revenue: RevenueSchedule) -> List[MonthInput]:
    """Combine cost and revenue schedules into per-month waterfall inputs."""
    gross, net, itc = costs.gross, costs.net, costs.input_tax_credits
    breakdown = costs.by_category()
    revenue_gross, gst = revenue.gross, revenue.gst
    selling, opex = revenue.selling_costs, revenue.operating_costs

    return [
        MonthInput(
            month=m,
            costs_gross=float(gross[m]),
            costs_net=float(net[m]),
            input_tax_credit=float(itc[m]),
            revenue_gross=float(revenue_gross[m]),
            gst_collected=float(gst[m]),
            selling_costs=float(selling[m]),
            operating_costs=float(opex[m]),
            cost_breakdown={
                category: round(float(series[m]), 2)
                for category, series in breakdown.items()
            },
        )
        for m in range(costs.duration)
    ]


def run_feasibility(
    scenario: ScenarioConfig,
    tax_table: TaxTable = DEFAULT_TAX_TABLE,
    defaults: Optional[EngineDefaults] = None,
) -> FeasibilityResult:
    """Run a complete feasibility simulation.

    Args:
        scenario: Raw scenario inputs.
        tax_table: Stamp duty and land tax scales.
        defaults: Engine defaults for unset settings.

    Returns:
        FeasibilityResult with monthly records and summary.

    Raises:
        ConfigurationError: If the scenario is malformed. Raised before any
            output is produced; funding shortfalls are reported in the
            records instead.

    Example:
        >>> result = run_feasibility(scenario)
        >>> result.summary.profit
    """
    resolved = resolve_scenario(scenario, defaults)
    settings = resolved.settings
    logger.debug(
        "Running feasibility '%s' over %d months", settings.project_name, settings.duration_months,
    )

    costs = build_cost_schedule(resolved, tax_table)
    revenue = build_revenue_schedule(resolved)

    terms = build_waterfall_terms(
        resolved.capital,
        settings.duration_months,
        costs.pre_finance_cost,
        resolved.site.acquisition.purchase_price,
    )
    terminal_state, records = run_waterfall(terms, build_month_inputs(costs, revenue))
    summary = calculate_summary(
        records,
        settings.discount_rate,
        purchase_price=resolved.site.acquisition.purchase_price,
        land_area=resolved.site.land_area,
        total_units=settings.total_units,
    )

    logger.debug(
        "Feasibility '%s' complete: profit %.2f, peak debt %.2f, shortfall %.2f",
        settings.project_name, summary.profit, summary.peak_debt, summary.total_shortfall,
    )

    return FeasibilityResult(
        scenario=resolved,
        records=tuple(records),
        cost_schedule=costs,
        revenue_schedule=revenue,
        line_items=calculate_line_item_summaries(costs),
        summary=summary,
        terminal_state=terminal_state,
    )
