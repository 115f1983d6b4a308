"""Sensitivity matrix: profit and margin across revenue and construction cost shifts.

Each cell is an independent full simulation of a varied copy of the
scenario, so cells share no state.
"""

from dataclasses import dataclass
from typing import List, Sequence

import pandas as pd

from ..models.lookups import CostCategory
from ..models.project import ScenarioConfig
from ..models.tax_table import DEFAULT_TAX_TABLE, TaxTable
from ..models.updates import ScaleCostCategory, ScaleRevenuePrices, apply_updates
from .cashflow import run_feasibility

DEFAULT_STEPS = (-15, -10, -5, 0, 5, 10, 15)


@dataclass(frozen=True)
class SensitivityCell:
    revenue_change: float  # % (x axis)
    cost_change: float  # % (y axis)
    profit: float
    margin: float  # Margin on cost, %


def generate_sensitivity_matrix(
    scenario: ScenarioConfig,
    steps: Sequence[float] = DEFAULT_STEPS,
    tax_table: TaxTable = DEFAULT_TAX_TABLE,
) -> List[List[SensitivityCell]]:
    """Run the scenario across a grid of revenue and construction cost changes.

    Revenue changes scale every sale price and rent. Cost changes scale
    every construction line amount.

    Args:
        scenario: Base scenario
        steps: Percentage changes applied on both axes
        tax_table: Tax scales

    Returns:
        Rows by cost change, each holding one cell per revenue change
    """
    matrix: List[List[SensitivityCell]] = []
    for cost_change in steps:
        row = []
        for revenue_change in steps:
            varied = apply_updates(scenario, [
                ScaleCostCategory(CostCategory.CONSTRUCTION, 1 + cost_change / 100),
                ScaleRevenuePrices(1 + revenue_change / 100),
            ])
            summary = run_feasibility(varied, tax_table).summary
            row.append(SensitivityCell(
                revenue_change=revenue_change,
                cost_change=cost_change,
                profit=summary.profit,
                margin=summary.margin_on_cost,
            ))
        matrix.append(row)
    return matrix


def sensitivity_frame(matrix: List[List[SensitivityCell]], value: str = "margin") -> pd.DataFrame:
    """Pivot a matrix to a DataFrame of ``value`` (cost change rows, revenue change columns)."""
    cells = [cell for row in matrix for cell in row]
    frame = pd.DataFrame([
        {"cost_change": c.cost_change, "revenue_change": c.revenue_change, value: getattr(c, value)}
        for c in cells
    ])
    return frame.pivot(index="cost_change", columns="revenue_change", values=value)
