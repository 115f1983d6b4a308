"""Residual land value: the highest purchase price that still meets a target return.

Land price feeds stamp duty, percentage debt limits, interest and equity,
so the return is not linear in price. The solver bisects on the price and
re-runs the full simulation at each step.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import IrrUndefined
from ..models.project import ScenarioConfig
from ..models.scenario_config import EngineDefaults
from ..models.tax_table import DEFAULT_TAX_TABLE, TaxTable
from ..models.updates import SetPurchasePrice, apply_update
from .cashflow import run_feasibility
from .metrics import FeasibilitySummary
from .taxes import calculate_stamp_duty

logger = logging.getLogger(__name__)


class TargetMetric(str, Enum):
    MARGIN = "margin"  # Margin on cost, %
    IRR = "irr"  # Equity IRR, % p.a.


@dataclass(frozen=True)
class ResidualLandValue:
    land_value: float
    stamp_duty: float
    achieved_metric: float
    iterations: int
    converged: bool


def _metric(summary: FeasibilitySummary, target_type: TargetMetric) -> float:
    if target_type == TargetMetric.IRR:
        irr = summary.equity_irr
        return float("-inf") if isinstance(irr, IrrUndefined) else irr
    return summary.margin_on_cost


def solve_residual_land_value(
    scenario: ScenarioConfig,
    target: float,
    target_type: TargetMetric = TargetMetric.MARGIN,
    tax_table: TaxTable = DEFAULT_TAX_TABLE,
    upper_bound: Optional[float] = None,
    tolerance: float = 0.01,
    max_iterations: int = 60,
) -> ResidualLandValue:
    """Solve for the purchase price at which the target return is met.

    Args:
        scenario: Base scenario; its purchase price is replaced.
        target: Target metric value, in % (20.0 = 20%).
        target_type: Margin on cost or equity IRR.
        tax_table: Tax scales for stamp duty.
        upper_bound: Highest price searched. Defaults to the scenario's
            gross sale revenue, or ten times the current price when there
            is none.
        tolerance: Acceptable distance from the target, in % points.
        max_iterations: Bisection step limit.

    Returns:
        ResidualLandValue. ``converged`` is False when the target is out of
        reach within [0, upper_bound]: a target missed even at zero land cost
        returns a land value of 0, and a target still exceeded at
        ``upper_bound`` returns ``upper_bound`` itself.
    """
    site = scenario.site
    surcharge_pct = scenario.settings.foreign_surcharge_pct
    if surcharge_pct is None:
        surcharge_pct = EngineDefaults().foreign_surcharge_pct

    def evaluate(price: float) -> float:
        return _metric(run_feasibility(apply_update(scenario, SetPurchasePrice(price)), tax_table).summary,
                       target_type)

    if upper_bound is None:
        revenue = sum(item.gross_amount for item in scenario.revenues)
        upper_bound = revenue if revenue > 0 else 10 * max(site.acquisition.purchase_price, 1.0)

    def result(price: float, achieved: float, iterations: int, converged: bool) -> ResidualLandValue:
        duty = calculate_stamp_duty(
            price, site.jurisdiction, site.acquisition.is_foreign_buyer, tax_table,
            site.acquisition.stamp_duty_override,
            surcharge_pct,
        )
        return ResidualLandValue(
            land_value=round(price, 2),
            stamp_duty=round(duty, 2),
            achieved_metric=achieved,
            iterations=iterations,
            converged=converged,
        )

    low, high = 0.0, float(upper_bound)
    achieved_low = evaluate(low)
    if achieved_low < target:
        logger.warning("Target %.2f%% not reachable even at zero land cost", target)
        return result(low, achieved_low, 0, False)
    achieved_high = evaluate(high)
    if achieved_high >= target:
        logger.warning("Target %.2f%% still exceeded at the upper bound %.0f", target, high)
        return result(high, achieved_high, 0, False)

    achieved = achieved_low
    for iteration in range(1, max_iterations + 1):
        mid = (low + high) / 2
        achieved_mid = evaluate(mid)
        if achieved_mid >= target:
            low, achieved = mid, achieved_mid
        else:
            high = mid
        if abs(achieved - target) < tolerance or high - low < 1.0:
            return result(low, achieved, iteration, True)

    return result(low, achieved, max_iterations, False)
