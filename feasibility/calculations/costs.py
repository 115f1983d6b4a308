"""Cost schedule: line item totals, implicit acquisition costs and monthly spread."""

from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from ..models.lookups import (
    CostCategory,
    DistributionMethod,
    GstTreatment,
    InputKind,
    RevenueStrategy,
    StampDutyTiming,
)
from ..models.scenario_config import ResolvedScenario, ScheduledCost
from ..models.tax_table import DEFAULT_TAX_TABLE, TaxTable
from .distribution import distribute
from .gst import lag_series, split_gst_series
from .taxes import calculate_land_tax, calculate_stamp_duty
from .trace import trace


@dataclass(frozen=True)
class CostDrivers:
    """Driver values for derived cost lines, resolved once per simulation."""
    construction_total: float  # Sum of fixed construction amounts
    estimated_revenue: float  # Sum of gross sale amounts
    land_area: float
    total_units: int


@dataclass
class CostLine:
    """A cost line spread across the timeline (amounts GST-inclusive)."""
    description: str
    category: CostCategory
    gst_treatment: GstTreatment
    total: float
    gross: np.ndarray
    net: np.ndarray
    gst: np.ndarray
    is_implicit: bool = False


@dataclass
class CostSchedule:
    """All cost lines of a scenario with monthly aggregates."""
    lines: List[CostLine] = field(default_factory=list)
    duration: int = 0
    itc_lag_months: int = 0

    @property
    def gross(self) -> np.ndarray:
        return self._sum("gross")

    @property
    def net(self) -> np.ndarray:
        return self._sum("net")

    @property
    def gst(self) -> np.ndarray:
        return self._sum("gst")

    @property
    def input_tax_credits(self) -> np.ndarray:
        """ITC claimed per month, after the claim lag."""
        return lag_series(self.gst, self.itc_lag_months)

    @property
    def pre_finance_cost(self) -> float:
        """Gross development cost before finance, the basis for percentage limits."""
        return round(sum(
            line.total for line in self.lines if line.category != CostCategory.FINANCE
        ), 2)

    def by_category(self) -> Dict[CostCategory, np.ndarray]:
        """Net cost per category per month."""
        totals: Dict[CostCategory, np.ndarray] = {}
        for line in self.lines:
            if line.category in totals:
                totals[line.category] = totals[line.category] + line.net
            else:
                totals[line.category] = line.net.copy()
        return totals

    def _sum(self, attr: str) -> np.ndarray:
        total = np.zeros(self.duration)
        for line in self.lines:
            total = total + getattr(line, attr)
        return np.round(total, 2)


def resolve_cost_drivers(scenario: ResolvedScenario) -> CostDrivers:
    construction_total = sum(
        scheduled.item.amount for scheduled in scenario.costs
        if scheduled.item.category == CostCategory.CONSTRUCTION
        and scheduled.item.input_kind == InputKind.FIXED
    )
    estimated_revenue = sum(
        scheduled.item.gross_amount for scheduled in scenario.revenues
        if scheduled.item.strategy == RevenueStrategy.SELL
    )
    return CostDrivers(
        construction_total=construction_total,
        estimated_revenue=estimated_revenue,
        land_area=scenario.site.land_area,
        total_units=scenario.settings.total_units,
    )


def calculate_line_item_total(
    scheduled: ScheduledCost,
    drivers: CostDrivers,
    scenario: ResolvedScenario,
    tax_table: TaxTable = DEFAULT_TAX_TABLE,
) -> float:
    """Total (unescalated) amount of a cost line.

    Args:
        scheduled: Cost line with its resolved start
        drivers: Scenario driver values
        scenario: Resolved scenario (site and settings for auto taxes)
        tax_table: Tax scales for auto stamp duty and land tax

    Returns:
        Line total in $
    """
    item = scheduled.item
    kind = item.input_kind

    if kind == InputKind.AUTO_STAMP_DUTY:
        acquisition = scenario.site.acquisition
        return calculate_stamp_duty(
            acquisition.purchase_price,
            scenario.site.jurisdiction,
            acquisition.is_foreign_buyer,
            tax_table,
            acquisition.stamp_duty_override,
            scenario.settings.foreign_surcharge_pct,
        )
    if kind == InputKind.AUTO_LAND_TAX:
        return calculate_land_tax(
            scenario.site.assessed_land_value,
            scenario.site.jurisdiction,
            scenario.site.land_tax_kind,
            tax_table,
        )
    if kind == InputKind.PCT_CONSTRUCTION:
        return drivers.construction_total * item.amount / 100
    if kind == InputKind.PCT_REVENUE:
        return drivers.estimated_revenue * item.amount / 100
    if kind == InputKind.RATE_PER_SQM:
        return drivers.land_area * item.amount
    if kind == InputKind.RATE_PER_UNIT:
        return drivers.total_units * item.amount
    return item.amount


def _point_line(description: str, amount: float, month: int, treatment: GstTreatment,
                duration: int, gst_rate: float) -> CostLine:
    gross = distribute(amount, month, 1, DistributionMethod.UPFRONT, 0.0, duration)
    net, gst = split_gst_series(gross, treatment, gst_rate)
    return CostLine(
        description=description,
        category=CostCategory.LAND,
        gst_treatment=treatment,
        total=round(amount, 2),
        gross=gross,
        net=net,
        gst=gst,
        is_implicit=True,
    )


def implicit_acquisition_costs(
    scenario: ResolvedScenario,
    tax_table: TaxTable = DEFAULT_TAX_TABLE,
) -> List[CostLine]:
    """Land acquisition costs implied by the site's purchase terms.

    Deposit at month 0 and balance at settlement (GST-free), stamp duty at
    exchange or settlement, buyer's agent and legal fees at settlement.
    Zero amounts are omitted. Stamp duty is left out when the scenario
    already carries an AUTO_STAMP_DUTY cost line.
    """
    acquisition = scenario.site.acquisition
    settings = scenario.settings
    price = acquisition.purchase_price

    deposit = round(price * acquisition.deposit_pct / 100, 2)
    duty = 0.0
    if not any(s.item.input_kind == InputKind.AUTO_STAMP_DUTY for s in scenario.costs):
        duty = calculate_stamp_duty(
            price,
            scenario.site.jurisdiction,
            acquisition.is_foreign_buyer,
            tax_table,
            acquisition.stamp_duty_override,
            settings.foreign_surcharge_pct,
        )
    duty_month = 0 if acquisition.stamp_duty_timing == StampDutyTiming.EXCHANGE else settings.settlement_month
    settlement = settings.settlement_month

    entries = [
        ("Land Deposit", deposit, 0, GstTreatment.GST_FREE),
        ("Land Settlement", round(price - deposit, 2), settlement, GstTreatment.GST_FREE),
        ("Stamp Duty", duty, duty_month, GstTreatment.GST_FREE),
        ("Buyer's Agent Fee", price * acquisition.buyers_agent_fee_pct / 100, settlement, GstTreatment.TAXABLE),
        ("Legal Fees", acquisition.legal_fee, settlement, GstTreatment.TAXABLE),
    ]
    return [
        _point_line(description, amount, month, treatment, settings.duration_months, settings.gst_rate)
        for description, amount, month, treatment in entries
        if amount
    ]


def build_cost_schedule(
    scenario: ResolvedScenario,
    tax_table: TaxTable = DEFAULT_TAX_TABLE,
) -> CostSchedule:
    """Spread every cost line of a scenario across its timeline.

    Args:
        scenario: Resolved scenario
        tax_table: Tax scales for stamp duty and land tax

    Returns:
        CostSchedule with implicit acquisition lines first, then the
        scenario's own lines in input order
    """
    settings = scenario.settings
    drivers = resolve_cost_drivers(scenario)
    schedule = CostSchedule(
        lines=implicit_acquisition_costs(scenario, tax_table),
        duration=settings.duration_months,
        itc_lag_months=settings.itc_lag_months,
    )

    for scheduled in scenario.costs:
        item = scheduled.item
        total = calculate_line_item_total(scheduled, drivers, scenario, tax_table)
        gross = distribute(
            total,
            scheduled.start_month,
            item.span,
            item.method,
            item.escalation_rate,
            settings.duration_months,
            scheduled.s_curve_steepness,
        )
        net, gst = split_gst_series(gross, item.gst_treatment, settings.gst_rate)
        schedule.lines.append(CostLine(
            description=item.description,
            category=item.category,
            gst_treatment=item.gst_treatment,
            total=round(float(gross.sum()), 2),
            gross=gross,
            net=net,
            gst=gst,
        ))

    trace(
        "development.pre_finance_cost",
        schedule.pre_finance_cost,
        {"inputs.purchase_price": scenario.site.acquisition.purchase_price,
         "cost_lines": float(len(schedule.lines))},
    )
    return schedule
