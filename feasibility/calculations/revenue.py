"""Revenue schedule: sales settlements and held-asset rental income."""

from dataclasses import dataclass, field
from typing import List

import numpy as np

from ..errors import safe_divide
from ..models.lookups import DistributionMethod, GstTreatment, RevenueStrategy
from ..models.scenario_config import ResolvedScenario, ScheduledRevenue
from .distribution import distribute
from .gst import revenue_gst_series


@dataclass
class RevenueLine:
    """A revenue line spread across the timeline (amounts GST-inclusive)."""
    description: str
    strategy: RevenueStrategy
    gst_treatment: GstTreatment
    gross: np.ndarray
    gst: np.ndarray
    selling_costs: np.ndarray  # Commission
    operating_costs: np.ndarray  # Hold opex
    terminal_value: float = 0.0


@dataclass
class RevenueSchedule:
    lines: List[RevenueLine] = field(default_factory=list)
    duration: int = 0

    @property
    def gross(self) -> np.ndarray:
        return self._sum("gross")

    @property
    def gst(self) -> np.ndarray:
        return self._sum("gst")

    @property
    def selling_costs(self) -> np.ndarray:
        return self._sum("selling_costs")

    @property
    def operating_costs(self) -> np.ndarray:
        return self._sum("operating_costs")

    def _sum(self, attr: str) -> np.ndarray:
        total = np.zeros(self.duration)
        for line in self.lines:
            total = total + getattr(line, attr)
        return np.round(total, 2)


def monthly_rent(weekly_rent: float, units: int) -> float:
    """Full-occupancy monthly rent: weekly rent × 52 weeks × units / 12."""
    return weekly_rent * 52 * units / 12


def lease_up_factor(months_since_start: int, lease_up_months: int) -> float:
    """Linear occupancy ramp reaching 100% in the final lease-up month."""
    if lease_up_months <= 0:
        return 1.0
    return min(1.0, (months_since_start + 1) / lease_up_months)


def capitalised_value(annual_noi: float, cap_rate: float) -> float:
    """Exit value of a held asset: annual NOI / cap rate (%)."""
    return safe_divide(annual_noi, cap_rate / 100)


def _sale_line(scheduled: ScheduledRevenue, duration: int) -> np.ndarray:
    item = scheduled.item
    return distribute(
        item.gross_amount,
        scheduled.start_month,
        item.settlement_span,
        DistributionMethod.LINEAR,
        0.0,
        duration,
    )


def _hold_line(scheduled: ScheduledRevenue, duration: int):
    """Effective rent, opex and terminal value for a held line."""
    item = scheduled.item
    full_rent = monthly_rent(item.weekly_rent, item.units)
    occupancy = 1 - item.vacancy_pct / 100

    rent = np.zeros(duration)
    for month in range(scheduled.start_month, duration):
        factor = lease_up_factor(month - scheduled.start_month, item.lease_up_months)
        rent[month] = round(full_rent * factor * occupancy, 2)
    opex = np.round(rent * item.opex_pct / 100, 2)

    terminal = 0.0
    if item.is_capitalised:
        stabilised_noi = full_rent * occupancy * (1 - item.opex_pct / 100) * 12
        terminal = round(capitalised_value(stabilised_noi, item.cap_rate or 0.0), 2)
    return rent, opex, terminal


def build_revenue_schedule(scenario: ResolvedScenario) -> RevenueSchedule:
    """Spread every revenue line of a scenario across its timeline.

    Sales settle linearly over the settlement span from completion plus
    offset. Held lines earn rent from the same start with a linear lease-up,
    less vacancy and opex; capitalised holds add an exit value in the final
    month. Commission applies to sale proceeds and exit values.

    The margin-scheme basis is shared across margin-scheme lines in
    proportion to their gross revenue.
    """
    settings = scenario.settings
    duration = settings.duration_months

    grosses = []
    for scheduled in scenario.revenues:
        if scheduled.item.strategy == RevenueStrategy.SELL:
            gross = _sale_line(scheduled, duration)
            opex, terminal = np.zeros(duration), 0.0
        else:
            gross, opex, terminal = _hold_line(scheduled, duration)
            if terminal:
                gross[-1] = round(gross[-1] + terminal, 2)
        grosses.append((scheduled, gross, opex, terminal))

    margin_total = sum(
        float(gross.sum()) for scheduled, gross, _, _ in grosses
        if scheduled.item.gst_treatment == GstTreatment.MARGIN_SCHEME
    )

    schedule = RevenueSchedule(duration=duration)
    for scheduled, gross, opex, terminal in grosses:
        item = scheduled.item
        basis = 0.0
        if item.gst_treatment == GstTreatment.MARGIN_SCHEME:
            basis = settings.margin_scheme_basis * safe_divide(float(gross.sum()), margin_total)

        commissionable = gross if item.strategy == RevenueStrategy.SELL else np.zeros(duration)
        if terminal:
            commissionable = commissionable.copy()
            commissionable[-1] += terminal

        schedule.lines.append(RevenueLine(
            description=item.description,
            strategy=item.strategy,
            gst_treatment=item.gst_treatment,
            gross=gross,
            gst=revenue_gst_series(gross, item.gst_treatment, settings.gst_rate, basis),
            selling_costs=np.round(commissionable * item.commission_rate / 100, 2),
            operating_costs=opex,
            terminal_value=terminal,
        ))
    return schedule
