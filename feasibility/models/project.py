"""Scenario input model: site, settings, cost/revenue lines and capital stack.

These are the raw inputs handed over by the scenario store. Fields left as
``None`` are filled once by ``resolve_scenario``; the engine itself only
ever reads resolved values.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .lookups import (
    CostCategory,
    DistributionMethod,
    EquityMode,
    FeeBase,
    FundingSource,
    GstTreatment,
    InputKind,
    LandTaxKind,
    LimitMethod,
    Milestone,
    RateMode,
    RevenueCalcMode,
    RevenueStrategy,
    StampDutyTiming,
    SurplusPolicy,
)


@dataclass(frozen=True)
class DatedRate:
    """Annual rate (%) in effect from ``month`` onwards."""
    month: int
    rate: float


@dataclass(frozen=True)
class DatedAmount:
    month: int
    amount: float


@dataclass(frozen=True)
class CostItem:
    """A single development cost line."""

    category: CostCategory
    description: str
    amount: float  # $ for FIXED, % or rate for driver-based kinds
    start_month: int = 0  # Offset from the milestone
    span: int = 1
    method: DistributionMethod = DistributionMethod.LINEAR
    input_kind: InputKind = InputKind.FIXED
    escalation_rate: float = 0.0  # % p.a.
    gst_treatment: GstTreatment = GstTreatment.TAXABLE
    milestone: Milestone = Milestone.PROJECT_START
    is_credit: bool = False  # Allows a negative amount
    s_curve_steepness: Optional[float] = None


@dataclass(frozen=True)
class RevenueItem:
    """A single revenue line, sold or held."""

    description: str
    units: int = 1
    price_per_unit: float = 0.0  # Total amount in LUMP_SUM mode
    strategy: RevenueStrategy = RevenueStrategy.SELL
    calc_mode: RevenueCalcMode = RevenueCalcMode.QUANTITY_RATE
    offset_from_completion: int = 0
    settlement_span: int = 1
    commission_rate: float = 0.0  # % of gross
    gst_treatment: GstTreatment = GstTreatment.TAXABLE

    # Hold strategy
    weekly_rent: float = 0.0  # Per unit
    lease_up_months: int = 0
    vacancy_pct: float = 0.0
    opex_pct: float = 0.0
    cap_rate: Optional[float] = None  # % used for the capitalised exit value
    is_capitalised: bool = False

    @property
    def gross_amount(self) -> float:
        """Total sale amount for SELL lines."""
        if self.calc_mode == RevenueCalcMode.LUMP_SUM:
            return self.price_per_unit
        return self.units * self.price_per_unit


@dataclass(frozen=True)
class CapitalTier:
    """A debt facility (senior or mezzanine)."""

    limit: float  # $ for FIXED, % of pre-finance cost for PERCENTAGE
    interest_rate: float  # % p.a., also the rate before the first dated entry
    rate_mode: RateMode = RateMode.SINGLE
    variable_rates: Tuple[DatedRate, ...] = ()
    line_fee_pct: float = 0.0  # % p.a. on the limit
    establishment_fee_base: FeeBase = FeeBase.FIXED
    establishment_fee: float = 0.0  # $ or % of limit
    limit_method: LimitMethod = LimitMethod.FIXED
    activation_month: int = 0
    is_interest_capitalised: bool = True


@dataclass(frozen=True)
class EquityConfiguration:
    mode: EquityMode = EquityMode.LUMP_SUM
    initial_contribution: float = 0.0
    instalments: Tuple[DatedAmount, ...] = ()
    percentage: float = 0.0  # Used by PCT_LAND, PCT_TOTAL_COST and PARI_PASSU


@dataclass(frozen=True)
class CapitalStack:
    senior: Optional[CapitalTier] = None
    mezzanine: Optional[CapitalTier] = None
    equity: EquityConfiguration = field(default_factory=EquityConfiguration)
    draw_order: Optional[Tuple[FundingSource, ...]] = None
    surplus_policy: Optional[SurplusPolicy] = None
    surplus_interest_rate: Optional[float] = None  # % p.a. on retained cash


@dataclass(frozen=True)
class Acquisition:
    """Commercial terms of the land purchase."""

    purchase_price: float = 0.0
    deposit_pct: float = 10.0
    settlement_month: int = 0
    stamp_duty_timing: StampDutyTiming = StampDutyTiming.SETTLEMENT
    stamp_duty_override: Optional[float] = None
    is_foreign_buyer: bool = False
    buyers_agent_fee_pct: float = 0.0
    legal_fee: float = 0.0


@dataclass(frozen=True)
class Site:
    """Site descriptor: tax jurisdiction, land area and acquisition terms."""

    jurisdiction: str = "VIC"
    land_area: float = 0.0  # sqm
    assessed_land_value: float = 0.0  # Land tax base (AUV)
    land_tax_kind: LandTaxKind = LandTaxKind.GENERAL
    acquisition: Acquisition = field(default_factory=Acquisition)


@dataclass(frozen=True)
class FeasibilitySettings:
    duration_months: int
    project_name: str = ""
    construction_delay: int = 0  # Months after settlement
    construction_months: Optional[int] = None
    discount_rate: Optional[float] = None  # % p.a.
    gst_rate: Optional[float] = None  # %
    total_units: int = 0
    itc_lag_months: Optional[int] = None
    margin_scheme_basis: Optional[float] = None
    foreign_surcharge_pct: Optional[float] = None
    s_curve_steepness: Optional[float] = None


@dataclass(frozen=True)
class ScenarioConfig:
    """Complete inputs for one feasibility run."""

    settings: FeasibilitySettings
    site: Site = field(default_factory=Site)
    costs: Tuple[CostItem, ...] = ()
    revenues: Tuple[RevenueItem, ...] = ()
    capital: CapitalStack = field(default_factory=CapitalStack)
    name: str = "Scenario"
