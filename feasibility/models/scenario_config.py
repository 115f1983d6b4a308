"""Configuration resolution: raw scenario inputs to a fully populated value.

``resolve_scenario`` runs once per simulation. It validates the inputs,
fills every optional setting from ``EngineDefaults`` and anchors each cost
and revenue line to an absolute month. The result is immutable and carries
no implicit defaults, so the engine never has to guess.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..errors import ConfigurationError
from .lookups import (
    EquityMode,
    FundingSource,
    LimitMethod,
    Milestone,
    RevenueStrategy,
    SurplusPolicy,
)
from .project import (
    CapitalTier,
    CostItem,
    EquityConfiguration,
    RevenueItem,
    ScenarioConfig,
    Site,
)


@dataclass(frozen=True)
class EngineDefaults:
    """Values applied to settings the scenario leaves unset."""

    gst_rate: float = 10.0
    discount_rate: float = 15.0
    itc_lag_months: int = 0
    foreign_surcharge_pct: float = 8.0
    s_curve_steepness: float = 12.0
    surplus_policy: SurplusPolicy = SurplusPolicy.REPAY
    surplus_interest_rate: float = 0.0
    draw_order: Tuple[FundingSource, ...] = (
        FundingSource.EQUITY,
        FundingSource.SENIOR,
        FundingSource.MEZZANINE,
    )


@dataclass(frozen=True)
class ResolvedSettings:
    duration_months: int
    project_name: str
    settlement_month: int
    construction_start: int
    construction_months: int
    completion_month: int
    discount_rate: float
    gst_rate: float
    total_units: int
    itc_lag_months: int
    margin_scheme_basis: float
    foreign_surcharge_pct: float


@dataclass(frozen=True)
class ScheduledCost:
    """A cost line anchored to an absolute start month."""
    item: CostItem
    start_month: int
    s_curve_steepness: float


@dataclass(frozen=True)
class ScheduledRevenue:
    """A revenue line anchored to an absolute start month."""
    item: RevenueItem
    start_month: int


@dataclass(frozen=True)
class ResolvedCapitalStack:
    senior: Optional[CapitalTier]
    mezzanine: Optional[CapitalTier]
    equity: EquityConfiguration
    draw_order: Tuple[FundingSource, ...]
    surplus_policy: SurplusPolicy
    surplus_interest_rate: float


@dataclass(frozen=True)
class ResolvedScenario:
    name: str
    settings: ResolvedSettings
    site: Site
    costs: Tuple[ScheduledCost, ...]
    revenues: Tuple[ScheduledRevenue, ...]
    capital: ResolvedCapitalStack
    source: ScenarioConfig = field(repr=False, compare=False, default=None)


def _pick(value, default):
    return default if value is None else value


def _check_pct(value: float, label: str) -> None:
    if not 0 <= value <= 100:
        raise ConfigurationError(f"{label} must be between 0 and 100 (got {value})")


def _resolve_settings(config: ScenarioConfig, defaults: EngineDefaults) -> ResolvedSettings:
    settings = config.settings
    acquisition = config.site.acquisition

    if settings.duration_months < 1:
        raise ConfigurationError(
            f"Project duration must be at least 1 month (got {settings.duration_months})"
        )
    if acquisition.settlement_month < 0 or settings.construction_delay < 0:
        raise ConfigurationError("Settlement month and construction delay must not be negative")
    _check_pct(acquisition.deposit_pct, "Deposit %")

    construction_start = acquisition.settlement_month + settings.construction_delay
    construction_months = _pick(
        settings.construction_months,
        max(1, settings.duration_months - construction_start),
    )
    if construction_months < 1:
        raise ConfigurationError("Construction must last at least 1 month")

    return ResolvedSettings(
        duration_months=settings.duration_months,
        project_name=settings.project_name or config.name,
        settlement_month=acquisition.settlement_month,
        construction_start=construction_start,
        construction_months=construction_months,
        completion_month=construction_start + construction_months,
        discount_rate=_pick(settings.discount_rate, defaults.discount_rate),
        gst_rate=_pick(settings.gst_rate, defaults.gst_rate),
        total_units=settings.total_units,
        itc_lag_months=_pick(settings.itc_lag_months, defaults.itc_lag_months),
        margin_scheme_basis=_pick(settings.margin_scheme_basis, acquisition.purchase_price),
        foreign_surcharge_pct=_pick(settings.foreign_surcharge_pct, defaults.foreign_surcharge_pct),
    )


def _milestone_month(milestone: Milestone, settings: ResolvedSettings) -> int:
    return {
        Milestone.PROJECT_START: 0,
        Milestone.SETTLEMENT: settings.settlement_month,
        Milestone.CONSTRUCTION_START: settings.construction_start,
        Milestone.COMPLETION: settings.completion_month,
    }[milestone]


def _resolve_cost(item: CostItem, settings: ResolvedSettings,
                  config_steepness: Optional[float], defaults: EngineDefaults) -> ScheduledCost:
    if item.span < 1:
        raise ConfigurationError(f"Cost '{item.description}' must span at least 1 month")
    if item.amount < 0 and not item.is_credit:
        raise ConfigurationError(
            f"Cost '{item.description}' has a negative amount but is not marked as a credit"
        )
    start = _milestone_month(item.milestone, settings) + item.start_month
    if start < 0:
        raise ConfigurationError(f"Cost '{item.description}' starts before month 0")

    steepness = _pick(item.s_curve_steepness, _pick(config_steepness, defaults.s_curve_steepness))
    if steepness <= 0:
        raise ConfigurationError(f"Cost '{item.description}' S-curve steepness must be positive")

    return ScheduledCost(item=item, start_month=start, s_curve_steepness=steepness)


def _resolve_revenue(item: RevenueItem, settings: ResolvedSettings) -> ScheduledRevenue:
    label = f"Revenue '{item.description}'"
    if item.units < 0 or item.price_per_unit < 0:
        raise ConfigurationError(f"{label} must not have negative units or price")
    if item.strategy == RevenueStrategy.SELL and item.settlement_span < 1:
        raise ConfigurationError(f"{label} settlement span must be at least 1 month")
    _check_pct(item.vacancy_pct, f"{label} vacancy %")
    _check_pct(item.opex_pct, f"{label} opex %")
    _check_pct(item.commission_rate, f"{label} commission %")
    if item.lease_up_months < 0:
        raise ConfigurationError(f"{label} lease-up months must not be negative")
    if item.is_capitalised and (item.cap_rate is None or item.cap_rate <= 0):
        raise ConfigurationError(f"{label} is capitalised and needs a positive cap rate")

    start = settings.completion_month + item.offset_from_completion
    if start < 0:
        raise ConfigurationError(f"{label} starts before month 0")
    return ScheduledRevenue(item=item, start_month=start)


def _validate_tier(tier: Optional[CapitalTier], label: str) -> None:
    if tier is None:
        return
    if tier.limit < 0:
        raise ConfigurationError(f"{label} limit must not be negative")
    if tier.limit_method == LimitMethod.PERCENTAGE:
        _check_pct(tier.limit, f"{label} limit %")
    if tier.interest_rate < 0 or tier.line_fee_pct < 0 or tier.establishment_fee < 0:
        raise ConfigurationError(f"{label} rates and fees must not be negative")
    if tier.activation_month < 0:
        raise ConfigurationError(f"{label} activation month must not be negative")

    previous = None
    for dated in tier.variable_rates:
        if dated.rate < 0 or dated.month < 0:
            raise ConfigurationError(f"{label} dated rates must not be negative")
        if previous is not None and dated.month <= previous:
            raise ConfigurationError(
                f"{label} dated-rate schedule must be strictly increasing by month "
                f"(month {dated.month} follows {previous})"
            )
        previous = dated.month


def _validate_equity(equity: EquityConfiguration) -> None:
    if equity.initial_contribution < 0:
        raise ConfigurationError("Equity contribution must not be negative")
    if equity.mode in (EquityMode.PCT_LAND, EquityMode.PCT_TOTAL_COST, EquityMode.PARI_PASSU):
        _check_pct(equity.percentage, "Equity percentage")
    for instalment in equity.instalments:
        if instalment.month < 0 or instalment.amount < 0:
            raise ConfigurationError("Equity instalments must have non-negative month and amount")


def _resolve_capital(config: ScenarioConfig, defaults: EngineDefaults) -> ResolvedCapitalStack:
    capital = config.capital
    _validate_tier(capital.senior, "Senior")
    _validate_tier(capital.mezzanine, "Mezzanine")
    _validate_equity(capital.equity)

    draw_order = tuple(_pick(capital.draw_order, defaults.draw_order))
    if len(set(draw_order)) != len(draw_order):
        raise ConfigurationError("Draw order must not repeat a funding source")
    for source in draw_order:
        if not isinstance(source, FundingSource):
            raise ConfigurationError(f"Unknown funding source in draw order: {source!r}")

    surplus_rate = _pick(capital.surplus_interest_rate, defaults.surplus_interest_rate)
    if surplus_rate < 0:
        raise ConfigurationError("Surplus interest rate must not be negative")

    return ResolvedCapitalStack(
        senior=capital.senior,
        mezzanine=capital.mezzanine,
        equity=capital.equity,
        draw_order=draw_order,
        surplus_policy=_pick(capital.surplus_policy, defaults.surplus_policy),
        surplus_interest_rate=surplus_rate,
    )


def resolve_scenario(
    config: ScenarioConfig,
    defaults: Optional[EngineDefaults] = None,
) -> ResolvedScenario:
    """Validate a scenario and produce its fully populated configuration.

    Args:
        config: Raw scenario inputs.
        defaults: Values for unset optional settings.

    Returns:
        Immutable ResolvedScenario consumed by the engine.

    Raises:
        ConfigurationError: If any input is malformed.
    """
    defaults = defaults or EngineDefaults()
    settings = _resolve_settings(config, defaults)

    costs = tuple(
        _resolve_cost(item, settings, config.settings.s_curve_steepness, defaults)
        for item in config.costs
    )
    revenues = tuple(_resolve_revenue(item, settings) for item in config.revenues)

    return ResolvedScenario(
        name=config.name,
        settings=settings,
        site=config.site,
        costs=costs,
        revenues=revenues,
        capital=_resolve_capital(config, defaults),
        source=config,
    )
