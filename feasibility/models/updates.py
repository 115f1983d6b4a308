"""Typed scenario updates.

Each update is a small frozen dataclass naming exactly the fields it
changes. ``apply_update`` returns a new ``ScenarioConfig``; the input is
never mutated. Anything that is not one of the update types below is
rejected with ``TypeError``.
"""

from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, Optional, Union

from .lookups import CostCategory, SurplusPolicy
from .project import CapitalTier, CostItem, EquityConfiguration, RevenueItem, ScenarioConfig


# Settings

@dataclass(frozen=True)
class SetDuration:
    months: int


@dataclass(frozen=True)
class SetConstructionTiming:
    delay: int
    months: Optional[int] = None


# Site and acquisition

@dataclass(frozen=True)
class SetPurchasePrice:
    price: float


@dataclass(frozen=True)
class SetStampDutyOverride:
    amount: Optional[float]  # None restores the scale calculation


@dataclass(frozen=True)
class SetForeignBuyer:
    is_foreign: bool


@dataclass(frozen=True)
class SetJurisdiction:
    jurisdiction: str


# Cost lines

@dataclass(frozen=True)
class AddCostItem:
    item: CostItem


@dataclass(frozen=True)
class ReplaceCostItem:
    index: int
    item: CostItem


@dataclass(frozen=True)
class RemoveCostItem:
    index: int


@dataclass(frozen=True)
class ScaleCostCategory:
    """Multiply every amount in a category, e.g. 1.05 for +5%."""
    category: CostCategory
    factor: float


# Revenue lines

@dataclass(frozen=True)
class AddRevenueItem:
    item: RevenueItem


@dataclass(frozen=True)
class ReplaceRevenueItem:
    index: int
    item: RevenueItem


@dataclass(frozen=True)
class RemoveRevenueItem:
    index: int


@dataclass(frozen=True)
class ScaleRevenuePrices:
    """Multiply every sale price and weekly rent."""
    factor: float


# Capital stack

@dataclass(frozen=True)
class SetSeniorTier:
    tier: Optional[CapitalTier]


@dataclass(frozen=True)
class SetMezzanineTier:
    tier: Optional[CapitalTier]


@dataclass(frozen=True)
class SetEquity:
    equity: EquityConfiguration


@dataclass(frozen=True)
class SetSurplusPolicy:
    policy: SurplusPolicy
    interest_rate: Optional[float] = None


ScenarioUpdate = Union[
    SetDuration, SetConstructionTiming,
    SetPurchasePrice, SetStampDutyOverride, SetForeignBuyer, SetJurisdiction,
    AddCostItem, ReplaceCostItem, RemoveCostItem, ScaleCostCategory,
    AddRevenueItem, ReplaceRevenueItem, RemoveRevenueItem, ScaleRevenuePrices,
    SetSeniorTier, SetMezzanineTier, SetEquity, SetSurplusPolicy,
]


def _check_index(index: int, items: tuple, label: str) -> None:
    if not 0 <= index < len(items):
        raise IndexError(f"{label} index {index} out of range [0, {len(items)})")


def _with_acquisition(config: ScenarioConfig, **changes) -> ScenarioConfig:
    site = config.site
    return replace(config, site=replace(site, acquisition=replace(site.acquisition, **changes)))


def apply_update(config: ScenarioConfig, update: ScenarioUpdate) -> ScenarioConfig:
    """Return a copy of ``config`` with one update applied.

    Raises:
        TypeError: If ``update`` is not a known update type.
        IndexError: If a line index is out of range.
    """
    if isinstance(update, SetDuration):
        return replace(config, settings=replace(config.settings, duration_months=update.months))
    if isinstance(update, SetConstructionTiming):
        return replace(config, settings=replace(
            config.settings,
            construction_delay=update.delay,
            construction_months=update.months,
        ))

    if isinstance(update, SetPurchasePrice):
        return _with_acquisition(config, purchase_price=update.price)
    if isinstance(update, SetStampDutyOverride):
        return _with_acquisition(config, stamp_duty_override=update.amount)
    if isinstance(update, SetForeignBuyer):
        return _with_acquisition(config, is_foreign_buyer=update.is_foreign)
    if isinstance(update, SetJurisdiction):
        return replace(config, site=replace(config.site, jurisdiction=update.jurisdiction))

    if isinstance(update, AddCostItem):
        return replace(config, costs=config.costs + (update.item,))
    if isinstance(update, ReplaceCostItem):
        _check_index(update.index, config.costs, "Cost")
        costs = list(config.costs)
        costs[update.index] = update.item
        return replace(config, costs=tuple(costs))
    if isinstance(update, RemoveCostItem):
        _check_index(update.index, config.costs, "Cost")
        return replace(config, costs=config.costs[:update.index] + config.costs[update.index + 1:])
    if isinstance(update, ScaleCostCategory):
        return replace(config, costs=tuple(
            replace(item, amount=item.amount * update.factor) if item.category == update.category else item
            for item in config.costs
        ))

    if isinstance(update, AddRevenueItem):
        return replace(config, revenues=config.revenues + (update.item,))
    if isinstance(update, ReplaceRevenueItem):
        _check_index(update.index, config.revenues, "Revenue")
        revenues = list(config.revenues)
        revenues[update.index] = update.item
        return replace(config, revenues=tuple(revenues))
    if isinstance(update, RemoveRevenueItem):
        _check_index(update.index, config.revenues, "Revenue")
        return replace(config, revenues=config.revenues[:update.index] + config.revenues[update.index + 1:])
    if isinstance(update, ScaleRevenuePrices):
        return replace(config, revenues=tuple(
            replace(
                item,
                price_per_unit=item.price_per_unit * update.factor,
                weekly_rent=item.weekly_rent * update.factor,
            )
            for item in config.revenues
        ))

    if isinstance(update, SetSeniorTier):
        return replace(config, capital=replace(config.capital, senior=update.tier))
    if isinstance(update, SetMezzanineTier):
        return replace(config, capital=replace(config.capital, mezzanine=update.tier))
    if isinstance(update, SetEquity):
        return replace(config, capital=replace(config.capital, equity=update.equity))
    if isinstance(update, SetSurplusPolicy):
        return replace(config, capital=replace(
            config.capital,
            surplus_policy=update.policy,
            surplus_interest_rate=update.interest_rate,
        ))

    raise TypeError(f"Unknown scenario update: {type(update).__name__}")


def apply_updates(config: ScenarioConfig, updates: Iterable[ScenarioUpdate]) -> ScenarioConfig:
    """Apply updates in order."""
    return reduce(apply_update, updates, config)
