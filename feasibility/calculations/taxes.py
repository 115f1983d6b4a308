"""Progressive tax bracket resolution: stamp duty and land tax."""

from typing import Optional, Sequence

from ..models.lookups import BracketMethod, LandTaxKind, TaxKind
from ..models.tax_table import DEFAULT_TAX_TABLE, TaxBracket, TaxTable
from .trace import trace


def _bracket_tax(bracket: TaxBracket, value: float, previous_limit: float, cumulative: float) -> float:
    if bracket.method == BracketMethod.FLAT:
        return bracket.base + value * bracket.rate / 100
    anchor = bracket.base if bracket.base != 0 else cumulative
    return anchor + max(0.0, value - previous_limit) * bracket.rate / 100


def resolve_brackets(brackets: Sequence[TaxBracket], value: float) -> float:
    """Apply a progressive bracket scale to a value.

    Brackets are scanned in ascending order. A bracket holds the value when
    ``value < limit``; the last bracket holds everything above.

    SLIDING brackets tax the slice above the previous limit on top of an
    anchor. The anchor is the bracket's ``base`` when non-zero, otherwise
    the tax accumulated over the fully consumed lower brackets. FLAT
    brackets tax the whole value: ``base + value × rate``.

    Args:
        brackets: Ascending bracket scale (validated by TaxTable).
        value: Dutiable or assessed value.

    Returns:
        Tax payable, 0.0 for an empty scale or a non-positive value.

    Example:
        >>> scale = [TaxBracket(100_000, 0.0), TaxBracket(1_000_000, 5.0, base=1_000)]
        >>> resolve_brackets(scale, 500_000)
        21000.0
    """
    if not brackets or value <= 0:
        return 0.0

    previous_limit = 0.0
    cumulative = 0.0
    last = len(brackets) - 1
    for i, bracket in enumerate(brackets):
        if value < bracket.limit or i == last:
            return _bracket_tax(bracket, value, previous_limit, cumulative)
        cumulative = _bracket_tax(bracket, bracket.limit, previous_limit, cumulative)
        previous_limit = bracket.limit
    return 0.0


def resolve_tax(table: TaxTable, jurisdiction: str, kind: TaxKind, value: float) -> float:
    """Resolve a tax from a table; 0.0 when the jurisdiction/kind is not configured."""
    return resolve_brackets(table.brackets_for(jurisdiction, kind), value)


def calculate_stamp_duty(
    price: float,
    jurisdiction: str,
    is_foreign: bool = False,
    table: TaxTable = DEFAULT_TAX_TABLE,
    override: Optional[float] = None,
    foreign_surcharge_pct: float = 8.0,
) -> float:
    """Calculate transfer (stamp) duty on a land purchase.

    An explicit override wins outright. Otherwise the jurisdiction's duty
    scale applies, plus the foreign purchaser surcharge on the full price
    where applicable.

    Args:
        price: Dutiable value (purchase price).
        jurisdiction: State code, e.g. "VIC".
        is_foreign: Whether the purchaser attracts the surcharge.
        table: Tax table to resolve against.
        override: Fixed duty amount that bypasses the scale.
        foreign_surcharge_pct: Surcharge as % of price.

    Returns:
        Duty payable.

    Example:
        >>> calculate_stamp_duty(1_000_000, "VIC")
        55000.0
    """
    if override is not None:
        return trace("acquisition.stamp_duty", float(override), {"override": float(override)},
                     notes="Override")

    duty = resolve_tax(table, jurisdiction, TaxKind.STAMP_DUTY, price)
    surcharge = price * foreign_surcharge_pct / 100 if is_foreign else 0.0
    return trace(
        "acquisition.stamp_duty",
        duty + surcharge,
        {"inputs.purchase_price": price, "bracket_duty": duty, "surcharge": surcharge},
        notes=jurisdiction,
    )


def calculate_land_tax(
    assessed_value: float,
    jurisdiction: str,
    kind: LandTaxKind = LandTaxKind.GENERAL,
    table: TaxTable = DEFAULT_TAX_TABLE,
) -> float:
    """Calculate annual land tax on an assessed land value."""
    tax_kind = TaxKind.LAND_TAX_TRUST if kind == LandTaxKind.TRUST else TaxKind.LAND_TAX_GENERAL
    tax = resolve_tax(table, jurisdiction, tax_kind, assessed_value)
    return trace(
        "acquisition.land_tax",
        tax,
        {"inputs.assessed_land_value": assessed_value},
        notes=f"{jurisdiction} {kind.value}",
    )
