"""Tax bracket tables keyed by jurisdiction and tax kind."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Tuple

from ..errors import ConfigurationError
from .lookups import BracketMethod, TaxKind, DEFAULT_TAX_SCALES


@dataclass(frozen=True)
class TaxBracket:
    """A single bracket of a progressive scale.

    Attributes:
        limit: Exclusive ceiling of the bracket. The last bracket's limit
            stands for "and above".
        rate: Rate in % (5.0 = 5%).
        base: Fixed component added to the rate-driven amount.
        method: SLIDING taxes the slice above the previous limit,
            FLAT taxes the entire value at this bracket's rate.
    """
    limit: float
    rate: float
    base: float = 0.0
    method: BracketMethod = BracketMethod.SLIDING


def validate_brackets(brackets: Iterable[TaxBracket], label: str = "") -> Tuple[TaxBracket, ...]:
    """Check a bracket sequence and return it as a tuple.

    Raises:
        ConfigurationError: If limits are not strictly ascending or a rate
            or base is negative.
    """
    ordered = tuple(brackets)
    previous_limit = None
    for i, bracket in enumerate(ordered):
        if bracket.rate < 0 or bracket.base < 0:
            raise ConfigurationError(
                f"Bracket {i} of {label or 'scale'} has a negative rate or base"
            )
        if previous_limit is not None and bracket.limit <= previous_limit:
            raise ConfigurationError(
                f"Bracket limits of {label or 'scale'} must be strictly ascending "
                f"(bracket {i}: {bracket.limit:,.0f} <= {previous_limit:,.0f})"
            )
        previous_limit = bracket.limit
    return ordered


@dataclass(frozen=True)
class TaxTable:
    """Mapping of (jurisdiction, kind) to an ordered bracket scale.

    Scales are validated on construction, so an out-of-order table is
    rejected at load time rather than when a value is resolved.
    """
    scales: Mapping[Tuple[str, TaxKind], Tuple[TaxBracket, ...]] = field(default_factory=dict)

    def __post_init__(self):
        validated = {
            key: validate_brackets(brackets, f"{key[0]} {key[1].value}")
            for key, brackets in self.scales.items()
        }
        object.__setattr__(self, "scales", validated)

    def brackets_for(self, jurisdiction: str, kind: TaxKind) -> Tuple[TaxBracket, ...]:
        """Brackets for a jurisdiction/kind, empty when none are configured."""
        return self.scales.get((jurisdiction, kind), ())

    @property
    def jurisdictions(self) -> Tuple[str, ...]:
        return tuple(sorted({jurisdiction for jurisdiction, _ in self.scales}))

    @classmethod
    def from_scales(cls, scales: Mapping[str, Mapping[TaxKind, Iterable[tuple]]]) -> "TaxTable":
        """Build a table from nested ``{jurisdiction: {kind: [(limit, rate, base, method)]}}``."""
        table: Dict[Tuple[str, TaxKind], Tuple[TaxBracket, ...]] = {}
        for jurisdiction, kinds in scales.items():
            for kind, rows in kinds.items():
                table[(jurisdiction, TaxKind(kind))] = tuple(
                    TaxBracket(
                        limit=float(limit),
                        rate=float(rate),
                        base=float(base),
                        method=BracketMethod(method),
                    )
                    for limit, rate, base, method in rows
                )
        return cls(scales=table)


DEFAULT_TAX_TABLE = TaxTable.from_scales(DEFAULT_TAX_SCALES)
