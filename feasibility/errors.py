"""Error and sentinel types shared by the models and the engine."""

from dataclasses import dataclass


class ConfigurationError(ValueError):
    """Malformed scenario input detected before a simulation starts."""


@dataclass(frozen=True)
class IrrUndefined:
    """IRR could not be determined for a flow series.

    Returned in place of a rate; never coerced to 0%.
    """
    reason: str

    def __str__(self) -> str:
        return f"IRR undefined ({self.reason})"


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, resolving a zero denominator to ``default``."""
    if denominator == 0:
        return default
    return numerator / denominator
