"""Temporal distribution of lump amounts across the project timeline."""

import math
from typing import List

import numpy as np

from ..errors import ConfigurationError
from ..models.lookups import DistributionMethod


def _s_curve_weights(n_periods: int, steepness: float = 12.0) -> List[float]:
    """Generate S-curve weights for a span.

    Uses a logistic cumulative curve centred on the span midpoint. Each
    period's weight is the curve's rise over that period, normalised by
    the rise over the whole span. Weights sum to 1.0.

    Args:
        n_periods: Number of periods
        steepness: Logistic steepness k (higher = more bunched mid-span)

    Returns:
        List of weights that sum to 1.0
    """
    if n_periods <= 0:
        return []
    if n_periods == 1:
        return [1.0]

    def s(t: float) -> float:
        x = steepness * (t - 0.5)
        # Stable for any steepness; exp only sees non-positive arguments
        if x >= 0:
            return 1 / (1 + math.exp(-x))
        z = math.exp(x)
        return z / (1 + z)

    total_rise = s(1.0) - s(0.0)
    return [
        (s((i + 1) / n_periods) - s(i / n_periods)) / total_rise
        for i in range(n_periods)
    ]


def _flat_weights(n_periods: int) -> List[float]:
    """Generate flat (linear) weights."""
    if n_periods <= 0:
        return []
    return [1.0 / n_periods] * n_periods


def distribution_weights(
    method: DistributionMethod,
    span: int,
    steepness: float = 12.0,
) -> np.ndarray:
    """Per-month share of an amount over its span.

    Args:
        method: Distribution method
        span: Number of months (>= 1)
        steepness: S-curve steepness, ignored by other methods

    Returns:
        Array of ``span`` weights summing to 1.0
    """
    if span < 1:
        raise ConfigurationError(f"Span must be at least 1 month (got {span})")

    if method == DistributionMethod.S_CURVE:
        return np.array(_s_curve_weights(span, steepness))
    if method == DistributionMethod.UPFRONT:
        weights = np.zeros(span)
        weights[0] = 1.0
        return weights
    if method == DistributionMethod.END:
        weights = np.zeros(span)
        weights[-1] = 1.0
        return weights
    return np.array(_flat_weights(span))


def escalation_factors(months: np.ndarray, escalation_rate: float) -> np.ndarray:
    """Compound escalation from month 0: ``(1 + rate/100) ** (month / 12)``."""
    return (1 + escalation_rate / 100) ** (np.asarray(months, dtype=float) / 12)


def distribute(
    amount: float,
    start_month: int,
    span: int,
    method: DistributionMethod,
    escalation_rate: float,
    duration: int,
    steepness: float = 12.0,
) -> np.ndarray:
    """Spread an amount across the project timeline.

    Each month's share is escalated by its absolute month index and rounded
    to cents. The rounding residual lands in the final month of the span,
    so the series sums exactly to the escalated total. Months at or past
    ``duration`` fold into the final in-range month.

    Args:
        amount: Unescalated total
        start_month: Absolute first month of the span
        span: Number of months
        method: Distribution method
        escalation_rate: Annual escalation (% p.a.)
        duration: Project length in months
        steepness: S-curve steepness

    Returns:
        Array of length ``duration``

    Raises:
        ConfigurationError: If span < 1, start_month < 0 or duration < 1.

    Example:
        >>> distribute(1_000_000, 0, 10, DistributionMethod.LINEAR, 0.0, 12)[:2]
        array([100000., 100000.])
    """
    if duration < 1:
        raise ConfigurationError(f"Duration must be at least 1 month (got {duration})")
    if start_month < 0:
        raise ConfigurationError(f"Start month must not be negative (got {start_month})")

    weights = distribution_weights(method, span, steepness)
    months = start_month + np.arange(span)

    raw = amount * weights * escalation_factors(months, escalation_rate)
    total = round(float(raw.sum()), 2)
    allocated = np.round(raw, 2)
    allocated[-1] = round(allocated[-1] + (total - float(allocated.sum())), 2)

    series = np.zeros(duration)
    np.add.at(series, np.minimum(months, duration - 1), allocated)
    return np.round(series, 2)
