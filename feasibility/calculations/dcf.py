"""Discounted cash flow analytics: NPV and IRR on monthly series."""

import logging
from typing import Sequence, Union

import numpy as np
import numpy_financial as npf

from ..errors import IrrUndefined

logger = logging.getLogger(__name__)

NEWTON_SEED = 0.01  # 1% per month
NEWTON_MAX_ITERATIONS = 100
BISECTION_MAX_ITERATIONS = 300
TOLERANCE = 1e-10
ROOT_TOLERANCE = 1e-6  # |NPV| relative to the gross flows


def calculate_npv(flows: Sequence[float], annual_rate: float) -> float:
    """Net present value of a monthly series.

    The first flow sits at t = 0 and is not discounted.

    Args:
        flows: Monthly net cash flows.
        annual_rate: Annual discount rate as a decimal (0.15 = 15%).

    Returns:
        NPV in $.
    """
    if len(flows) == 0:
        return 0.0
    return float(npf.npv(annual_rate / 12, np.asarray(flows, dtype=float)))


def _npv_and_derivative(rate: float, flows: np.ndarray, periods: np.ndarray):
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        discount = (1 + rate) ** periods
        value = float(np.sum(flows / discount))
        derivative = float(np.sum(-periods * flows / (discount * (1 + rate))))
    return value, derivative


def _newton(flows: np.ndarray, periods: np.ndarray):
    rate = NEWTON_SEED
    for _ in range(NEWTON_MAX_ITERATIONS):
        value, derivative = _npv_and_derivative(rate, flows, periods)
        if derivative == 0 or not np.isfinite(derivative):
            return None
        next_rate = rate - value / derivative
        if not np.isfinite(next_rate) or next_rate <= -1:
            return None
        if abs(next_rate - rate) < TOLERANCE:
            return next_rate
        rate = next_rate
    return None


def _bisection(flows: np.ndarray, periods: np.ndarray):
    low, high = -0.99, 1.0
    f_low = _npv_and_derivative(low, flows, periods)[0]
    # Long series underflow the discount factor near -100%
    while not np.isfinite(f_low):
        low = -1 + (1 + low) * 2
        if low >= 0:
            return None
        f_low = _npv_and_derivative(low, flows, periods)[0]
    f_high = _npv_and_derivative(high, flows, periods)[0]
    while np.sign(f_low) == np.sign(f_high):
        high *= 2
        if high > 1e6:
            return None
        f_high = _npv_and_derivative(high, flows, periods)[0]

    for _ in range(BISECTION_MAX_ITERATIONS):
        mid = (low + high) / 2
        f_mid = _npv_and_derivative(mid, flows, periods)[0]
        if f_mid == 0 or (high - low) / 2 < TOLERANCE:
            return mid
        if np.sign(f_mid) == np.sign(f_low):
            low, f_low = mid, f_mid
        else:
            high = mid
    return (low + high) / 2


def _is_root(rate: float, flows: np.ndarray, periods: np.ndarray) -> bool:
    value = _npv_and_derivative(rate, flows, periods)[0]
    return bool(np.isfinite(value)) and abs(value) <= ROOT_TOLERANCE * float(np.sum(np.abs(flows)))


def calculate_irr(flows: Sequence[float]) -> Union[float, IrrUndefined]:
    """Monthly internal rate of return of a cash flow series.

    Newton-Raphson seeded at 1% per month, falling back to bisection when
    Newton fails to converge or leaves the valid domain. A rate is only
    returned once its NPV is zero to within a millionth of the gross flows.

    Args:
        flows: Monthly net cash flows, first at t = 0.

    Returns:
        Monthly IRR as a decimal, or IrrUndefined with the reason. Never
        a silent 0%.

    Example:
        >>> round(calculate_irr([-1_000_000, 0, 0, 0, 1_300_000]), 4)
        0.0678
    """
    values = np.asarray(flows, dtype=float)
    if not (np.any(values > 0) and np.any(values < 0)):
        logger.warning("IRR undefined: cash flows have no sign change")
        return IrrUndefined("no sign change")

    periods = np.arange(len(values), dtype=float)
    rate = _newton(values, periods)
    if rate is None or not _is_root(rate, values, periods):
        rate = _bisection(values, periods)
    if rate is None or not _is_root(rate, values, periods):
        logger.warning("IRR undefined: solver did not converge")
        return IrrUndefined("no convergence")
    return float(rate)


def annualise_monthly_rate(monthly_rate: float) -> float:
    """Compound a monthly rate to an annual rate: (1 + r)^12 - 1."""
    return (1 + monthly_rate) ** 12 - 1
