"""GST and margin-scheme calculations.

Cost and revenue amounts are GST-inclusive. The GST component of a
taxable amount is ``gross × rate / (100 + rate)`` (one eleventh at 10%).
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..models.lookups import GstTreatment


@dataclass(frozen=True)
class GstSplit:
    """A gross amount split into its net and GST components."""
    net: float
    gst: float
    input_tax_credit: float = 0.0


def gst_component(gross: float, gst_rate: float) -> float:
    """GST contained in a GST-inclusive amount, rounded to cents."""
    if gst_rate <= 0:
        return 0.0
    return round(gross * gst_rate / (100 + gst_rate), 2)


def split_gst(gross: float, treatment: GstTreatment, gst_rate: float) -> GstSplit:
    """Split a GST-inclusive cost.

    Taxable costs carry GST that is claimable as an input tax credit.
    GST-free and margin-scheme acquisitions carry none.

    Returns:
        GstSplit where ``net + gst == gross`` to the cent.
    """
    gross = round(gross, 2)
    if treatment != GstTreatment.TAXABLE:
        return GstSplit(net=gross, gst=0.0, input_tax_credit=0.0)
    gst = gst_component(gross, gst_rate)
    return GstSplit(net=round(gross - gst, 2), gst=gst, input_tax_credit=gst)


def revenue_gst(
    gross: float,
    treatment: GstTreatment,
    gst_rate: float,
    margin_basis: float = 0.0,
) -> GstSplit:
    """Split a GST-inclusive sale.

    Under the margin scheme GST is payable only on the margin over the
    acquisition basis, never below zero. No input tax credit arises.
    """
    gross = round(gross, 2)
    if treatment == GstTreatment.GST_FREE:
        gst = 0.0
    elif treatment == GstTreatment.MARGIN_SCHEME:
        gst = gst_component(max(0.0, gross - margin_basis), gst_rate)
    else:
        gst = gst_component(gross, gst_rate)
    return GstSplit(net=round(gross - gst, 2), gst=gst)


def _apply_residual(series: np.ndarray, expected_total: float) -> np.ndarray:
    """Push the rounding residual into the last non-zero period."""
    residual = round(expected_total - float(series.sum()), 2)
    if residual != 0:
        nonzero = np.flatnonzero(series)
        index = nonzero[-1] if len(nonzero) else len(series) - 1
        series[index] = round(series[index] + residual, 2)
    return series


def split_gst_series(
    gross: np.ndarray,
    treatment: GstTreatment,
    gst_rate: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Split a monthly cost series into net and GST series.

    Per-period GST is rounded to cents and the residual against the GST on
    the series total goes into the last non-zero period.

    Returns:
        Tuple of (net, gst) arrays. ``net + gst == gross`` per period.
    """
    gross = np.round(np.asarray(gross, dtype=float), 2)
    if treatment != GstTreatment.TAXABLE or gst_rate <= 0:
        return gross.copy(), np.zeros_like(gross)

    gst = np.round(gross * gst_rate / (100 + gst_rate), 2)
    gst = _apply_residual(gst, gst_component(float(gross.sum()), gst_rate))
    return np.round(gross - gst, 2), gst


def revenue_gst_series(
    gross: np.ndarray,
    treatment: GstTreatment,
    gst_rate: float,
    margin_basis: float = 0.0,
) -> np.ndarray:
    """GST payable on a monthly revenue series.

    The margin-scheme basis is allocated across periods in proportion to
    each period's share of the line's gross revenue.
    """
    gross = np.round(np.asarray(gross, dtype=float), 2)
    total = float(gross.sum())
    if treatment == GstTreatment.GST_FREE or gst_rate <= 0 or total == 0:
        return np.zeros_like(gross)

    if treatment == GstTreatment.MARGIN_SCHEME:
        basis = margin_basis * gross / total
        margin = np.maximum(0.0, gross - basis)
        expected = gst_component(max(0.0, total - margin_basis), gst_rate)
    else:
        margin = gross
        expected = gst_component(total, gst_rate)

    gst = np.round(margin * gst_rate / (100 + gst_rate), 2)
    return _apply_residual(gst, expected)


def lag_series(series: np.ndarray, months: int) -> np.ndarray:
    """Shift a series later by ``months``, folding overflow into the final month."""
    if months <= 0:
        return series.copy()
    shifted = np.zeros_like(series)
    n = len(series)
    for month, value in enumerate(series):
        shifted[min(month + months, n - 1)] += value
    return np.round(shifted, 2)
