"""Tests for NPV and IRR on monthly series."""

import numpy_financial as npf
import pytest

from feasibility.calculations.dcf import annualise_monthly_rate, calculate_irr, calculate_npv
from feasibility.errors import IrrUndefined


class TestCalculateIrr:
    """Tests for the IRR solver."""

    def test_irr_zeroes_npv(self):
        """-$1M then +$1.3M four months later."""
        flows = [-1_000_000, 0, 0, 0, 1_300_000]
        rate = calculate_irr(flows)

        assert abs(npf.npv(rate, flows)) < 0.01
        assert rate == pytest.approx(1.3 ** 0.25 - 1, abs=1e-8)

    def test_matches_numpy_financial(self):
        flows = [-500_000, -250_000, 100_000, 200_000, 300_000, 400_000]
        assert calculate_irr(flows) == pytest.approx(npf.irr(flows), abs=1e-8)

    def test_negative_irr(self):
        flows = [-1_000, 900]
        assert calculate_irr(flows) == pytest.approx(-0.1, abs=1e-8)

    def test_no_sign_change_is_undefined(self):
        result = calculate_irr([-100, -50, -25])

        assert isinstance(result, IrrUndefined)
        assert result.reason == "no sign change"
        assert str(result) == "IRR undefined (no sign change)"

    def test_all_zero_is_undefined(self):
        assert isinstance(calculate_irr([0.0, 0.0, 0.0]), IrrUndefined)

    def test_long_horizon_converges(self):
        flows = [-100_000] * 24 + [0] * 12 + [300_000] * 12
        rate = calculate_irr(flows)
        assert abs(npf.npv(rate, flows)) < 0.01

    @pytest.mark.parametrize("months", [200, 240, 360])
    def test_deep_loss_over_long_series(self, months):
        """Near -100% the discount factor underflows on long series."""
        flows = [-1_000_000] + [0] * (months - 2) + [1_000]
        rate = calculate_irr(flows)

        assert rate == pytest.approx(0.001 ** (1 / (months - 1)) - 1, abs=1e-8)
        assert rate > -0.99
        assert abs(npf.npv(rate, flows)) < 1.0


class TestCalculateNpv:
    """Tests for NPV."""

    def test_zero_rate_is_sum(self):
        assert calculate_npv([-100.0, 50.0, 75.0], 0.0) == pytest.approx(25.0)

    def test_monthly_discounting(self):
        flows = [-1_000, 200, 300, 400, 500]
        assert calculate_npv(flows, 0.12) == pytest.approx(npf.npv(0.01, flows))

    def test_first_flow_not_discounted(self):
        assert calculate_npv([100.0], 0.5) == pytest.approx(100.0)

    def test_empty_series(self):
        assert calculate_npv([], 0.1) == 0.0


class TestAnnualise:
    def test_one_percent_monthly(self):
        assert annualise_monthly_rate(0.01) == pytest.approx(1.01 ** 12 - 1)

    def test_zero(self):
        assert annualise_monthly_rate(0.0) == 0.0
