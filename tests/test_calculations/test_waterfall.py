"""Tests for the capital stack waterfall."""

import pytest

from feasibility.calculations.waterfall import (
    MonthInput,
    TierTerms,
    build_waterfall_terms,
    run_waterfall,
)
from feasibility.models.lookups import (
    EquityMode,
    FeeBase,
    FundingSource,
    LimitMethod,
    RateMode,
    SurplusPolicy,
)
from feasibility.models.project import CapitalTier, DatedAmount, DatedRate, EquityConfiguration


def _months(duration, costs=None, revenue=None):
    """Month inputs with GST-free costs and revenue by month."""
    costs = costs or {}
    revenue = revenue or {}
    return [
        MonthInput(
            month=m,
            costs_gross=costs.get(m, 0.0),
            costs_net=costs.get(m, 0.0),
            revenue_gross=revenue.get(m, 0.0),
        )
        for m in range(duration)
    ]


def _run(capital, duration, costs=None, revenue=None, pre_finance_cost=0.0, land_cost=0.0):
    terms = build_waterfall_terms(capital, duration, pre_finance_cost, land_cost)
    return run_waterfall(terms, _months(duration, costs, revenue))


class TestMonthInput:
    """Tests for unlevered monthly flows."""

    def test_net_cashflow_nets_gst(self):
        month = MonthInput(
            month=0,
            costs_gross=1_100.0,
            costs_net=1_000.0,
            input_tax_credit=100.0,
            revenue_gross=2_200.0,
            gst_collected=200.0,
            selling_costs=50.0,
        )
        assert month.gross_outflow == 1_150.0
        assert month.net_cashflow == 2_200.0 - 1_150.0 - 100.0


class TestShortfall:
    """Tests for unfunded requirements."""

    def test_requirement_beyond_all_sources_is_shortfall(self, make_capital):
        """$500k cost against a $400k senior limit leaves $100k unfunded."""
        capital = make_capital(senior=CapitalTier(limit=400_000, interest_rate=0.0))
        state, records = _run(capital, 1, costs={0: 500_000})

        assert records[0].senior_draw == 400_000.0
        assert records[0].shortfall == 100_000.0
        assert records[0].unfunded_balance == 100_000.0
        assert state.unfunded_balance == 100_000.0

    def test_shortfall_is_carried_not_double_counted(self, make_capital):
        capital = make_capital(senior=CapitalTier(limit=400_000, interest_rate=0.0))
        _, records = _run(capital, 3, costs={0: 500_000}, revenue={2: 150_000})

        assert [r.shortfall for r in records] == [100_000.0, 0.0, 0.0]
        assert records[1].unfunded_balance == 100_000.0
        # The carry is cleared first, the rest repays senior
        assert records[2].unfunded_balance == 0.0
        assert records[2].senior_repayment == 50_000.0
        assert records[2].senior_balance == 350_000.0

    def test_terminal_debt_is_not_forced_to_zero(self, make_capital):
        capital = make_capital(senior=CapitalTier(limit=400_000, interest_rate=0.0))
        state, records = _run(capital, 2, costs={0: 300_000}, revenue={1: 100_000})

        assert records[-1].senior_balance == 200_000.0
        assert state.senior_balance == 200_000.0


class TestInterest:
    """Tests for interest accrual and capitalisation."""

    def test_interest_accrues_on_opening_balance(self, make_capital):
        """$100k drawn in month 0 at 12% p.a. accrues $1,000 in month 1."""
        capital = make_capital(senior=CapitalTier(limit=200_000, interest_rate=12.0))
        _, records = _run(capital, 3, costs={0: 100_000})

        assert records[0].senior_interest == 0.0
        assert records[1].senior_interest == 1_000.0
        assert records[1].senior_interest_capitalised == 1_000.0
        assert records[1].senior_balance == 101_000.0
        assert records[2].senior_interest == 1_010.0

    def test_capitalisation_stops_at_limit(self, make_capital):
        """Interest beyond the limit room is cash interest."""
        capital = make_capital(senior=CapitalTier(limit=100_500, interest_rate=12.0))
        _, records = _run(capital, 2, costs={0: 100_000})

        assert records[1].senior_interest == 1_000.0
        assert records[1].senior_interest_capitalised == 500.0
        assert records[1].senior_balance == 100_500.0
        # The cash part has nowhere to come from
        assert records[1].shortfall == 500.0

    def test_full_facility_cannot_capitalise(self, make_capital):
        capital = make_capital(senior=CapitalTier(limit=100_000, interest_rate=12.0))
        _, records = _run(capital, 2, costs={0: 100_000})

        assert records[1].senior_interest_capitalised == 0.0
        assert records[1].senior_balance == 100_000.0
        assert records[1].shortfall == 1_000.0

    def test_uncapitalised_interest_is_funded_like_a_cost(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=100_000, interest_rate=12.0, is_interest_capitalised=False),
            mezzanine=CapitalTier(limit=50_000, interest_rate=0.0),
        )
        _, records = _run(capital, 2, costs={0: 100_000})
        assert records[1].senior_interest_capitalised == 0.0
        assert records[1].mezzanine_draw == 1_000.0

    def test_variable_rate_schedule(self):
        tier = CapitalTier(
            limit=1_000_000,
            interest_rate=12.0,
            rate_mode=RateMode.VARIABLE,
            variable_rates=(DatedRate(month=2, rate=24.0), DatedRate(month=4, rate=6.0)),
        )
        terms = TierTerms(source=FundingSource.SENIOR, limit=1_000_000, tier=tier, establishment_fee=0.0)

        assert [terms.rate_for(m) for m in range(6)] == [12.0, 12.0, 24.0, 24.0, 6.0, 6.0]

    def test_variable_rate_applies_in_waterfall(self, make_capital):
        tier = CapitalTier(
            limit=1_000_000,
            interest_rate=12.0,
            rate_mode=RateMode.VARIABLE,
            variable_rates=(DatedRate(month=2, rate=24.0),),
        )
        _, records = _run(make_capital(senior=tier), 3, costs={0: 100_000})

        assert records[1].senior_interest == 1_000.0
        assert records[2].senior_interest == 2_020.0


class TestFees:
    """Tests for line and establishment fees."""

    def test_line_and_establishment_fees(self, make_capital):
        tier = CapitalTier(limit=100_000, interest_rate=0.0, line_fee_pct=1.2, establishment_fee=500.0)
        _, records = _run(make_capital(senior=tier), 3)

        assert [r.senior_fees for r in records] == [600.0, 100.0, 100.0]
        assert records[-1].senior_balance == 800.0

    def test_percentage_establishment_fee(self, make_capital):
        tier = CapitalTier(
            limit=200_000,
            interest_rate=0.0,
            establishment_fee=1.0,
            establishment_fee_base=FeeBase.PERCENTAGE,
        )
        _, records = _run(make_capital(senior=tier), 1)
        assert records[0].senior_fees == 2_000.0

    def test_fees_start_at_activation(self, make_capital):
        tier = CapitalTier(limit=100_000, interest_rate=0.0, line_fee_pct=1.2,
                           establishment_fee=500.0, activation_month=1)
        _, records = _run(make_capital(senior=tier), 3)
        assert [r.senior_fees for r in records] == [0.0, 600.0, 100.0]

    def test_percentage_limit(self, make_capital):
        tier = CapitalTier(limit=60, limit_method=LimitMethod.PERCENTAGE, interest_rate=0.0)
        terms = build_waterfall_terms(make_capital(senior=tier), 1, 500_000, 0.0)
        assert terms.tiers[FundingSource.SENIOR].limit == 300_000.0


class TestDrawAndRepayment:
    """Tests for draw and repayment order."""

    def test_default_order_draws_senior_before_mezzanine(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=100_000, interest_rate=0.0),
            mezzanine=CapitalTier(limit=200_000, interest_rate=0.0),
        )
        _, records = _run(capital, 1, costs={0: 150_000})

        assert records[0].senior_draw == 100_000.0
        assert records[0].mezzanine_draw == 50_000.0

    def test_custom_draw_order(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=200_000, interest_rate=0.0),
            mezzanine=CapitalTier(limit=100_000, interest_rate=0.0),
            draw_order=(FundingSource.MEZZANINE, FundingSource.SENIOR),
        )
        _, records = _run(capital, 1, costs={0: 150_000})

        assert records[0].mezzanine_draw == 100_000.0
        assert records[0].senior_draw == 50_000.0

    def test_surplus_repays_mezzanine_first(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=50_000, interest_rate=0.0),
            mezzanine=CapitalTier(limit=50_000, interest_rate=0.0),
        )
        _, records = _run(capital, 3, costs={0: 100_000}, revenue={1: 60_000})

        assert records[1].mezzanine_repayment == 50_000.0
        assert records[1].senior_repayment == 10_000.0
        assert records[1].mezzanine_balance == 0.0
        assert records[1].senior_balance == 40_000.0

    def test_inactive_tier_is_skipped(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=100_000, interest_rate=0.0, activation_month=1),
            mezzanine=CapitalTier(limit=100_000, interest_rate=0.0),
        )
        _, records = _run(capital, 2, costs={0: 40_000})

        assert records[0].senior_draw == 0.0
        assert records[0].mezzanine_draw == 40_000.0


class TestEquityModes:
    """Tests for each equity injection mode."""

    def test_lump_sum_funds_from_cash(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=1_000_000, interest_rate=0.0),
            equity=EquityConfiguration(mode=EquityMode.LUMP_SUM, initial_contribution=300_000),
        )
        _, records = _run(capital, 4, costs={0: 100_000, 1: 100_000, 2: 150_000})

        assert records[0].equity_drawn == 300_000.0
        assert records[0].cash_balance == 200_000.0
        assert records[1].cash_balance == 100_000.0
        assert records[1].senior_draw == 0.0
        # Cash runs out part way through month 2
        assert records[2].senior_draw == 50_000.0

    def test_instalments_are_clamped_to_horizon(self, make_capital):
        capital = make_capital(equity=EquityConfiguration(
            mode=EquityMode.INSTALMENTS,
            instalments=(DatedAmount(month=0, amount=50_000), DatedAmount(month=5, amount=50_000)),
        ))
        terms = build_waterfall_terms(capital, 3, 0.0, 0.0)
        assert dict(terms.equity_injections) == {0: 50_000, 2: 50_000}

    def test_pct_land_draws_quantum_before_debt(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=500_000, interest_rate=0.0),
            equity=EquityConfiguration(mode=EquityMode.PCT_LAND, percentage=50.0),
        )
        _, records = _run(capital, 2, costs={0: 300_000}, land_cost=400_000)

        assert records[0].equity_drawn == 200_000.0
        assert records[0].senior_draw == 100_000.0

    def test_pct_total_cost_quantum(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=500_000, interest_rate=0.0),
            equity=EquityConfiguration(mode=EquityMode.PCT_TOTAL_COST, percentage=25.0),
        )
        _, records = _run(capital, 3, costs={0: 60_000, 1: 340_000}, pre_finance_cost=400_000)

        assert records[0].equity_drawn == 60_000.0
        assert records[1].equity_drawn == 40_000.0
        assert records[1].senior_draw == 300_000.0

    def test_pari_passu_splits_each_draw(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=500_000, interest_rate=0.0),
            equity=EquityConfiguration(mode=EquityMode.PARI_PASSU, percentage=40.0),
        )
        _, records = _run(capital, 2, costs={0: 100_000, 1: 50_000})

        assert records[0].equity_drawn == 40_000.0
        assert records[0].senior_draw == 60_000.0
        assert records[1].equity_drawn == 20_000.0
        assert records[1].senior_draw == 30_000.0


class TestSurplusPolicy:
    """Tests for surplus handling and the terminal sweep."""

    def test_repay_distributes_surplus_to_equity(self, make_capital):
        capital = make_capital(
            equity=EquityConfiguration(mode=EquityMode.LUMP_SUM, initial_contribution=100_000),
        )
        _, records = _run(capital, 3, costs={0: 100_000}, revenue={1: 150_000})

        assert records[1].equity_repaid == 150_000.0
        assert records[1].cash_balance == 0.0
        assert records[1].equity_balance == -50_000.0

    def test_retain_holds_cash_against_capitalising_tier(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=100_000, interest_rate=0.0),
            surplus_policy=SurplusPolicy.RETAIN,
        )
        _, records = _run(capital, 3, costs={0: 100_000}, revenue={1: 60_000})

        assert records[1].senior_repayment == 0.0
        assert records[1].cash_balance == 60_000.0
        # Final month sweeps cash into senior
        assert records[2].senior_repayment == 60_000.0
        assert records[2].senior_balance == 40_000.0
        assert records[2].cash_balance == 0.0

    def test_retained_cash_earns_surplus_interest(self, make_capital):
        capital = make_capital(
            senior=CapitalTier(limit=100_000, interest_rate=0.0),
            surplus_policy=SurplusPolicy.RETAIN,
            surplus_interest_rate=12.0,
        )
        _, records = _run(capital, 3, costs={0: 100_000}, revenue={1: 60_000})

        assert records[1].surplus_interest == 0.0
        assert records[2].surplus_interest == 600.0
        assert records[2].senior_repayment == 60_600.0

    def test_repay_policy_earns_no_surplus_interest(self, make_capital):
        """Idle equity under REPAY is not credited the surplus rate."""
        capital = make_capital(
            equity=EquityConfiguration(mode=EquityMode.LUMP_SUM, initial_contribution=300_000),
            surplus_interest_rate=12.0,
        )
        _, records = _run(capital, 3, costs={0: 100_000})

        assert records[1].cash_balance == 200_000.0
        assert [r.surplus_interest for r in records] == [0.0, 0.0, 0.0]

    def test_final_month_sweeps_cash_to_equity(self, make_capital):
        capital = make_capital(
            equity=EquityConfiguration(mode=EquityMode.LUMP_SUM, initial_contribution=300_000),
        )
        state, records = _run(capital, 2, costs={0: 100_000})

        assert records[1].equity_repaid == 200_000.0
        assert records[1].cash_balance == 0.0
        assert state.cash_balance == 0.0


class TestInvariants:
    """Tests for ledger identities on a full run."""

    def test_balances_roll_forward(self, townhouse_result):
        previous_senior = previous_mezz = 0.0
        for r in townhouse_result.records:
            assert r.senior_balance == pytest.approx(
                previous_senior + r.senior_interest_capitalised + r.senior_draw - r.senior_repayment, abs=0.02)
            assert r.mezzanine_balance == pytest.approx(
                previous_mezz + r.mezzanine_interest_capitalised + r.mezzanine_draw - r.mezzanine_repayment,
                abs=0.02)
            previous_senior, previous_mezz = r.senior_balance, r.mezzanine_balance

    def test_cash_is_conserved(self, townhouse_result):
        """Change in cash equals every source less every use, each month."""
        previous_cash = previous_unfunded = 0.0
        for r in townhouse_result.records:
            cash_interest = r.total_interest - r.senior_interest_capitalised - r.mezzanine_interest_capitalised
            expected = (
                previous_cash + r.equity_drawn + r.surplus_interest + r.net_cashflow
                - r.finance_fees - cash_interest
                + r.senior_draw + r.mezzanine_draw
                - r.senior_repayment - r.mezzanine_repayment
                - r.equity_repaid
                + (r.unfunded_balance - previous_unfunded)
            )
            assert r.cash_balance == pytest.approx(expected, abs=0.1)
            previous_cash, previous_unfunded = r.cash_balance, r.unfunded_balance

    def test_no_negative_balances(self, townhouse_result):
        for r in townhouse_result.records:
            assert r.senior_balance >= 0
            assert r.mezzanine_balance >= 0
            assert r.cash_balance >= 0
            assert r.unfunded_balance >= 0

    def test_balances_within_limits(self, townhouse_result):
        capital = townhouse_result.scenario.capital
        pre_finance = townhouse_result.cost_schedule.pre_finance_cost
        senior_limit = round(pre_finance * capital.senior.limit / 100, 2)
        for r in townhouse_result.records:
            assert r.senior_balance <= senior_limit + 0.01
            assert r.mezzanine_balance <= capital.mezzanine.limit + 0.01
