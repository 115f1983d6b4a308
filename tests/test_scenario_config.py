"""Tests for scenario resolution and input validation."""

from dataclasses import replace

import pytest

from feasibility.errors import ConfigurationError
from feasibility.models.lookups import (
    CostCategory,
    EquityMode,
    FundingSource,
    LimitMethod,
    Milestone,
    RateMode,
    RevenueStrategy,
    SurplusPolicy,
)
from feasibility.models.project import (
    CapitalTier,
    CostItem,
    DatedAmount,
    DatedRate,
    EquityConfiguration,
    FeasibilitySettings,
    RevenueItem,
    ScenarioConfig,
)
from feasibility.models.scenario_config import EngineDefaults, resolve_scenario
from feasibility.models.updates import (
    AddCostItem,
    AddRevenueItem,
    SetEquity,
    SetSeniorTier,
    SetSurplusPolicy,
    apply_update,
)


class TestResolveDefaults:
    """Tests for default filling."""

    def test_unset_settings_take_engine_defaults(self, simple_scenario):
        resolved = resolve_scenario(simple_scenario)
        settings = resolved.settings

        assert settings.gst_rate == 10.0
        assert settings.discount_rate == 15.0
        assert settings.itc_lag_months == 0
        assert settings.foreign_surcharge_pct == 8.0
        assert resolved.capital.surplus_policy == SurplusPolicy.REPAY
        assert resolved.capital.draw_order == (
            FundingSource.EQUITY, FundingSource.SENIOR, FundingSource.MEZZANINE,
        )

    def test_custom_defaults(self, simple_scenario):
        resolved = resolve_scenario(simple_scenario, EngineDefaults(gst_rate=0.0, discount_rate=8.0))

        assert resolved.settings.gst_rate == 0.0
        assert resolved.settings.discount_rate == 8.0

    def test_explicit_settings_win(self, simple_scenario):
        scenario = replace(simple_scenario, settings=replace(
            simple_scenario.settings, gst_rate=15.0, project_name="Named"))
        settings = resolve_scenario(scenario).settings

        assert settings.gst_rate == 15.0
        assert settings.project_name == "Named"

    def test_project_name_falls_back_to_scenario_name(self, simple_scenario):
        assert resolve_scenario(simple_scenario).settings.project_name == "Simple"

    def test_timeline_milestones(self, townhouse_scenario):
        settings = resolve_scenario(townhouse_scenario).settings

        assert settings.settlement_month == 2
        assert settings.construction_start == 3
        assert settings.completion_month == 15

    def test_construction_months_default_to_remaining_horizon(self):
        scenario = ScenarioConfig(settings=FeasibilitySettings(duration_months=18, construction_delay=3))
        settings = resolve_scenario(scenario).settings

        assert settings.construction_months == 15
        assert settings.completion_month == 18

    def test_margin_basis_defaults_to_purchase_price(self, townhouse_scenario):
        assert resolve_scenario(townhouse_scenario).settings.margin_scheme_basis == 2_000_000

    def test_cost_lines_anchor_to_milestones(self, townhouse_scenario):
        costs = resolve_scenario(townhouse_scenario).costs
        starts = {scheduled.item.description: scheduled.start_month for scheduled in costs}

        assert starts == {"Build": 3, "Design and management": 0, "Development contributions": 2}

    def test_completion_offset_for_costs(self, townhouse_scenario):
        scenario = apply_update(townhouse_scenario, AddCostItem(CostItem(
            category=CostCategory.SELLING,
            description="Marketing",
            amount=50_000,
            start_month=-2,
            milestone=Milestone.COMPLETION,
        )))
        assert resolve_scenario(scenario).costs[-1].start_month == 13

    def test_revenue_starts_after_completion(self, townhouse_scenario):
        assert resolve_scenario(townhouse_scenario).revenues[0].start_month == 16

    def test_steepness_default(self, townhouse_scenario):
        assert resolve_scenario(townhouse_scenario).costs[0].s_curve_steepness == 12.0

    def test_source_is_kept(self, townhouse_scenario):
        assert resolve_scenario(townhouse_scenario).source is townhouse_scenario


class TestValidation:
    """Tests for malformed input rejection."""

    @pytest.mark.parametrize("months", [0, -1])
    def test_duration_must_be_positive(self, months):
        with pytest.raises(ConfigurationError):
            resolve_scenario(ScenarioConfig(settings=FeasibilitySettings(duration_months=months)))

    def test_negative_construction_delay(self):
        with pytest.raises(ConfigurationError):
            resolve_scenario(ScenarioConfig(settings=FeasibilitySettings(duration_months=12, construction_delay=-1)))

    def test_zero_construction_months(self):
        with pytest.raises(ConfigurationError):
            resolve_scenario(ScenarioConfig(settings=FeasibilitySettings(duration_months=12, construction_months=0)))

    def test_deposit_out_of_range(self, townhouse_scenario):
        acquisition = replace(townhouse_scenario.site.acquisition, deposit_pct=120)
        scenario = replace(townhouse_scenario, site=replace(townhouse_scenario.site, acquisition=acquisition))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_zero_span(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddCostItem(CostItem(
            category=CostCategory.STATUTORY, description="Bad", amount=1_000, span=0)))
        with pytest.raises(ConfigurationError, match="span"):
            resolve_scenario(scenario)

    def test_negative_amount_needs_credit_flag(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddCostItem(CostItem(
            category=CostCategory.STATUTORY, description="Bad", amount=-1_000)))
        with pytest.raises(ConfigurationError, match="credit"):
            resolve_scenario(scenario)

    def test_cost_before_month_zero(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddCostItem(CostItem(
            category=CostCategory.STATUTORY, description="Early", amount=1_000, start_month=-1)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_non_positive_steepness(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddCostItem(CostItem(
            category=CostCategory.STATUTORY, description="Flat", amount=1_000, s_curve_steepness=0.0)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_vacancy_out_of_range(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddRevenueItem(RevenueItem(
            description="Rent", strategy=RevenueStrategy.HOLD, weekly_rent=500, vacancy_pct=150)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_capitalised_hold_needs_cap_rate(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddRevenueItem(RevenueItem(
            description="Rent", strategy=RevenueStrategy.HOLD, weekly_rent=500, is_capitalised=True)))
        with pytest.raises(ConfigurationError, match="cap rate"):
            resolve_scenario(scenario)

    def test_zero_settlement_span(self, simple_scenario):
        scenario = apply_update(simple_scenario, AddRevenueItem(RevenueItem(
            description="Sale", price_per_unit=100, settlement_span=0)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_negative_limit(self, simple_scenario):
        scenario = apply_update(simple_scenario, SetSeniorTier(CapitalTier(limit=-1, interest_rate=5.0)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_percentage_limit_above_100(self, simple_scenario):
        scenario = apply_update(simple_scenario, SetSeniorTier(CapitalTier(
            limit=120, limit_method=LimitMethod.PERCENTAGE, interest_rate=5.0)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_negative_rate(self, simple_scenario):
        scenario = apply_update(simple_scenario, SetSeniorTier(CapitalTier(limit=100, interest_rate=-1.0)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_dated_rates_must_increase(self, simple_scenario):
        tier = CapitalTier(
            limit=1_000_000,
            interest_rate=8.0,
            rate_mode=RateMode.VARIABLE,
            variable_rates=(DatedRate(month=6, rate=9.0), DatedRate(month=6, rate=10.0)),
        )
        with pytest.raises(ConfigurationError, match="strictly increasing"):
            resolve_scenario(apply_update(simple_scenario, SetSeniorTier(tier)))

    def test_equity_percentage_out_of_range(self, simple_scenario):
        scenario = apply_update(simple_scenario, SetEquity(EquityConfiguration(
            mode=EquityMode.PARI_PASSU, percentage=101)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_negative_instalment(self, simple_scenario):
        scenario = apply_update(simple_scenario, SetEquity(EquityConfiguration(
            mode=EquityMode.INSTALMENTS, instalments=(DatedAmount(month=1, amount=-5),))))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_duplicate_draw_order(self, simple_scenario):
        scenario = replace(simple_scenario, capital=replace(
            simple_scenario.capital, draw_order=(FundingSource.SENIOR, FundingSource.SENIOR)))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_unknown_draw_source(self, simple_scenario):
        scenario = replace(simple_scenario, capital=replace(
            simple_scenario.capital, draw_order=(FundingSource.SENIOR, "bank")))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)

    def test_negative_surplus_rate(self, simple_scenario):
        scenario = apply_update(simple_scenario, SetSurplusPolicy(SurplusPolicy.RETAIN, interest_rate=-2.0))
        with pytest.raises(ConfigurationError):
            resolve_scenario(scenario)
