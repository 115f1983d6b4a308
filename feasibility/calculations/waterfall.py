"""Capital stack waterfall: monthly funding of a development by debt and equity.

The month loop is a fold. ``CapitalWaterfall.step`` takes the previous
immutable ``WaterfallState`` and one month's project flows, and returns the
next state together with that month's ``MonthlyCashflowRecord``. Replaying
the same inputs always yields the same series.

Per month:
1. Equity injections (lump sum at month 0, scheduled instalments)
2. Establishment fee at activation, line fee every month from activation
3. Interest on opening balances, capitalised up to the facility limit
4. Requirement funded from cash at bank, then sources in draw order
5. Any remainder is a shortfall carried forward, never clipped
6. Surpluses clear the carry, then repay debt or build cash per policy
7. Final month sweeps cash to debt, then to equity
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..models.lookups import (
    CostCategory,
    EquityMode,
    FeeBase,
    FundingSource,
    LimitMethod,
    RateMode,
    SurplusPolicy,
)
from ..models.project import CapitalTier
from ..models.scenario_config import ResolvedCapitalStack
from .trace import trace

logger = logging.getLogger(__name__)

DEBT_SOURCES = (FundingSource.SENIOR, FundingSource.MEZZANINE)
REPAYMENT_ORDER = (FundingSource.MEZZANINE, FundingSource.SENIOR)  # Most expensive first


@dataclass(frozen=True)
class MonthInput:
    """Unlevered project flows for one month, all amounts in $."""
    month: int
    costs_gross: float = 0.0  # GST-inclusive
    costs_net: float = 0.0
    input_tax_credit: float = 0.0  # ITC claimed this month
    revenue_gross: float = 0.0  # GST-inclusive
    gst_collected: float = 0.0
    selling_costs: float = 0.0
    operating_costs: float = 0.0
    cost_breakdown: Mapping[CostCategory, float] = field(default_factory=dict)

    @property
    def gross_outflow(self) -> float:
        return self.costs_gross + self.selling_costs + self.operating_costs

    @property
    def gross_inflow(self) -> float:
        return self.revenue_gross

    @property
    def net_cashflow(self) -> float:
        """Inflow less outflow, net of GST remitted and credits claimed."""
        return round(
            self.gross_inflow - self.gross_outflow
            - (self.gst_collected - self.input_tax_credit),
            2,
        )


@dataclass(frozen=True)
class MonthlyCashflowRecord:
    """One month of the levered project cashflow."""
    month: int

    # Project flows
    costs_gross: float
    costs_net: float
    input_tax_credit: float
    revenue_gross: float
    gst_collected: float
    selling_costs: float
    operating_costs: float
    gross_outflow: float
    gross_inflow: float
    net_cashflow: float  # Unlevered, net of GST

    # Senior
    senior_interest: float = 0.0
    senior_interest_capitalised: float = 0.0
    senior_fees: float = 0.0
    senior_draw: float = 0.0
    senior_repayment: float = 0.0
    senior_balance: float = 0.0

    # Mezzanine
    mezzanine_interest: float = 0.0
    mezzanine_interest_capitalised: float = 0.0
    mezzanine_fees: float = 0.0
    mezzanine_draw: float = 0.0
    mezzanine_repayment: float = 0.0
    mezzanine_balance: float = 0.0

    # Equity
    equity_drawn: float = 0.0
    equity_repaid: float = 0.0
    equity_balance: float = 0.0  # Contributed less distributed

    # Cash and funding gaps
    cash_balance: float = 0.0
    surplus_interest: float = 0.0
    shortfall: float = 0.0  # New unfunded requirement this month
    unfunded_balance: float = 0.0  # Carried unfunded requirement

    cost_breakdown: Mapping[CostCategory, float] = field(default_factory=dict)

    @property
    def finance_fees(self) -> float:
        return self.senior_fees + self.mezzanine_fees

    @property
    def total_interest(self) -> float:
        return self.senior_interest + self.mezzanine_interest

    @property
    def debt_balance(self) -> float:
        return self.senior_balance + self.mezzanine_balance

    @property
    def equity_flow(self) -> float:
        """Flow from the equity investor's view: distributions less contributions."""
        return self.equity_repaid - self.equity_drawn


@dataclass(frozen=True)
class TierTerms:
    """A debt tier with its limit and fees resolved to dollars."""
    source: FundingSource
    limit: float
    tier: CapitalTier
    establishment_fee: float

    def rate_for(self, month: int) -> float:
        """Annual rate (%) in effect for a month."""
        if self.tier.rate_mode == RateMode.VARIABLE:
            rate = self.tier.interest_rate
            for dated in self.tier.variable_rates:
                if dated.month <= month:
                    rate = dated.rate
                else:
                    break
            return rate
        return self.tier.interest_rate

    def is_active(self, month: int) -> bool:
        return month >= self.tier.activation_month

    @property
    def line_fee(self) -> float:
        return round(self.limit * self.tier.line_fee_pct / 100 / 12, 2)


@dataclass(frozen=True)
class WaterfallTerms:
    """Everything the waterfall needs, resolved once per simulation."""
    duration: int
    tiers: Mapping[FundingSource, TierTerms]
    equity_mode: EquityMode
    equity_quantum: float  # Drawable equity for PCT_LAND / PCT_TOTAL_COST
    equity_injections: Mapping[int, float]  # month -> amount
    pari_passu_pct: float
    draw_order: Tuple[FundingSource, ...]
    surplus_policy: SurplusPolicy
    surplus_interest_rate: float  # % p.a.


@dataclass(frozen=True)
class WaterfallState:
    """Closing position after a month; the opening position of the next."""
    senior_balance: float = 0.0
    mezzanine_balance: float = 0.0
    equity_contributed: float = 0.0
    equity_distributed: float = 0.0
    cash_balance: float = 0.0
    unfunded_balance: float = 0.0

    def balance(self, source: FundingSource) -> float:
        if source == FundingSource.SENIOR:
            return self.senior_balance
        if source == FundingSource.MEZZANINE:
            return self.mezzanine_balance
        return self.equity_contributed - self.equity_distributed


def _resolve_limit(tier: CapitalTier, pre_finance_cost: float) -> float:
    if tier.limit_method == LimitMethod.PERCENTAGE:
        return round(pre_finance_cost * tier.limit / 100, 2)
    return tier.limit


def build_waterfall_terms(
    capital: ResolvedCapitalStack,
    duration: int,
    pre_finance_cost: float,
    land_cost: float,
) -> WaterfallTerms:
    """Resolve facility limits, fees and the equity plan.

    Args:
        capital: Resolved capital stack
        duration: Project length in months
        pre_finance_cost: Total development cost before finance, basis for
            percentage limits and PCT_TOTAL_COST equity
        land_cost: Land purchase price, basis for PCT_LAND equity

    Returns:
        WaterfallTerms for ``run_waterfall``
    """
    tiers: Dict[FundingSource, TierTerms] = {}
    for source, tier in ((FundingSource.SENIOR, capital.senior),
                         (FundingSource.MEZZANINE, capital.mezzanine)):
        if tier is None:
            continue
        limit = trace(
            f"financing.{source.value}_limit",
            _resolve_limit(tier, pre_finance_cost),
            {"development.pre_finance_cost": pre_finance_cost, "limit_input": tier.limit},
            notes=tier.limit_method.value,
        )
        if tier.establishment_fee_base == FeeBase.PERCENTAGE:
            fee = round(limit * tier.establishment_fee / 100, 2)
        else:
            fee = tier.establishment_fee
        tiers[source] = TierTerms(source=source, limit=limit, tier=tier, establishment_fee=fee)

    equity = capital.equity
    injections: Dict[int, float] = {}
    quantum = 0.0
    if equity.mode == EquityMode.LUMP_SUM and equity.initial_contribution > 0:
        injections[0] = equity.initial_contribution
    elif equity.mode == EquityMode.INSTALMENTS:
        for instalment in equity.instalments:
            month = min(instalment.month, duration - 1)
            injections[month] = injections.get(month, 0.0) + instalment.amount
    elif equity.mode == EquityMode.PCT_LAND:
        quantum = round(land_cost * equity.percentage / 100, 2)
    elif equity.mode == EquityMode.PCT_TOTAL_COST:
        quantum = round(pre_finance_cost * equity.percentage / 100, 2)

    trace(
        "financing.equity_quantum",
        quantum or sum(injections.values()),
        {"inputs.purchase_price": land_cost, "development.pre_finance_cost": pre_finance_cost},
        notes=equity.mode.value,
    )

    return WaterfallTerms(
        duration=duration,
        tiers=tiers,
        equity_mode=equity.mode,
        equity_quantum=quantum,
        equity_injections=injections,
        pari_passu_pct=equity.percentage if equity.mode == EquityMode.PARI_PASSU else 0.0,
        draw_order=capital.draw_order,
        surplus_policy=capital.surplus_policy,
        surplus_interest_rate=capital.surplus_interest_rate,
    )


class CapitalWaterfall:
    """Folds monthly project flows through the capital stack."""

    def __init__(self, terms: WaterfallTerms):
        self.terms = terms

    def initial_state(self) -> WaterfallState:
        return WaterfallState()

    def _equity_available(self, contributed: float) -> float:
        """Undrawn equity quantum; lump-sum and instalment equity arrives as cash instead."""
        if self.terms.equity_mode in (EquityMode.PCT_LAND, EquityMode.PCT_TOTAL_COST):
            return max(0.0, self.terms.equity_quantum - contributed)
        return 0.0

    def _draw_debt(self, source: FundingSource, month: int, amount: float,
                   balances: Dict[FundingSource, float], draws: Dict[FundingSource, float]) -> float:
        """Draw up to ``amount`` from a debt tier; returns the amount drawn."""
        terms = self.terms.tiers.get(source)
        if terms is None or not terms.is_active(month) or amount <= 0:
            return 0.0
        drawn = round(min(amount, max(0.0, terms.limit - balances[source])), 2)
        balances[source] += drawn
        draws[source] += drawn
        return drawn

    @staticmethod
    def _repay(source: FundingSource, amount: float,
               balances: Dict[FundingSource, float], repayments: Dict[FundingSource, float]) -> float:
        paid = round(min(amount, balances[source]), 2)
        balances[source] = round(balances[source] - paid, 2)
        repayments[source] += paid
        return paid

    def step(self, state: WaterfallState, month_input: MonthInput) -> Tuple[WaterfallState, MonthlyCashflowRecord]:
        """Advance the waterfall by one month.

        Args:
            state: Closing state of the previous month
            month_input: This month's project flows

        Returns:
            Tuple of (closing state, month record)
        """
        terms = self.terms
        m = month_input.month
        is_final = m == terms.duration - 1

        balances = {
            FundingSource.SENIOR: state.senior_balance,
            FundingSource.MEZZANINE: state.mezzanine_balance,
        }
        zero = {source: 0.0 for source in DEBT_SOURCES}
        interest, capitalised, fees = dict(zero), dict(zero), dict(zero)
        draws, repayments = dict(zero), dict(zero)

        # 1. Equity injections into cash
        injected = terms.equity_injections.get(m, 0.0)
        equity_drawn = injected
        equity_repaid = 0.0
        cash = state.cash_balance + injected

        # Retained cash earns interest on its opening balance
        surplus_interest = 0.0
        if terms.surplus_policy == SurplusPolicy.RETAIN:
            surplus_interest = round(state.cash_balance * terms.surplus_interest_rate / 100 / 12, 2)
        cash += surplus_interest

        # 2-3. Fees and interest on opening balances
        cash_interest = 0.0
        for source, tier_terms in terms.tiers.items():
            if tier_terms.is_active(m):
                fees[source] = tier_terms.line_fee
                if m == tier_terms.tier.activation_month:
                    fees[source] = round(fees[source] + tier_terms.establishment_fee, 2)

            accrued = round(balances[source] * tier_terms.rate_for(m) / 100 / 12, 2)
            interest[source] = accrued
            if tier_terms.tier.is_interest_capitalised:
                room = max(0.0, tier_terms.limit - balances[source])
                capitalised[source] = round(min(accrued, room), 2)
                balances[source] += capitalised[source]
            cash_interest += accrued - capitalised[source]

        requirement = round(
            -month_input.net_cashflow + sum(fees.values()) + cash_interest + state.unfunded_balance,
            2,
        )

        equity_contributed = state.equity_contributed + injected
        unfunded = 0.0
        if requirement > 0:
            # 4. Cash at bank first, then sources
            from_cash = min(cash, requirement)
            cash -= from_cash
            remaining = round(requirement - from_cash, 2)

            if terms.equity_mode == EquityMode.PARI_PASSU:
                equity_share = round(remaining * terms.pari_passu_pct / 100, 2)
                equity_drawn += equity_share
                equity_contributed += equity_share
                remaining = round(remaining - equity_share, 2)
                for source in terms.draw_order:
                    if source != FundingSource.EQUITY:
                        remaining = round(remaining - self._draw_debt(source, m, remaining, balances, draws), 2)
            else:
                for source in terms.draw_order:
                    if source == FundingSource.EQUITY:
                        equity_draw = round(min(remaining, self._equity_available(equity_contributed)), 2)
                        equity_drawn += equity_draw
                        equity_contributed += equity_draw
                        remaining = round(remaining - equity_draw, 2)
                    else:
                        remaining = round(remaining - self._draw_debt(source, m, remaining, balances, draws), 2)

            # 5. Whatever is left is unfunded
            unfunded = max(0.0, remaining)
        else:
            # 6. Surplus (carry already netted in the requirement)
            surplus = -requirement
            for source in REPAYMENT_ORDER:
                tier_terms = terms.tiers.get(source)
                if tier_terms is None:
                    continue
                if terms.surplus_policy == SurplusPolicy.RETAIN and tier_terms.tier.is_interest_capitalised:
                    continue
                surplus = round(surplus - self._repay(source, surplus, balances, repayments), 2)
            if terms.surplus_policy == SurplusPolicy.REPAY:
                equity_repaid += surplus
            else:
                cash += surplus

        # 7. Final month sweep
        if is_final and cash > 0:
            for source in REPAYMENT_ORDER:
                if source in terms.tiers:
                    cash = round(cash - self._repay(source, cash, balances, repayments), 2)
            equity_repaid += cash
            cash = 0.0

        shortfall = round(max(0.0, unfunded - state.unfunded_balance), 2)
        if unfunded > 0:
            logger.debug(
                "Month %d funding shortfall %.2f (unfunded balance %.2f)",
                m, shortfall, unfunded,
            )

        equity_distributed = state.equity_distributed + equity_repaid
        new_state = replace(
            state,
            senior_balance=round(balances[FundingSource.SENIOR], 2),
            mezzanine_balance=round(balances[FundingSource.MEZZANINE], 2),
            equity_contributed=round(equity_contributed, 2),
            equity_distributed=round(equity_distributed, 2),
            cash_balance=round(cash, 2),
            unfunded_balance=round(unfunded, 2),
        )

        record = MonthlyCashflowRecord(
            month=m,
            costs_gross=month_input.costs_gross,
            costs_net=month_input.costs_net,
            input_tax_credit=month_input.input_tax_credit,
            revenue_gross=month_input.revenue_gross,
            gst_collected=month_input.gst_collected,
            selling_costs=month_input.selling_costs,
            operating_costs=month_input.operating_costs,
            gross_outflow=round(month_input.gross_outflow, 2),
            gross_inflow=round(month_input.gross_inflow, 2),
            net_cashflow=month_input.net_cashflow,
            senior_interest=interest[FundingSource.SENIOR],
            senior_interest_capitalised=capitalised[FundingSource.SENIOR],
            senior_fees=fees[FundingSource.SENIOR],
            senior_draw=draws[FundingSource.SENIOR],
            senior_repayment=repayments[FundingSource.SENIOR],
            senior_balance=new_state.senior_balance,
            mezzanine_interest=interest[FundingSource.MEZZANINE],
            mezzanine_interest_capitalised=capitalised[FundingSource.MEZZANINE],
            mezzanine_fees=fees[FundingSource.MEZZANINE],
            mezzanine_draw=draws[FundingSource.MEZZANINE],
            mezzanine_repayment=repayments[FundingSource.MEZZANINE],
            mezzanine_balance=new_state.mezzanine_balance,
            equity_drawn=round(equity_drawn, 2),
            equity_repaid=round(equity_repaid, 2),
            equity_balance=round(equity_contributed - equity_distributed, 2),
            cash_balance=new_state.cash_balance,
            surplus_interest=surplus_interest,
            shortfall=shortfall,
            unfunded_balance=new_state.unfunded_balance,
            cost_breakdown=dict(month_input.cost_breakdown),
        )
        return new_state, record


def run_waterfall(
    terms: WaterfallTerms,
    month_inputs: Sequence[MonthInput],
    initial_state: Optional[WaterfallState] = None,
) -> Tuple[WaterfallState, List[MonthlyCashflowRecord]]:
    """Fold the waterfall across the project horizon.

    Args:
        terms: Resolved funding terms
        month_inputs: One MonthInput per project month, in order
        initial_state: Opening state, empty by default

    Returns:
        Tuple of (terminal state, monthly records). Terminal debt is
        reported as-is, never forced to zero.
    """
    waterfall = CapitalWaterfall(terms)
    state = initial_state or waterfall.initial_state()
    records: List[MonthlyCashflowRecord] = []
    for month_input in month_inputs:
        state, record = waterfall.step(state, month_input)
        records.append(record)
    return state, records
