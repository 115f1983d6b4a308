"""Feasibility summary statistics and tabular views of a run."""

from dataclasses import dataclass, fields
from typing import List, Sequence, Union

import pandas as pd

from ..errors import IrrUndefined, safe_divide
from ..models.lookups import CostCategory
from .costs import CostSchedule
from .dcf import annualise_monthly_rate, calculate_irr, calculate_npv
from .trace import trace
from .waterfall import MonthlyCashflowRecord

IrrResult = Union[float, IrrUndefined]


@dataclass(frozen=True)
class FeasibilitySummary:
    """Headline results of a feasibility run."""

    # Revenue
    gross_realisation: float
    gst_collected: float
    net_realisation: float

    # Costs (net of GST)
    costs_net: float
    selling_costs: float
    operating_costs: float
    interest_total: float
    finance_fees: float
    finance_costs: float  # Interest + fees
    total_cost: float
    land_total: float
    construction_total: float

    # Returns
    surplus_interest: float
    profit: float
    margin_on_cost: float  # %
    margin_on_equity: float  # % of peak equity
    project_irr: IrrResult  # % p.a.
    equity_irr: IrrResult  # % p.a.
    npv: float

    # Capital
    peak_debt: float
    peak_debt_month: int
    total_equity: float
    peak_equity: float
    terminal_debt: float
    total_shortfall: float

    # GST
    input_tax_credits: float
    net_gst_payable: float

    # Ratios
    margin_before_interest: float  # $, profit with finance costs added back
    profit_per_unit: float
    land_cost_per_sqm: float  # Purchase price over site area
    tdc_per_sqm: float  # Total cost over site area

    @property
    def is_fully_funded(self) -> bool:
        return self.total_shortfall == 0


@dataclass(frozen=True)
class LineItemSummary:
    """Per-line totals, used to seed a budget from a feasibility."""
    category: CostCategory
    description: str
    net_amount: float
    gst_amount: float
    gross_amount: float
    is_implicit: bool = False


def _annualised_pct(monthly: IrrResult) -> IrrResult:
    if isinstance(monthly, IrrUndefined):
        return monthly
    return annualise_monthly_rate(monthly) * 100


def _category_total(records: Sequence[MonthlyCashflowRecord], category: CostCategory) -> float:
    return round(sum(r.cost_breakdown.get(category, 0.0) for r in records), 2)


def calculate_summary(
    records: Sequence[MonthlyCashflowRecord],
    discount_rate: float,
    purchase_price: float = 0.0,
    land_area: float = 0.0,
    total_units: int = 0,
) -> FeasibilitySummary:
    """Aggregate monthly records into summary statistics.

    Profit is net realisation plus surplus interest, less costs net of GST,
    selling and operating costs, and finance costs. Margins and IRRs are
    percentages; ratios with a zero denominator resolve to 0.

    Args:
        records: Monthly cashflow records of one run.
        discount_rate: Annual discount rate (%) for NPV.
        purchase_price: Site purchase price, for land cost per sqm.
        land_area: Site area in sqm, the base of the per-sqm ratios.
        total_units: Unit count, for profit per unit.

    Returns:
        FeasibilitySummary.
    """
    gross_realisation = round(sum(r.revenue_gross for r in records), 2)
    gst_collected = round(sum(r.gst_collected for r in records), 2)
    net_realisation = round(gross_realisation - gst_collected, 2)

    costs_net = round(sum(r.costs_net for r in records), 2)
    selling = round(sum(r.selling_costs for r in records), 2)
    opex = round(sum(r.operating_costs for r in records), 2)
    interest = round(sum(r.total_interest for r in records), 2)
    fees = round(sum(r.finance_fees for r in records), 2)
    finance_costs = round(interest + fees, 2)
    total_cost = round(costs_net + selling + opex + finance_costs, 2)
    surplus_interest = round(sum(r.surplus_interest for r in records), 2)

    profit = trace(
        "returns.profit",
        round(net_realisation + surplus_interest - total_cost, 2),
        {"revenue.net_realisation": net_realisation, "development.total_cost": total_cost},
    )
    margin_on_cost = trace(
        "returns.margin_on_cost",
        safe_divide(profit, total_cost) * 100,
        {"returns.profit": profit, "development.total_cost": total_cost},
    )

    peak_equity = max((r.equity_balance for r in records), default=0.0)
    peak_equity = max(peak_equity, 0.0)
    margin_on_equity = safe_divide(profit, peak_equity) * 100

    net_flows = [r.net_cashflow for r in records]
    project_irr = _annualised_pct(calculate_irr(net_flows))
    equity_irr = _annualised_pct(calculate_irr([r.equity_flow for r in records]))
    for path, value in (("returns.project_irr", project_irr), ("returns.equity_irr", equity_irr)):
        if not isinstance(value, IrrUndefined):
            trace(path, value, {"returns.profit": profit})

    npv = trace(
        "returns.npv",
        round(calculate_npv(net_flows, discount_rate / 100), 2),
        {"inputs.discount_rate": discount_rate},
    )

    peak_debt, peak_debt_month = 0.0, 0
    for r in records:
        if r.debt_balance > peak_debt:
            peak_debt, peak_debt_month = r.debt_balance, r.month
    trace("financing.peak_debt", peak_debt, {"month": float(peak_debt_month)})

    input_tax_credits = round(sum(r.input_tax_credit for r in records), 2)

    return FeasibilitySummary(
        gross_realisation=gross_realisation,
        gst_collected=gst_collected,
        net_realisation=net_realisation,
        costs_net=costs_net,
        selling_costs=selling,
        operating_costs=opex,
        interest_total=interest,
        finance_fees=fees,
        finance_costs=finance_costs,
        total_cost=total_cost,
        land_total=_category_total(records, CostCategory.LAND),
        construction_total=_category_total(records, CostCategory.CONSTRUCTION),
        surplus_interest=surplus_interest,
        profit=profit,
        margin_on_cost=margin_on_cost,
        margin_on_equity=margin_on_equity,
        project_irr=project_irr,
        equity_irr=equity_irr,
        npv=npv,
        peak_debt=round(peak_debt, 2),
        peak_debt_month=peak_debt_month,
        total_equity=round(sum(r.equity_drawn for r in records), 2),
        peak_equity=round(peak_equity, 2),
        terminal_debt=records[-1].debt_balance if records else 0.0,
        total_shortfall=round(sum(r.shortfall for r in records), 2),
        input_tax_credits=input_tax_credits,
        net_gst_payable=round(gst_collected - input_tax_credits, 2),
        margin_before_interest=round(profit + finance_costs, 2),
        profit_per_unit=round(safe_divide(profit, total_units), 2),
        land_cost_per_sqm=round(safe_divide(purchase_price, land_area), 2),
        tdc_per_sqm=round(safe_divide(total_cost, land_area), 2),
    )


def calculate_line_item_summaries(schedule: CostSchedule) -> List[LineItemSummary]:
    """Net, GST and gross totals for every cost line, implicit lines included."""
    return [
        LineItemSummary(
            category=line.category,
            description=line.description,
            net_amount=round(float(line.net.sum()), 2),
            gst_amount=round(float(line.gst.sum()), 2),
            gross_amount=round(float(line.gross.sum()), 2),
            is_implicit=line.is_implicit,
        )
        for line in schedule.lines
    ]


def records_to_frame(records: Sequence[MonthlyCashflowRecord]) -> pd.DataFrame:
    """Monthly records as a DataFrame indexed by month.

    The cost breakdown is expanded into one ``cost_<category>`` column per
    category present in the run.
    """
    scalar_fields = [f.name for f in fields(MonthlyCashflowRecord) if f.name != "cost_breakdown"]
    rows = []
    for record in records:
        row = {name: getattr(record, name) for name in scalar_fields}
        row["finance_fees"] = record.finance_fees
        row["debt_balance"] = record.debt_balance
        for category, amount in record.cost_breakdown.items():
            row[f"cost_{category.name.lower()}"] = amount
        rows.append(row)

    frame = pd.DataFrame(rows)
    if frame.empty:
        return frame
    cost_columns = [c for c in frame.columns if c.startswith("cost_")]
    frame[cost_columns] = frame[cost_columns].fillna(0.0)
    return frame.set_index("month")


def itemised_cashflow_frame(schedule: CostSchedule) -> pd.DataFrame:
    """Gross cost per line per month, rows indexed by (category, description)."""
    if not schedule.lines:
        return pd.DataFrame(columns=list(range(schedule.duration)) + ["total"])
    index = pd.MultiIndex.from_tuples(
        [(line.category.value, line.description) for line in schedule.lines],
        names=["category", "description"],
    )
    frame = pd.DataFrame(
        [line.gross for line in schedule.lines],
        index=index,
        columns=range(schedule.duration),
    )
    frame["total"] = frame.sum(axis=1).round(2)
    return frame


def _format_irr(value: IrrResult) -> str:
    if isinstance(value, IrrUndefined):
        return f"{'n/a':>15}"
    return f"{value:>14.2f}%"


def format_summary_table(summary: FeasibilitySummary, title: str = "FEASIBILITY SUMMARY") -> str:
    """Format a summary as a text table."""
    lines = [
        "=" * 50,
        title,
        "=" * 50,
        f"{'Gross Realisation':<30} ${summary.gross_realisation:>15,.0f}",
        f"{'GST Collected':<30} ${summary.gst_collected:>15,.0f}",
        f"{'Net Realisation':<30} ${summary.net_realisation:>15,.0f}",
        "",
        f"{'Land':<30} ${summary.land_total:>15,.0f}",
        f"{'Construction':<30} ${summary.construction_total:>15,.0f}",
        f"{'Finance Costs':<30} ${summary.finance_costs:>15,.0f}",
        f"{'Total Cost (net of GST)':<30} ${summary.total_cost:>15,.0f}",
        "",
        f"{'Profit':<30} ${summary.profit:>15,.0f}",
        f"{'Margin on Cost':<30} {summary.margin_on_cost:>15.2f}%",
        f"{'Margin on Equity':<30} {summary.margin_on_equity:>15.2f}%",
        f"{'Profit per Unit':<30} ${summary.profit_per_unit:>15,.0f}",
        f"{'Project IRR':<30} {_format_irr(summary.project_irr)}",
        f"{'Equity IRR':<30} {_format_irr(summary.equity_irr)}",
        f"{'NPV':<30} ${summary.npv:>15,.0f}",
        "",
        f"{'Peak Debt':<30} ${summary.peak_debt:>15,.0f}",
        f"{'Peak Debt Month':<30} {summary.peak_debt_month:>16d}",
        f"{'Peak Equity':<30} ${summary.peak_equity:>15,.0f}",
        f"{'Terminal Debt':<30} ${summary.terminal_debt:>15,.0f}",
        f"{'Funding Shortfall':<30} ${summary.total_shortfall:>15,.0f}",
        "=" * 50,
    ]
    return "\n".join(lines)
