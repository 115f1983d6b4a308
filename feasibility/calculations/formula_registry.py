"""Formula registry for transparent feasibility auditing.

Central catalogue of the formulas behind each traced result, so a reader
of the audit workbook can see exactly how every headline figure is built.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set


class FormulaCategory(str, Enum):
    """Categories for organizing formulas."""
    INPUT = "Input"
    ACQUISITION = "Acquisition"
    DEVELOPMENT = "Development"
    FINANCING = "Financing"
    REVENUE = "Revenue"
    RETURNS = "Returns"


@dataclass
class FormulaDefinition:
    """Definition of a single calculation formula.

    Attributes:
        field_path: Dot-notation path to the field (e.g., "acquisition.stamp_duty")
        name: Human-readable name
        formula: Symbolic formula
        inputs: Field paths that feed into this formula
        category: Category for grouping formulas
        unit: Display unit ("$", "%", "month")
        notes: Optional explanation or caveats
    """
    field_path: str
    name: str
    formula: str
    inputs: List[str]
    category: FormulaCategory
    unit: str = "$"
    notes: str = ""


class FormulaRegistry:
    """Registry mapping field paths to formula definitions."""
    _formulas: Dict[str, FormulaDefinition] = {}
    _initialized: bool = False

    @classmethod
    def register(cls, definition: FormulaDefinition) -> None:
        """Register a formula definition."""
        cls._formulas[definition.field_path] = definition

    @classmethod
    def get(cls, field_path: str) -> Optional[FormulaDefinition]:
        """Get formula definition by field path."""
        cls._ensure_initialized()
        return cls._formulas.get(field_path)

    @classmethod
    def get_all(cls) -> Dict[str, FormulaDefinition]:
        cls._ensure_initialized()
        return cls._formulas.copy()

    @classmethod
    def get_by_category(cls, category: FormulaCategory) -> List[FormulaDefinition]:
        cls._ensure_initialized()
        return [f for f in cls._formulas.values() if f.category == category]

    @classmethod
    def get_dependents(cls, field_path: str) -> List[str]:
        """Get all formulas that use this field as an input."""
        cls._ensure_initialized()
        return [
            path for path, formula in cls._formulas.items()
            if field_path in formula.inputs
        ]

    @classmethod
    def get_all_ancestors(cls, field_path: str) -> Set[str]:
        """Get all upstream inputs of a formula, recursively."""
        cls._ensure_initialized()
        ancestors: Set[str] = set()
        formula = cls._formulas.get(field_path)
        to_process = list(formula.inputs) if formula else []

        while to_process:
            current = to_process.pop()
            if current not in ancestors:
                ancestors.add(current)
                upstream = cls._formulas.get(current)
                if upstream:
                    to_process.extend(upstream.inputs)

        return ancestors

    @classmethod
    def _ensure_initialized(cls) -> None:
        if not cls._initialized:
            _populate_registry()
            cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Reset the registry (mainly for testing)."""
        cls._formulas = {}
        cls._initialized = False


def _populate_registry() -> None:
    """Populate the registry with the feasibility formulas."""

    # =========================================================================
    # INPUTS
    # =========================================================================
    inputs = [
        FormulaDefinition(
            field_path="inputs.purchase_price",
            name="Purchase Price",
            formula="User input",
            inputs=[],
            category=FormulaCategory.INPUT,
        ),
        FormulaDefinition(
            field_path="inputs.assessed_land_value",
            name="Assessed Land Value (AUV)",
            formula="User input",
            inputs=[],
            category=FormulaCategory.INPUT,
            notes="Land tax base",
        ),
        FormulaDefinition(
            field_path="inputs.foreign_surcharge_pct",
            name="Foreign Purchaser Surcharge",
            formula="Setting (default 8%)",
            inputs=[],
            category=FormulaCategory.INPUT,
            unit="%",
        ),
        FormulaDefinition(
            field_path="inputs.discount_rate",
            name="Discount Rate",
            formula="Setting (% p.a.)",
            inputs=[],
            category=FormulaCategory.INPUT,
            unit="%",
        ),
    ]

    # =========================================================================
    # ACQUISITION
    # =========================================================================
    acquisition = [
        FormulaDefinition(
            field_path="acquisition.stamp_duty",
            name="Stamp Duty",
            formula="override or bracket_duty(purchase_price) + surcharge",
            inputs=["inputs.purchase_price", "inputs.foreign_surcharge_pct"],
            category=FormulaCategory.ACQUISITION,
            notes="Surcharge applies to foreign purchasers only",
        ),
        FormulaDefinition(
            field_path="acquisition.land_tax",
            name="Land Tax",
            formula="bracket_tax(assessed_land_value)",
            inputs=["inputs.assessed_land_value"],
            category=FormulaCategory.ACQUISITION,
            notes="General or trust scale by ownership basis",
        ),
    ]

    # =========================================================================
    # DEVELOPMENT
    # =========================================================================
    development = [
        FormulaDefinition(
            field_path="development.pre_finance_cost",
            name="Pre-Finance Development Cost",
            formula="sum(cost lines, gross) + implicit acquisition costs",
            inputs=["inputs.purchase_price", "acquisition.stamp_duty"],
            category=FormulaCategory.DEVELOPMENT,
            notes="Basis for percentage debt limits and equity quanta",
        ),
        FormulaDefinition(
            field_path="development.total_cost",
            name="Total Cost (net of GST)",
            formula="costs_net + selling_costs + operating_costs + finance_costs",
            inputs=["development.pre_finance_cost", "financing.finance_costs"],
            category=FormulaCategory.DEVELOPMENT,
        ),
    ]

    # =========================================================================
    # FINANCING
    # =========================================================================
    financing = [
        FormulaDefinition(
            field_path="financing.senior_limit",
            name="Senior Facility Limit",
            formula="limit or limit% × pre_finance_cost",
            inputs=["development.pre_finance_cost"],
            category=FormulaCategory.FINANCING,
        ),
        FormulaDefinition(
            field_path="financing.mezzanine_limit",
            name="Mezzanine Facility Limit",
            formula="limit or limit% × pre_finance_cost",
            inputs=["development.pre_finance_cost"],
            category=FormulaCategory.FINANCING,
        ),
        FormulaDefinition(
            field_path="financing.equity_quantum",
            name="Equity Quantum",
            formula="contribution, or pct × land / total cost",
            inputs=["inputs.purchase_price", "development.pre_finance_cost"],
            category=FormulaCategory.FINANCING,
        ),
        FormulaDefinition(
            field_path="financing.finance_costs",
            name="Finance Costs",
            formula="interest + line fees + establishment fees",
            inputs=["financing.senior_limit", "financing.mezzanine_limit"],
            category=FormulaCategory.FINANCING,
        ),
        FormulaDefinition(
            field_path="financing.peak_debt",
            name="Peak Debt",
            formula="max(senior_balance + mezzanine_balance)",
            inputs=["financing.senior_limit", "financing.mezzanine_limit"],
            category=FormulaCategory.FINANCING,
        ),
    ]

    # =========================================================================
    # REVENUE
    # =========================================================================
    revenue = [
        FormulaDefinition(
            field_path="revenue.net_realisation",
            name="Net Realisation",
            formula="gross_realisation - gst_collected",
            inputs=[],
            category=FormulaCategory.REVENUE,
            notes="Margin-scheme lines pay GST on the margin only",
        ),
    ]

    # =========================================================================
    # RETURNS
    # =========================================================================
    returns = [
        FormulaDefinition(
            field_path="returns.profit",
            name="Development Profit",
            formula="net_realisation + surplus_interest - total_cost",
            inputs=["revenue.net_realisation", "development.total_cost"],
            category=FormulaCategory.RETURNS,
        ),
        FormulaDefinition(
            field_path="returns.margin_on_cost",
            name="Margin on Cost",
            formula="profit / total_cost",
            inputs=["returns.profit", "development.total_cost"],
            category=FormulaCategory.RETURNS,
            unit="%",
        ),
        FormulaDefinition(
            field_path="returns.project_irr",
            name="Project IRR",
            formula="(1 + IRR(net_cashflow))^12 - 1",
            inputs=["returns.profit"],
            category=FormulaCategory.RETURNS,
            unit="%",
            notes="Unlevered, net of GST",
        ),
        FormulaDefinition(
            field_path="returns.equity_irr",
            name="Equity IRR",
            formula="(1 + IRR(equity_repaid - equity_drawn))^12 - 1",
            inputs=["financing.equity_quantum"],
            category=FormulaCategory.RETURNS,
            unit="%",
        ),
        FormulaDefinition(
            field_path="returns.npv",
            name="Net Present Value",
            formula="NPV(discount_rate / 12, net_cashflow)",
            inputs=["inputs.discount_rate", "returns.profit"],
            category=FormulaCategory.RETURNS,
        ),
    ]

    for formula in inputs + acquisition + development + financing + revenue + returns:
        FormulaRegistry.register(formula)
