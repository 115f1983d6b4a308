#!/usr/bin/env python3
"""Example script to run the feasibility engine on a sample townhouse project."""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from feasibility.calculations.cashflow import run_feasibility
from feasibility.calculations.metrics import format_summary_table
from feasibility.calculations.sensitivity import generate_sensitivity_matrix, sensitivity_frame
from feasibility.calculations.solver import TargetMetric, solve_residual_land_value
from feasibility.calculations.trace import TraceContext
from feasibility.export import generate_audit_excel
from feasibility.models.lookups import (
    CostCategory,
    DistributionMethod,
    EquityMode,
    FeeBase,
    GstTreatment,
    InputKind,
    LimitMethod,
    Milestone,
)
from feasibility.models.project import (
    Acquisition,
    CapitalStack,
    CapitalTier,
    CostItem,
    EquityConfiguration,
    FeasibilitySettings,
    RevenueItem,
    ScenarioConfig,
    Site,
)


def get_sample_scenario() -> ScenarioConfig:
    """Twelve townhouses in Melbourne, built over 14 months and sold off the plan."""
    return ScenarioConfig(
        name="Sample Townhouses",
        settings=FeasibilitySettings(
            duration_months=30,
            project_name="Sample Townhouses",
            construction_delay=3,
            construction_months=14,
            total_units=12,
        ),
        site=Site(
            jurisdiction="VIC",
            land_area=1_800,
            assessed_land_value=2_600_000,
            acquisition=Acquisition(
                purchase_price=3_200_000,
                deposit_pct=10,
                settlement_month=2,
                buyers_agent_fee_pct=1.0,
                legal_fee=15_000,
            ),
        ),
        costs=(
            CostItem(
                category=CostCategory.CONSTRUCTION,
                description="Head contract",
                amount=7_800_000,
                span=14,
                method=DistributionMethod.S_CURVE,
                milestone=Milestone.CONSTRUCTION_START,
                escalation_rate=3.0,
            ),
            CostItem(
                category=CostCategory.CONSTRUCTION,
                description="Contingency",
                amount=5.0,
                span=14,
                input_kind=InputKind.PCT_CONSTRUCTION,
                milestone=Milestone.CONSTRUCTION_START,
            ),
            CostItem(
                category=CostCategory.CONSULTANTS,
                description="Architect and engineers",
                amount=6.0,
                span=20,
                input_kind=InputKind.PCT_CONSTRUCTION,
            ),
            CostItem(
                category=CostCategory.STATUTORY,
                description="Open space levy",
                amount=18_000,
                input_kind=InputKind.RATE_PER_UNIT,
                milestone=Milestone.CONSTRUCTION_START,
                gst_treatment=GstTreatment.GST_FREE,
            ),
            CostItem(
                category=CostCategory.STATUTORY,
                description="Land tax",
                amount=0,
                input_kind=InputKind.AUTO_LAND_TAX,
                milestone=Milestone.SETTLEMENT,
                gst_treatment=GstTreatment.GST_FREE,
            ),
            CostItem(
                category=CostCategory.SELLING,
                description="Marketing",
                amount=120_000,
                span=6,
                milestone=Milestone.COMPLETION,
                start_month=-4,
            ),
        ),
        revenues=(
            RevenueItem(
                description="Townhouse sales",
                units=12,
                price_per_unit=1_450_000,
                offset_from_completion=1,
                settlement_span=4,
                commission_rate=1.8,
                gst_treatment=GstTreatment.MARGIN_SCHEME,
            ),
        ),
        capital=CapitalStack(
            senior=CapitalTier(
                limit=65,
                limit_method=LimitMethod.PERCENTAGE,
                interest_rate=8.5,
                line_fee_pct=0.6,
                establishment_fee=1.0,
                establishment_fee_base=FeeBase.PERCENTAGE,
                activation_month=2,
            ),
            mezzanine=CapitalTier(limit=1_500_000, interest_rate=15.0),
            equity=EquityConfiguration(mode=EquityMode.LUMP_SUM, initial_contribution=3_800_000),
        ),
    )


def run_single_feasibility(audit_path=None):
    """Run the sample scenario and print its summary."""
    print("\n" + "=" * 60)
    print("PROPERTY DEVELOPMENT FEASIBILITY")
    print("Single Scenario")
    print("=" * 60 + "\n")

    scenario = get_sample_scenario()

    with TraceContext() as ctx:
        result = run_feasibility(scenario)

    print(format_summary_table(result.summary, scenario.settings.project_name.upper()))

    print("\nLine items:")
    for item in result.line_items:
        flag = " (implicit)" if item.is_implicit else ""
        print(f"  {item.category.value:<14} {item.description:<28} ${item.gross_amount:>14,.0f}{flag}")

    if audit_path:
        Path(audit_path).write_bytes(generate_audit_excel(result, ctx))
        print(f"\nAudit workbook written to {audit_path}")


def run_analysis():
    """Run the sensitivity matrix and residual land value solver."""
    scenario = get_sample_scenario()

    print("\n" + "=" * 60)
    print("SENSITIVITY: MARGIN ON COST (%)")
    print("Rows: construction cost change, columns: revenue change")
    print("=" * 60 + "\n")

    matrix = generate_sensitivity_matrix(scenario)
    print(sensitivity_frame(matrix).round(1).to_string())

    print("\n" + "=" * 60)
    print("RESIDUAL LAND VALUE")
    print("=" * 60 + "\n")

    for target, target_type in ((20.0, TargetMetric.MARGIN), (25.0, TargetMetric.IRR)):
        rlv = solve_residual_land_value(scenario, target, target_type)
        status = "converged" if rlv.converged else "not reachable"
        print(f"{target_type.value.upper():<8} target {target:>5.1f}%: "
              f"land ${rlv.land_value:>13,.0f}, duty ${rlv.stamp_duty:>10,.0f} "
              f"({rlv.achieved_metric:.2f}%, {status})")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Property Development Feasibility")
    parser.add_argument(
        "--analysis",
        action="store_true",
        help="Run sensitivity matrix and residual land value (takes longer)",
    )
    parser.add_argument("--audit", metavar="PATH", help="Write an Excel audit workbook")
    parser.add_argument("--verbose", action="store_true", help="Show engine debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    run_single_feasibility(args.audit)

    if args.analysis:
        run_analysis()

    print("\nDone.")


if __name__ == "__main__":
    main()
