"""Audit workbook export for feasibility results.

Builds an Excel workbook documenting a run: headline summary, the monthly
cashflow, itemised cost lines, every registered formula and, when a trace
context was active, the traced values behind the headline figures.
"""

import io
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows

from ..calculations.cashflow import FeasibilityResult
from ..calculations.formula_registry import FormulaCategory, FormulaRegistry
from ..calculations.trace import TraceContext
from ..errors import IrrUndefined

MONEY_FORMAT = '#,##0.00;[Red]-#,##0.00'


@dataclass
class AuditReportConfig:
    """Configuration for audit report generation."""
    include_summary: bool = True
    include_cash_flows: bool = True
    include_itemised_costs: bool = True
    include_formula_registry: bool = True
    include_traced_values: bool = True


def _add_header_style(ws, row: int, cols: int) -> None:
    """Apply header styling to a row."""
    header_fill = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
    header_font = Font(color="FFFFFF", bold=True)

    for col in range(1, cols + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")


def _add_section_header(ws, title: str, row: int) -> int:
    """Add a section header and return next row."""
    ws.cell(row=row, column=1, value=title)
    ws.cell(row=row, column=1).font = Font(bold=True, size=14)
    return row + 1


def _irr_cell(value) -> object:
    return str(value) if isinstance(value, IrrUndefined) else round(value, 2)


def generate_audit_excel(
    result: FeasibilityResult,
    trace_context: Optional[TraceContext] = None,
    config: Optional[AuditReportConfig] = None,
) -> bytes:
    """Generate an Excel audit workbook for a feasibility run.

    Args:
        result: Output of run_feasibility()
        trace_context: Trace context that was active during the run
        config: Optional sheet selection

    Returns:
        Excel file as bytes
    """
    config = config or AuditReportConfig()

    wb = Workbook()
    wb.remove(wb.active)

    if config.include_summary:
        _create_summary_sheet(wb.create_sheet("Summary"), result)
    if config.include_cash_flows:
        _write_frame(wb.create_sheet("Monthly Cashflow"), "Monthly Cashflow",
                     result.to_frame().reset_index())
    if config.include_itemised_costs:
        _write_frame(wb.create_sheet("Itemised Costs"), "Itemised Costs (GST-inclusive)",
                     result.itemised_frame().reset_index())
    if config.include_formula_registry:
        _create_formula_registry_sheet(wb.create_sheet("Formula Registry"))
    if config.include_traced_values and trace_context is not None:
        _create_traced_calculations_sheet(wb.create_sheet("Traced Calculations"), trace_context)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


def _create_summary_sheet(ws, result: FeasibilityResult) -> None:
    summary = result.summary
    settings = result.scenario.settings

    row = 1
    ws.cell(row=row, column=1, value=f"Feasibility Audit: {settings.project_name}")
    ws.cell(row=row, column=1).font = Font(bold=True, size=16)
    row += 2

    row = _add_section_header(ws, "Timeline", row)
    timeline = [
        ("Duration (months)", settings.duration_months),
        ("Settlement month", settings.settlement_month),
        ("Construction start", settings.construction_start),
        ("Completion month", settings.completion_month),
    ]
    for label, value in timeline:
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=2, value=value)
        row += 1
    row += 1

    row = _add_section_header(ws, "Key Metrics", row)
    money = [
        ("Gross Realisation", summary.gross_realisation),
        ("GST Collected", summary.gst_collected),
        ("Net Realisation", summary.net_realisation),
        ("Land", summary.land_total),
        ("Construction", summary.construction_total),
        ("Finance Costs", summary.finance_costs),
        ("Total Cost (net of GST)", summary.total_cost),
        ("Profit", summary.profit),
        ("Margin Before Interest", summary.margin_before_interest),
        ("Profit per Unit", summary.profit_per_unit),
        ("Land Cost per sqm", summary.land_cost_per_sqm),
        ("TDC per sqm", summary.tdc_per_sqm),
        ("NPV", summary.npv),
        ("Peak Debt", summary.peak_debt),
        ("Peak Equity", summary.peak_equity),
        ("Terminal Debt", summary.terminal_debt),
        ("Net GST Payable", summary.net_gst_payable),
        ("Funding Shortfall", summary.total_shortfall),
    ]
    for label, value in money:
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=2, value=value).number_format = MONEY_FORMAT
        row += 1

    ratios = [
        ("Margin on Cost (%)", round(summary.margin_on_cost, 2)),
        ("Margin on Equity (%)", round(summary.margin_on_equity, 2)),
        ("Project IRR (% p.a.)", _irr_cell(summary.project_irr)),
        ("Equity IRR (% p.a.)", _irr_cell(summary.equity_irr)),
        ("Peak Debt Month", summary.peak_debt_month),
    ]
    for label, value in ratios:
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=2, value=value)
        row += 1

    ws.column_dimensions['A'].width = 28
    ws.column_dimensions['B'].width = 20


def _write_frame(ws, title: str, frame: pd.DataFrame) -> None:
    """Write a DataFrame below a title with a styled header row."""
    row = _add_section_header(ws, title, 1) + 1
    header_row = row
    for values in dataframe_to_rows(frame, index=False, header=True):
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            if row > header_row and isinstance(value, float):
                cell.number_format = MONEY_FORMAT
        row += 1
    _add_header_style(ws, header_row, len(frame.columns))

    for col in range(1, len(frame.columns) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 16


def _create_formula_registry_sheet(ws) -> None:
    row = _add_section_header(ws, "Formula Registry", 1) + 1

    headers = ["Category", "Name", "Field Path", "Formula", "Inputs", "Notes"]
    for col, header in enumerate(headers, 1):
        ws.cell(row=row, column=col, value=header)
    _add_header_style(ws, row, len(headers))
    row += 1

    by_category: Dict[FormulaCategory, list] = {}
    for formula in FormulaRegistry.get_all().values():
        by_category.setdefault(formula.category, []).append(formula)

    for category in FormulaCategory:
        for formula in sorted(by_category.get(category, []), key=lambda f: f.field_path):
            ws.cell(row=row, column=1, value=category.value)
            ws.cell(row=row, column=2, value=formula.name)
            ws.cell(row=row, column=3, value=formula.field_path)
            ws.cell(row=row, column=4, value=formula.formula)
            ws.cell(row=row, column=5, value=", ".join(formula.inputs) or "-")
            ws.cell(row=row, column=6, value=formula.notes or "-")
            row += 1

    for letter, width in zip("ABCDEF", (14, 30, 32, 50, 45, 40)):
        ws.column_dimensions[letter].width = width


def _create_traced_calculations_sheet(ws, trace_context: TraceContext) -> None:
    row = _add_section_header(ws, "Traced Calculations", 1) + 1

    headers = ["Field Path", "Result", "Computed Formula", "Inputs", "Notes"]
    for col, header in enumerate(headers, 1):
        ws.cell(row=row, column=col, value=header)
    _add_header_style(ws, row, len(headers))
    row += 1

    for field_path in sorted(trace_context.traces):
        traced = trace_context.traces[field_path]
        ws.cell(row=row, column=1, value=traced.field_path)
        ws.cell(row=row, column=2, value=round(traced.value, 2))
        ws.cell(row=row, column=3, value=traced.computed_formula)
        ws.cell(row=row, column=4, value=traced.format_inputs() or "-")
        ws.cell(row=row, column=5, value=traced.notes or "-")
        row += 1

    for letter, width in zip("ABCDE", (32, 18, 80, 60, 20)):
        ws.column_dimensions[letter].width = width
