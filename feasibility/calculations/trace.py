"""Calculation tracing for feasibility audit trails.

Captures the actual inputs behind headline results (duty, limits, profit,
IRR) while a ``TraceContext`` is active. Tracing is observation only:
traced values are returned unchanged and nothing recorded here reaches
the cashflow output.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .formula_registry import FormulaRegistry, FormulaDefinition


def _format_value(value: float, unit: str = "$") -> str:
    """Format a value for display in its unit."""
    if unit == "%":
        return f"{value:.2f}%"
    if unit != "$":
        return f"{value:,.0f} {unit}"
    if abs(value) >= 1_000_000:
        return f"${value / 1_000_000:,.2f}M"
    if abs(value) >= 1_000:
        return f"${value / 1_000:,.1f}K"
    return f"${value:,.2f}"


@dataclass
class TracedValue:
    """A single traced calculation."""
    field_path: str
    value: float
    formula_def: Optional[FormulaDefinition]
    input_values: Dict[str, float]
    computed_formula: str
    timestamp: datetime = field(default_factory=datetime.now)
    notes: str = ""

    def format_inputs(self) -> str:
        """Format input values for display."""
        return ", ".join(
            f"{name.split('.')[-1]}={val:,.2f}" if isinstance(val, float) else f"{name.split('.')[-1]}={val}"
            for name, val in self.input_values.items()
        )


class TraceContext:
    """Context manager for capturing calculation traces.

    Usage:
        with TraceContext() as ctx:
            result = run_feasibility(scenario)
        ctx.get_trace("acquisition.stamp_duty")

    The active context is held on the class so ``trace()`` calls anywhere
    in the engine can reach it. Contexts nest; leaving one restores the
    previous.
    """
    _current: Optional['TraceContext'] = None

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.traces: Dict[str, TracedValue] = {}
        self._previous: Optional['TraceContext'] = None

    def __enter__(self) -> 'TraceContext':
        self._previous = TraceContext._current
        TraceContext._current = self
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        TraceContext._current = self._previous
        self._previous = None

    def trace(
        self,
        field_path: str,
        value: float,
        input_values: Dict[str, float],
        notes: str = "",
    ) -> None:
        """Record a traced calculation, replacing any earlier trace of the same field."""
        if not self.enabled:
            return

        formula_def = FormulaRegistry.get(field_path)
        unit = formula_def.unit if formula_def else "$"
        symbolic = formula_def.formula if formula_def else field_path
        if input_values:
            substituted = ", ".join(_format_value(v) for v in input_values.values())
            computed = f"{symbolic} [{substituted}] = {_format_value(value, unit)}"
        else:
            computed = f"{symbolic} = {_format_value(value, unit)}"

        self.traces[field_path] = TracedValue(
            field_path=field_path,
            value=value,
            formula_def=formula_def,
            input_values=dict(input_values),
            computed_formula=computed,
            notes=notes,
        )

    def get_trace(self, field_path: str) -> Optional[TracedValue]:
        return self.traces.get(field_path)

    def get_traces_by_category(self, category: str) -> Dict[str, TracedValue]:
        """Get all traces in a formula category (e.g. "Returns")."""
        return {
            k: v for k, v in self.traces.items()
            if v.formula_def and v.formula_def.category.value == category
        }

    def summary(self) -> str:
        """Text summary of all traces grouped by category."""
        lines = [f"Trace Summary ({len(self.traces)} calculations traced)", ""]

        by_category: Dict[str, List[TracedValue]] = {}
        for traced in self.traces.values():
            cat = traced.formula_def.category.value if traced.formula_def else "Unknown"
            by_category.setdefault(cat, []).append(traced)

        for category, traces in sorted(by_category.items()):
            lines.append(f"=== {category} ({len(traces)} traces) ===")
            for traced in traces:
                lines.append(f"  {traced.field_path}: {traced.computed_formula}")
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def current() -> Optional['TraceContext']:
        """Get the current active trace context."""
        return TraceContext._current


def trace(
    field_path: str,
    value: float,
    input_values: Dict[str, float],
    notes: str = "",
) -> float:
    """Trace a calculation and return the value unchanged.

    Usable inline:
        duty = trace("acquisition.stamp_duty", duty, {"purchase_price": price})
    """
    ctx = TraceContext.current()
    if ctx:
        ctx.trace(field_path, value, input_values, notes)
    return value
