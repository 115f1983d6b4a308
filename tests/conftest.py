"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from feasibility.calculations.cashflow import run_feasibility
from feasibility.calculations.trace import TraceContext
from feasibility.models.lookups import FundingSource, SurplusPolicy
from feasibility.models.project import EquityConfiguration
from feasibility.models.scenario_config import ResolvedCapitalStack
from tests.fixtures.scenarios import get_simple_scenario, get_townhouse_scenario


@pytest.fixture
def townhouse_scenario():
    """Full VIC townhouse scenario with senior, mezzanine and equity."""
    return get_townhouse_scenario()


@pytest.fixture
def simple_scenario():
    """GST-free, equity-funded scenario with round numbers."""
    return get_simple_scenario()


@pytest.fixture
def townhouse_result(townhouse_scenario):
    """Feasibility run of the townhouse scenario."""
    return run_feasibility(townhouse_scenario)


@pytest.fixture(autouse=True)
def no_active_trace():
    """Make sure no trace context leaks between tests."""
    TraceContext._current = None
    yield
    TraceContext._current = None


@pytest.fixture
def make_capital():
    """Build a resolved capital stack with REPAY and default draw order."""
    def _make(senior=None, mezzanine=None, equity=None, draw_order=None,
              surplus_policy=SurplusPolicy.REPAY, surplus_interest_rate=0.0):
        return ResolvedCapitalStack(
            senior=senior,
            mezzanine=mezzanine,
            equity=equity or EquityConfiguration(),
            draw_order=draw_order or (FundingSource.EQUITY, FundingSource.SENIOR, FundingSource.MEZZANINE),
            surplus_policy=surplus_policy,
            surplus_interest_rate=surplus_interest_rate,
        )
    return _make
