"""Data models for the feasibility engine."""

from .lookups import (
    CostCategory,
    InputKind,
    DistributionMethod,
    GstTreatment,
    Milestone,
    RevenueStrategy,
    RevenueCalcMode,
    RateMode,
    LimitMethod,
    FeeBase,
    EquityMode,
    FundingSource,
    SurplusPolicy,
    StampDutyTiming,
    BracketMethod,
    TaxKind,
    LandTaxKind,
    DEFAULT_TAX_SCALES,
)
from .tax_table import (
    TaxBracket,
    TaxTable,
    DEFAULT_TAX_TABLE,
    validate_brackets,
)
from .project import (
    DatedRate,
    DatedAmount,
    CostItem,
    RevenueItem,
    CapitalTier,
    EquityConfiguration,
    CapitalStack,
    Acquisition,
    Site,
    FeasibilitySettings,
    ScenarioConfig,
)
from .scenario_config import (
    EngineDefaults,
    ResolvedSettings,
    ScheduledCost,
    ScheduledRevenue,
    ResolvedCapitalStack,
    ResolvedScenario,
    resolve_scenario,
)
from .updates import (
    ScenarioUpdate,
    apply_update,
    apply_updates,
)

__all__ = [
    # Lookups
    "CostCategory",
    "InputKind",
    "DistributionMethod",
    "GstTreatment",
    "Milestone",
    "RevenueStrategy",
    "RevenueCalcMode",
    "RateMode",
    "LimitMethod",
    "FeeBase",
    "EquityMode",
    "FundingSource",
    "SurplusPolicy",
    "StampDutyTiming",
    "BracketMethod",
    "TaxKind",
    "LandTaxKind",
    "DEFAULT_TAX_SCALES",
    # Tax tables
    "TaxBracket",
    "TaxTable",
    "DEFAULT_TAX_TABLE",
    "validate_brackets",
    # Inputs
    "DatedRate",
    "DatedAmount",
    "CostItem",
    "RevenueItem",
    "CapitalTier",
    "EquityConfiguration",
    "CapitalStack",
    "Acquisition",
    "Site",
    "FeasibilitySettings",
    "ScenarioConfig",
    # Resolution
    "EngineDefaults",
    "ResolvedSettings",
    "ScheduledCost",
    "ScheduledRevenue",
    "ResolvedCapitalStack",
    "ResolvedScenario",
    "resolve_scenario",
    # Updates
    "ScenarioUpdate",
    "apply_update",
    "apply_updates",
]
