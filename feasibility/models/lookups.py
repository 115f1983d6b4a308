"""Lookup tables for the configuration surface and default tax scales."""

from enum import Enum
from typing import Dict, List


class CostCategory(str, Enum):
    """Ledger category for a cost line."""

    LAND = "Land"
    STATUTORY = "Statutory"
    CONSULTANTS = "Consultants"
    CONSTRUCTION = "Construction"
    MISCELLANEOUS = "Miscellaneous"
    SELLING = "Selling"
    FINANCE = "Finance"


class InputKind(str, Enum):
    """How a cost line's total is derived."""

    FIXED = "fixed"
    PCT_CONSTRUCTION = "pct_construction"  # % of fixed construction costs
    PCT_REVENUE = "pct_revenue"  # % of estimated gross revenue
    RATE_PER_SQM = "rate_per_sqm"  # x site land area
    RATE_PER_UNIT = "rate_per_unit"  # x settings total units
    AUTO_STAMP_DUTY = "auto_stamp_duty"
    AUTO_LAND_TAX = "auto_land_tax"


class DistributionMethod(str, Enum):
    """Spread of a lump amount across its span."""

    UPFRONT = "upfront"
    LINEAR = "linear"
    S_CURVE = "s_curve"
    END = "end"


class GstTreatment(str, Enum):
    """GST treatment of a cost or revenue line."""

    TAXABLE = "taxable"
    GST_FREE = "gst_free"
    MARGIN_SCHEME = "margin_scheme"


class Milestone(str, Enum):
    """Timeline anchors a cost line's start month is relative to."""

    PROJECT_START = "project_start"
    SETTLEMENT = "settlement"
    CONSTRUCTION_START = "construction_start"
    COMPLETION = "completion"


class RevenueStrategy(str, Enum):
    SELL = "sell"
    HOLD = "hold"


class RevenueCalcMode(str, Enum):
    QUANTITY_RATE = "quantity_rate"
    LUMP_SUM = "lump_sum"


class RateMode(str, Enum):
    """Interest rate mode for a debt tier."""

    SINGLE = "single"
    VARIABLE = "variable"


class LimitMethod(str, Enum):
    """How a debt tier's facility limit is set."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"  # % of total pre-finance development cost


class FeeBase(str, Enum):
    """Basis of an establishment fee."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"  # % of facility limit


class EquityMode(str, Enum):
    """Equity injection mode."""

    LUMP_SUM = "lump_sum"
    INSTALMENTS = "instalments"
    PCT_LAND = "pct_land"
    PCT_TOTAL_COST = "pct_total_cost"
    PARI_PASSU = "pari_passu"


class FundingSource(str, Enum):
    """Capital stack layers, in the order they can be drawn."""

    EQUITY = "equity"
    SENIOR = "senior"
    MEZZANINE = "mezzanine"


class SurplusPolicy(str, Enum):
    """What a month's cash surplus is applied to."""

    REPAY = "repay"  # Repay debt (most expensive first), then distribute to equity
    RETAIN = "retain"  # Keep cash against capitalising tiers, earning the surplus rate


class StampDutyTiming(str, Enum):
    EXCHANGE = "exchange"  # Month 0
    SETTLEMENT = "settlement"


class BracketMethod(str, Enum):
    """Tax bracket calculation method."""

    SLIDING = "sliding"  # Marginal rate on the slice within the bracket
    FLAT = "flat"  # Bracket rate on the entire value


class TaxKind(str, Enum):
    STAMP_DUTY = "stamp_duty"
    LAND_TAX_GENERAL = "land_tax_general"
    LAND_TAX_TRUST = "land_tax_trust"


class LandTaxKind(str, Enum):
    """Ownership basis for land tax."""

    GENERAL = "general"
    TRUST = "trust"


# Open-ended top bracket ceiling used by the default scales
TOP_BRACKET_LIMIT = 999_999_999.0


# Default state scales, rates in %. Each bracket: (limit, rate, base, method)
DEFAULT_TAX_SCALES: Dict[str, Dict[TaxKind, List[tuple]]] = {
    "VIC": {
        TaxKind.STAMP_DUTY: [
            (25_000, 1.4, 0, BracketMethod.SLIDING),
            (130_000, 2.4, 350, BracketMethod.SLIDING),
            (480_000, 5.0, 2_870, BracketMethod.SLIDING),
            (960_000, 6.0, 20_370, BracketMethod.SLIDING),
            (TOP_BRACKET_LIMIT, 5.5, 0, BracketMethod.FLAT),  # >$960k: 5.5% of total value
        ],
        # 2024/25 general land tax
        TaxKind.LAND_TAX_GENERAL: [
            (50_000, 0.0, 0, BracketMethod.SLIDING),
            (100_000, 0.0, 500, BracketMethod.SLIDING),
            (300_000, 0.1, 975, BracketMethod.SLIDING),
            (600_000, 0.3, 1_350, BracketMethod.SLIDING),
            (1_000_000, 0.9, 2_950, BracketMethod.SLIDING),
            (1_800_000, 1.2, 4_975, BracketMethod.SLIDING),
            (3_000_000, 1.55, 16_475, BracketMethod.SLIDING),
            (TOP_BRACKET_LIMIT, 2.55, 35_075, BracketMethod.SLIDING),
        ],
        TaxKind.LAND_TAX_TRUST: [],
    },
    "NSW": {
        TaxKind.STAMP_DUTY: [
            (17_000, 1.25, 0, BracketMethod.SLIDING),
            (37_000, 1.5, 212, BracketMethod.SLIDING),
            (97_000, 1.75, 512, BracketMethod.SLIDING),
            (368_000, 3.5, 1_562, BracketMethod.SLIDING),
            (1_220_000, 4.5, 11_047, BracketMethod.SLIDING),
            (TOP_BRACKET_LIMIT, 5.5, 49_387, BracketMethod.SLIDING),
        ],
        TaxKind.LAND_TAX_GENERAL: [
            (1_075_000, 0.0, 0, BracketMethod.SLIDING),  # Threshold
            (TOP_BRACKET_LIMIT, 1.6, 100, BracketMethod.SLIDING),
        ],
        TaxKind.LAND_TAX_TRUST: [],
    },
    "QLD": {
        TaxKind.STAMP_DUTY: [
            (5_000, 0.0, 0, BracketMethod.SLIDING),
            (75_000, 1.5, 0, BracketMethod.SLIDING),
            (540_000, 3.5, 1_050, BracketMethod.SLIDING),
            (1_000_000, 4.5, 17_325, BracketMethod.SLIDING),
            (TOP_BRACKET_LIMIT, 5.75, 38_025, BracketMethod.SLIDING),
        ],
        TaxKind.LAND_TAX_GENERAL: [
            (600_000, 0.0, 0, BracketMethod.SLIDING),
            (1_000_000, 1.0, 500, BracketMethod.SLIDING),
            (3_000_000, 1.65, 4_500, BracketMethod.SLIDING),
            (5_000_000, 1.25, 37_500, BracketMethod.SLIDING),
            (10_000_000, 1.75, 62_500, BracketMethod.SLIDING),
            (TOP_BRACKET_LIMIT, 2.25, 150_000, BracketMethod.SLIDING),
        ],
        TaxKind.LAND_TAX_TRUST: [],
    },
}
