"""
Valuation Engine Core Data Models

Pydantic models for all valuation inputs and outputs.

Rate-like inputs are expressed in percent (growth=5 means 5%) and are
normalised to decimals inside the engine; every rate reported on an output
model is a decimal.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


# ============================================================================
# CONSTANTS
# ============================================================================

DAYS_PER_YEAR = 365

# Target leverage D/(D+E) is clamped into [0, MAX_TARGET_LEVERAGE]
MAX_TARGET_LEVERAGE = 0.95

# D/E used when leverage is saturated (avoids division blow-up)
SATURATED_DE_RATIO = 99.0

# Clamped terminal growth sits this far below the discount rate
GROWTH_CLAMP_CUSHION = 0.001

# Terminal value share of EV above which a warning note is attached
TV_SHARE_WARNING = 0.80


# Shared config: frozen records, snake_case attributes, camelCase wire names
_RECORD_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
}


def pct(value: Optional[float]) -> float:
    """Normalise a percent input to a decimal; missing or non-finite -> 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return value / 100


def safe(value: Optional[float]) -> float:
    """Return value when finite, else 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def is_finite(value: object) -> bool:
    """True for a finite int/float (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


# ============================================================================
# ENUMS
# ============================================================================

class WorkingCapitalPolicy(str, Enum):
    """How the working-capital delta is projected."""
    PERCENT_DELTA_REVENUE = "percentDeltaRevenue"
    DAYS = "days"


class TerminalValueMethod(str, Enum):
    """Method for computing terminal value."""
    PERPETUITY = "perpetuity"
    EXIT_MULTIPLE = "exitMultiple"


class ExitMultipleBasis(str, Enum):
    """Metric an exit multiple is quoted on."""
    EBITDA = "ebitda"
    EBIT = "ebit"
    FCF = "fcf"


class DeltaMode(str, Enum):
    """How a tornado delta is applied to the current value."""
    ABSOLUTE = "abs"
    PERCENTAGE = "pct"

    @classmethod
    def _missing_(cls, value):
        synonyms = {"absolute": cls.ABSOLUTE, "percentage": cls.PERCENTAGE}
        if isinstance(value, str):
            return synonyms.get(value.lower())
        return None


class NoteKind(str, Enum):
    """Advisory diagnostics attached to a valuation result."""
    GROWTH_CLAMPED = "growth_clamped"
    BASIS_IGNORED = "basis_ignored"
    TERMINAL_VALUE_DOMINANT = "terminal_value_dominant"
    DEGENERATE_ENTERPRISE_VALUE = "degenerate_enterprise_value"


# ============================================================================
# INPUT MODELS
# ============================================================================

class ValuationInputs(BaseModel):
    """Complete valuation inputs (one immutable record per call)."""
    currency: Optional[str] = Field(None, description="Currency label (display only)")

    # Revenue & margins
    revenue0: float = Field(..., description="Base-year revenue (t0)")
    growth: float = Field(..., description="Revenue growth per year (%)")
    revenue_plan: Optional[list[Optional[float]]] = Field(None, description="Explicit revenue t=1..N")
    ebit_margin: float = Field(..., description="Operating (EBIT) margin (%)")
    ebit_margin_plan: Optional[list[Optional[float]]] = Field(None, description="EBIT margin by year (%)")

    # D&A, capex
    da_pct_of_revenue: Optional[float] = Field(None, description="D&A as % of revenue")
    da_plan: Optional[list[Optional[float]]] = Field(None, description="Explicit D&A by year")
    capex_pct: Optional[float] = Field(None, description="Capex as % of revenue")
    capex_plan: Optional[list[Optional[float]]] = Field(None, description="Explicit capex by year")

    # Working capital
    wc_policy: WorkingCapitalPolicy = Field(WorkingCapitalPolicy.PERCENT_DELTA_REVENUE)
    nwc_pct: Optional[float] = Field(None, description="NWC as % of the revenue delta")
    dso: Optional[float] = Field(None, description="Days sales outstanding")
    dpo: Optional[float] = Field(None, description="Days payables outstanding")
    dsi: Optional[float] = Field(None, description="Days sales of inventory")

    # Tax & cost of capital
    tax_rate_norm: float = Field(..., description="Normalised tax rate (%)")
    wacc: Optional[float] = Field(None, description="Direct discount rate (%)")
    risk_free: Optional[float] = Field(None, description="Risk-free rate (%)")
    market_premium: Optional[float] = Field(None, description="Equity market premium (%)")
    country_risk_premium: Optional[float] = Field(None, description="Country risk premium (%)")
    small_cap_premium: Optional[float] = Field(None, description="Size premium (%)")
    beta_unlevered: Optional[float] = Field(None, description="Unlevered (asset) beta")
    target_leverage: Optional[float] = Field(None, description="Target D/(D+E) (%)")
    cost_of_debt_pre_tax: Optional[float] = Field(None, description="Pre-tax cost of debt (%)")

    # Horizon & terminal value
    years: float = Field(..., description="Explicit forecast horizon in years")
    terminal_method: TerminalValueMethod = Field(TerminalValueMethod.PERPETUITY)
    g_term: Optional[float] = Field(None, description="Perpetuity growth rate (%)")
    exit_multiple_ebitda: Optional[float] = Field(None, description="Exit multiple (x)")
    exit_multiple_basis: Optional[ExitMultipleBasis] = Field(
        None, description="Basis of the exit multiple (only EBITDA is applied)"
    )

    # EV -> equity bridge
    net_debt: float = Field(..., description="Net financial debt")
    minorities: Optional[float] = None
    associates: Optional[float] = None
    pensions: Optional[float] = None
    provisions: Optional[float] = None
    cash_adjustments: Optional[float] = None
    leases_capitalized: bool = False
    lease_liability: Optional[float] = None

    shares_out: float = Field(..., description="Diluted shares outstanding")

    # Multiples (football field)
    ebitda_multiple_min: Optional[float] = None
    ebitda_multiple_max: Optional[float] = None
    pe_min: Optional[float] = None
    pe_max: Optional[float] = None

    clamp_growth: bool = Field(
        False,
        alias="clampGtLtWacc",
        description="Cap terminal growth below the discount rate instead of failing",
    )

    model_config = _RECORD_CONFIG

    @property
    def horizon(self) -> int:
        """Rounded (half up) forecast horizon, at least one year."""
        return max(1, math.floor(self.years + 0.5))

    @classmethod
    def field_for(cls, name: str) -> Optional[str]:
        """Resolve a python field name or its wire alias to the field name."""
        if name in cls.model_fields:
            return name
        for field_name, info in cls.model_fields.items():
            if info.alias == name:
                return field_name
        return None


class TornadoSpec(BaseModel):
    """One-at-a-time perturbation of a single numeric input."""
    field: str
    low: float
    high: float
    mode: DeltaMode = DeltaMode.ABSOLUTE

    model_config = _RECORD_CONFIG


# ============================================================================
# OUTPUT MODELS
# ============================================================================

class YearRow(BaseModel):
    """Single forecast year."""
    year: int
    revenue: float
    ebit: float
    da: float
    capex: float
    delta_nwc: float
    nopat: float
    fcf: float
    discount_factor: float
    pv_fcf: float
    ebitda: float

    model_config = _RECORD_CONFIG


class PremiumComponents(BaseModel):
    """Inputs used to build a derived discount rate (decimals)."""
    risk_free: float
    market: float
    country: Optional[float] = None
    small_cap: Optional[float] = None
    cost_of_debt_pre_tax: float
    tax_rate: float

    model_config = _RECORD_CONFIG


class CostOfCapitalDetail(BaseModel):
    """Resolved discount rate and, when derived, its CAPM decomposition."""
    used_direct_wacc: bool
    discount_rate: float
    cost_of_equity: Optional[float] = None
    cost_of_debt_pre_tax: Optional[float] = None
    cost_of_debt_after_tax: Optional[float] = None
    beta_unlevered: Optional[float] = None
    beta_levered: Optional[float] = None
    leverage: Optional[float] = None
    debt_to_equity: Optional[float] = None
    premium_components: Optional[PremiumComponents] = None

    model_config = _RECORD_CONFIG


class ForecastSchedule(BaseModel):
    """Year-by-year projection plus terminal value and EV."""
    rows: list[YearRow]
    terminal_value: float
    pv_terminal_value: float
    pv_explicit: float
    enterprise_value: float
    terminal_growth: Optional[float] = None
    growth_clamped: bool = False

    model_config = _RECORD_CONFIG


class BridgeItem(BaseModel):
    """One labelled step of the EV -> equity waterfall."""
    label: str
    value: float
    active: bool = True

    model_config = _RECORD_CONFIG


class Note(BaseModel):
    """Advisory diagnostic."""
    kind: NoteKind
    message: str

    model_config = _RECORD_CONFIG


class Band(BaseModel):
    """Low/high price range for one valuation method."""
    method: str
    low: float
    high: float

    model_config = _RECORD_CONFIG


class ValuationResult(BaseModel):
    """Complete valuation output."""
    rows: list[YearRow]
    terminal_value: float
    pv_terminal_value: float
    pv_explicit: float
    enterprise_value: float
    equity_value: float
    price: float
    terminal_value_share: float
    explicit_share: float
    terminal_growth_used: Optional[float] = None
    cost_of_capital: CostOfCapitalDetail
    bridge: list[BridgeItem]
    notes: list[Note] = Field(default_factory=list)
    bands: list[Band] = Field(default_factory=list)

    model_config = _RECORD_CONFIG

    def has_note(self, kind: NoteKind) -> bool:
        return any(note.kind == kind for note in self.notes)


class TornadoRow(BaseModel):
    """Price impact of perturbing one input low/high."""
    field: str
    low: float
    high: float
    base: float

    model_config = _RECORD_CONFIG

    @property
    def spread(self) -> float:
        return abs(self.high - self.low)


class TornadoResult(BaseModel):
    rows: list[TornadoRow]

    model_config = _RECORD_CONFIG


class SensitivityGrid(BaseModel):
    """Price grid: grid[i][j] uses rate_values[i] and growth_values[j]."""
    grid: list[list[float]]
    rate_values: list[float]
    growth_values: list[float]

    model_config = _RECORD_CONFIG
