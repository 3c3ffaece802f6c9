"""
DCF Valuation Engine

Pure, stateless valuation core:
- Cost-of-capital resolution (direct rate or CAPM with Hamada re-levering)
- Forecast and discounting schedule with perpetuity / exit-multiple terminal value
- EV -> Equity bridge and price per share
- Football-field bands, two-way sensitivity grid and tornado analysis
"""
from valuation_engine.models import (
    ValuationInputs,
    ValuationResult,
    TornadoSpec,
    TornadoRow,
    SensitivityGrid,
    Band,
)
from valuation_engine.validation import (
    ValuationError,
    InvalidSharesOutstanding,
    InvalidRate,
    InvalidTerminalGrowth,
)
from valuation_engine.engine import ValuationEngine, compute_valuation, valuate
from valuation_engine.sensitivities import (
    SensitivityRunner,
    football_field_bands,
    sensitivity_grid,
    tornado,
)

__all__ = [
    "ValuationInputs",
    "ValuationResult",
    "TornadoSpec",
    "TornadoRow",
    "SensitivityGrid",
    "Band",
    "ValuationError",
    "InvalidSharesOutstanding",
    "InvalidRate",
    "InvalidTerminalGrowth",
    "ValuationEngine",
    "compute_valuation",
    "valuate",
    "SensitivityRunner",
    "football_field_bands",
    "sensitivity_grid",
    "tornado",
]
