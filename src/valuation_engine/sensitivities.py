"""
Valuation Engine Sensitivity Analysis

Provides the downstream analyses run over a shared base case:
- Football-field bands (DCF sensitivity, EV/EBITDA, P/E)
- Two-way price grid (discount rate x terminal growth)
- One-at-a-time tornado rows

Every cell, band and tornado leg is an independent full valuation; nothing
is memoised and no state is shared between runs.
"""
from __future__ import annotations

import logging
from typing import Optional

from valuation_engine.engine import compute_valuation
from valuation_engine.models import (
    Band,
    DeltaMode,
    SensitivityGrid,
    TornadoResult,
    TornadoRow,
    TornadoSpec,
    ValuationInputs,
    ValuationResult,
    is_finite,
)

logger = logging.getLogger(__name__)


# Rate and growth shifts (percentage points) of the DCF band
DCF_BAND_RATE_SHIFT = 1.0
DCF_BAND_GROWTH_SHIFT = 0.5

DEFAULT_TORNADO_SPECS: list[TornadoSpec] = [
    TornadoSpec(field="wacc", low=-1, high=1),
    TornadoSpec(field="gTerm", low=-0.5, high=0.5),
    TornadoSpec(field="ebitMargin", low=-2, high=2),
    TornadoSpec(field="growth", low=-2, high=2),
    TornadoSpec(field="capexPct", low=-1, high=1),
]


def apply_delta(value: float, delta: float, mode: DeltaMode) -> float:
    """
    Perturb a value.

    abs: value + delta
    pct: value * (1 + delta / 100)
    """
    if mode == DeltaMode.PERCENTAGE:
        return value * (1 + delta / 100)
    return value + delta


class SensitivityRunner:
    """
    Runs band, grid and tornado analyses around one base input record.
    """

    def __init__(self, inputs: ValuationInputs, base: Optional[ValuationResult] = None):
        """
        Initialize runner.

        Args:
            inputs: Base case inputs
            base: Previously computed base-case result (computed lazily if None)
        """
        self.inputs = inputs
        self._base = base

    @property
    def base(self) -> ValuationResult:
        if self._base is None:
            self._base = compute_valuation(self.inputs)
        return self._base

    def _price(self, **updates) -> float:
        return compute_valuation(self.inputs.model_copy(update=updates)).price

    def _base_rate_pct(self) -> float:
        """Base discount rate in percent, as a direct-rate input."""
        detail = self.base.cost_of_capital
        if detail.used_direct_wacc:
            return self.inputs.wacc
        return detail.discount_rate * 100

    # ------------------------------------------------------------------
    # Football field
    # ------------------------------------------------------------------

    def bands(self) -> list[Band]:
        """
        Price bands per valuation method, in display order.

        DCF first (sensitivity band when terminal growth is configured, else
        a degenerate base band), then EV/EBITDA and P/E when both of their
        bounds are supplied.
        """
        inputs = self.inputs
        base = self.base
        bands = []

        if inputs.g_term is not None:
            rate = self._base_rate_pct()
            low = self._price(
                wacc=rate + DCF_BAND_RATE_SHIFT,
                g_term=inputs.g_term - DCF_BAND_GROWTH_SHIFT,
            )
            high = self._price(
                wacc=rate - DCF_BAND_RATE_SHIFT,
                g_term=inputs.g_term + DCF_BAND_GROWTH_SHIFT,
            )
            bands.append(Band(method="DCF (sensitivity)", low=low, high=high))
        else:
            bands.append(Band(method="DCF (base)", low=base.price, high=base.price))

        first_year = base.rows[0] if base.rows else None

        if inputs.ebitda_multiple_min is not None and inputs.ebitda_multiple_max is not None:
            ebitda1 = first_year.ebitda if first_year else 0.0
            ev_low = ebitda1 * inputs.ebitda_multiple_min
            ev_high = ebitda1 * inputs.ebitda_multiple_max
            bands.append(Band(
                method="EV/EBITDA",
                low=(ev_low - inputs.net_debt) / inputs.shares_out,
                high=(ev_high - inputs.net_debt) / inputs.shares_out,
            ))

        if inputs.pe_min is not None and inputs.pe_max is not None:
            # NOPAT stands in for net income
            ni1 = first_year.nopat if first_year else 0.0
            bands.append(Band(
                method="P/E",
                low=ni1 * inputs.pe_min / inputs.shares_out,
                high=ni1 * inputs.pe_max / inputs.shares_out,
            ))

        return bands

    # ------------------------------------------------------------------
    # Two-way grid
    # ------------------------------------------------------------------

    def grid(self, rate_values: list[float], growth_values: list[float]) -> SensitivityGrid:
        """
        Price for every (discount rate, terminal growth) pair.

        grid[i][j] uses rate_values[i] as the direct rate and growth_values[j]
        as terminal growth (both in percent).
        """
        logger.debug("Sensitivity grid %dx%d", len(rate_values), len(growth_values))
        grid = [
            [self._price(wacc=rate, g_term=growth) for growth in growth_values]
            for rate in rate_values
        ]
        return SensitivityGrid(
            grid=grid,
            rate_values=list(rate_values),
            growth_values=list(growth_values),
        )

    # ------------------------------------------------------------------
    # Tornado
    # ------------------------------------------------------------------

    def tornado(self, specs: Optional[list[TornadoSpec]] = None) -> TornadoResult:
        """
        Perturb one input at a time and record the price impact.

        Specs naming an unknown field, or a field that does not hold a
        finite number, are skipped. Rows keep the order of the specs.
        """
        if specs is None:
            specs = DEFAULT_TORNADO_SPECS

        base_price = self.base.price
        rows = []

        for spec in specs:
            name = ValuationInputs.field_for(spec.field)
            if name is None:
                continue
            current = getattr(self.inputs, name)
            if not is_finite(current):
                continue

            low = self._price(**{name: apply_delta(current, spec.low, spec.mode)})
            high = self._price(**{name: apply_delta(current, spec.high, spec.mode)})
            rows.append(TornadoRow(field=spec.field, low=low, high=high, base=base_price))

        logger.debug("Tornado: %d of %d specs applied", len(rows), len(specs))
        return TornadoResult(rows=rows)


def football_field_bands(inputs: ValuationInputs, base: ValuationResult) -> list[Band]:
    """Bands for a previously computed base case."""
    return SensitivityRunner(inputs, base).bands()


def sensitivity_grid(
    inputs: ValuationInputs,
    rate_values: list[float],
    growth_values: list[float],
) -> SensitivityGrid:
    """Convenience wrapper over SensitivityRunner.grid."""
    return SensitivityRunner(inputs).grid(rate_values, growth_values)


def tornado(
    inputs: ValuationInputs,
    specs: Optional[list[TornadoSpec]] = None,
) -> TornadoResult:
    """Convenience wrapper over SensitivityRunner.tornado."""
    return SensitivityRunner(inputs).tornado(specs)
