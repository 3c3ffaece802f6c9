"""
Valuation Engine Forecast Schedule

Builds the year-by-year projection, discounts it and adds the terminal value.
"""
from __future__ import annotations

import logging

from valuation_engine.cashflows import compute_fcf, compute_nopat
from valuation_engine.discounting import compute_discount_factors, compute_pv_series, sum_pv
from valuation_engine.models import (
    ForecastSchedule,
    TerminalValueMethod,
    ValuationInputs,
    YearRow,
    pct,
    safe,
)
from valuation_engine.projections import (
    compute_delta_nwc,
    compute_ebit,
    compute_ebitda,
    normalize_drivers,
)
from valuation_engine.terminal_value import compute_terminal_value, resolve_terminal_growth
from valuation_engine.valuation import compute_enterprise_value
from valuation_engine.validation import enforce_rate_positive, enforce_shares_outstanding

logger = logging.getLogger(__name__)


def build_schedule(inputs: ValuationInputs, discount_rate: float) -> ForecastSchedule:
    """
    Build the forecast and discounting schedule.

    Args:
        inputs: Valuation inputs (percent units)
        discount_rate: Resolved discount rate as a decimal

    Returns:
        ForecastSchedule with rows, terminal value, PVs and EV

    Raises:
        InvalidSharesOutstanding: If shares_out <= 0
        InvalidRate: If discount_rate <= 0
        InvalidTerminalGrowth: If g >= rate under perpetuity without clamping
    """
    enforce_shares_outstanding(inputs.shares_out)
    enforce_rate_positive(discount_rate)

    years = inputs.horizon
    drivers = normalize_drivers(inputs, years)

    ebit = compute_ebit(drivers)
    ebitda = compute_ebitda(ebit, drivers.da)
    delta_nwc = compute_delta_nwc(inputs, drivers, ebit)
    nopat = compute_nopat(ebit, pct(inputs.tax_rate_norm))
    fcf = compute_fcf(nopat, drivers.da, drivers.capex, delta_nwc)

    discount_factors = compute_discount_factors(discount_rate, years)
    pv_fcf = compute_pv_series(fcf, discount_factors)
    pv_explicit = sum_pv(pv_fcf)

    rows = [
        YearRow(
            year=t + 1,
            revenue=drivers.revenue[t],
            ebit=ebit[t],
            da=drivers.da[t],
            capex=drivers.capex[t],
            delta_nwc=delta_nwc[t],
            nopat=nopat[t],
            fcf=fcf[t],
            discount_factor=discount_factors[t],
            pv_fcf=pv_fcf[t],
            ebitda=ebitda[t],
        )
        for t in range(years)
    ]

    growth = pct(inputs.g_term)
    clamped = False
    if inputs.terminal_method == TerminalValueMethod.PERPETUITY:
        growth, clamped = resolve_terminal_growth(growth, discount_rate, inputs.clamp_growth)

    terminal_value = compute_terminal_value(
        inputs.terminal_method,
        rows[-1],
        discount_rate,
        growth,
        safe(inputs.exit_multiple_ebitda),
    )
    pv_terminal_value = terminal_value * discount_factors[-1]
    enterprise_value = compute_enterprise_value(pv_explicit, pv_terminal_value)

    logger.debug(
        "Schedule built: %d years at %.4f, EV=%.2f (TV share %.2f%%)",
        years,
        discount_rate,
        enterprise_value,
        pv_terminal_value / enterprise_value * 100 if enterprise_value else 0.0,
    )

    return ForecastSchedule(
        rows=rows,
        terminal_value=terminal_value,
        pv_terminal_value=pv_terminal_value,
        pv_explicit=pv_explicit,
        enterprise_value=enterprise_value,
        terminal_growth=growth if inputs.terminal_method == TerminalValueMethod.PERPETUITY else None,
        growth_clamped=clamped,
    )
