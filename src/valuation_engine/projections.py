"""
Valuation Engine Operating Projections

Per-year driver normalisation, revenue, EBIT and working-capital deltas.
Lists are indexed by t - 1 for forecast years t = 1..N.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from valuation_engine.models import (
    DAYS_PER_YEAR,
    ValuationInputs,
    WorkingCapitalPolicy,
    is_finite,
    pct,
    safe,
)


@dataclass(frozen=True)
class ForecastDrivers:
    """Fully populated per-year drivers, resolved once before any computation."""
    revenue: list[float]
    margin: list[float]
    da: list[float]
    capex: list[float]


def _plan_value(plan: Optional[list[Optional[float]]], t: int) -> Optional[float]:
    """Plan item for index t when present and finite, else None."""
    if plan is None or t >= len(plan):
        return None
    value = plan[t]
    return value if is_finite(value) else None


def compute_revenue(inputs: ValuationInputs, years: int) -> list[float]:
    """
    Compute revenue for forecast years.

    Uses revenue_plan when it covers the whole horizon (non-finite items
    count as 0), otherwise compounds revenue0 by the growth rate.
    """
    plan = inputs.revenue_plan
    if plan is not None and len(plan) >= years:
        return [safe(plan[t]) for t in range(years)]

    g = pct(inputs.growth)
    revenue = []
    prev = inputs.revenue0
    for _ in range(years):
        prev = prev * (1 + g)
        revenue.append(prev)
    return revenue


def normalize_drivers(inputs: ValuationInputs, years: int) -> ForecastDrivers:
    """
    Apply the per-field precedence rule in a single pass.

    Margin, D&A and capex take the plan item for year t when it is finite,
    and fall back to the single-rate assumption otherwise.
    """
    revenue = compute_revenue(inputs, years)
    margin, da, capex = [], [], []

    for t in range(years):
        plan_margin = _plan_value(inputs.ebit_margin_plan, t)
        margin.append(pct(plan_margin) if plan_margin is not None else pct(inputs.ebit_margin))

        plan_da = _plan_value(inputs.da_plan, t)
        da.append(plan_da if plan_da is not None else revenue[t] * pct(inputs.da_pct_of_revenue))

        plan_capex = _plan_value(inputs.capex_plan, t)
        capex.append(plan_capex if plan_capex is not None else revenue[t] * pct(inputs.capex_pct))

    return ForecastDrivers(revenue=revenue, margin=margin, da=da, capex=capex)


def compute_ebit(drivers: ForecastDrivers) -> list[float]:
    """EBIT = Revenue * Margin"""
    return [r * m for r, m in zip(drivers.revenue, drivers.margin)]


def compute_ebitda(ebit: list[float], da: list[float]) -> list[float]:
    """EBITDA = EBIT + D&A"""
    return [e + d for e, d in zip(ebit, da)]


def uses_days_policy(inputs: ValuationInputs) -> bool:
    """Days policy applies only when all three day counts are finite."""
    return (
        inputs.wc_policy == WorkingCapitalPolicy.DAYS
        and is_finite(inputs.dso)
        and is_finite(inputs.dpo)
        and is_finite(inputs.dsi)
    )


def compute_delta_nwc_percent(
    revenue: list[float],
    revenue0: float,
    nwc_pct: float,
) -> list[float]:
    """
    Working-capital delta as a share of the revenue delta.

    dNWC_t = (Revenue_t - Revenue_(t-1)) * nwc_pct, with Revenue_0 = revenue0

    Cash-flow sign rule: dNWC > 0 means cash consumed.
    """
    delta = []
    prev = revenue0
    for r in revenue:
        delta.append((r - prev) * nwc_pct)
        prev = r
    return delta


def compute_nwc_level(revenue: float, cogs: float, dso: float, dpo: float, dsi: float) -> float:
    """
    Working-capital level from day counts.

    NWC = Receivables + Inventory - Payables
        = Revenue * DSO/365 + COGS * DSI/365 - COGS * DPO/365
    """
    receivables = revenue * (dso / DAYS_PER_YEAR)
    inventory = cogs * (dsi / DAYS_PER_YEAR)
    payables = cogs * (dpo / DAYS_PER_YEAR)
    return receivables + inventory - payables


def compute_delta_nwc_days(
    revenue: list[float],
    ebit: list[float],
    da: list[float],
    dso: float,
    dpo: float,
    dsi: float,
    revenue0: float,
    base_margin: float,
    base_da_pct: float,
) -> list[float]:
    """
    Working-capital delta from a running day-count balance.

    COGS is approximated as max(0, Revenue - EBIT - D&A). The year-0 level
    is derived from revenue0 with the base margin and base D&A %, even when
    per-year plans differ from them.
    """
    cogs0 = max(0.0, revenue0 - revenue0 * base_margin - revenue0 * base_da_pct)
    prev_level = compute_nwc_level(revenue0, cogs0, dso, dpo, dsi)

    delta = []
    for r, e, d in zip(revenue, ebit, da):
        cogs = max(0.0, r - e - d)
        level = compute_nwc_level(r, cogs, dso, dpo, dsi)
        delta.append(level - prev_level)
        prev_level = level
    return delta


def compute_delta_nwc(
    inputs: ValuationInputs,
    drivers: ForecastDrivers,
    ebit: list[float],
) -> list[float]:
    """Dispatch to the working-capital policy in force."""
    if uses_days_policy(inputs):
        return compute_delta_nwc_days(
            drivers.revenue,
            ebit,
            drivers.da,
            inputs.dso,
            inputs.dpo,
            inputs.dsi,
            inputs.revenue0,
            # Base margin: first-year margin as resolved by the precedence rule
            drivers.margin[0],
            pct(inputs.da_pct_of_revenue),
        )
    return compute_delta_nwc_percent(drivers.revenue, inputs.revenue0, pct(inputs.nwc_pct))
