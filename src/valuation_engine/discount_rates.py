"""
Valuation Engine Discount Rate Calculations

Direct rate or CAPM cost of equity with Hamada re-levering and target
capital-structure weights.
"""
from __future__ import annotations

from valuation_engine.models import (
    MAX_TARGET_LEVERAGE,
    SATURATED_DE_RATIO,
    CostOfCapitalDetail,
    PremiumComponents,
    ValuationInputs,
    is_finite,
    pct,
    safe,
)
from valuation_engine.validation import enforce_rate_positive


def clamp_leverage(target_leverage_pct: float | None) -> float:
    """Target D/(D+E) as a decimal clamped into [0, MAX_TARGET_LEVERAGE]."""
    return min(MAX_TARGET_LEVERAGE, max(0.0, pct(target_leverage_pct)))


def compute_debt_to_equity(leverage: float) -> float:
    """
    Convert D/(D+E) into D/E.

    D/E = L / (1 - L), capped at SATURATED_DE_RATIO when L is saturated.
    """
    if leverage > 0.999999:
        return SATURATED_DE_RATIO
    return leverage / max(1e-6, 1 - leverage)


def compute_levered_beta(beta_unlevered: float, tax_rate: float, debt_to_equity: float) -> float:
    """
    Re-lever an asset beta (Hamada).

    betaL = betaU * (1 + (1 - t) * D/E)
    """
    return beta_unlevered * (1 + (1 - tax_rate) * debt_to_equity)


def compute_cost_of_equity(risk_free: float, beta_levered: float, premium: float) -> float:
    """
    CAPM cost of equity.

    Ke = rf + betaL * (market + country + size premia)
    """
    return risk_free + beta_levered * premium


def compute_after_tax_cost_of_debt(cost_of_debt_pre_tax: float, tax_rate: float) -> float:
    return cost_of_debt_pre_tax * (1 - tax_rate)


def compute_wacc(cost_of_equity: float, cost_of_debt_after_tax: float, leverage: float) -> float:
    """
    Weighted average cost of capital with target weights.

    WACC = Ke * (1 - L) + Kd * (1 - t) * L
    """
    return cost_of_equity * (1 - leverage) + cost_of_debt_after_tax * leverage


def resolve_cost_of_capital(inputs: ValuationInputs) -> CostOfCapitalDetail:
    """
    Resolve the discount rate used by the forecast schedule.

    A finite direct rate wins; otherwise the rate is derived from the CAPM /
    capital-structure inputs.

    Returns:
        CostOfCapitalDetail with a decimal discount rate

    Raises:
        InvalidRate: If the resolved rate is not > 0
    """
    if is_finite(inputs.wacc):
        enforce_rate_positive(inputs.wacc)
        return CostOfCapitalDetail(used_direct_wacc=True, discount_rate=pct(inputs.wacc))

    tax_rate = pct(inputs.tax_rate_norm)
    leverage = clamp_leverage(inputs.target_leverage)
    debt_to_equity = compute_debt_to_equity(leverage)
    # A missing or zero beta falls back to the market beta
    beta_unlevered = safe(inputs.beta_unlevered) or 1.0
    beta_levered = compute_levered_beta(beta_unlevered, tax_rate, debt_to_equity)

    premium = pct(inputs.market_premium) + pct(inputs.country_risk_premium) + pct(inputs.small_cap_premium)
    risk_free = pct(inputs.risk_free)
    cost_of_equity = compute_cost_of_equity(risk_free, beta_levered, premium)

    cost_of_debt_pre_tax = pct(inputs.cost_of_debt_pre_tax)
    cost_of_debt_after_tax = compute_after_tax_cost_of_debt(cost_of_debt_pre_tax, tax_rate)

    rate = compute_wacc(cost_of_equity, cost_of_debt_after_tax, leverage)
    enforce_rate_positive(rate)

    return CostOfCapitalDetail(
        used_direct_wacc=False,
        discount_rate=rate,
        cost_of_equity=cost_of_equity,
        cost_of_debt_pre_tax=cost_of_debt_pre_tax,
        cost_of_debt_after_tax=cost_of_debt_after_tax,
        beta_unlevered=beta_unlevered,
        beta_levered=beta_levered,
        leverage=leverage,
        debt_to_equity=debt_to_equity,
        premium_components=PremiumComponents(
            risk_free=risk_free,
            market=pct(inputs.market_premium),
            country=pct(inputs.country_risk_premium) if inputs.country_risk_premium is not None else None,
            small_cap=pct(inputs.small_cap_premium) if inputs.small_cap_premium is not None else None,
            cost_of_debt_pre_tax=cost_of_debt_pre_tax,
            tax_rate=tax_rate,
        ),
    )
