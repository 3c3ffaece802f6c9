"""
Valuation Engine Valuation

Enterprise Value and the EV -> Equity bridge.
"""
from __future__ import annotations

from valuation_engine.models import BridgeItem, ValuationInputs, safe
from valuation_engine.validation import enforce_shares_outstanding


def compute_enterprise_value(pv_explicit: float, pv_terminal_value: float) -> float:
    """
    Compute Enterprise Value.

    EV = Sum(PV of FCFs) + PV(Terminal Value)
    """
    return pv_explicit + pv_terminal_value


def compute_value_shares(
    enterprise_value: float,
    pv_explicit: float,
    pv_terminal_value: float,
) -> tuple[float, float]:
    """
    Share of EV coming from the terminal value and from the explicit period.

    Both are 0 when EV is 0.

    Returns:
        Tuple of (terminal value share, explicit period share)
    """
    if enterprise_value == 0:
        return 0.0, 0.0
    return pv_terminal_value / enterprise_value, pv_explicit / enterprise_value


def bridge_to_equity(
    inputs: ValuationInputs,
    enterprise_value: float,
) -> tuple[float, float, list[BridgeItem]]:
    """
    Bridge Enterprise Value to Equity Value and price per share.

    Equity = EV - NetDebt - Minorities + Associates - Pensions - Provisions
             + CashAdjustments - LeaseLiability (only if leases capitalised)

    Returns:
        Tuple of (equity value, price per share, ordered bridge items)
    """
    enforce_shares_outstanding(inputs.shares_out)

    minorities = safe(inputs.minorities)
    associates = safe(inputs.associates)
    pensions = safe(inputs.pensions)
    provisions = safe(inputs.provisions)
    cash_adjustments = safe(inputs.cash_adjustments)
    lease_liability = safe(inputs.lease_liability) if inputs.leases_capitalized else 0.0

    equity_value = (
        enterprise_value
        - inputs.net_debt
        - minorities
        + associates
        - pensions
        - provisions
        + cash_adjustments
        - lease_liability
    )
    price = equity_value / inputs.shares_out

    bridge = [
        BridgeItem(label="EV", value=enterprise_value),
        BridgeItem(label="- NetDebt", value=-inputs.net_debt),
        BridgeItem(label="- Minorities", value=-minorities),
        BridgeItem(label="+ Associates", value=associates),
        BridgeItem(label="- Pensions", value=-pensions),
        BridgeItem(label="- Provisions", value=-provisions),
        BridgeItem(label="+ CashAdjustments", value=cash_adjustments),
        BridgeItem(
            label="- LeaseLiability" if inputs.leases_capitalized else "LeaseLiability (off)",
            value=-lease_liability,
            active=inputs.leases_capitalized,
        ),
    ]

    return equity_value, price, bridge
