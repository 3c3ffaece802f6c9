"""
Valuation Engine Cash Flow Calculations

NOPAT and unlevered free cash flow construction.
"""
from __future__ import annotations


def compute_nopat(ebit: list[float], tax_rate: float) -> list[float]:
    """
    Compute NOPAT for all forecast years.

    NOPAT = EBIT * (1 - TaxRate)

    No loss carry-forward: negative EBIT yields a negative NOPAT.
    """
    return [e * (1 - tax_rate) for e in ebit]


def compute_fcf(
    nopat: list[float],
    da: list[float],
    capex: list[float],
    delta_nwc: list[float],
) -> list[float]:
    """
    Compute free cash flow for all forecast years.

    FCF = NOPAT + D&A - Capex - dNWC

    Note on signs:
    - D&A: add back (non-cash expense)
    - Capex: subtract (cash outflow, provided as positive number)
    - dNWC: subtract if positive (cash consumed), add if negative (cash released)
    """
    return [n + d - c - w for n, d, c, w in zip(nopat, da, capex, delta_nwc)]
