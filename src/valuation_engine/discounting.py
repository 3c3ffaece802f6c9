"""
Valuation Engine Discounting Logic

End-of-year discount factors and present values at a constant rate.
"""
from __future__ import annotations


def compute_discount_factors(rate: float, years: int) -> list[float]:
    """
    Compute discount factors for periods 1..years.

    DF_t = 1 / (1 + r)^t

    Returns:
        list of discount factors, index t - 1
    """
    return [1.0 / ((1 + rate) ** t) for t in range(1, years + 1)]


def compute_pv_series(
    cash_flows: list[float],
    discount_factors: list[float],
) -> list[float]:
    """
    Compute present value of each cash flow in a series.

    PV(CF_t) = CF_t * DF_t
    """
    return [cf * df for cf, df in zip(cash_flows, discount_factors)]


def sum_pv(pv_series: list[float]) -> float:
    """Sum all present values in a series."""
    return sum(pv_series)
