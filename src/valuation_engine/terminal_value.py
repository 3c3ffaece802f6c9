"""
Valuation Engine Terminal Value Calculations

Perpetuity (Gordon) and Exit Multiple methods.
"""
from __future__ import annotations

from valuation_engine.models import (
    GROWTH_CLAMP_CUSHION,
    TerminalValueMethod,
    YearRow,
)
from valuation_engine.validation import enforce_growth_below_rate


def resolve_terminal_growth(
    growth_rate: float,
    discount_rate: float,
    clamp: bool,
) -> tuple[float, bool]:
    """
    Return the growth rate to use and whether it was clamped.

    With clamping requested, a growth rate at or above the discount rate is
    capped to discount_rate - GROWTH_CLAMP_CUSHION.

    Raises:
        InvalidTerminalGrowth: If g >= r and clamping is off
    """
    if growth_rate >= discount_rate and clamp:
        return discount_rate - GROWTH_CLAMP_CUSHION, True
    enforce_growth_below_rate(growth_rate, discount_rate)
    return growth_rate, False


def compute_terminal_value_perpetuity(
    final_cash_flow: float,
    discount_rate: float,
    growth_rate: float,
) -> float:
    """
    Compute terminal value using perpetuity (Gordon) growth model.

    TV = FCF_N * (1 + g) / (r - g)

    Args:
        final_cash_flow: Free cash flow of the final forecast year
        discount_rate: Discount rate (decimal)
        growth_rate: Perpetuity growth rate, already below discount_rate
    """
    return final_cash_flow * (1 + growth_rate) / (discount_rate - growth_rate)


def compute_terminal_value_exit_multiple(metric_value: float, multiple: float) -> float:
    """
    Compute terminal value using exit multiple.

    TV = EBITDA_N * Multiple
    """
    return metric_value * multiple


def compute_terminal_value(
    method: TerminalValueMethod,
    final_row: YearRow,
    discount_rate: float,
    growth_rate: float,
    exit_multiple: float,
) -> float:
    """
    Compute the undiscounted terminal value from the final forecast year.

    The exit multiple is always applied to EBITDA.
    """
    if method == TerminalValueMethod.PERPETUITY:
        return compute_terminal_value_perpetuity(final_row.fcf, discount_rate, growth_rate)
    return compute_terminal_value_exit_multiple(final_row.ebitda, exit_multiple)
