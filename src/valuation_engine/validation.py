"""
Valuation Engine Guards

Fail-fast numeric guards with precise error messages. Every error is fatal:
nothing in the engine catches them, so no partial result is ever produced.
"""
from __future__ import annotations


class ValuationError(Exception):
    """Base class for invariant violations raised by the engine."""
    pass


class InvalidSharesOutstanding(ValuationError):
    """Share count is not strictly positive."""
    pass


class InvalidRate(ValuationError):
    """Resolved discount rate is not strictly positive."""
    pass


class InvalidTerminalGrowth(ValuationError):
    """Perpetuity growth is not below the discount rate and clamping is off."""
    pass


def enforce_shares_outstanding(shares_out: float) -> None:
    # NaN fails the comparison too
    if not shares_out > 0:
        raise InvalidSharesOutstanding(f"sharesOut must be > 0, got {shares_out}")


def enforce_rate_positive(rate: float) -> None:
    """Rate may be a percent or a decimal; only its sign matters."""
    if not rate > 0:
        raise InvalidRate(f"Discount rate must be > 0, got {rate}")


def enforce_growth_below_rate(growth: float, rate: float) -> None:
    if growth >= rate:
        raise InvalidTerminalGrowth(
            f"Terminal growth ({growth:.4f}) must be less than discount rate ({rate:.4f})"
        )
