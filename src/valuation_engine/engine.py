"""
Valuation Engine Main Orchestrator

Coordinates the cost-of-capital resolver, the forecast schedule and the
EV -> equity bridge into one valuation result with diagnostic notes.
"""
from __future__ import annotations

import logging
import math

from valuation_engine.discount_rates import resolve_cost_of_capital
from valuation_engine.models import (
    TV_SHARE_WARNING,
    ExitMultipleBasis,
    ForecastSchedule,
    Note,
    NoteKind,
    TerminalValueMethod,
    ValuationInputs,
    ValuationResult,
)
from valuation_engine.schedule import build_schedule
from valuation_engine.valuation import bridge_to_equity, compute_value_shares

logger = logging.getLogger(__name__)


def build_notes(
    inputs: ValuationInputs,
    schedule: ForecastSchedule,
    terminal_value_share: float,
) -> list[Note]:
    """Collect advisory notes, in display order."""
    notes = []

    if schedule.growth_clamped:
        notes.append(Note(
            kind=NoteKind.GROWTH_CLAMPED,
            message=f"Terminal growth clamped below discount rate (g = {schedule.terminal_growth:.2%})",
        ))

    basis = inputs.exit_multiple_basis
    if (
        inputs.terminal_method == TerminalValueMethod.EXIT_MULTIPLE
        and basis is not None
        and basis != ExitMultipleBasis.EBITDA
    ):
        notes.append(Note(
            kind=NoteKind.BASIS_IGNORED,
            message=f"Exit multiple basis '{basis.value}' is not applied; terminal value uses EBITDA",
        ))

    if terminal_value_share > TV_SHARE_WARNING:
        notes.append(Note(
            kind=NoteKind.TERMINAL_VALUE_DOMINANT,
            message=f"Warning: terminal value >{TV_SHARE_WARNING:.0%} of enterprise value",
        ))

    ev = schedule.enterprise_value
    if ev == 0 or not math.isfinite(ev):
        notes.append(Note(
            kind=NoteKind.DEGENERATE_ENTERPRISE_VALUE,
            message="Warning: enterprise value is zero or non-finite; check inputs",
        ))

    return notes


class ValuationEngine:
    """
    Single-valuation orchestrator.

    Resolve rate -> build schedule -> bridge to equity -> notes. Errors from
    any step propagate unmodified.
    """

    def __init__(self, inputs: ValuationInputs):
        self.inputs = inputs

    def run(self) -> ValuationResult:
        inputs = self.inputs

        # ====================================================================
        # STEP 1: Cost of capital
        # ====================================================================

        cost_of_capital = resolve_cost_of_capital(inputs)
        rate = cost_of_capital.discount_rate
        logger.debug(
            "Discount rate %.4f (%s)",
            rate,
            "direct" if cost_of_capital.used_direct_wacc else "derived",
        )

        # ====================================================================
        # STEP 2: Forecast, discounting, terminal value
        # ====================================================================

        schedule = build_schedule(inputs, rate)

        # ====================================================================
        # STEP 3: EV -> Equity
        # ====================================================================

        equity_value, price, bridge = bridge_to_equity(inputs, schedule.enterprise_value)
        tv_share, explicit_share = compute_value_shares(
            schedule.enterprise_value,
            schedule.pv_explicit,
            schedule.pv_terminal_value,
        )

        return ValuationResult(
            rows=schedule.rows,
            terminal_value=schedule.terminal_value,
            pv_terminal_value=schedule.pv_terminal_value,
            pv_explicit=schedule.pv_explicit,
            enterprise_value=schedule.enterprise_value,
            equity_value=equity_value,
            price=price,
            terminal_value_share=tv_share,
            explicit_share=explicit_share,
            terminal_growth_used=schedule.terminal_growth,
            cost_of_capital=cost_of_capital,
            bridge=bridge,
            notes=build_notes(inputs, schedule, tv_share),
        )


def compute_valuation(inputs: ValuationInputs) -> ValuationResult:
    """Run one valuation (no bands)."""
    return ValuationEngine(inputs).run()


def valuate(inputs: ValuationInputs) -> ValuationResult:
    """
    Run one valuation and attach the football-field bands.

    This is the response of the "valuate" request.
    """
    from valuation_engine.sensitivities import football_field_bands

    result = compute_valuation(inputs)
    return result.model_copy(update={"bands": football_field_bands(inputs, result)})
