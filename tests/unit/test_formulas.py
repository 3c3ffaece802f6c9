"""
Unit Tests for Valuation Engine Formulas

Tests for individual calculation functions.
"""
import math

import pytest
from valuation_engine.projections import (
    compute_revenue,
    normalize_drivers,
    compute_ebit,
    compute_ebitda,
    compute_delta_nwc,
    compute_delta_nwc_percent,
    compute_nwc_level,
    uses_days_policy,
)
from valuation_engine.cashflows import compute_nopat, compute_fcf
from valuation_engine.discount_rates import (
    clamp_leverage,
    compute_debt_to_equity,
    compute_levered_beta,
    compute_cost_of_equity,
    compute_wacc,
    resolve_cost_of_capital,
)
from valuation_engine.discounting import (
    compute_discount_factors,
    compute_pv_series,
    sum_pv,
)
from valuation_engine.terminal_value import (
    compute_terminal_value_perpetuity,
    compute_terminal_value_exit_multiple,
    resolve_terminal_growth,
)
from valuation_engine.valuation import (
    bridge_to_equity,
    compute_enterprise_value,
    compute_value_shares,
)
from valuation_engine.validation import (
    InvalidRate,
    InvalidSharesOutstanding,
    InvalidTerminalGrowth,
)
from valuation_engine.models import ValuationInputs, WorkingCapitalPolicy


# ============================================================================
# Test fixtures
# ============================================================================

@pytest.fixture
def base_inputs() -> ValuationInputs:
    """Simple 5-year case with a direct 9% discount rate."""
    return ValuationInputs(
        revenue0=100_000_000,
        growth=5,
        ebit_margin=15,
        tax_rate_norm=25,
        capex_pct=4,
        nwc_pct=5,
        years=5,
        g_term=2,
        wacc=9,
        net_debt=50_000_000,
        shares_out=10_000_000,
    )


@pytest.fixture
def capm_inputs(base_inputs) -> ValuationInputs:
    """Same case with the discount rate derived from CAPM inputs."""
    return base_inputs.model_copy(update={
        "wacc": None,
        "risk_free": 3,
        "market_premium": 5,
        "country_risk_premium": 1,
        "beta_unlevered": 0.8,
        "target_leverage": 30,
        "cost_of_debt_pre_tax": 5,
    })


# ============================================================================
# Cost of capital tests
# ============================================================================

class TestCostOfCapital:
    def test_direct_rate_wins(self, base_inputs):
        detail = resolve_cost_of_capital(base_inputs)

        assert detail.used_direct_wacc is True
        assert detail.discount_rate == pytest.approx(0.09)
        assert detail.cost_of_equity is None
        assert detail.premium_components is None

    def test_direct_rate_must_be_positive(self, base_inputs):
        with pytest.raises(InvalidRate):
            resolve_cost_of_capital(base_inputs.model_copy(update={"wacc": 0}))

    def test_non_finite_direct_rate_falls_back_to_capm(self, capm_inputs):
        detail = resolve_cost_of_capital(capm_inputs.model_copy(update={"wacc": math.nan}))
        assert detail.used_direct_wacc is False

    def test_capm_derivation(self, capm_inputs):
        """
        L = 0.30, D/E = 0.428571
        betaL = 0.8 * (1 + 0.75 * 0.428571) = 1.057143
        Ke = 0.03 + 1.057143 * 0.06 = 0.093429
        Kd(1-t) = 0.05 * 0.75 = 0.0375
        WACC = 0.093429 * 0.7 + 0.0375 * 0.3 = 0.076650
        """
        detail = resolve_cost_of_capital(capm_inputs)

        assert detail.used_direct_wacc is False
        assert detail.leverage == pytest.approx(0.30)
        assert detail.debt_to_equity == pytest.approx(0.3 / 0.7)
        assert detail.beta_levered == pytest.approx(1.057143, rel=1e-5)
        assert detail.cost_of_equity == pytest.approx(0.093429, rel=1e-4)
        assert detail.cost_of_debt_after_tax == pytest.approx(0.0375)
        assert detail.discount_rate == pytest.approx(0.076650, rel=1e-4)
        assert detail.premium_components.country == pytest.approx(0.01)
        assert detail.premium_components.small_cap is None

    def test_missing_beta_defaults_to_one(self, capm_inputs):
        detail = resolve_cost_of_capital(capm_inputs.model_copy(update={"beta_unlevered": None}))
        assert detail.beta_unlevered == 1.0

    def test_zero_derived_rate_rejected(self, base_inputs):
        inputs = base_inputs.model_copy(update={"wacc": None})
        with pytest.raises(InvalidRate):
            resolve_cost_of_capital(inputs)

    def test_leverage_clamped(self):
        assert clamp_leverage(None) == 0.0
        assert clamp_leverage(-10) == 0.0
        assert clamp_leverage(40) == pytest.approx(0.40)
        assert clamp_leverage(120) == pytest.approx(0.95)

    def test_debt_to_equity(self):
        assert compute_debt_to_equity(0.0) == 0.0
        assert compute_debt_to_equity(0.5) == pytest.approx(1.0)
        assert compute_debt_to_equity(0.95) == pytest.approx(19.0)
        assert compute_debt_to_equity(1.0) == 99.0

    def test_hamada(self):
        assert compute_levered_beta(1.0, 0.25, 1.0) == pytest.approx(1.75)
        assert compute_levered_beta(0.8, 0.0, 0.0) == pytest.approx(0.8)

    def test_capm_and_weighting(self):
        assert compute_cost_of_equity(0.03, 1.2, 0.05) == pytest.approx(0.09)
        assert compute_wacc(0.10, 0.04, 0.25) == pytest.approx(0.085)


# ============================================================================
# Projection tests
# ============================================================================

class TestProjections:
    def test_revenue_from_growth(self, base_inputs):
        revenue = compute_revenue(base_inputs, 3)

        assert revenue[0] == pytest.approx(105_000_000)
        assert revenue[1] == pytest.approx(110_250_000)
        assert revenue[2] == pytest.approx(115_762_500)

    def test_revenue_plan_used_when_long_enough(self, base_inputs):
        inputs = base_inputs.model_copy(update={"revenue_plan": [1.0, math.nan, 3.0]})
        assert compute_revenue(inputs, 3) == [1.0, 0.0, 3.0]

    def test_short_revenue_plan_ignored(self, base_inputs):
        inputs = base_inputs.model_copy(update={"revenue_plan": [1.0, 2.0]})
        assert compute_revenue(inputs, 3)[0] == pytest.approx(105_000_000)

    def test_plan_precedence_per_year(self, base_inputs):
        inputs = base_inputs.model_copy(update={
            "ebit_margin_plan": [20, None],
            "capex_plan": [1_000_000],
            "da_pct_of_revenue": 2,
        })
        drivers = normalize_drivers(inputs, 3)

        assert drivers.margin == pytest.approx([0.20, 0.15, 0.15])
        assert drivers.capex[0] == 1_000_000
        assert drivers.capex[1] == pytest.approx(110_250_000 * 0.04)
        assert drivers.da[2] == pytest.approx(115_762_500 * 0.02)

    def test_ebit_and_ebitda(self, base_inputs):
        drivers = normalize_drivers(base_inputs.model_copy(update={"da_pct_of_revenue": 3}), 1)
        ebit = compute_ebit(drivers)

        assert ebit[0] == pytest.approx(15_750_000)
        assert compute_ebitda(ebit, drivers.da)[0] == pytest.approx(18_900_000)


# ============================================================================
# Working capital tests
# ============================================================================

class TestWorkingCapital:
    def test_percent_of_revenue_delta(self):
        delta = compute_delta_nwc_percent([110.0, 121.0], 100.0, 0.10)
        assert delta == pytest.approx([1.0, 1.1])

    def test_nwc_level(self):
        # 365-day conventions make each day count a direct fraction of a year
        level = compute_nwc_level(365.0, 200.0, dso=36.5, dpo=73.0, dsi=18.25)
        assert level == pytest.approx(36.5 + 10.0 - 40.0)

    def test_days_policy_requires_all_counts(self, base_inputs):
        inputs = base_inputs.model_copy(update={
            "wc_policy": WorkingCapitalPolicy.DAYS, "dso": 30, "dpo": 30,
        })
        assert not uses_days_policy(inputs)
        assert uses_days_policy(inputs.model_copy(update={"dsi": 30}))

    def test_incomplete_days_falls_back_to_percent(self, base_inputs):
        inputs = base_inputs.model_copy(update={"wc_policy": WorkingCapitalPolicy.DAYS, "dso": 30})
        drivers = normalize_drivers(inputs, 2)
        delta = compute_delta_nwc(inputs, drivers, compute_ebit(drivers))

        assert delta[0] == pytest.approx(5_000_000 * 0.05)

    def test_days_policy_receivables_only(self, base_inputs):
        """With DSI = DPO the COGS terms cancel: dNWC = dRevenue * DSO / 365."""
        inputs = base_inputs.model_copy(update={
            "wc_policy": WorkingCapitalPolicy.DAYS, "dso": 73, "dpo": 20, "dsi": 20,
        })
        drivers = normalize_drivers(inputs, 2)
        delta = compute_delta_nwc(inputs, drivers, compute_ebit(drivers))

        assert delta[0] == pytest.approx(5_000_000 * 0.2)
        assert delta[1] == pytest.approx(5_250_000 * 0.2)


# ============================================================================
# Cash flow tests
# ============================================================================

class TestCashFlows:
    def test_nopat(self):
        assert compute_nopat([100.0, -50.0], 0.25) == pytest.approx([75.0, -37.5])

    def test_fcf_signs(self):
        """FCF = NOPAT + D&A - Capex - dNWC"""
        fcf = compute_fcf([75.0, 75.0], [10.0, 10.0], [20.0, 20.0], [5.0, -5.0])
        assert fcf == pytest.approx([60.0, 70.0])


# ============================================================================
# Discounting tests
# ============================================================================

class TestDiscounting:
    def test_discount_factors(self):
        factors = compute_discount_factors(0.10, 3)

        assert factors[0] == pytest.approx(1 / 1.10)
        assert factors[1] == pytest.approx(1 / 1.21)
        assert factors[2] == pytest.approx(1 / 1.331)

    def test_pv_series_and_sum(self):
        pv = compute_pv_series([110.0, 121.0], compute_discount_factors(0.10, 2))

        assert pv == pytest.approx([100.0, 100.0])
        assert sum_pv(pv) == pytest.approx(200.0)


# ============================================================================
# Terminal value tests
# ============================================================================

class TestTerminalValue:
    def test_perpetuity(self):
        """TV = FCF * (1 + g) / (r - g)"""
        tv = compute_terminal_value_perpetuity(100.0, 0.09, 0.02)
        assert tv == pytest.approx(100.0 * 1.02 / 0.07)

    def test_exit_multiple(self):
        assert compute_terminal_value_exit_multiple(50.0, 8.0) == pytest.approx(400.0)

    def test_growth_below_rate_passes_through(self):
        assert resolve_terminal_growth(0.02, 0.09, clamp=False) == (0.02, False)

    def test_growth_at_rate_fails_without_clamp(self):
        with pytest.raises(InvalidTerminalGrowth):
            resolve_terminal_growth(0.09, 0.09, clamp=False)

    def test_growth_clamped_below_rate(self):
        growth, clamped = resolve_terminal_growth(0.12, 0.09, clamp=True)

        assert clamped is True
        assert growth == pytest.approx(0.089)


# ============================================================================
# Valuation bridge tests
# ============================================================================

class TestBridge:
    def test_enterprise_value(self):
        assert compute_enterprise_value(300.0, 700.0) == 1000.0

    def test_value_shares(self):
        assert compute_value_shares(1000.0, 300.0, 700.0) == pytest.approx((0.7, 0.3))
        assert compute_value_shares(0.0, 0.0, 0.0) == (0.0, 0.0)

    def test_full_bridge(self, base_inputs):
        inputs = base_inputs.model_copy(update={
            "minorities": 1_000_000,
            "associates": 2_000_000,
            "pensions": 3_000_000,
            "provisions": 4_000_000,
            "cash_adjustments": 5_000_000,
            "leases_capitalized": True,
            "lease_liability": 6_000_000,
        })
        equity, price, bridge = bridge_to_equity(inputs, 100_000_000)

        assert equity == pytest.approx(100e6 - 50e6 - 1e6 + 2e6 - 3e6 - 4e6 + 5e6 - 6e6)
        assert price == pytest.approx(equity / 10_000_000)
        assert [b.label for b in bridge] == [
            "EV", "- NetDebt", "- Minorities", "+ Associates",
            "- Pensions", "- Provisions", "+ CashAdjustments", "- LeaseLiability",
        ]
        assert bridge[-1].value == -6_000_000
        assert bridge[-1].active is True

    def test_lease_liability_ignored_when_not_capitalised(self, base_inputs):
        inputs = base_inputs.model_copy(update={"lease_liability": 6_000_000})
        equity, _, bridge = bridge_to_equity(inputs, 100_000_000)

        assert equity == pytest.approx(50_000_000)
        assert bridge[-1].label == "LeaseLiability (off)"
        assert bridge[-1].value == 0
        assert bridge[-1].active is False

    @pytest.mark.parametrize("shares", [0, -1, math.nan])
    def test_invalid_shares(self, base_inputs, shares):
        with pytest.raises(InvalidSharesOutstanding):
            bridge_to_equity(base_inputs.model_copy(update={"shares_out": shares}), 100.0)
