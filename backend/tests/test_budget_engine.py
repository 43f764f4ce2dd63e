"""
test_budget_engine.py — Unit tests for BudgetEngine.

Tests cover:
  - classify: UNDER / NEAR / OVER boundaries (threshold and 100% inclusive)
  - evaluate: remaining, percent used, zero budget, over-spend
  - Invalid configuration: negative budget forced to OVER
  - Settings clamping: threshold outside [0, 1], NaN or infinite values

All tests are pure unit tests; no database or external services required.
"""

import pytest

from app.services.budget_engine import BudgetEngine, BudgetStatus


# ===========================================================================
# Class 1: Status boundaries
# ===========================================================================

class TestClassify:
    """Boundaries lean to the stricter state."""

    @pytest.mark.parametrize("percent_used,expected", [
        (0.0, BudgetStatus.UNDER),
        (0.79, BudgetStatus.UNDER),
        (0.80, BudgetStatus.NEAR),
        (0.95, BudgetStatus.NEAR),
        (1.00, BudgetStatus.OVER),
        (1.40, BudgetStatus.OVER),
    ])
    def test_boundaries_at_default_threshold(self, percent_used, expected):
        assert BudgetEngine.classify(percent_used, 0.80) == expected

    def test_threshold_one_goes_straight_from_under_to_over(self):
        assert BudgetEngine.classify(0.999, 1.0) == BudgetStatus.UNDER
        assert BudgetEngine.classify(1.0, 1.0) == BudgetStatus.OVER

    def test_threshold_zero_is_near_from_the_start(self):
        assert BudgetEngine.classify(0.0, 0.0) == BudgetStatus.NEAR


# ===========================================================================
# Class 2: evaluate
# ===========================================================================

class TestEvaluate:
    """Spend against the configured monthly budget."""

    def test_ninety_percent_used_is_near(self, budget_engine, make_settings):
        """budget 100000, spent 90000, threshold 0.8 → NEAR at 0.9."""
        summary = budget_engine.evaluate(90000.0, make_settings(monthly_budget=100000.0, alert_threshold=0.8))
        assert abs(summary.percent_used - 0.9) < 1e-9
        assert summary.status == BudgetStatus.NEAR
        assert summary.remaining == 10000.0
        assert summary.configuration_valid is True

    def test_exactly_at_budget_is_over(self, budget_engine, make_settings):
        summary = budget_engine.evaluate(5000.0, make_settings(monthly_budget=5000.0))
        assert summary.status == BudgetStatus.OVER
        assert summary.remaining == 0.0

    def test_overspend_gives_negative_remaining(self, budget_engine, make_settings):
        summary = budget_engine.evaluate(6000.0, make_settings(monthly_budget=5000.0))
        assert summary.status == BudgetStatus.OVER
        assert summary.remaining == -1000.0
        assert abs(summary.percent_used - 1.2) < 1e-9

    def test_zero_budget_reports_zero_percent(self, budget_engine, make_settings):
        """A configured budget of 0 is valid; percent used is 0, not a division error."""
        summary = budget_engine.evaluate(1200.0, make_settings(monthly_budget=0.0))
        assert summary.percent_used == 0.0
        assert summary.configuration_valid is True
        assert summary.status == BudgetStatus.UNDER

    def test_no_spend_depends_only_on_threshold(self, budget_engine, make_settings):
        assert budget_engine.evaluate(0.0, make_settings(monthly_budget=1000.0)).status == BudgetStatus.UNDER
        assert budget_engine.evaluate(
            0.0, make_settings(monthly_budget=1000.0, alert_threshold=0.0)
        ).status == BudgetStatus.NEAR


# ===========================================================================
# Class 3: Invalid configuration
# ===========================================================================

class TestInvalidConfiguration:

    def test_negative_budget_forces_over(self, budget_engine, make_settings):
        summary = budget_engine.evaluate(0.0, make_settings(monthly_budget=-500.0))
        assert summary.status == BudgetStatus.OVER
        assert summary.monthly_budget == 0.0
        assert summary.configuration_valid is False

    def test_threshold_above_one_is_clamped(self, budget_engine, make_settings):
        settings = make_settings(monthly_budget=1000.0, alert_threshold=1.7)
        assert settings.alert_threshold == 1.0
        assert budget_engine.evaluate(950.0, settings).status == BudgetStatus.UNDER

    def test_negative_threshold_is_clamped_to_zero(self, make_settings):
        assert make_settings(alert_threshold=-0.3).alert_threshold == 0.0

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_threshold_falls_back_to_default(self, budget_engine, make_settings, bad):
        settings = make_settings(monthly_budget=100.0, alert_threshold=bad)
        assert settings.alert_threshold == 0.8
        assert budget_engine.evaluate(99.0, settings).status == BudgetStatus.NEAR

    def test_nan_budget_falls_back_to_default(self, make_settings):
        assert make_settings(monthly_budget=float("nan")).monthly_budget == 0.0
