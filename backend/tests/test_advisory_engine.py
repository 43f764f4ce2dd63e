"""
test_advisory_engine.py — Unit tests for the cost optimization rules and CostAdvisor.

Tests cover:
  - post_shifts_earlier: fill rate / time-to-fill trigger, estimated savings
  - review_high_rate_shifts: NEAR/OVER budget, top-3 listing, impact vs. average
  - reduce_urgent_postings: urgent share and rate premium thresholds
  - close_staffing_gap / clear_application_backlog: count triggers
  - grow_preferred_list: short preferred list, suggestions from top performers
  - CostAdvisor: per-facility disabling, impact ordering, category tie-break
  - Empty context produces no advisories

All tests are pure unit tests; no database or external services required.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models.records import AdvisoryCategory, ApplicationStatus
from app.services.advisory_engine import (
    AdvisoryContext,
    CostAdvisor,
    clear_application_backlog,
    close_staffing_gap,
    grow_preferred_list,
    post_shifts_earlier,
    reduce_urgent_postings,
    review_high_rate_shifts,
)
from app.services.budget_engine import BudgetStatus, BudgetSummary
from app.services.forecast_engine import AlertLevel, OpenShift, StaffingForecast
from app.services.metrics_engine import ApplicationStats, WindowMetrics
from app.services.performer_ranker import PerformerRanking, QualitySummary, RankedPerformer

SHIFT_START = datetime(2026, 11, 3, 8, 0, tzinfo=timezone.utc)


def _budget(status=BudgetStatus.UNDER, percent_used=0.1):
    return BudgetSummary(
        monthly_budget=100000.0,
        alert_threshold=0.8,
        spent=percent_used * 100000.0,
        remaining=round(100000.0 * (1 - percent_used), 2),
        percent_used=percent_used,
        status=status,
    )


def _forecast(costs=(), filled=0):
    shifts = tuple(
        OpenShift(duty_id=f"U{i}", title=f"Shift {i}", specialty="ICU",
                  scheduled_start=SHIFT_START + timedelta(days=i), shift_cost=c, urgent=False)
        for i, c in enumerate(costs)
    )
    upcoming = len(shifts) + filled
    ratio = len(shifts) / upcoming if upcoming else 0.0
    level = AlertLevel.NONE if not shifts else (AlertLevel.CRITICAL if ratio >= 0.5 else AlertLevel.ELEVATED)
    return StaffingForecast(
        horizon_days=14,
        upcoming_shifts=upcoming,
        unfilled_upcoming=len(shifts),
        staffing_gap_ratio=ratio,
        alert_level=level,
        open_shifts=shifts,
    )


def _ctx(metrics=None, budget=None, forecast=None, pending=0, preferred=("P1", "P2", "P3", "P4", "P5")):
    return AdvisoryContext(
        metrics=metrics or WindowMetrics(),
        budget=budget or _budget(),
        forecast=forecast or _forecast(),
        pending_applications=pending,
        preferred_personnel=tuple(preferred),
    )


# ===========================================================================
# Class 1: POST_EARLIER
# ===========================================================================

class TestPostShiftsEarlier:

    def test_does_not_fire_at_thirty_hours(self):
        """fill rate 0.7, 30h to fill → no advisory (needs < 0.7 AND > 48h)."""
        m = WindowMetrics(duties_posted=10, filled_duties=7, open_duties=3, fill_rate=0.7,
                          avg_time_to_fill_hours=30.0, avg_shift_cost=1000.0)
        assert post_shifts_earlier(_ctx(m)) is None

    def test_slow_fill_with_good_fill_rate_does_not_fire(self):
        m = WindowMetrics(fill_rate=0.9, avg_time_to_fill_hours=72.0)
        assert post_shifts_earlier(_ctx(m)) is None

    def test_fires_on_low_fill_rate_and_slow_fill(self):
        m = WindowMetrics(duties_posted=10, filled_duties=5, open_duties=5, fill_rate=0.5,
                          avg_time_to_fill_hours=60.0, avg_shift_cost=1200.0)
        advisory = post_shifts_earlier(_ctx(m))
        assert advisory.category == AdvisoryCategory.POST_EARLIER
        # 10% of average shift cost per open duty
        assert advisory.estimated_impact == 600.0
        assert abs(advisory.details["estimated_fill_rate_uplift"] - 0.2) < 1e-9

    def test_missing_time_to_fill_does_not_fire(self):
        m = WindowMetrics(fill_rate=0.2, avg_time_to_fill_hours=None)
        assert post_shifts_earlier(_ctx(m)) is None


# ===========================================================================
# Class 2: BUDGET_REVIEW
# ===========================================================================

class TestReviewHighRateShifts:

    def test_under_budget_does_not_fire(self):
        assert review_high_rate_shifts(_ctx(forecast=_forecast([2000.0]))) is None

    @pytest.mark.parametrize("status", [BudgetStatus.NEAR, BudgetStatus.OVER])
    def test_near_or_over_fires(self, status):
        advisory = review_high_rate_shifts(_ctx(budget=_budget(status, 0.9), forecast=_forecast([2000.0])))
        assert advisory.category == AdvisoryCategory.BUDGET_REVIEW

    def test_lists_three_most_expensive_open_shifts(self):
        costs = [900.0, 2500.0, 1800.0, 3000.0, 1200.0]
        m = WindowMetrics(avg_shift_cost=1500.0)
        advisory = review_high_rate_shifts(_ctx(m, _budget(BudgetStatus.NEAR, 0.85), _forecast(costs)))
        listed = [s["shift_cost"] for s in advisory.details["shifts"]]
        assert listed == [3000.0, 2500.0, 1800.0]
        # (3000-1500) + (2500-1500) + (1800-1500)
        assert advisory.estimated_impact == 2800.0

    def test_impact_zero_without_baseline(self):
        advisory = review_high_rate_shifts(_ctx(budget=_budget(BudgetStatus.OVER, 1.2), forecast=_forecast([2000.0])))
        assert advisory.estimated_impact == 0.0

    def test_fires_with_no_open_shifts(self):
        advisory = review_high_rate_shifts(_ctx(budget=_budget(BudgetStatus.OVER, 1.1)))
        assert advisory.details["shifts"] == []


# ===========================================================================
# Class 3: URGENT_RELIANCE
# ===========================================================================

class TestReduceUrgentPostings:

    def test_fires_on_high_share_and_premium(self):
        """4 of 10 urgent at 1500 vs 1000 regular → 40% share, 50% premium."""
        m = WindowMetrics(duties_posted=10, urgent_count=4, urgent_avg_cost=1500.0,
                          non_urgent_count=6, non_urgent_avg_cost=1000.0)
        advisory = reduce_urgent_postings(_ctx(m))
        assert advisory.category == AdvisoryCategory.URGENT_RELIANCE
        assert advisory.estimated_impact == 2000.0
        assert abs(advisory.details["rate_premium"] - 0.5) < 1e-9

    def test_low_share_does_not_fire(self):
        m = WindowMetrics(duties_posted=10, urgent_count=2, urgent_avg_cost=2000.0,
                          non_urgent_count=8, non_urgent_avg_cost=1000.0)
        assert reduce_urgent_postings(_ctx(m)) is None

    def test_small_premium_does_not_fire(self):
        m = WindowMetrics(duties_posted=10, urgent_count=5, urgent_avg_cost=1100.0,
                          non_urgent_count=5, non_urgent_avg_cost=1000.0)
        assert reduce_urgent_postings(_ctx(m)) is None

    def test_all_urgent_has_no_baseline(self):
        m = WindowMetrics(duties_posted=3, urgent_count=3, urgent_avg_cost=2000.0)
        assert reduce_urgent_postings(_ctx(m)) is None


# ===========================================================================
# Class 4: STAFFING_GAP / APPLICATION_BACKLOG
# ===========================================================================

class TestCountRules:

    def test_staffing_gap_needs_more_than_three(self):
        assert close_staffing_gap(_ctx(forecast=_forecast([100.0] * 3))) is None
        advisory = close_staffing_gap(_ctx(forecast=_forecast([100.0] * 4)))
        assert advisory.category == AdvisoryCategory.STAFFING_GAP
        assert advisory.estimated_impact == 0.0

    def test_backlog_needs_more_than_five(self):
        assert clear_application_backlog(_ctx(pending=5)) is None
        assert clear_application_backlog(_ctx(pending=6)).category == AdvisoryCategory.APPLICATION_BACKLOG

    def test_build_counts_window_and_upcoming_pending(self, make_application):
        m = WindowMetrics(applications=ApplicationStats(total=4, pending=4))
        upcoming = [
            make_application("A1", "U1", status=ApplicationStatus.PENDING),
            make_application("A2", "U2", status=ApplicationStatus.PENDING),
            make_application("A3", "U3", status=ApplicationStatus.ACCEPTED),
        ]
        ctx = AdvisoryContext.build(m, _budget(), _forecast(), upcoming)
        assert ctx.pending_applications == 6


# ===========================================================================
# Class 5: PREFERRED_PERSONNEL
# ===========================================================================

def _ranking(*ids):
    performers = tuple(RankedPerformer(personnel_id=pid, name=pid, completed_count=5, rating=4.5) for pid in ids)
    quality = QualitySummary(avg_top_rating=4.5, repeat_hires=len(ids), total_personnel_hired=len(ids))
    return PerformerRanking(top_performers=performers, quality=quality)


class TestGrowPreferredList:

    ACTIVE = WindowMetrics(duties_posted=10, avg_shift_cost=1200.0)

    def test_fires_below_five_listed(self):
        advisory = grow_preferred_list(_ctx(self.ACTIVE, preferred=("P1", "P2")))
        assert advisory.category == AdvisoryCategory.PREFERRED_PERSONNEL
        assert advisory.estimated_impact == 180.0     # 15% of an average shift
        assert advisory.details["preferred_count"] == 2

    def test_five_listed_does_not_fire(self):
        assert grow_preferred_list(_ctx(self.ACTIVE)) is None

    def test_no_postings_does_not_fire(self):
        assert grow_preferred_list(_ctx(WindowMetrics(), preferred=())) is None

    def test_suggests_top_performers_not_yet_preferred(self, make_settings):
        settings = make_settings(preferred_personnel=("P2",))
        ctx = AdvisoryContext.build(self.ACTIVE, _budget(), _forecast(), settings=settings,
                                    ranking=_ranking("P3", "P2", "P1"))
        assert ctx.preferred_personnel == ("P2",)
        assert grow_preferred_list(ctx).details["suggested_personnel"] == ["P3", "P1"]

    def test_build_without_settings_counts_none_listed(self):
        ctx = AdvisoryContext.build(self.ACTIVE, _budget(), _forecast())
        assert ctx.preferred_personnel == ()
        assert ctx.top_performer_ids == ()


# ===========================================================================
# Class 6: CostAdvisor
# ===========================================================================

class TestCostAdvisor:

    def test_empty_context_gives_no_advisories(self, advisor, make_settings):
        assert advisor.evaluate(_ctx(), make_settings()) == []

    def test_ordered_by_impact_then_category(self, advisor, make_settings):
        m = WindowMetrics(duties_posted=10, open_duties=5, fill_rate=0.5, avg_time_to_fill_hours=60.0,
                          avg_shift_cost=1000.0, urgent_count=4, urgent_avg_cost=1500.0,
                          non_urgent_count=6, non_urgent_avg_cost=1000.0)
        ctx = _ctx(m, forecast=_forecast([100.0] * 4), pending=9, preferred=("P1",))
        categories = [a.category for a in advisor.evaluate(ctx, make_settings())]
        # URGENT_RELIANCE 2000 > POST_EARLIER 500 > PREFERRED_PERSONNEL 150 > zero-impact rules in declaration order
        assert categories == [
            AdvisoryCategory.URGENT_RELIANCE,
            AdvisoryCategory.POST_EARLIER,
            AdvisoryCategory.PREFERRED_PERSONNEL,
            AdvisoryCategory.STAFFING_GAP,
            AdvisoryCategory.APPLICATION_BACKLOG,
        ]

    def test_disabled_category_is_skipped(self, advisor, make_settings):
        ctx = _ctx(forecast=_forecast([100.0] * 4), pending=9)
        settings = make_settings(advisories_enabled={"STAFFING_GAP": False})
        categories = [a.category for a in advisor.evaluate(ctx, settings)]
        assert categories == [AdvisoryCategory.APPLICATION_BACKLOG]

    def test_custom_rule_set(self, make_settings):
        advisor = CostAdvisor(rules=[(AdvisoryCategory.APPLICATION_BACKLOG, clear_application_backlog)])
        ctx = _ctx(forecast=_forecast([100.0] * 4), pending=9)
        assert [a.category for a in advisor.evaluate(ctx, make_settings())] == [
            AdvisoryCategory.APPLICATION_BACKLOG
        ]
