"""
Cost Optimization Advisor — rule-based savings suggestions.

Each rule is an independent pure function of one AdvisoryContext and returns
an Advisory or None. New rules are added by appending to ADVISORY_RULES;
nothing branches inside a monolithic evaluator.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from app.models.records import (
    AdvisoryCategory,
    Application,
    ApplicationStatus,
    FacilitySettings,
)
from app.services.analytics_config import (
    APPLICATION_BACKLOG_PENDING,
    BUDGET_REVIEW_LISTED_SHIFTS,
    POST_EARLIER_FILL_RATE,
    POST_EARLIER_HOURS,
    POST_EARLIER_SAVINGS_PCT,
    PREFERRED_PERSONNEL_MIN,
    PREFERRED_PERSONNEL_SAVINGS_PCT,
    STAFFING_GAP_SHIFTS,
    URGENT_PREMIUM_THRESHOLD,
    URGENT_SHARE_THRESHOLD,
)
from app.services.budget_engine import BudgetStatus, BudgetSummary
from app.services.forecast_engine import StaffingForecast
from app.services.metrics_engine import WindowMetrics
from app.services.performer_ranker import PerformerRanking

logger = logging.getLogger("staffing-advisor")

_CATEGORY_ORDER = {category: i for i, category in enumerate(AdvisoryCategory)}


@dataclass(frozen=True)
class Advisory:
    category: AdvisoryCategory
    message: str
    estimated_impact: float = 0.0   # currency units; 0 when not computable
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AdvisoryContext:
    metrics: WindowMetrics
    budget: BudgetSummary
    forecast: StaffingForecast
    pending_applications: int = 0   # in-window + upcoming, awaiting review
    preferred_personnel: Tuple[str, ...] = ()
    top_performer_ids: Tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        metrics: WindowMetrics,
        budget: BudgetSummary,
        forecast: StaffingForecast,
        upcoming_applications: Iterable[Application] = (),
        settings: Optional[FacilitySettings] = None,
        ranking: Optional[PerformerRanking] = None,
    ) -> "AdvisoryContext":
        upcoming_pending = sum(1 for a in upcoming_applications if a.status == ApplicationStatus.PENDING)
        return cls(
            metrics=metrics,
            budget=budget,
            forecast=forecast,
            pending_applications=metrics.applications.pending + upcoming_pending,
            preferred_personnel=settings.preferred_personnel if settings else (),
            top_performer_ids=tuple(p.personnel_id for p in ranking.top_performers) if ranking else (),
        )


# ─── Rules ────────────────────────────────────────────────────────────────────

def post_shifts_earlier(ctx: AdvisoryContext) -> Optional[Advisory]:
    m = ctx.metrics
    hours = m.avg_time_to_fill_hours or 0.0
    if not (m.fill_rate < POST_EARLIER_FILL_RATE and hours > POST_EARLIER_HOURS):
        return None
    uplift = round(POST_EARLIER_FILL_RATE - m.fill_rate, 4)
    impact = round(m.avg_shift_cost * POST_EARLIER_SAVINGS_PCT * m.open_duties, 2)
    return Advisory(
        category=AdvisoryCategory.POST_EARLIER,
        message=(
            f"Post shifts earlier: duties take {hours:.0f}h on average to fill and only "
            f"{m.fill_rate:.0%} get filled. Posting earlier could lift the fill rate by about {uplift:.0%}."
        ),
        estimated_impact=impact,
        details={
            "fill_rate": m.fill_rate,
            "avg_time_to_fill_hours": hours,
            "estimated_fill_rate_uplift": uplift,
            "open_duties": m.open_duties,
        },
    )


def review_high_rate_shifts(ctx: AdvisoryContext) -> Optional[Advisory]:
    b = ctx.budget
    if b.status not in (BudgetStatus.OVER, BudgetStatus.NEAR):
        return None
    listed = sorted(ctx.forecast.open_shifts, key=lambda s: (-s.shift_cost, s.duty_id))[:BUDGET_REVIEW_LISTED_SHIFTS]
    baseline = ctx.metrics.avg_shift_cost
    impact = round(sum(max(s.shift_cost - baseline, 0.0) for s in listed), 2) if baseline > 0 else 0.0
    return Advisory(
        category=AdvisoryCategory.BUDGET_REVIEW,
        message=(
            f"Budget {b.status.value}: {b.percent_used:.0%} of the monthly budget is used. "
            f"Review {len(listed)} upcoming unfilled high-rate shift(s) for cost reduction."
        ),
        estimated_impact=impact,
        details={
            "percent_used": b.percent_used,
            "remaining": b.remaining,
            "shifts": [
                {
                    "duty_id": s.duty_id,
                    "title": s.title,
                    "scheduled_start": s.scheduled_start.isoformat(),
                    "shift_cost": s.shift_cost,
                }
                for s in listed
            ],
        },
    )


def reduce_urgent_postings(ctx: AdvisoryContext) -> Optional[Advisory]:
    m = ctx.metrics
    if m.duties_posted == 0 or m.non_urgent_count == 0 or m.non_urgent_avg_cost <= 0:
        return None
    premium = (m.urgent_avg_cost - m.non_urgent_avg_cost) / m.non_urgent_avg_cost
    if not (m.urgent_share > URGENT_SHARE_THRESHOLD and premium > URGENT_PREMIUM_THRESHOLD):
        return None
    savings = round((m.urgent_avg_cost - m.non_urgent_avg_cost) * m.urgent_count, 2)
    return Advisory(
        category=AdvisoryCategory.URGENT_RELIANCE,
        message=(
            f"Reduce reliance on urgent postings: {m.urgent_share:.0%} of duties were urgent, "
            f"costing {premium:.0%} more per shift than regular postings."
        ),
        estimated_impact=savings,
        details={
            "urgent_share": m.urgent_share,
            "urgent_count": m.urgent_count,
            "urgent_avg_cost": m.urgent_avg_cost,
            "non_urgent_avg_cost": m.non_urgent_avg_cost,
            "rate_premium": round(premium, 4),
        },
    )


def close_staffing_gap(ctx: AdvisoryContext) -> Optional[Advisory]:
    f = ctx.forecast
    if f.unfilled_upcoming <= STAFFING_GAP_SHIFTS:
        return None
    return Advisory(
        category=AdvisoryCategory.STAFFING_GAP,
        message=(
            f"{f.unfilled_upcoming} shifts in the next {f.horizon_days} days are unfilled. "
            f"Contact preferred personnel or increase visibility."
        ),
        details={"unfilled_upcoming": f.unfilled_upcoming, "alert_level": f.alert_level.value},
    )


def clear_application_backlog(ctx: AdvisoryContext) -> Optional[Advisory]:
    if ctx.pending_applications <= APPLICATION_BACKLOG_PENDING:
        return None
    return Advisory(
        category=AdvisoryCategory.APPLICATION_BACKLOG,
        message=f"{ctx.pending_applications} applications are waiting for review. Respond quickly to keep applicants.",
        details={"pending_applications": ctx.pending_applications},
    )


def grow_preferred_list(ctx: AdvisoryContext) -> Optional[Advisory]:
    m = ctx.metrics
    listed = len(ctx.preferred_personnel)
    if m.duties_posted == 0 or listed >= PREFERRED_PERSONNEL_MIN:
        return None
    suggested = [pid for pid in ctx.top_performer_ids if pid not in ctx.preferred_personnel]
    return Advisory(
        category=AdvisoryCategory.PREFERRED_PERSONNEL,
        message=(
            f"Only {listed} preferred personnel listed. Add high performers to the preferred list "
            f"so shifts are offered to them first and fill faster."
        ),
        estimated_impact=round(m.avg_shift_cost * PREFERRED_PERSONNEL_SAVINGS_PCT, 2),
        details={"preferred_count": listed, "suggested_personnel": suggested},
    )


AdvisoryRule = Callable[[AdvisoryContext], Optional[Advisory]]

ADVISORY_RULES: Tuple[Tuple[AdvisoryCategory, AdvisoryRule], ...] = (
    (AdvisoryCategory.POST_EARLIER, post_shifts_earlier),
    (AdvisoryCategory.BUDGET_REVIEW, review_high_rate_shifts),
    (AdvisoryCategory.URGENT_RELIANCE, reduce_urgent_postings),
    (AdvisoryCategory.STAFFING_GAP, close_staffing_gap),
    (AdvisoryCategory.APPLICATION_BACKLOG, clear_application_backlog),
    (AdvisoryCategory.PREFERRED_PERSONNEL, grow_preferred_list),
)


class CostAdvisor:
    """Runs every enabled rule and orders what fired."""

    def __init__(self, rules: Sequence[Tuple[AdvisoryCategory, AdvisoryRule]] = ADVISORY_RULES):
        self.rules = tuple(rules)

    def evaluate(self, ctx: AdvisoryContext, settings: FacilitySettings) -> List[Advisory]:
        advisories = []
        for category, rule in self.rules:
            if not settings.advisory_enabled(category):
                continue
            advisory = rule(ctx)
            if advisory is not None:
                advisories.append(advisory)

        # Most financially impactful first; equal impact falls back to category order
        advisories.sort(key=lambda a: (-a.estimated_impact, _CATEGORY_ORDER[a.category]))

        total = sum(a.estimated_impact for a in advisories)
        logger.info(f"Advisor: {len(advisories)} advisories, {total:,.2f} estimated impact")
        return advisories
