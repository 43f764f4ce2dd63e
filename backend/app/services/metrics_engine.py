"""
Metrics Aggregator — point-in-time and trailing-window operational metrics.

One code path (`aggregate`) computes every window figure; the trend is just
that function invoked once per calendar month, so the monthly numbers can
never drift from the headline numbers.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

from app.models.records import (
    Application,
    ApplicationStatus,
    Duty,
    DutyStatus,
    FILLED_STATUSES,
    PaymentStatus,
)
from app.services.perf_monitor import timed
from app.services.record_reader import WindowRecords

logger = logging.getLogger("staffing-metrics")

SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class ApplicationStats:
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    withdrawn: int = 0


@dataclass(frozen=True)
class TrendPoint:
    month: str              # "YYYY-MM" in the facility time zone
    duties_posted: int
    fill_rate: float
    spend: float


@dataclass(frozen=True)
class WindowMetrics:
    duties_posted: int = 0
    open_duties: int = 0
    filled_duties: int = 0          # FILLED or COMPLETED
    cancelled_duties: int = 0
    fill_rate: float = 0.0
    avg_time_to_fill_hours: Optional[float] = None
    total_spend: float = 0.0        # PAID only
    committed_spend: float = 0.0    # PAID + PENDING
    overdue_spend: float = 0.0
    avg_shift_cost: float = 0.0
    urgent_count: int = 0
    urgent_avg_cost: float = 0.0
    non_urgent_count: int = 0
    non_urgent_avg_cost: float = 0.0
    applications: ApplicationStats = field(default_factory=ApplicationStats)
    trend: tuple = ()

    @property
    def urgent_share(self) -> float:
        return self.urgent_count / self.duties_posted if self.duties_posted else 0.0


def _mean(values: List[float]) -> float:
    return math.fsum(values) / len(values) if values else 0.0


def accepted_by_duty(applications: Iterable[Application]) -> Dict[str, Application]:
    """
    Map duty id -> its authoritative ACCEPTED application.

    At most one acceptance per duty is expected upstream. If several exist,
    the earliest acceptance (then lowest id) wins and the rest are ignored.
    """
    chosen: Dict[str, Application] = {}
    for app in applications:
        if app.status != ApplicationStatus.ACCEPTED:
            continue
        current = chosen.get(app.duty_id)
        if current is None:
            chosen[app.duty_id] = app
            continue
        logger.warning(f"Duty {app.duty_id} has more than one ACCEPTED application ({current.id}, {app.id})")
        if (app.accepted_at, app.id) < (current.accepted_at, current.id):
            chosen[app.duty_id] = app
    return chosen


class MetricsEngine:
    """Computes window metrics from in-window duties, applications and earnings."""

    @timed
    def aggregate(self, records: WindowRecords) -> WindowMetrics:
        duties = [d for d in records.duties if records.window.contains(d.created_at)]
        duties_posted = len(duties)

        filled = [d for d in duties if d.status in FILLED_STATUSES]
        open_count = sum(1 for d in duties if d.status == DutyStatus.OPEN)
        cancelled_count = sum(1 for d in duties if d.status == DutyStatus.CANCELLED)
        fill_rate = len(filled) / duties_posted if duties_posted else 0.0

        total_spend, committed_spend, overdue_spend = self._spend(records)
        urgent = [d.shift_cost for d in duties if d.urgent]
        non_urgent = [d.shift_cost for d in duties if not d.urgent]

        return WindowMetrics(
            duties_posted=duties_posted,
            open_duties=open_count,
            filled_duties=len(filled),
            cancelled_duties=cancelled_count,
            fill_rate=fill_rate,
            avg_time_to_fill_hours=self._avg_time_to_fill(filled, records.applications),
            total_spend=total_spend,
            committed_spend=committed_spend,
            overdue_spend=overdue_spend,
            avg_shift_cost=round(_mean([d.shift_cost for d in duties]), 2),
            urgent_count=len(urgent),
            urgent_avg_cost=round(_mean(urgent), 2),
            non_urgent_count=len(non_urgent),
            non_urgent_avg_cost=round(_mean(non_urgent), 2),
            applications=self._application_stats(duties, records.applications),
        )

    def trend(self, months: Iterable[WindowRecords]) -> List[TrendPoint]:
        """One point per month window, in the order given (oldest first)."""
        points = []
        for month in months:
            m = self.aggregate(month)
            points.append(TrendPoint(
                month=month.window.label,
                duties_posted=m.duties_posted,
                fill_rate=m.fill_rate,
                spend=m.total_spend,
            ))
        return points

    def aggregate_with_trend(self, current: WindowRecords, months: Iterable[WindowRecords]) -> WindowMetrics:
        metrics = self.aggregate(current)
        return replace(metrics, trend=tuple(self.trend(months)))

    # ─── Internals ────────────────────────────────────────────────────────────

    @staticmethod
    def _avg_time_to_fill(filled: List[Duty], applications: Iterable[Application]) -> Optional[float]:
        accepted = accepted_by_duty(applications)
        hours = []
        for duty in filled:
            app = accepted.get(duty.id)
            if app is None:
                continue  # no matching acceptance: excluded, not zero
            delta = (app.accepted_at - duty.created_at).total_seconds() / SECONDS_PER_HOUR
            hours.append(max(delta, 0.0))
        if not hours:
            return None
        return round(_mean(hours), 2)

    @staticmethod
    def _spend(records: WindowRecords):
        paid, pending, overdue = [], [], []
        for earning in records.earnings:
            if not records.window.contains(earning.earned_on):
                continue
            if earning.payment_status == PaymentStatus.PAID:
                paid.append(earning.amount)
            elif earning.payment_status == PaymentStatus.PENDING:
                pending.append(earning.amount)
            else:
                overdue.append(earning.amount)
        total = round(math.fsum(paid), 2)
        committed = round(math.fsum(paid + pending), 2)
        return total, committed, round(math.fsum(overdue), 2)

    @staticmethod
    def _application_stats(duties: List[Duty], applications: Iterable[Application]) -> ApplicationStats:
        duty_ids = {d.id for d in duties}
        counts = {status: 0 for status in ApplicationStatus}
        total = 0
        for app in applications:
            if app.duty_id not in duty_ids:
                continue
            total += 1
            counts[app.status] += 1
        return ApplicationStats(
            total=total,
            pending=counts[ApplicationStatus.PENDING],
            accepted=counts[ApplicationStatus.ACCEPTED],
            rejected=counts[ApplicationStatus.REJECTED],
            withdrawn=counts[ApplicationStatus.WITHDRAWN],
        )
