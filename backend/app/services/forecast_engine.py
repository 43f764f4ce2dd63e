"""
Forecast Engine — staffing gaps over the look-ahead horizon.

Purely count-based: it only looks at duties already scheduled inside the
horizon and how many of them are still OPEN. There is no demand
extrapolation; facility-scoped posting history is too sparse for it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Tuple

from app.models.records import CLOSED_STATUSES, Duty, DutyStatus
from app.services.analytics_config import CRITICAL_GAP_RATIO

logger = logging.getLogger("staffing-forecast")


class AlertLevel(str, Enum):
    NONE = "NONE"
    ELEVATED = "ELEVATED"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class OpenShift:
    duty_id: str
    title: str
    specialty: str
    scheduled_start: datetime
    shift_cost: float
    urgent: bool


@dataclass(frozen=True)
class StaffingForecast:
    horizon_days: int
    upcoming_shifts: int
    unfilled_upcoming: int
    staffing_gap_ratio: float
    alert_level: AlertLevel
    open_shifts: Tuple[OpenShift, ...] = ()


class ForecastEngine:

    def project(self, upcoming_duties: Iterable[Duty], horizon_days: int) -> StaffingForecast:
        live = [d for d in upcoming_duties if d.status not in CLOSED_STATUSES]
        open_duties = sorted(
            (d for d in live if d.status == DutyStatus.OPEN),
            key=lambda d: (d.scheduled_start, d.id),
        )
        upcoming = len(live)
        unfilled = len(open_duties)
        ratio = unfilled / upcoming if upcoming else 0.0
        level = self.alert_level(ratio)

        if level != AlertLevel.NONE:
            logger.info(f"Staffing gap {unfilled}/{upcoming} over next {horizon_days} days → {level.value}")

        return StaffingForecast(
            horizon_days=horizon_days,
            upcoming_shifts=upcoming,
            unfilled_upcoming=unfilled,
            staffing_gap_ratio=ratio,
            alert_level=level,
            open_shifts=tuple(
                OpenShift(
                    duty_id=d.id,
                    title=d.title,
                    specialty=d.specialty,
                    scheduled_start=d.scheduled_start,
                    shift_cost=round(d.shift_cost, 2),
                    urgent=d.urgent,
                )
                for d in open_duties
            ),
        )

    @staticmethod
    def alert_level(ratio: float) -> AlertLevel:
        if ratio <= 0:
            return AlertLevel.NONE
        if ratio >= CRITICAL_GAP_RATIO:
            return AlertLevel.CRITICAL
        return AlertLevel.ELEVATED
