"""
Immutable record snapshots consumed by the analytics engine.

The storage adapter converts ORM rows into these before any computation, so
the engines never touch a session and never mutate source data.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from app.services.analytics_config import (
    DEFAULT_ALERT_THRESHOLD,
    DEFAULT_FORECAST_HORIZON_DAYS,
    DEFAULT_MONTHLY_BUDGET,
    DEFAULT_TIMEZONE,
    DEFAULT_TOP_PERFORMERS,
    MAX_FORECAST_HORIZON_DAYS,
    MIN_FORECAST_HORIZON_DAYS,
)


class DutyStatus(str, Enum):
    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class RateType(str, Enum):
    HOURLY = "HOURLY"
    FLAT = "FLAT"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class AdvisoryCategory(str, Enum):
    """Declaration order is the tie-break order for equal-impact advisories."""
    POST_EARLIER = "POST_EARLIER"
    BUDGET_REVIEW = "BUDGET_REVIEW"
    URGENT_RELIANCE = "URGENT_RELIANCE"
    STAFFING_GAP = "STAFFING_GAP"
    APPLICATION_BACKLOG = "APPLICATION_BACKLOG"
    PREFERRED_PERSONNEL = "PREFERRED_PERSONNEL"


def _finite_or(value, default: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else default


FILLED_STATUSES = frozenset({DutyStatus.FILLED, DutyStatus.COMPLETED})
CLOSED_STATUSES = frozenset({DutyStatus.COMPLETED, DutyStatus.CANCELLED})


@dataclass(frozen=True)
class Duty:
    id: str
    facility_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    rate: float
    status: DutyStatus
    created_at: datetime
    rate_type: RateType = RateType.FLAT
    specialty: str = "General"
    urgent: bool = False
    assigned_personnel_id: Optional[str] = None
    title: str = ""

    @property
    def hours(self) -> float:
        seconds = (self.scheduled_end - self.scheduled_start).total_seconds()
        return max(seconds, 0.0) / 3600.0

    @property
    def shift_cost(self) -> float:
        """What the facility pays for the shift: hourly rate × hours, or the flat rate."""
        rate = max(self.rate, 0.0)
        if self.rate_type == RateType.HOURLY:
            return rate * self.hours
        return rate


@dataclass(frozen=True)
class Application:
    id: str
    duty_id: str
    personnel_id: str
    status: ApplicationStatus
    created_at: datetime
    responded_at: Optional[datetime] = None

    @property
    def accepted_at(self) -> datetime:
        return self.responded_at or self.created_at


@dataclass(frozen=True)
class Earning:
    id: str
    personnel_id: str
    duty_id: str
    amount: float
    payment_status: PaymentStatus
    earned_on: datetime

    def __post_init__(self):
        if self.amount < 0:
            object.__setattr__(self, "amount", 0.0)


@dataclass(frozen=True)
class Personnel:
    id: str
    name: str = ""
    rating: float = 0.0
    experience_years: float = 0.0


@dataclass(frozen=True)
class FacilitySettings:
    """
    Read-only facility configuration, fetched once per report and passed
    explicitly to every engine.

    Out-of-range values are clamped on construction, never rejected:
      alert_threshold        -> [0, 1]
      forecast_horizon_days  -> [7, 90]
      top_performers_limit   -> >= 1
    A NaN or infinite threshold or budget falls back to its default. A
    negative monthly_budget is kept as-is here; BudgetEngine treats it as
    an invalid configuration.
    """
    facility_id: str
    monthly_budget: float = DEFAULT_MONTHLY_BUDGET
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    forecast_horizon_days: int = DEFAULT_FORECAST_HORIZON_DAYS
    timezone: str = DEFAULT_TIMEZONE
    top_performers_limit: int = DEFAULT_TOP_PERFORMERS
    advisories_enabled: dict = field(default_factory=dict)
    preferred_personnel: Tuple[str, ...] = ()

    def __post_init__(self):
        threshold = _finite_or(self.alert_threshold, DEFAULT_ALERT_THRESHOLD)
        horizon = min(max(int(self.forecast_horizon_days), MIN_FORECAST_HORIZON_DAYS), MAX_FORECAST_HORIZON_DAYS)
        object.__setattr__(self, "monthly_budget", _finite_or(self.monthly_budget, DEFAULT_MONTHLY_BUDGET))
        object.__setattr__(self, "alert_threshold", min(max(threshold, 0.0), 1.0))
        object.__setattr__(self, "forecast_horizon_days", horizon)
        object.__setattr__(self, "top_performers_limit", max(int(self.top_performers_limit), 1))
        object.__setattr__(self, "timezone", self.timezone or DEFAULT_TIMEZONE)
        # Duplicates and blanks dropped, first-listed order kept
        preferred = tuple(dict.fromkeys(str(p) for p in self.preferred_personnel if p))
        object.__setattr__(self, "preferred_personnel", preferred)

    def advisory_enabled(self, category: AdvisoryCategory) -> bool:
        return bool(self.advisories_enabled.get(category.value, True))
