"""
Analytics report contract.

GET /api/analytics/facilities/{facility_id}/report serializes AnalyticsReport.
Every block is populated from engine outputs via from_attributes; nothing
here computes a figure.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict

from app.models.records import AdvisoryCategory
from app.services.budget_engine import BudgetStatus
from app.services.forecast_engine import AlertLevel


class _FromEngine(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ReportWindowOut(_FromEngine):
    start: datetime
    end: datetime
    timezone: str = "UTC"


class TrendPointOut(_FromEngine):
    month: str                      # "YYYY-MM"
    duties_posted: int
    fill_rate: float                # 0–1
    spend: float                    # PAID only


class ApplicationStatsOut(_FromEngine):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    withdrawn: int = 0


class MetricsOut(_FromEngine):
    duties_posted: int
    open_duties: int
    filled_duties: int
    cancelled_duties: int
    fill_rate: float
    avg_time_to_fill_hours: Optional[float] = None   # null when no filled duty has an acceptance
    total_spend: float
    committed_spend: float
    overdue_spend: float
    avg_shift_cost: float
    urgent_count: int
    urgent_share: float
    applications: ApplicationStatsOut
    trend: List[TrendPointOut] = []


class BudgetOut(_FromEngine):
    monthly_budget: float
    alert_threshold: float
    spent: float
    remaining: float
    percent_used: float
    status: BudgetStatus
    configuration_valid: bool = True


class OpenShiftOut(_FromEngine):
    duty_id: str
    title: str = ""
    specialty: str = ""
    scheduled_start: datetime
    shift_cost: float
    urgent: bool = False


class ForecastOut(_FromEngine):
    horizon_days: int
    upcoming_shifts: int
    unfilled_upcoming: int
    staffing_gap_ratio: float
    alert_level: AlertLevel
    open_shifts: List[OpenShiftOut] = []


class PerformerOut(_FromEngine):
    personnel_id: str
    name: str = ""
    completed_count: int
    rating: float


class QualityOut(_FromEngine):
    avg_top_rating: float = 0.0
    repeat_hires: int = 0
    total_personnel_hired: int = 0


class AdvisoryOut(_FromEngine):
    category: AdvisoryCategory
    message: str
    estimated_impact: float = 0.0
    details: Dict[str, Any] = {}


class AnalyticsReport(BaseModel):
    """Versioned, non-persisted facility report; one per request."""
    facility_id: str
    generated_at: datetime
    report_version: str
    window: ReportWindowOut
    metrics: MetricsOut
    budget: BudgetOut
    forecast: ForecastOut
    top_performers: List[PerformerOut] = []
    quality: QualityOut
    advisories: List[AdvisoryOut] = []

    model_config = {"json_schema_extra": {
        "example": {
            "facility_id": "3f0c9a1e-0000-4000-8000-000000000001",
            "generated_at": "2026-10-17T09:30:00Z",
            "report_version": "1.0",
            "window": {"start": "2026-10-01T00:00:00Z", "end": "2026-11-01T00:00:00Z", "timezone": "UTC"},
            "budget": {"monthly_budget": 100000, "alert_threshold": 0.8, "spent": 90000,
                       "remaining": 10000, "percent_used": 0.9, "status": "NEAR"},
            "forecast": {"horizon_days": 14, "upcoming_shifts": 5, "unfilled_upcoming": 3,
                         "staffing_gap_ratio": 0.6, "alert_level": "CRITICAL"},
        }
    }}


# ─── Settings API ─────────────────────────────────────────────────────────────

class FacilitySettingsOut(_FromEngine):
    facility_id: str
    monthly_budget: float
    alert_threshold: float
    forecast_horizon_days: int
    timezone: str
    top_performers_limit: int
    advisories_enabled: Dict[str, bool] = {}
    preferred_personnel: List[str] = []


class FacilitySettingsUpdate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    monthly_budget: Optional[float] = None
    alert_threshold: Optional[float] = None         # fraction; clamped to [0, 1] when read
    forecast_horizon_days: Optional[int] = None     # clamped to [7, 90] when read
    timezone: Optional[str] = None
    top_performers_limit: Optional[int] = None
    advisories_enabled: Optional[Dict[AdvisoryCategory, bool]] = None
    preferred_personnel: Optional[List[str]] = None   # replaces the whole list
