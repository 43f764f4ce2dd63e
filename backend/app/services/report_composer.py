"""Report Composer — assembles engine outputs into one AnalyticsReport."""
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from app.models.analytics_schema import (
    AdvisoryOut,
    AnalyticsReport,
    BudgetOut,
    ForecastOut,
    MetricsOut,
    PerformerOut,
    QualityOut,
    ReportWindowOut,
)
from app.services.advisory_engine import Advisory
from app.services.analytics_config import REPORT_VERSION
from app.services.budget_engine import BudgetSummary
from app.services.forecast_engine import StaffingForecast
from app.services.metrics_engine import WindowMetrics
from app.services.performer_ranker import PerformerRanking
from app.services.report_window import ReportWindow


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportComposer:
    """
    Pure assembly: maps each engine's output onto its report block and stamps
    the generation time. Figures are copied, never recomputed, so every
    number in the report has exactly one source.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utc_now

    def compose(
        self,
        facility_id: str,
        window: ReportWindow,
        metrics: WindowMetrics,
        budget: BudgetSummary,
        forecast: StaffingForecast,
        ranking: PerformerRanking,
        advisories: Iterable[Advisory],
    ) -> AnalyticsReport:
        return AnalyticsReport(
            facility_id=facility_id,
            generated_at=self._clock(),
            report_version=REPORT_VERSION,
            window=ReportWindowOut.model_validate(window),
            metrics=MetricsOut.model_validate(metrics),
            budget=BudgetOut.model_validate(budget),
            forecast=ForecastOut.model_validate(forecast),
            top_performers=[PerformerOut.model_validate(p) for p in ranking.top_performers],
            quality=QualityOut.model_validate(ranking.quality),
            advisories=[AdvisoryOut.model_validate(a) for a in advisories],
        )
