"""
Facility Analytics Engine — builds one AnalyticsReport per request.

Pipeline:
    RecordReader ──► MetricsEngine, PerformerRanker
                 ──► BudgetEngine, ForecastEngine, CostAdvisor
                 ──► ReportComposer

Reads are the only I/O: settings first (time zone, horizon and limits depend
on them), then every other stream concurrently, the whole load bounded by a
single timeout. Everything after the load is synchronous, pure, and holds no
state between calls.
"""
import asyncio
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from app.models.analytics_schema import AnalyticsReport
from app.models.records import FacilitySettings
from app.services.advisory_engine import AdvisoryContext, CostAdvisor
from app.services.analytics_config import RANKING_LOOKBACK_DAYS, READER_TIMEOUT_S, TREND_MONTHS
from app.services.budget_engine import BudgetEngine
from app.services.errors import DataUnavailable
from app.services.forecast_engine import ForecastEngine
from app.services.metrics_engine import MetricsEngine
from app.services.perf_monitor import PerformanceTracker, tracker as default_tracker
from app.services.performer_ranker import PerformerRanker
from app.services.record_reader import RecordReader, RecordSnapshot
from app.services.report_composer import ReportComposer
from app.services.report_window import ReportWindow, resolve_window, trailing_month_windows

logger = logging.getLogger("staffing-analytics")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FacilityAnalyticsEngine:

    def __init__(
        self,
        reader: RecordReader,
        timeout_s: float = READER_TIMEOUT_S,
        lookback_days: int = RANKING_LOOKBACK_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
        perf: Optional[PerformanceTracker] = None,
    ):
        self.reader = reader
        self.timeout_s = timeout_s
        self.lookback_days = lookback_days
        self._clock = clock or _utc_now
        self._perf = perf or default_tracker

        self.metrics_engine = MetricsEngine()
        self.budget_engine = BudgetEngine()
        self.forecast_engine = ForecastEngine()
        self.ranker = PerformerRanker()
        self.advisor = CostAdvisor()
        self.composer = ReportComposer(clock=self._clock)

    async def generate_report(
        self,
        facility_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> AnalyticsReport:
        """
        Raises:
            DataUnavailable: unknown facility, storage failure, or read timeout.
            ValueError: window_start is not before window_end.
        """
        started = time.perf_counter()
        settings, window, snapshot = await self._load(facility_id, window_start, window_end)

        with self._stage("metrics"):
            metrics = self.metrics_engine.aggregate_with_trend(snapshot.current, snapshot.trend)
        with self._stage("budget"):
            budget = self.budget_engine.evaluate(metrics.total_spend, settings)
        with self._stage("forecast"):
            forecast = self.forecast_engine.project(snapshot.upcoming_duties, settings.forecast_horizon_days)
        with self._stage("ranking"):
            ranking = self.ranker.rank(
                snapshot.history_applications,
                snapshot.history_duties,
                snapshot.personnel,
                limit=settings.top_performers_limit,
            )
        with self._stage("advisories"):
            context = AdvisoryContext.build(
                metrics, budget, forecast, snapshot.upcoming_applications, settings=settings, ranking=ranking
            )
            advisories = self.advisor.evaluate(context, settings)
        with self._stage("compose"):
            report = self.composer.compose(facility_id, window, metrics, budget, forecast, ranking, advisories)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        self._perf.record_report_complete(duration_ms)
        logger.info(
            f"Report for facility {facility_id} [{window.start.isoformat()} → {window.end.isoformat()}]: "
            f"fill_rate={metrics.fill_rate:.2f} budget={budget.status.value} "
            f"forecast={forecast.alert_level.value} advisories={len(advisories)}",
            extra={"facility_id": facility_id, "duration_ms": duration_ms},
        )
        return report

    # ─── Loading ──────────────────────────────────────────────────────────────

    async def _load(
        self,
        facility_id: str,
        window_start: Optional[datetime],
        window_end: Optional[datetime],
    ) -> Tuple[FacilitySettings, ReportWindow, RecordSnapshot]:
        async def load():
            settings = await self.reader.fetch_settings(facility_id)
            window = resolve_window(window_start, window_end, settings.timezone, now=self._clock())
            snapshot = await self.reader.read_snapshot(
                facility_id,
                settings,
                window,
                trend_windows=trailing_month_windows(window, TREND_MONTHS),
                lookback_days=self.lookback_days,
            )
            return settings, window, snapshot

        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(load(), timeout=self.timeout_s)
        except asyncio.TimeoutError as exc:
            self._perf.record_stage_failure("read")
            logger.error(
                f"Record read timed out after {self.timeout_s}s for facility {facility_id}",
                extra={"facility_id": facility_id, "stage": "read"},
            )
            raise DataUnavailable(facility_id, f"record read exceeded {self.timeout_s}s") from exc
        except DataUnavailable as exc:
            self._perf.record_stage_failure("read")
            logger.warning(f"Data unavailable: {exc}", extra={"facility_id": facility_id, "stage": "read"})
            raise
        self._perf.record_stage_duration("read", round((time.perf_counter() - started) * 1000, 2))
        return result

    @contextmanager
    def _stage(self, name: str):
        started = time.perf_counter()
        try:
            yield
        except Exception:
            self._perf.record_stage_failure(name)
            raise
        self._perf.record_stage_duration(name, round((time.perf_counter() - started) * 1000, 2))
