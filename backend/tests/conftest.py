"""
conftest.py — Shared pytest fixtures for the Staffing Analytics backend test suite.

No database or external service fixtures are defined here.  Engine tests are
pure unit tests over immutable records; end-to-end report tests run against
InMemoryRecordReader.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
from datetime import datetime, timedelta, timezone

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# Reference report window used throughout: October 2026, UTC.
WINDOW_START = datetime(2026, 10, 1, tzinfo=timezone.utc)
WINDOW_END = datetime(2026, 11, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def metrics_engine():
    from app.services.metrics_engine import MetricsEngine
    return MetricsEngine()


@pytest.fixture(scope="session")
def budget_engine():
    from app.services.budget_engine import BudgetEngine
    return BudgetEngine()


@pytest.fixture(scope="session")
def forecast_engine():
    from app.services.forecast_engine import ForecastEngine
    return ForecastEngine()


@pytest.fixture(scope="session")
def ranker():
    from app.services.performer_ranker import PerformerRanker
    return PerformerRanker()


@pytest.fixture(scope="session")
def advisor():
    from app.services.advisory_engine import CostAdvisor
    return CostAdvisor()


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------

@pytest.fixture
def october():
    """ReportWindow for October 2026 (UTC)."""
    from app.services.report_window import ReportWindow
    return ReportWindow(start=WINDOW_START, end=WINDOW_END, timezone="UTC")


@pytest.fixture
def make_duty():
    """
    Factory for Duty records.  Defaults: facility F1, created 2 Oct 08:00 UTC,
    scheduled 10 Oct 08:00–16:00, FLAT rate 1000, status OPEN.
    """
    from app.models.records import Duty, DutyStatus, RateType

    def _make(duty_id, status=DutyStatus.OPEN, facility_id="F1", created_at=None,
              scheduled_start=None, hours=8, rate=1000.0, rate_type=RateType.FLAT,
              urgent=False, title=None, specialty="General"):
        created_at = created_at or WINDOW_START + timedelta(days=1, hours=8)
        scheduled_start = scheduled_start or WINDOW_START + timedelta(days=9, hours=8)
        return Duty(
            id=duty_id,
            facility_id=facility_id,
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_start + timedelta(hours=hours),
            rate=rate,
            status=status,
            created_at=created_at,
            rate_type=rate_type,
            specialty=specialty,
            urgent=urgent,
            title=title if title is not None else f"Shift {duty_id}",
        )
    return _make


@pytest.fixture
def make_application():
    """Factory for Application records; ACCEPTED by default."""
    from app.models.records import Application, ApplicationStatus

    def _make(app_id, duty_id, personnel_id="P1", status=ApplicationStatus.ACCEPTED,
              created_at=None, responded_at=None):
        return Application(
            id=app_id,
            duty_id=duty_id,
            personnel_id=personnel_id,
            status=status,
            created_at=created_at or WINDOW_START + timedelta(days=1, hours=9),
            responded_at=responded_at,
        )
    return _make


@pytest.fixture
def make_earning():
    """Factory for Earning records; PAID on 15 Oct by default."""
    from app.models.records import Earning, PaymentStatus

    def _make(earning_id, duty_id, amount, status=PaymentStatus.PAID, earned_on=None, personnel_id="P1"):
        return Earning(
            id=earning_id,
            personnel_id=personnel_id,
            duty_id=duty_id,
            amount=amount,
            payment_status=status,
            earned_on=earned_on or WINDOW_START + timedelta(days=14),
        )
    return _make


@pytest.fixture
def make_settings():
    from app.models.records import FacilitySettings

    def _make(facility_id="F1", **overrides):
        return FacilitySettings(facility_id=facility_id, **overrides)
    return _make


@pytest.fixture
def fixed_clock():
    """Clock pinned to 17 Oct 2026 12:00 UTC."""
    moment = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def perf():
    """Private PerformanceTracker so tests never touch the process-wide singleton."""
    from app.services.perf_monitor import PerformanceTracker
    return PerformanceTracker()
