"""
Record Reader — read-only access to the facility record streams.

All reads are scoped to one facility and a time range, half-open unless the
range says otherwise. Methods return empty lists (never None) when nothing
matches; failures to reach storage surface as DataUnavailable. The snapshot
read fans every independent fetch out with asyncio.gather; the caller bounds
the whole thing with a timeout.
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.models import orm_models as orm
from app.models.records import (
    Application,
    ApplicationStatus,
    Duty,
    DutyStatus,
    Earning,
    FacilitySettings,
    PaymentStatus,
    Personnel,
    RateType,
)
from app.services.analytics_config import (
    DEFAULT_ALERT_THRESHOLD,
    DEFAULT_FORECAST_HORIZON_DAYS,
    DEFAULT_MONTHLY_BUDGET,
    DEFAULT_TIMEZONE,
    DEFAULT_TOP_PERFORMERS,
)
from app.services.errors import FACILITY_NOT_FOUND, DataUnavailable
from app.services.report_window import ReportWindow

logger = logging.getLogger("staffing-reader")


class RangeBasis(str, Enum):
    """Which Duty timestamp a range bounds."""
    CREATED = "CREATED"
    SCHEDULED = "SCHEDULED"


@dataclass(frozen=True)
class RecordRange:
    start: datetime
    end: datetime
    basis: RangeBasis = RangeBasis.CREATED
    include_end: bool = False   # the forecast horizon is closed: [end of window, end + horizon]

    def contains(self, moment: datetime) -> bool:
        if self.include_end:
            return self.start <= moment <= self.end
        return self.start <= moment < self.end

    def duty_in_range(self, duty: Duty) -> bool:
        if self.basis == RangeBasis.SCHEDULED:
            return self.contains(duty.scheduled_start)
        return self.contains(duty.created_at)


@dataclass(frozen=True)
class WindowRecords:
    """Duties created in a window, their applications, and earnings dated in it."""
    window: ReportWindow
    duties: Tuple[Duty, ...] = ()
    applications: Tuple[Application, ...] = ()
    earnings: Tuple[Earning, ...] = ()


@dataclass(frozen=True)
class RecordSnapshot:
    """
    Everything one report needs, read once.

    `current` and `upcoming_*` never overlap in meaning: `current` is bounded
    by duty creation inside the report window, `upcoming_*` by scheduled
    start inside [window.end, window.end + horizon].
    """
    settings: FacilitySettings
    current: WindowRecords
    upcoming_duties: Tuple[Duty, ...] = ()
    upcoming_applications: Tuple[Application, ...] = ()
    history_duties: Tuple[Duty, ...] = ()
    history_applications: Tuple[Application, ...] = ()
    personnel: Dict[str, Personnel] = field(default_factory=dict)
    trend: Tuple[WindowRecords, ...] = ()


class RecordReader(ABC):
    """Storage-agnostic reader contract. Subclasses implement the five fetches."""

    @abstractmethod
    async def fetch_settings(self, facility_id: str) -> FacilitySettings:
        """Raise DataUnavailable if the facility does not exist."""

    @abstractmethod
    async def fetch_duties(self, facility_id: str, record_range: RecordRange) -> List[Duty]:
        ...

    @abstractmethod
    async def fetch_applications(self, facility_id: str, record_range: RecordRange) -> List[Application]:
        """Applications whose duty falls inside record_range (on its basis)."""

    @abstractmethod
    async def fetch_earnings(self, facility_id: str, record_range: RecordRange) -> List[Earning]:
        ...

    @abstractmethod
    async def fetch_personnel(self, personnel_ids: Iterable[str]) -> Dict[str, Personnel]:
        ...

    async def read_window(self, facility_id: str, window: ReportWindow) -> WindowRecords:
        record_range = RecordRange(window.start, window.end, RangeBasis.CREATED)
        duties, applications, earnings = await asyncio.gather(
            self.fetch_duties(facility_id, record_range),
            self.fetch_applications(facility_id, record_range),
            self.fetch_earnings(facility_id, record_range),
        )
        return WindowRecords(
            window=window,
            duties=tuple(duties),
            applications=tuple(applications),
            earnings=tuple(earnings),
        )

    async def read_snapshot(
        self,
        facility_id: str,
        settings: FacilitySettings,
        window: ReportWindow,
        trend_windows: Sequence[ReportWindow] = (),
        lookback_days: int = 365,
    ) -> RecordSnapshot:
        upcoming_range = RecordRange(
            window.end,
            window.end + timedelta(days=settings.forecast_horizon_days),
            RangeBasis.SCHEDULED,
            include_end=True,
        )
        history_range = RecordRange(window.end - timedelta(days=lookback_days), window.end, RangeBasis.CREATED)

        results = await asyncio.gather(
            self.read_window(facility_id, window),
            self.fetch_duties(facility_id, upcoming_range),
            self.fetch_applications(facility_id, upcoming_range),
            self.fetch_duties(facility_id, history_range),
            self.fetch_applications(facility_id, history_range),
            *(self.read_window(facility_id, month) for month in trend_windows),
        )
        current, upcoming_duties, upcoming_apps, history_duties, history_apps = results[:5]
        trend = results[5:]

        accepted_ids = sorted({a.personnel_id for a in history_apps if a.status == ApplicationStatus.ACCEPTED})
        personnel = await self.fetch_personnel(accepted_ids)

        logger.debug(
            f"Snapshot read for facility {facility_id}: {len(current.duties)} duties in window, "
            f"{len(upcoming_duties)} upcoming, {len(history_apps)} history applications"
        )
        return RecordSnapshot(
            settings=settings,
            current=current,
            upcoming_duties=tuple(upcoming_duties),
            upcoming_applications=tuple(upcoming_apps),
            history_duties=tuple(history_duties),
            history_applications=tuple(history_apps),
            personnel=personnel,
            trend=tuple(trend),
        )


# ─── SQLAlchemy adapter ───────────────────────────────────────────────────────

def _as_float(value) -> float:
    return float(value) if value is not None else 0.0


def _before_end(column, record_range: RecordRange):
    if record_range.include_end:
        return column <= record_range.end
    return column < record_range.end


def is_facility_id(value: str) -> bool:
    """Facility ids are UUIDs; anything else cannot name a stored facility."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _to_duty(row: orm.Duty) -> Duty:
    return Duty(
        id=str(row.id),
        facility_id=str(row.facility_id),
        scheduled_start=row.scheduled_start,
        scheduled_end=row.scheduled_end,
        rate=_as_float(row.rate),
        status=DutyStatus(row.status.upper()),
        created_at=row.created_at,
        rate_type=RateType((row.rate_type or "FLAT").upper()),
        specialty=row.specialty or "General",
        urgent=bool(row.urgent),
        assigned_personnel_id=str(row.assigned_personnel_id) if row.assigned_personnel_id else None,
        title=row.title or "",
    )


def _to_application(row: orm.Application) -> Application:
    return Application(
        id=str(row.id),
        duty_id=str(row.duty_id),
        personnel_id=str(row.personnel_id),
        status=ApplicationStatus(row.status.upper()),
        created_at=row.created_at,
        responded_at=row.responded_at,
    )


def _to_earning(row: orm.Earning) -> Earning:
    return Earning(
        id=str(row.id),
        personnel_id=str(row.personnel_id),
        duty_id=str(row.duty_id),
        amount=_as_float(row.amount),
        payment_status=PaymentStatus(row.payment_status.upper()),
        earned_on=row.earned_on,
    )


def settings_from_row(facility_id: str, row: Optional[orm.FacilitySettings]) -> FacilitySettings:
    """Unset columns fall back to the defaults; range clamping happens in FacilitySettings."""
    if row is None:
        return FacilitySettings(facility_id=facility_id)

    def pick(value, default):
        return default if value is None else value

    return FacilitySettings(
        facility_id=facility_id,
        monthly_budget=float(pick(row.monthly_budget, DEFAULT_MONTHLY_BUDGET)),
        alert_threshold=float(pick(row.alert_threshold, DEFAULT_ALERT_THRESHOLD)),
        forecast_horizon_days=int(pick(row.forecast_horizon_days, DEFAULT_FORECAST_HORIZON_DAYS)),
        timezone=row.timezone or DEFAULT_TIMEZONE,
        top_performers_limit=int(pick(row.top_performers_limit, DEFAULT_TOP_PERFORMERS)),
        advisories_enabled=dict(row.advisories_enabled or {}),
        preferred_personnel=tuple(row.preferred_personnel or ()),
    )


class SqlRecordReader(RecordReader):
    """
    Reads from the relational store. Every fetch opens its own session so
    the snapshot fan-out really runs concurrently on the pool.
    """

    def __init__(self, session_factory=None):
        if session_factory is None:
            from app.db import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self._session_factory = session_factory

    async def _scalars(self, facility_id: str, stream: str, stmt) -> list:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Read of {stream} failed for facility {facility_id}: {exc}")
            raise DataUnavailable(facility_id, "storage unreachable", stream=stream) from exc

    async def fetch_settings(self, facility_id: str) -> FacilitySettings:
        if not is_facility_id(facility_id):
            raise DataUnavailable(facility_id, FACILITY_NOT_FOUND, stream="settings")
        try:
            async with self._session_factory() as session:
                facility = await session.get(orm.Facility, facility_id)
                if facility is None:
                    raise DataUnavailable(facility_id, FACILITY_NOT_FOUND, stream="settings")
                result = await session.execute(
                    select(orm.FacilitySettings).where(orm.FacilitySettings.facility_id == facility_id)
                )
                row = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Read of settings failed for facility {facility_id}: {exc}")
            raise DataUnavailable(facility_id, "storage unreachable", stream="settings") from exc
        return settings_from_row(facility_id, row)

    @staticmethod
    def _duty_column(record_range: RecordRange):
        if record_range.basis == RangeBasis.SCHEDULED:
            return orm.Duty.scheduled_start
        return orm.Duty.created_at

    async def fetch_duties(self, facility_id: str, record_range: RecordRange) -> List[Duty]:
        column = self._duty_column(record_range)
        stmt = (
            select(orm.Duty)
            .where(
                orm.Duty.facility_id == facility_id,
                column >= record_range.start,
                _before_end(column, record_range),
            )
            .order_by(orm.Duty.id)
        )
        return [_to_duty(r) for r in await self._scalars(facility_id, "duties", stmt)]

    async def fetch_applications(self, facility_id: str, record_range: RecordRange) -> List[Application]:
        column = self._duty_column(record_range)
        stmt = (
            select(orm.Application)
            .join(orm.Duty, orm.Application.duty_id == orm.Duty.id)
            .where(
                orm.Duty.facility_id == facility_id,
                column >= record_range.start,
                _before_end(column, record_range),
            )
            .order_by(orm.Application.id)
        )
        return [_to_application(r) for r in await self._scalars(facility_id, "applications", stmt)]

    async def fetch_earnings(self, facility_id: str, record_range: RecordRange) -> List[Earning]:
        stmt = (
            select(orm.Earning)
            .where(
                orm.Earning.facility_id == facility_id,
                orm.Earning.earned_on >= record_range.start,
                _before_end(orm.Earning.earned_on, record_range),
            )
            .order_by(orm.Earning.id)
        )
        return [_to_earning(r) for r in await self._scalars(facility_id, "earnings", stmt)]

    async def fetch_personnel(self, personnel_ids: Iterable[str]) -> Dict[str, Personnel]:
        ids = list(personnel_ids)
        if not ids:
            return {}
        stmt = select(orm.Personnel).where(orm.Personnel.id.in_(ids))
        rows = await self._scalars("-", "personnel", stmt)
        return {
            str(r.id): Personnel(
                id=str(r.id),
                name=r.full_name or "",
                rating=_as_float(r.rating),
                experience_years=_as_float(r.experience_years),
            )
            for r in rows
        }


# ─── In-memory adapter ────────────────────────────────────────────────────────

class InMemoryRecordReader(RecordReader):
    """
    Serves records from plain lists. Used for fixtures and tests; applies the
    same range rules as the SQL adapter.
    """

    def __init__(
        self,
        facilities: Iterable[str] = (),
        settings: Iterable[FacilitySettings] = (),
        duties: Iterable[Duty] = (),
        applications: Iterable[Application] = (),
        earnings: Iterable[Earning] = (),
        personnel: Iterable[Personnel] = (),
        earning_facility: Optional[Dict[str, str]] = None,
    ):
        self.settings = {s.facility_id: s for s in settings}
        self.facilities = set(facilities) | set(self.settings)
        self.duties = sorted(duties, key=lambda d: d.id)
        self.applications = sorted(applications, key=lambda a: a.id)
        self.earnings = sorted(earnings, key=lambda e: e.id)
        self.personnel = {p.id: p for p in personnel}
        self._duty_index = {d.id: d for d in self.duties}
        # Earnings carry no facility of their own; attribute through the duty unless told otherwise
        self._earning_facility = earning_facility or {}

    async def fetch_settings(self, facility_id: str) -> FacilitySettings:
        if facility_id not in self.facilities:
            raise DataUnavailable(facility_id, FACILITY_NOT_FOUND, stream="settings")
        return self.settings.get(facility_id) or FacilitySettings(facility_id=facility_id)

    async def fetch_duties(self, facility_id: str, record_range: RecordRange) -> List[Duty]:
        return [d for d in self.duties if d.facility_id == facility_id and record_range.duty_in_range(d)]

    async def fetch_applications(self, facility_id: str, record_range: RecordRange) -> List[Application]:
        matched = []
        for app in self.applications:
            duty = self._duty_index.get(app.duty_id)
            if duty and duty.facility_id == facility_id and record_range.duty_in_range(duty):
                matched.append(app)
        return matched

    async def fetch_earnings(self, facility_id: str, record_range: RecordRange) -> List[Earning]:
        matched = []
        for earning in self.earnings:
            owner = self._earning_facility.get(earning.id)
            if owner is None:
                duty = self._duty_index.get(earning.duty_id)
                owner = duty.facility_id if duty else None
            if owner == facility_id and record_range.contains(earning.earned_on):
                matched.append(earning)
        return matched

    async def fetch_personnel(self, personnel_ids: Iterable[str]) -> Dict[str, Personnel]:
        return {pid: self.personnel[pid] for pid in personnel_ids if pid in self.personnel}
