"""Reporting windows — calendar months in the facility's time zone."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger("staffing-window")


@dataclass(frozen=True)
class ReportWindow:
    """Half-open interval [start, end), both bounds timezone-aware."""
    start: datetime
    end: datetime
    timezone: str = "UTC"

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def label(self) -> str:
        return self.start.astimezone(get_zone(self.timezone)).strftime("%Y-%m")


def get_zone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA zone name; unknown names fall back to UTC."""
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{tz_name}', falling back to UTC")
        return ZoneInfo("UTC")


def _localize(moment: datetime, zone: ZoneInfo) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=zone)
    return moment


def month_window(year: int, month: int, tz_name: str = "UTC") -> ReportWindow:
    zone = get_zone(tz_name)
    start = datetime(year, month, 1, tzinfo=zone)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=zone)
    else:
        end = datetime(year, month + 1, 1, tzinfo=zone)
    return ReportWindow(start=start, end=end, timezone=tz_name or "UTC")


def month_containing(moment: datetime, tz_name: str = "UTC") -> ReportWindow:
    local = _localize(moment, get_zone(tz_name)).astimezone(get_zone(tz_name))
    return month_window(local.year, local.month, tz_name)


def resolve_window(
    window_start: Optional[datetime],
    window_end: Optional[datetime],
    tz_name: str = "UTC",
    now: Optional[datetime] = None,
) -> ReportWindow:
    """
    Turn optional caller bounds into a concrete window.

    Both missing  -> current calendar month in the facility zone.
    One missing   -> filled from the calendar month containing the other.
    Naive datetimes are read as facility-local time.
    Raises ValueError when start is not before end.
    """
    zone = get_zone(tz_name)
    if window_start is None and window_end is None:
        return month_containing(now or datetime.now(timezone.utc), tz_name)

    start = _localize(window_start, zone) if window_start is not None else None
    end = _localize(window_end, zone) if window_end is not None else None
    if start is None:
        start = month_containing(end - timedelta(microseconds=1), tz_name).start
    if end is None:
        end = month_containing(start, tz_name).end
    if start >= end:
        raise ValueError(f"window start {start.isoformat()} must be before end {end.isoformat()}")
    return ReportWindow(start=start, end=end, timezone=tz_name or "UTC")


def trailing_month_windows(window: ReportWindow, count: int) -> List[ReportWindow]:
    """
    The `count` calendar months ending with the month that contains the last
    instant of `window`, oldest first.
    """
    last = month_containing(window.end - timedelta(microseconds=1), window.timezone)
    year, month = last.start.year, last.start.month
    months = []
    for _ in range(count):
        months.append(month_window(year, month, window.timezone))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months
