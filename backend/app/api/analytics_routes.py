"""
Analytics routes — facility analytics & forecasting report.

GET /api/analytics/facilities/{facility_id}/report  — metrics, budget, forecast,
                                                     top performers, advisories
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.models.analytics_schema import AnalyticsReport
from app.services.analytics_engine import FacilityAnalyticsEngine
from app.services.errors import FACILITY_NOT_FOUND, DataUnavailable
from app.services.record_reader import RecordReader, SqlRecordReader

router = APIRouter(prefix="/api/analytics", tags=["Facility Analytics"])
logger = logging.getLogger("staffing-api")


def get_record_reader() -> RecordReader:
    return SqlRecordReader()


def get_analytics_engine(reader: RecordReader = Depends(get_record_reader)) -> FacilityAnalyticsEngine:
    return FacilityAnalyticsEngine(reader)


@router.get("/facilities/{facility_id}/report", response_model=AnalyticsReport)
async def facility_report(
    facility_id: str,
    start: Optional[datetime] = Query(None, description="Window start (ISO 8601); default: start of current month"),
    end: Optional[datetime] = Query(None, description="Window end, exclusive (ISO 8601); default: end of current month"),
    engine: FacilityAnalyticsEngine = Depends(get_analytics_engine),
):
    """
    Build the facility analytics report for [start, end).

    Missing bounds default to the current calendar month in the facility's
    configured time zone. 503 means the records could not be read in time;
    the client should retry.
    """
    try:
        return await engine.generate_report(facility_id, window_start=start, window_end=end)
    except DataUnavailable as exc:
        if exc.reason == FACILITY_NOT_FOUND:
            raise HTTPException(status_code=404, detail=f"Facility {facility_id} not found")
        raise HTTPException(
            status_code=503,
            detail="Analytics data is temporarily unavailable. Please try again.",
            headers={"Retry-After": "30"},
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
