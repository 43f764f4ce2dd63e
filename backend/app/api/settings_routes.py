"""Facility settings routes — budget, alert threshold, forecasting horizon, advisories."""
import logging
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.db import get_db
from app.models.analytics_schema import FacilitySettingsOut, FacilitySettingsUpdate
from app.models.orm_models import Facility, FacilitySettings
from app.services.record_reader import is_facility_id, settings_from_row

router = APIRouter(prefix="/api/facilities", tags=["Facility Settings"])
logger = logging.getLogger("staffing-api")


async def _get_facility(db: AsyncSession, facility_id: str) -> Facility:
    facility = await db.get(Facility, facility_id) if is_facility_id(facility_id) else None
    if not facility:
        raise HTTPException(status_code=404, detail=f"Facility {facility_id} not found")
    return facility


async def _get_settings_row(db: AsyncSession, facility_id: str):
    result = await db.execute(
        select(FacilitySettings).where(FacilitySettings.facility_id == facility_id)
    )
    return result.scalar_one_or_none()


@router.get("/{facility_id}/settings", response_model=FacilitySettingsOut)
async def get_facility_settings(facility_id: str, db: AsyncSession = Depends(get_db)):
    """Effective settings as the analytics engine sees them (defaults applied, values clamped)."""
    await _get_facility(db, facility_id)
    row = await _get_settings_row(db, facility_id)
    return FacilitySettingsOut.model_validate(settings_from_row(facility_id, row))


@router.put("/{facility_id}/settings", response_model=FacilitySettingsOut)
async def update_facility_settings(
    facility_id: str,
    req: FacilitySettingsUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Partial upsert of facility settings. Only supplied fields change.

    Values are stored as given; out-of-range thresholds and horizons are
    clamped when the engine reads them rather than rejected here.
    """
    await _get_facility(db, facility_id)
    row = await _get_settings_row(db, facility_id)
    if row is None:
        row = FacilitySettings(facility_id=facility_id, advisories_enabled={})
        db.add(row)

    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    flags = changes.pop("advisories_enabled", None)
    for key, value in changes.items():
        setattr(row, key, value)
    if flags:
        merged = dict(row.advisories_enabled or {})
        merged.update({category.value: enabled for category, enabled in flags.items()})
        row.advisories_enabled = merged

    await db.commit()
    await db.refresh(row)
    logger.info(f"Settings updated for facility {facility_id}: {sorted(changes) + (['advisories_enabled'] if flags else [])}")
    return FacilitySettingsOut.model_validate(settings_from_row(facility_id, row))
