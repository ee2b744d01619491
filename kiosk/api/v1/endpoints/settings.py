"""
Settings endpoints — the shift rules used to classify check-ins.

Singleton pattern: only one row in attendance_settings. GET retrieves it,
PUT updates it. If no row exists, one is created from the config defaults.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.v1.deps import get_db
from kiosk.models.attendance_settings import AttendanceSettings
from kiosk.schemas.attendance import AttendanceSettingsRead, AttendanceSettingsUpdate
from kiosk.services.repositories import get_or_create_settings

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/settings", response_model=AttendanceSettingsRead)
async def get_settings(
    db: AsyncSession = Depends(get_db),
) -> AttendanceSettings:
    """Get current shift rules."""
    return await get_or_create_settings(db)


@router.put("/settings", response_model=AttendanceSettingsRead)
async def update_settings(
    body: AttendanceSettingsUpdate,
    db: AsyncSession = Depends(get_db),
) -> AttendanceSettings:
    """Update shift rules (start hour, end hour, grace period, timezone)."""
    row = await get_or_create_settings(db)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}

    start = changes.get("shift_start_hour", row.shift_start_hour)
    end = changes.get("shift_end_hour", row.shift_end_hour)
    if start >= end:
        raise HTTPException(status_code=422, detail="Shift start must be before shift end")

    for field, value in changes.items():
        setattr(row, field, value)

    await db.commit()
    await db.refresh(row)
    logger.info("Attendance settings updated: %s", changes)
    return row
