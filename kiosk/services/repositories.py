"""
SQLAlchemy-backed collaborators of the scan workflow.

SQLite drops the UTC offset of stored timestamps, so check-in/out times
are written as local wall-clock values and re-tagged with the local
offset when read back.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.core.config import settings
from kiosk.core.timeutil import date_key, parse_date_key, parse_tz_offset
from kiosk.engine.decision import (
    AttendanceDecisionEngine,
    AttendanceRecord,
    AttendanceStatus,
    EmployeeId,
    ShiftPolicy,
    WorkSchedule,
)
from kiosk.models.attendance import Attendance
from kiosk.models.attendance_settings import AttendanceSettings
from kiosk.models.calendar import Holiday
from kiosk.models.calendar import WorkSchedule as WorkScheduleRow

logger = logging.getLogger(__name__)


def as_local(ts: datetime | None, tz: tzinfo) -> datetime | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=tz)
    return ts.astimezone(tz)


def to_record(row: Attendance, tz: tzinfo) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=row.id,
        employee_id=row.employee_id,
        work_date=parse_date_key(row.date),
        check_in=as_local(row.check_in, tz),
        check_out=as_local(row.check_out, tz),
        status=AttendanceStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def to_schedule(row: WorkScheduleRow) -> WorkSchedule:
    return WorkSchedule(
        employee_id=row.employee_id,
        sunday=bool(row.sunday),
        monday=bool(row.monday),
        tuesday=bool(row.tuesday),
        wednesday=bool(row.wednesday),
        thursday=bool(row.thursday),
        friday=bool(row.friday),
        saturday=bool(row.saturday),
    )


# ── Shift settings ──────────────────────────────────────────────────
async def get_or_create_settings(db: AsyncSession) -> AttendanceSettings:
    """Fetch the singleton settings row, creating it from config defaults if absent."""
    result = await db.execute(select(AttendanceSettings).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = AttendanceSettings(
            id=1,
            shift_start_hour=settings.SHIFT_START_HOUR,
            shift_end_hour=settings.SHIFT_END_HOUR,
            grace_minutes=settings.GRACE_PERIOD_MINUTES,
            timezone_offset=settings.TIMEZONE_OFFSET,
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info("Created default attendance settings")
    return row


def engine_from_settings(row: AttendanceSettings) -> AttendanceDecisionEngine:
    policy = ShiftPolicy(
        start_hour=row.shift_start_hour,
        end_hour=row.shift_end_hour,
        grace_minutes=row.grace_minutes,
    )
    return AttendanceDecisionEngine(policy, parse_tz_offset(row.timezone_offset))


# ── Collaborators ───────────────────────────────────────────────────
class SqlHolidayLookup:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_holidays(self) -> set[date]:
        result = await self._db.execute(select(Holiday.date))
        return {parse_date_key(value) for value in result.scalars().all()}


class SqlScheduleLookup:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_work_schedule(self, employee_id: EmployeeId) -> WorkSchedule | None:
        result = await self._db.execute(
            select(WorkScheduleRow).where(WorkScheduleRow.employee_id == int(employee_id))
        )
        row = result.scalar_one_or_none()
        return to_schedule(row) if row is not None else None


class SqlAttendanceStore:
    def __init__(self, db: AsyncSession, tz: tzinfo = timezone.utc) -> None:
        self._db = db
        self._tz = tz

    async def get_attendance_records(
        self, employee_id: EmployeeId, day: date
    ) -> Sequence[AttendanceRecord]:
        result = await self._db.execute(
            select(Attendance)
            .where(Attendance.employee_id == int(employee_id), Attendance.date == date_key(day))
            .order_by(Attendance.id.asc())
        )
        return [to_record(row, self._tz) for row in result.scalars().all()]

    async def create_attendance_record(
        self,
        employee_id: EmployeeId,
        day: date,
        check_in_time: datetime,
        status: AttendanceStatus,
    ) -> AttendanceRecord:
        row = Attendance(
            employee_id=int(employee_id),
            date=date_key(day),
            check_in=check_in_time,
            status=AttendanceStatus(status).value,
        )
        self._db.add(row)
        try:
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        await self._db.refresh(row)
        return to_record(row, self._tz)

    async def close_attendance_record(
        self, record_id: int, check_out_time: datetime
    ) -> AttendanceRecord:
        row = await self._db.get(Attendance, int(record_id))
        if row is None:
            raise LookupError(f"attendance record {record_id} not found")
        row.check_out = check_out_time
        try:
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        await self._db.refresh(row)
        return to_record(row, self._tz)
