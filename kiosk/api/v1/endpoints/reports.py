"""
Reporting endpoints — daily summary, live stats, health and status.

Each endpoint fetches the day's records in **one** SQL query and
aggregates in Python.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.v1.deps import get_db, get_now
from kiosk.core.timeutil import date_key, parse_date_key
from kiosk.engine.decision import AttendanceStatus
from kiosk.models.attendance import Attendance
from kiosk.models.calendar import Holiday
from kiosk.models.employee import Employee
from kiosk.schemas.attendance import (
    DailySummaryEmployee,
    DailySummaryResponse,
    HealthResponse,
    LiveStatsResponse,
    StatusResponse,
)

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
def _calc_duration(sessions: list[Attendance]) -> float:
    """Net work hours from the closed sessions of one employee-day.

    Open sessions (no check-out yet) count as zero.
    """
    work_secs = 0.0
    for att in sessions:
        if att.check_in is not None and att.check_out is not None:
            work_secs += (att.check_out - att.check_in).total_seconds()
    return round(max(0.0, work_secs) / 3600, 2)


async def _sessions_by_employee(
    db: AsyncSession, day: str
) -> tuple[dict[int, list[Attendance]], dict[int, str]]:
    result = await db.execute(
        select(Attendance, Employee.display_name)
        .join(Employee, Attendance.employee_id == Employee.id)
        .where(Attendance.date == day)
        .order_by(Attendance.employee_id, Attendance.id.asc())
    )
    by_employee: dict[int, list[Attendance]] = defaultdict(list)
    names: dict[int, str] = {}
    for att, name in result.all():
        by_employee[att.employee_id].append(att)
        names[att.employee_id] = name
    return by_employee, names


# ── Daily Summary ───────────────────────────────────────────────────
@router.get("/reports/summary/{date_str}", response_model=DailySummaryResponse)
async def reports_summary(
    date_str: str,
    db: AsyncSession = Depends(get_db),
) -> DailySummaryResponse:
    """Per-employee first check-in, last check-out, hours and status for one day."""
    try:
        day = date_key(parse_date_key(date_str))
    except ValueError:
        raise HTTPException(status_code=422, detail="Date must be YYYY-MM-DD")

    by_employee, names = await _sessions_by_employee(db, day)

    details = []
    for emp_id, sessions in by_employee.items():
        check_ins = [s.check_in for s in sessions if s.check_in is not None]
        check_outs = [s.check_out for s in sessions if s.check_out is not None]
        details.append(
            DailySummaryEmployee(
                employee_id=emp_id,
                display_name=names[emp_id],
                first_in=min(check_ins).isoformat() if check_ins else None,
                last_out=max(check_outs).isoformat() if check_outs else None,
                work_hours=_calc_duration(sessions),
                status=AttendanceStatus(sessions[0].status),
                sessions=len(sessions),
            )
        )

    return DailySummaryResponse(
        date=day,
        total_employees=len(details),
        present=sum(1 for d in details if d.status == AttendanceStatus.PRESENT),
        late=sum(1 for d in details if d.status == AttendanceStatus.LATE),
        details=details,
    )


# ── Live Stats (kiosk idle screen) ──────────────────────────────────
@router.get("/attendance/live-stats", response_model=LiveStatsResponse)
async def live_stats(
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> LiveStatsResponse:
    """Real-time attendance counts for today."""
    today_str = date_key(now.date())

    emp_result = await db.execute(
        select(func.count(Employee.id)).where(Employee.is_active.is_(True))
    )
    total_employees = emp_result.scalar() or 0

    holiday_result = await db.execute(select(Holiday.id).where(Holiday.date == today_str))
    is_holiday = holiday_result.first() is not None

    by_employee, _names = await _sessions_by_employee(db, today_str)

    checked_in = sum(
        1 for sessions in by_employee.values() if any(s.check_out is None for s in sessions)
    )
    late = sum(
        1 for sessions in by_employee.values() if sessions[0].status == AttendanceStatus.LATE.value
    )

    return LiveStatsResponse(
        total_employees=total_employees,
        checked_in=checked_in,
        checked_out=len(by_employee) - checked_in,
        absent=max(0, total_employees - len(by_employee)),
        late=late,
        on_time=len(by_employee) - late,
        is_holiday=is_holiday,
    )


# ── Health / Status ─────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB connectivity."""
    result = HealthResponse(db=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    return result


@router.get("/status", response_model=StatusResponse)
async def system_status(
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> StatusResponse:
    """Return current system status — employee count and today's records."""
    today_str = date_key(now.date())

    emp_count = await db.execute(
        select(func.count(Employee.id)).where(Employee.is_active.is_(True))
    )
    record_count = await db.execute(
        select(func.count(Attendance.id)).where(Attendance.date == today_str)
    )

    return StatusResponse(
        total_employees=emp_count.scalar() or 0,
        today_records=record_count.scalar() or 0,
        status="operational",
    )
