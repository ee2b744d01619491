"""
Attendance endpoints — record CRUD, kiosk check-in/out and the scan.

``POST /attendance/scan`` runs the full decision workflow server-side for
an identified employee. The check-in / check-out routes are the raw
store operations the kiosk client uses when it runs the workflow itself.

Check-in/out times are stored as local wall-clock values (offset from the
settings row) and re-tagged with that offset when read back.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, tzinfo

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.v1.deps import get_db, get_now, get_scan_workflow
from kiosk.core.timeutil import date_key, parse_tz_offset
from kiosk.engine.decision import (
    AttendanceRecord,
    AttendanceStatus,
    CheckIn,
    CheckOut,
    ShiftPolicy,
)
from kiosk.models.attendance import Attendance
from kiosk.models.employee import Employee
from kiosk.schemas.attendance import (
    AttendancePage,
    AttendanceRead,
    AttendanceUpdate,
    CheckInRequest,
    CheckOutRequest,
    DeleteResponse,
    ManualAttendanceCreate,
    RosterItem,
    ScanRequest,
    ScanResponse,
)
from kiosk.services.repositories import as_local, get_or_create_settings
from kiosk.services.scan import ScanWorkflow, outcome_message

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
async def _local_rules(db: AsyncSession) -> tuple[tzinfo, ShiftPolicy]:
    row = await get_or_create_settings(db)
    policy = ShiftPolicy(row.shift_start_hour, row.shift_end_hour, row.grace_minutes)
    return parse_tz_offset(row.timezone_offset), policy


def _read(att: Attendance, employee: Employee | None, tz: tzinfo) -> AttendanceRead:
    return AttendanceRead(
        id=att.id,
        employee_id=att.employee_id,
        date=att.date,
        check_in=as_local(att.check_in, tz),
        check_out=as_local(att.check_out, tz),
        status=AttendanceStatus(att.status),
        notes=att.notes,
        display_name=employee.display_name if employee else None,
        unique_id=employee.unique_id if employee else None,
        created_at=att.created_at,
        updated_at=att.updated_at,
    )


def _read_record(record: AttendanceRecord, employee: Employee) -> AttendanceRead:
    return AttendanceRead(
        id=record.attendance_id,
        employee_id=employee.id,
        date=date_key(record.work_date),
        check_in=record.check_in,
        check_out=record.check_out,
        status=record.status,
        display_name=employee.display_name,
        unique_id=employee.unique_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


async def _get_scannable_employee(db: AsyncSession, employee_id: int) -> Employee:
    employee = await db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    if not employee.is_active:
        raise HTTPException(status_code=403, detail="Employee account is deactivated")
    return employee


async def _get_attendance(db: AsyncSession, attendance_id: int) -> Attendance:
    att = await db.get(Attendance, attendance_id)
    if att is None:
        raise HTTPException(status_code=404, detail="Attendance record not found")
    return att


def _check_order(check_in: datetime | None, check_out: datetime | None) -> None:
    if check_in is not None and check_out is not None and check_out < check_in:
        raise HTTPException(status_code=422, detail="Check-out must not be before check-in")


def _wall_clock(ts: datetime | None, tz: tzinfo) -> datetime | None:
    """Local wall-clock value as stored in the attendance table."""
    local = as_local(ts, tz)
    return local.replace(tzinfo=None) if local is not None else None


# ── List (filters + pagination) ─────────────────────────────────────
@router.get("", response_model=AttendancePage)
async def list_attendance(
    employee_id: int | None = None,
    department_id: int | None = None,
    date: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    status: AttendanceStatus | None = None,
    exclude_status: AttendanceStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> AttendancePage:
    filters = []
    if employee_id is not None:
        filters.append(Attendance.employee_id == employee_id)
    if department_id is not None:
        filters.append(Employee.department_id == department_id)
    if date is not None:
        filters.append(Attendance.date == date_key(date))
    if start_date is not None:
        filters.append(Attendance.date >= date_key(start_date))
    if end_date is not None:
        filters.append(Attendance.date <= date_key(end_date))
    if status is not None:
        filters.append(Attendance.status == status.value)
    if exclude_status is not None:
        filters.append(Attendance.status != exclude_status.value)

    count_result = await db.execute(
        select(func.count(Attendance.id))
        .join(Employee, Attendance.employee_id == Employee.id)
        .where(*filters)
    )
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Attendance, Employee)
        .join(Employee, Attendance.employee_id == Employee.id)
        .where(*filters)
        .order_by(Attendance.date.desc(), Attendance.check_in.desc(), Attendance.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    tz, _policy = await _local_rules(db)
    return AttendancePage(
        data=[_read(att, emp, tz) for att, emp in result.all()],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


# ── Today (kiosk live roster) ───────────────────────────────────────
@router.get("/today", response_model=list[RosterItem])
async def attendance_today(
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> list[RosterItem]:
    """Today's attendance records, most recent check-in first."""
    tz, _policy = await _local_rules(db)
    result = await db.execute(
        select(Attendance, Employee)
        .join(Employee, Attendance.employee_id == Employee.id)
        .where(Attendance.date == date_key(now.date()))
        .order_by(Attendance.check_in.desc(), Attendance.id.desc())
    )
    roster = []
    for att, emp in result.all():
        check_in = as_local(att.check_in, tz)
        check_out = as_local(att.check_out, tz)
        roster.append(
            RosterItem(
                id=att.id,
                employee_id=att.employee_id,
                display_name=emp.display_name,
                unique_id=emp.unique_id,
                date=att.date,
                check_in=check_in.isoformat() if check_in else None,
                check_out=check_out.isoformat() if check_out else None,
                status=AttendanceStatus(att.status),
            )
        )
    return roster


# ── Scan (full decision workflow) ───────────────────────────────────
@router.post("/scan", response_model=ScanResponse)
async def scan(
    body: ScanRequest,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
    workflow: ScanWorkflow = Depends(get_scan_workflow),
) -> ScanResponse:
    """Decide what a fingerprint scan means for an identified employee and record it."""
    employee = await _get_scannable_employee(db, body.employee_id)

    decision = await workflow.process(employee.id, now)
    message = outcome_message(decision, employee.display_name)
    logger.info("Scan by %s: %s", employee.display_name, decision.kind.value)

    record = getattr(decision, "record", None)
    status = getattr(decision, "status", None)
    return ScanResponse(
        success=isinstance(decision, (CheckIn, CheckOut)),
        outcome=decision.kind,
        message=message,
        employee_id=employee.id,
        display_name=employee.display_name,
        status=status,
        record=_read_record(record, employee) if record is not None else None,
    )


# ── Check-in / check-out ────────────────────────────────────────────
@router.post("/check-in", response_model=AttendanceRead, status_code=201)
async def check_in(
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> AttendanceRead:
    """Open a work session. A second open session for the same day is rejected."""
    employee = await _get_scannable_employee(db, body.employee_id)
    tz, policy = await _local_rules(db)

    check_in_at = as_local(body.check_in, tz) if body.check_in else now.astimezone(tz)
    day = date_key(body.date or check_in_at.date())

    open_result = await db.execute(
        select(Attendance.id).where(
            Attendance.employee_id == employee.id,
            Attendance.date == day,
            Attendance.check_out.is_(None),
        )
    )
    if open_result.first() is not None:
        raise HTTPException(
            status_code=409,
            detail="Employee already has an open attendance record for this date",
        )

    status = body.status or policy.classify(check_in_at)
    att = Attendance(
        employee_id=employee.id,
        date=day,
        check_in=check_in_at.replace(tzinfo=None),
        status=status.value,
    )
    db.add(att)
    await db.commit()
    await db.refresh(att)
    logger.info("Check-in for %s (%s) on %s", employee.display_name, status.value, day)
    return _read(att, employee, tz)


@router.put("/check-out/{attendance_id}", response_model=AttendanceRead)
async def check_out(
    attendance_id: int,
    body: CheckOutRequest | None = None,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> AttendanceRead:
    att = await _get_attendance(db, attendance_id)
    if att.check_out is not None:
        raise HTTPException(status_code=409, detail="Attendance record is already closed")
    tz, _policy = await _local_rules(db)

    check_out_at = as_local(body.check_out, tz) if body and body.check_out else now.astimezone(tz)
    _check_order(as_local(att.check_in, tz), check_out_at)

    att.check_out = check_out_at.replace(tzinfo=None)
    await db.commit()
    await db.refresh(att)
    employee = await db.get(Employee, att.employee_id)
    logger.info("Check-out for employee %d record %d", att.employee_id, att.id)
    return _read(att, employee, tz)


# ── Manual log ──────────────────────────────────────────────────────
@router.post("/manual", response_model=AttendanceRead, status_code=201)
async def manual_attendance(
    body: ManualAttendanceCreate,
    db: AsyncSession = Depends(get_db),
) -> AttendanceRead:
    """Record a session with explicit times, e.g. for a missed scan."""
    employee = await db.get(Employee, body.employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    tz, _policy = await _local_rules(db)

    att = Attendance(
        employee_id=employee.id,
        date=date_key(body.date),
        check_in=_wall_clock(body.check_in, tz),
        check_out=_wall_clock(body.check_out, tz),
        status=body.status.value,
        notes=body.notes,
    )
    db.add(att)
    await db.commit()
    await db.refresh(att)
    logger.info("Manual attendance for %s on %s", employee.display_name, att.date)
    return _read(att, employee, tz)


# ── Record CRUD ─────────────────────────────────────────────────────
@router.get("/{attendance_id}", response_model=AttendanceRead)
async def get_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_db),
) -> AttendanceRead:
    att = await _get_attendance(db, attendance_id)
    employee = await db.get(Employee, att.employee_id)
    tz, _policy = await _local_rules(db)
    return _read(att, employee, tz)


@router.put("/{attendance_id}", response_model=AttendanceRead)
async def update_attendance(
    attendance_id: int,
    body: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
) -> AttendanceRead:
    att = await _get_attendance(db, attendance_id)
    tz, _policy = await _local_rules(db)

    changes = body.model_dump(exclude_unset=True)
    check_in_at = as_local(changes["check_in"], tz) if "check_in" in changes else as_local(att.check_in, tz)
    check_out_at = as_local(changes["check_out"], tz) if "check_out" in changes else as_local(att.check_out, tz)
    _check_order(check_in_at, check_out_at)

    if "check_in" in changes:
        att.check_in = _wall_clock(changes["check_in"], tz)
    if "check_out" in changes:
        att.check_out = _wall_clock(changes["check_out"], tz)
    if changes.get("status") is not None:
        att.status = AttendanceStatus(changes["status"]).value
    if "notes" in changes:
        att.notes = changes["notes"]

    await db.commit()
    await db.refresh(att)
    employee = await db.get(Employee, att.employee_id)
    logger.info("Updated attendance record %d", attendance_id)
    return _read(att, employee, tz)


@router.delete("/{attendance_id}", response_model=DeleteResponse)
async def delete_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    att = await _get_attendance(db, attendance_id)
    await db.delete(att)
    await db.commit()
    logger.info("Deleted attendance record %d", attendance_id)
    return DeleteResponse(success=True, message="Attendance record deleted")
