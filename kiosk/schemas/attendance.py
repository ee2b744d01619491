"""Pydantic schemas for Attendance / Scan / Reports."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from kiosk.core.timeutil import parse_tz_offset
from kiosk.engine.decision import AttendanceStatus, DecisionKind


# ── Attendance ──────────────────────────────────────────────────────
class AttendanceRead(BaseModel):
    id: int
    employee_id: int
    date: str
    check_in: dt.datetime | None
    check_out: dt.datetime | None
    status: AttendanceStatus
    notes: str | None = None
    display_name: str | None = None  # joined from employee table
    unique_id: str | None = None  # joined from employee table
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class AttendancePage(BaseModel):
    success: bool = True
    data: list[AttendanceRead]
    total: int
    page: int
    limit: int
    total_pages: int


class CheckInRequest(BaseModel):
    employee_id: int
    date: dt.date | None = None
    check_in: dt.datetime | None = None
    # Server classifies the check-in when omitted.
    status: AttendanceStatus | None = None


class CheckOutRequest(BaseModel):
    check_out: dt.datetime | None = None


class ManualAttendanceCreate(BaseModel):
    employee_id: int
    date: dt.date
    check_in: dt.datetime
    check_out: dt.datetime | None = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _ordered(self) -> "ManualAttendanceCreate":
        if self.check_out is not None and self.check_out < self.check_in:
            raise ValueError("Check-out must not be before check-in")
        return self


class AttendanceUpdate(BaseModel):
    check_in: dt.datetime | None = None
    check_out: dt.datetime | None = None
    status: AttendanceStatus | None = None
    notes: str | None = Field(default=None, max_length=500)


# ── Scan ────────────────────────────────────────────────────────────
class ScanRequest(BaseModel):
    employee_id: int

    @field_validator("employee_id")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Employee ID must be positive")
        return v


class ScanResponse(BaseModel):
    success: bool
    outcome: DecisionKind
    message: str
    employee_id: int
    display_name: str
    status: AttendanceStatus | None = None
    record: AttendanceRead | None = None


# ── Roster (kiosk live feed) ────────────────────────────────────────
class RosterItem(BaseModel):
    id: int
    employee_id: int
    display_name: str
    unique_id: str
    date: str
    check_in: str | None
    check_out: str | None
    status: AttendanceStatus


# ── Daily Summary ───────────────────────────────────────────────────
class DailySummaryEmployee(BaseModel):
    employee_id: int
    display_name: str
    first_in: str | None
    last_out: str | None
    work_hours: float
    status: AttendanceStatus | None
    sessions: int


class DailySummaryResponse(BaseModel):
    date: str
    total_employees: int
    present: int
    late: int
    details: list[DailySummaryEmployee]


# ── Live Stats ──────────────────────────────────────────────────────
class LiveStatsResponse(BaseModel):
    total_employees: int
    checked_in: int
    checked_out: int
    absent: int
    late: int
    on_time: int
    is_holiday: bool


# ── Health / Status ─────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool


class StatusResponse(BaseModel):
    total_employees: int
    today_records: int
    status: str


# ── Attendance Settings ─────────────────────────────────────────────
class AttendanceSettingsRead(BaseModel):
    shift_start_hour: int
    shift_end_hour: int
    grace_minutes: int
    timezone_offset: str

    model_config = {"from_attributes": True}


class AttendanceSettingsUpdate(BaseModel):
    shift_start_hour: int | None = Field(default=None, ge=0, le=24)
    shift_end_hour: int | None = Field(default=None, ge=0, le=24)
    grace_minutes: int | None = Field(default=None, ge=0, le=720)
    timezone_offset: str | None = None

    @field_validator("timezone_offset")
    @classmethod
    def _offset(cls, v: str | None) -> str | None:
        if v is None:
            return v
        parse_tz_offset(v)
        return v.strip()


# ── Generic ─────────────────────────────────────────────────────────
class DeleteResponse(BaseModel):
    success: bool
    message: str
