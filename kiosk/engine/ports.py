"""Collaborators the decision workflow reads from and writes to.

Implemented by the SQLAlchemy stores on the server and by the REST
client on the kiosk.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, Sequence

from .decision import AttendanceRecord, AttendanceStatus, EmployeeId, WorkSchedule


class HolidayLookup(Protocol):
    async def get_holidays(self) -> set[date]:
        raise NotImplementedError


class ScheduleLookup(Protocol):
    async def get_work_schedule(self, employee_id: EmployeeId) -> WorkSchedule | None:
        raise NotImplementedError


class AttendanceStore(Protocol):
    async def get_attendance_records(
        self, employee_id: EmployeeId, day: date
    ) -> Sequence[AttendanceRecord]:
        """Records for one employee on one day, oldest first."""

        raise NotImplementedError

    async def create_attendance_record(
        self,
        employee_id: EmployeeId,
        day: date,
        check_in_time: datetime,
        status: AttendanceStatus,
    ) -> AttendanceRecord:
        raise NotImplementedError

    async def close_attendance_record(
        self, record_id: int, check_out_time: datetime
    ) -> AttendanceRecord:
        raise NotImplementedError
