"""
Scan workflow — lookup, decide, persist.

Wraps the pure decision engine with its collaborators. Scans for the
same employee are serialized so there is never more than one open
attendance record per employee and day; scans for different employees
run independently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from datetime import date
from typing import TypeVar

from kiosk.core.exceptions import CollaboratorUnavailable
from kiosk.engine.decision import (
    AlreadyCompleted,
    AttendanceDecisionEngine,
    CheckIn,
    CheckOut,
    Decision,
    EmployeeId,
    Holiday,
    RestDay,
    WorkSchedule,
    validate_employee_id,
)
from kiosk.engine.ports import AttendanceStore, HolidayLookup, ScheduleLookup

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EmployeeLocks:
    """One asyncio lock per employee id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def hold(self, employee_id: EmployeeId) -> AsyncIterator[None]:
        lock = self._locks.setdefault(str(employee_id), asyncio.Lock())
        async with lock:
            yield

    def is_locked(self, employee_id: EmployeeId) -> bool:
        lock = self._locks.get(str(employee_id))
        return lock is not None and lock.locked()


class ScanWorkflow:
    def __init__(
        self,
        engine: AttendanceDecisionEngine,
        holidays: HolidayLookup,
        schedules: ScheduleLookup,
        records: AttendanceStore,
        *,
        locks: EmployeeLocks | None = None,
        fail_open: bool = False,
    ) -> None:
        self.engine = engine
        self._holidays = holidays
        self._schedules = schedules
        self._records = records
        self._locks = locks or EmployeeLocks()
        self.fail_open = fail_open

    async def _call(self, collaborator: str, pending: Awaitable[T]) -> T:
        try:
            return await pending
        except CollaboratorUnavailable:
            raise
        except Exception as exc:
            raise CollaboratorUnavailable(collaborator, str(exc)) from exc

    async def _load_holidays(self) -> set[date]:
        try:
            return set(await self._call("holiday lookup", self._holidays.get_holidays()))
        except CollaboratorUnavailable as exc:
            if not self.fail_open:
                raise
            logger.warning("Holiday lookup failed, assuming no holiday: %s", exc)
            return set()

    async def _load_schedule(self, employee_id: EmployeeId) -> WorkSchedule | None:
        try:
            return await self._call(
                "schedule lookup", self._schedules.get_work_schedule(employee_id)
            )
        except CollaboratorUnavailable as exc:
            if not self.fail_open:
                raise
            logger.warning(
                "Schedule lookup failed for employee %s, assuming working day: %s",
                employee_id,
                exc,
            )
            return None

    async def process(self, employee_id: object, now: object) -> Decision:
        """Evaluate one scan and persist its effect.

        Raises ``InvalidInput`` before touching any collaborator and
        ``CollaboratorUnavailable`` when a lookup or write fails.
        """
        employee_id = validate_employee_id(employee_id)
        local_now = self.engine.localize(now)
        today = local_now.date()

        async with self._locks.hold(employee_id):
            holidays = await self._load_holidays()
            schedule = await self._load_schedule(employee_id)

            excluded = self.engine.non_working_day(schedule, holidays, today)
            if excluded is not None:
                logger.info("Employee %s scanned on a %s (%s)", employee_id, excluded.kind.value, today)
                return excluded

            records = await self._call(
                "attendance lookup",
                self._records.get_attendance_records(employee_id, today),
            )
            decision = self.engine.decide(employee_id, schedule, holidays, records, local_now)

            if isinstance(decision, CheckIn):
                stored = await self._call(
                    "attendance store",
                    self._records.create_attendance_record(
                        employee_id, today, local_now, decision.status
                    ),
                )
                logger.info(
                    "Check-in for employee %s (%s) record %s",
                    employee_id,
                    decision.status.value,
                    stored.attendance_id,
                )
                return CheckIn(record=stored, status=decision.status)

            if isinstance(decision, CheckOut):
                record_id = decision.record.attendance_id
                if record_id is None:
                    raise CollaboratorUnavailable(
                        "attendance lookup", "open record has no id"
                    )
                stored = await self._call(
                    "attendance store",
                    self._records.close_attendance_record(record_id, local_now),
                )
                logger.info("Check-out for employee %s record %s", employee_id, record_id)
                return CheckOut(record=stored)

            logger.info("Employee %s already completed attendance for %s", employee_id, today)
            return decision


def outcome_message(decision: Decision, display_name: str) -> str:
    """Kiosk message for a scan outcome."""
    if isinstance(decision, Holiday):
        return f"Today is a holiday. {display_name} is not scheduled to work."
    if isinstance(decision, RestDay):
        return f"Today is a rest day for {display_name}."
    if isinstance(decision, CheckIn):
        return f"{display_name} successfully checked in ({decision.status.value})"
    if isinstance(decision, CheckOut):
        return f"{display_name} successfully checked out"
    if isinstance(decision, AlreadyCompleted):
        return f"{display_name} has already completed attendance for today"
    raise TypeError(f"Unknown decision: {decision!r}")
