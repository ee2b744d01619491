"""
Attendance decision engine.

Given an identified employee, the current time, the employee's weekly
schedule, the holiday calendar and today's attendance records, decide
what a fingerprint scan means: a non-working day (holiday / rest day),
a check-in (present / late), a check-out, or an already completed day.

The engine is pure and synchronous. It reads nothing and writes nothing;
the records it returns are values for the caller to persist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import AbstractSet, Sequence, Union

from kiosk.core.exceptions import InvalidInput

logger = logging.getLogger(__name__)

EmployeeId = Union[int, str]

WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    LATE = "late"


class DecisionKind(str, Enum):
    HOLIDAY = "holiday"
    REST_DAY = "rest-day"
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
    ALREADY_COMPLETED = "already-completed"


def weekday_index(day: date) -> int:
    """Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


@dataclass(frozen=True)
class WorkSchedule:
    """Weekly working-day flags for one employee."""

    employee_id: EmployeeId
    sunday: bool = False
    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = False

    def flag_for(self, weekday: int) -> bool:
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday must be 0..6, got {weekday}")
        return getattr(self, WEEKDAY_NAMES[weekday])

    def is_working_day(self, day: date) -> bool:
        return self.flag_for(weekday_index(day))


@dataclass(frozen=True)
class AttendanceRecord:
    """One work session of one employee on one calendar day."""

    attendance_id: int | None
    employee_id: EmployeeId
    work_date: date
    check_in: datetime | None
    check_out: datetime | None
    status: AttendanceStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.check_in is not None and self.check_out is None


@dataclass(frozen=True)
class ShiftPolicy:
    start_hour: int = 8
    end_hour: int = 18
    grace_minutes: int = 15

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour <= 24 or not 0 <= self.end_hour <= 24:
            raise ValueError("Shift hours must be between 0 and 24")
        if self.grace_minutes < 0:
            raise ValueError("Grace period must not be negative")

    def classify(self, local_now: datetime) -> AttendanceStatus:
        """Status a check-in at ``local_now`` would be stored with.

        ``is_late`` looks at the wall clock only; a scan after the shift
        has ended is late by the clock but is recorded as present.
        """
        hour, minute = local_now.hour, local_now.minute
        within_shift = self.start_hour <= hour < self.end_hour
        is_late = hour > self.start_hour or (
            hour == self.start_hour and minute > self.grace_minutes
        )

        status = AttendanceStatus.PRESENT
        if within_shift and is_late:
            status = AttendanceStatus.LATE
        elif not within_shift and hour >= self.end_hour:
            status = AttendanceStatus.PRESENT
        return status


# ── Outcomes ────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Holiday:
    day: date
    kind: DecisionKind = DecisionKind.HOLIDAY


@dataclass(frozen=True)
class RestDay:
    day: date
    kind: DecisionKind = DecisionKind.REST_DAY


@dataclass(frozen=True)
class CheckIn:
    record: AttendanceRecord
    status: AttendanceStatus
    kind: DecisionKind = DecisionKind.CHECK_IN


@dataclass(frozen=True)
class CheckOut:
    record: AttendanceRecord
    kind: DecisionKind = DecisionKind.CHECK_OUT

    @property
    def status(self) -> AttendanceStatus:
        # Check-outs always display as present; the stored status is untouched.
        return AttendanceStatus.PRESENT


@dataclass(frozen=True)
class AlreadyCompleted:
    record: AttendanceRecord
    kind: DecisionKind = DecisionKind.ALREADY_COMPLETED


Decision = Union[Holiday, RestDay, CheckIn, CheckOut, AlreadyCompleted]
NonWorkingDay = Union[Holiday, RestDay]


def validate_employee_id(employee_id: object) -> EmployeeId:
    if employee_id is None or isinstance(employee_id, bool):
        raise InvalidInput("employee id is required")
    if isinstance(employee_id, str):
        if not employee_id.strip():
            raise InvalidInput("employee id is required")
        return employee_id.strip()
    if isinstance(employee_id, int):
        return employee_id
    raise InvalidInput(f"unsupported employee id type: {type(employee_id).__name__}")


class AttendanceDecisionEngine:
    def __init__(self, policy: ShiftPolicy, tz: tzinfo) -> None:
        self.policy = policy
        self.tz = tz

    def localize(self, now: object) -> datetime:
        """Resolve ``now`` to an aware datetime in the local offset.

        Naive datetimes are local wall-clock time. ISO-8601 strings are parsed.
        """
        if isinstance(now, str):
            try:
                now = datetime.fromisoformat(now.strip())
            except ValueError as exc:
                raise InvalidInput(f"unparsable timestamp: {now!r}") from exc
        if not isinstance(now, datetime):
            raise InvalidInput(f"timestamp required, got {type(now).__name__}")
        if now.tzinfo is None or now.utcoffset() is None:
            return now.replace(tzinfo=self.tz)
        try:
            return now.astimezone(self.tz)
        except (OverflowError, ValueError) as exc:
            raise InvalidInput(f"timestamp out of range: {now!r}") from exc

    def non_working_day(
        self,
        schedule: WorkSchedule | None,
        holidays: AbstractSet[date],
        today: date,
    ) -> NonWorkingDay | None:
        if today in holidays:
            return Holiday(today)
        if schedule is not None and not schedule.is_working_day(today):
            return RestDay(today)
        return None

    def decide(
        self,
        employee_id: object,
        schedule: WorkSchedule | None,
        holidays: AbstractSet[date],
        records_today: Sequence[AttendanceRecord],
        now: object,
    ) -> Decision:
        employee_id = validate_employee_id(employee_id)
        local_now = self.localize(now)
        today = local_now.date()

        excluded = self.non_working_day(schedule, holidays, today)
        if excluded is not None:
            logger.debug("Employee %s: %s on %s", employee_id, excluded.kind.value, today)
            return excluded

        status = self.policy.classify(local_now)

        if not records_today:
            record = AttendanceRecord(
                attendance_id=None,
                employee_id=employee_id,
                work_date=today,
                check_in=local_now,
                check_out=None,
                status=status,
            )
            return CheckIn(record=record, status=status)

        latest = records_today[-1]
        if latest.check_out is None:
            return CheckOut(record=replace(latest, check_out=local_now, updated_at=local_now))

        return AlreadyCompleted(record=latest)
