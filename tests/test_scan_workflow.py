"""Tests for the scan workflow: collaborators, failures and serialization."""

import asyncio
from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from kiosk.core.exceptions import CollaboratorUnavailable, InvalidInput
from kiosk.engine.decision import (
    AlreadyCompleted,
    AttendanceDecisionEngine,
    AttendanceRecord,
    AttendanceStatus,
    CheckIn,
    CheckOut,
    Holiday,
    RestDay,
    ShiftPolicy,
    WorkSchedule,
)
from kiosk.services.scan import EmployeeLocks, ScanWorkflow, outcome_message

UTC = timezone.utc
MONDAY = date(2024, 3, 4)
SATURDAY = date(2024, 3, 9)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


class FakeCalendar:
    def __init__(self, holidays=(), schedules=None, fail=False):
        self.holidays = set(holidays)
        self.schedules = schedules or {}
        self.fail = fail
        self.calls = 0

    async def get_holidays(self):
        self.calls += 1
        if self.fail:
            raise ConnectionError("calendar offline")
        return set(self.holidays)

    async def get_work_schedule(self, employee_id):
        self.calls += 1
        if self.fail:
            raise ConnectionError("calendar offline")
        return self.schedules.get(employee_id)


class FakeStore:
    def __init__(self, delay: float = 0.0):
        self.rows: list[AttendanceRecord] = []
        self.delay = delay
        self.fail_writes = False

    async def get_attendance_records(self, employee_id, day):
        await asyncio.sleep(self.delay)
        return [r for r in self.rows if r.employee_id == employee_id and r.work_date == day]

    async def create_attendance_record(self, employee_id, day, check_in_time, status):
        await asyncio.sleep(self.delay)
        if self.fail_writes:
            raise OSError("disk full")
        row = AttendanceRecord(
            attendance_id=len(self.rows) + 1,
            employee_id=employee_id,
            work_date=day,
            check_in=check_in_time,
            check_out=None,
            status=status,
        )
        self.rows.append(row)
        return row

    async def close_attendance_record(self, record_id, check_out_time):
        await asyncio.sleep(self.delay)
        for i, row in enumerate(self.rows):
            if row.attendance_id == record_id:
                self.rows[i] = replace(row, check_out=check_out_time)
                return self.rows[i]
        raise LookupError(record_id)


def make_workflow(calendar=None, store=None, **kw) -> ScanWorkflow:
    calendar = calendar or FakeCalendar()
    engine = AttendanceDecisionEngine(ShiftPolicy(), UTC)
    return ScanWorkflow(engine, calendar, calendar, store or FakeStore(), **kw)


# ── Happy path ──────────────────────────────────────────────────────
async def test_check_in_check_out_then_completed():
    store = FakeStore()
    workflow = make_workflow(store=store)

    first = await workflow.process(7, at(MONDAY, 8, 20))
    assert isinstance(first, CheckIn)
    assert first.status is AttendanceStatus.LATE
    assert first.record.attendance_id == 1

    second = await workflow.process(7, at(MONDAY, 17))
    assert isinstance(second, CheckOut)
    assert second.record.check_out == at(MONDAY, 17)
    assert second.record.status is AttendanceStatus.LATE

    third = await workflow.process(7, at(MONDAY, 18))
    assert isinstance(third, AlreadyCompleted)
    assert len(store.rows) == 1
    assert store.rows[0].check_out == at(MONDAY, 17)


async def test_holiday_and_rest_day_skip_the_store():
    store = FakeStore()
    calendar = FakeCalendar(holidays={MONDAY}, schedules={7: WorkSchedule(employee_id=7)})
    workflow = make_workflow(calendar, store)

    assert isinstance(await workflow.process(7, at(MONDAY, 9)), Holiday)
    assert isinstance(await workflow.process(7, at(SATURDAY, 9)), RestDay)
    assert store.rows == []


# ── Input validation ────────────────────────────────────────────────
async def test_invalid_input_touches_no_collaborator():
    calendar = FakeCalendar()
    workflow = make_workflow(calendar)
    with pytest.raises(InvalidInput):
        await workflow.process("", at(MONDAY, 9))
    with pytest.raises(InvalidInput):
        await workflow.process(7, "yesterday-ish")
    assert calendar.calls == 0


# ── Collaborator failures ───────────────────────────────────────────
async def test_lookup_failure_is_reported_not_defaulted():
    store = FakeStore()
    workflow = make_workflow(FakeCalendar(fail=True), store)
    with pytest.raises(CollaboratorUnavailable) as excinfo:
        await workflow.process(7, at(MONDAY, 9))
    assert excinfo.value.collaborator == "holiday lookup"
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert store.rows == []


async def test_fail_open_treats_failed_lookup_as_working_day():
    store = FakeStore()
    workflow = make_workflow(FakeCalendar(fail=True), store, fail_open=True)
    decision = await workflow.process(7, at(SATURDAY, 9))
    assert isinstance(decision, CheckIn)
    assert len(store.rows) == 1


async def test_store_failure_is_never_swallowed_even_when_fail_open():
    store = FakeStore()
    store.fail_writes = True
    workflow = make_workflow(store=store, fail_open=True)
    with pytest.raises(CollaboratorUnavailable) as excinfo:
        await workflow.process(7, at(MONDAY, 9))
    assert excinfo.value.collaborator == "attendance store"


# ── Serialization ───────────────────────────────────────────────────
async def test_concurrent_scans_for_one_employee_never_open_two_records():
    store = FakeStore(delay=0.01)
    workflow = make_workflow(store=store)

    results = await asyncio.gather(*(workflow.process(7, at(MONDAY, 9)) for _ in range(3)))

    kinds = sorted(type(r).__name__ for r in results)
    assert kinds == ["AlreadyCompleted", "CheckIn", "CheckOut"]
    assert len(store.rows) == 1
    assert sum(1 for r in store.rows if r.is_open) == 0


async def test_different_employees_scan_independently():
    store = FakeStore(delay=0.01)
    workflow = make_workflow(store=store)
    results = await asyncio.gather(
        workflow.process(7, at(MONDAY, 9)),
        workflow.process(8, at(MONDAY, 9)),
    )
    assert all(isinstance(r, CheckIn) for r in results)
    assert {r.employee_id for r in store.rows} == {7, 8}


async def test_employee_locks_track_holders():
    locks = EmployeeLocks()
    async with locks.hold(7):
        assert locks.is_locked(7)
        assert locks.is_locked("7")
        assert not locks.is_locked(8)
    assert not locks.is_locked(7)


# ── Cancellation ────────────────────────────────────────────────────
class StallingStore(FakeStore):
    """Store whose writes never complete while ``stall`` is set."""

    def __init__(self):
        super().__init__()
        self.stall = True

    async def _wait(self):
        if self.stall:
            await asyncio.Event().wait()

    async def create_attendance_record(self, employee_id, day, check_in_time, status):
        await self._wait()
        return await super().create_attendance_record(employee_id, day, check_in_time, status)

    async def close_attendance_record(self, record_id, check_out_time):
        await self._wait()
        return await super().close_attendance_record(record_id, check_out_time)


async def test_timed_out_check_in_leaves_no_record():
    store = StallingStore()
    workflow = make_workflow(store=store)

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(workflow.process(7, at(MONDAY, 8, 5)), timeout=0.05)
    assert store.rows == []

    store.stall = False
    decision = await workflow.process(7, at(MONDAY, 8, 6))
    assert isinstance(decision, CheckIn)
    assert decision.status is AttendanceStatus.PRESENT
    assert len(store.rows) == 1


async def test_cancelled_check_out_keeps_record_open():
    store = StallingStore()
    store.stall = False
    locks = EmployeeLocks()
    workflow = make_workflow(store=store, locks=locks)
    await workflow.process(7, at(MONDAY, 8, 5))

    store.stall = True
    task = asyncio.create_task(workflow.process(7, at(MONDAY, 17)))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(store.rows) == 1
    assert store.rows[0].is_open
    assert not locks.is_locked(7)


# ── Messages ────────────────────────────────────────────────────────
def test_outcome_messages():
    rec = AttendanceRecord(1, 7, MONDAY, at(MONDAY, 8), None, AttendanceStatus.LATE)
    assert outcome_message(Holiday(MONDAY), "Maria") == (
        "Today is a holiday. Maria is not scheduled to work."
    )
    assert outcome_message(RestDay(MONDAY), "Maria") == "Today is a rest day for Maria."
    assert outcome_message(CheckIn(rec, AttendanceStatus.LATE), "Maria") == (
        "Maria successfully checked in (late)"
    )
    assert outcome_message(CheckOut(rec), "Maria") == "Maria successfully checked out"
    assert outcome_message(AlreadyCompleted(rec), "Maria") == (
        "Maria has already completed attendance for today"
    )
    with pytest.raises(TypeError):
        outcome_message(object(), "Maria")
