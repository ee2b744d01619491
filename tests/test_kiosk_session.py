"""Tests for the kiosk session driving reader events through the workflow."""

import asyncio
import json
from datetime import date, datetime, timezone

import pytest

from kiosk.client.config import ClientConfig
from kiosk.client.session import READY_MESSAGE, KioskSession
from kiosk.client.state_machine import KioskState
from kiosk.engine.decision import AttendanceRecord, CheckIn
from kiosk.services.scan import ScanWorkflow

UTC = timezone.utc
MONDAY_0900 = datetime(2024, 3, 4, 9, 0, tzinfo=UTC)


class MemoryBackend:
    """Holiday, schedule and attendance collaborators in one object."""

    def __init__(self, holidays=(), fail=False):
        self.holidays = set(holidays)
        self.rows: list[AttendanceRecord] = []
        self.fail = fail

    async def get_holidays(self):
        if self.fail:
            raise ConnectionError("server unreachable")
        return set(self.holidays)

    async def get_work_schedule(self, employee_id):
        return None

    async def get_attendance_records(self, employee_id, day):
        return [r for r in self.rows if r.employee_id == employee_id and r.work_date == day]

    async def create_attendance_record(self, employee_id, day, check_in_time, status):
        row = AttendanceRecord(len(self.rows) + 1, employee_id, day, check_in_time, None, status)
        self.rows.append(row)
        return row

    async def close_attendance_record(self, record_id, check_out_time):
        raise AssertionError("not used")


class SlowBackend(MemoryBackend):
    """Check-in writes wait until `release` is set."""

    def __init__(self):
        super().__init__()
        self.writing = asyncio.Event()
        self.release = asyncio.Event()

    async def create_attendance_record(self, employee_id, day, check_in_time, status):
        self.writing.set()
        await asyncio.sleep(0)
        await self.release.wait()
        return await super().create_attendance_record(employee_id, day, check_in_time, status)


def make_session(backend: MemoryBackend) -> KioskSession:
    config = ClientConfig()
    workflow = ScanWorkflow(config.build_engine(), backend, backend, backend)
    session = KioskSession(config, workflow, clock=lambda: MONDAY_0900, auto_reset=False)
    session.on_connect()
    session.on_biometric_connected()
    return session


def verified(employee_id=7, name="Maria Santos") -> str:
    return json.dumps(
        {"result": "success", "employee": {"employee_id": employee_id, "display_name": name}}
    )


@pytest.mark.asyncio
async def test_identified_employee_is_checked_in():
    backend = MemoryBackend()
    session = make_session(backend)
    assert session.state is KioskState.READY
    assert session.message == READY_MESSAGE

    session.on_capture({"template": "..."})
    session.on_fingerprint_capture({"template": "..."})
    assert session.state is KioskState.VERIFYING

    state = await session.on_verify_result(verified())
    assert state is KioskState.SUCCESS
    assert isinstance(session.decision, CheckIn)
    assert session.message == "Maria Santos successfully checked in (late)"
    assert len(backend.rows) == 1

    session.reset()
    assert session.state is KioskState.READY
    assert session.decision is None


@pytest.mark.asyncio
async def test_holiday_scan_shows_holiday_screen():
    session = make_session(MemoryBackend(holidays={date(2024, 3, 4)}))
    session.on_fingerprint_capture({})
    state = await session.on_verify_result(verified())
    assert state is KioskState.HOLIDAY
    assert session.message == "Today is a holiday. Maria Santos is not scheduled to work."


@pytest.mark.asyncio
async def test_unmatched_fingerprint():
    session = make_session(MemoryBackend())
    session.on_fingerprint_capture({})
    state = await session.on_verify_result({"result": "fail"})
    assert state is KioskState.ERROR
    assert session.message == "Employee not found"


@pytest.mark.asyncio
async def test_server_failure_shows_error():
    session = make_session(MemoryBackend(fail=True))
    session.on_fingerprint_capture({})
    state = await session.on_verify_result(verified())
    assert state is KioskState.ERROR
    assert session.message.startswith("Error processing attendance: holiday lookup unavailable")


@pytest.mark.asyncio
async def test_reset_waits_for_reader_after_disconnect():
    session = make_session(MemoryBackend())
    session.on_biometric_disconnected()
    session.reset()
    assert session.state is KioskState.ERROR
    session.on_biometric_connected()
    assert session.state is KioskState.READY


@pytest.mark.asyncio
async def test_auto_reset_after_delay():
    config = ClientConfig(reset_delay=0)
    backend = MemoryBackend()
    workflow = ScanWorkflow(config.build_engine(), backend, backend, backend)
    session = KioskSession(config, workflow, clock=lambda: MONDAY_0900)
    session.on_connect()
    session.on_biometric_connected()
    session.on_fingerprint_capture({})

    await session.on_verify_result(verified())
    assert session.state is KioskState.SUCCESS
    await session.reset_later(0)
    assert session.state is KioskState.READY
    await session.close()


@pytest.mark.asyncio
async def test_reader_events_outside_scan_window_are_ignored():
    backend = MemoryBackend()
    session = make_session(backend)
    session.on_capture({"template": "..."})
    session.on_fingerprint_capture({"template": "..."})
    await session.on_verify_result(verified())
    assert session.state is KioskState.SUCCESS

    session.on_capture({"template": "late"})
    assert session.state is KioskState.SUCCESS
    assert await session.on_verify_result(verified()) is KioskState.SUCCESS
    assert len(backend.rows) == 1


@pytest.mark.asyncio
async def test_duplicate_verify_result_runs_one_scan():
    backend = SlowBackend()
    session = make_session(backend)
    session.on_fingerprint_capture({})

    first = asyncio.create_task(session.on_verify_result(verified()))
    await backend.writing.wait()
    assert session.state is KioskState.PROCESSING

    assert await session.on_verify_result(verified()) is KioskState.PROCESSING
    backend.release.set()
    assert await first is KioskState.SUCCESS

    assert len(backend.rows) == 1
    assert backend.rows[0].check_out is None


@pytest.mark.asyncio
async def test_simultaneous_verify_results():
    backend = SlowBackend()
    backend.release.set()
    session = make_session(backend)
    session.on_fingerprint_capture({})

    states = await asyncio.gather(
        session.on_verify_result(verified()),
        session.on_verify_result(verified()),
    )
    assert sorted(s.value for s in states) == ["processing", "success"]
    assert len(backend.rows) == 1
    assert backend.rows[0].is_open


@pytest.mark.asyncio
async def test_reader_lost_mid_scan_keeps_error_screen():
    backend = SlowBackend()
    session = make_session(backend)
    session.on_fingerprint_capture({})

    scan = asyncio.create_task(session.on_verify_result(verified()))
    await backend.writing.wait()
    session.on_biometric_disconnected()
    backend.release.set()

    assert await scan is KioskState.ERROR
    assert session.message == "Biometric disconnected"
    assert isinstance(session.decision, CheckIn)
    assert len(backend.rows) == 1

    session.on_biometric_connected()
    assert session.state is KioskState.READY


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    ["not json", "[1, 2]", '"success"', {"result": "success", "employee": "7"}],
)
async def test_unreadable_verify_payload_is_a_failed_match(payload):
    backend = MemoryBackend()
    session = make_session(backend)
    session.on_fingerprint_capture({})

    assert await session.on_verify_result(payload) is KioskState.ERROR
    assert session.message == "Employee not found"
    assert backend.rows == []
