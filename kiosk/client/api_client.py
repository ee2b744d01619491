"""
HTTP client the kiosk uses to talk to the attendance server.

Implements the holiday, schedule and attendance collaborators of the
scan workflow on top of the REST API. Transport and HTTP errors are
raised as ``httpx`` exceptions; the workflow turns them into
``CollaboratorUnavailable``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import httpx

from kiosk.client.config import ClientConfig
from kiosk.core.timeutil import date_key
from kiosk.engine.decision import AttendanceRecord, AttendanceStatus, EmployeeId, WorkSchedule
from kiosk.schemas.attendance import AttendanceRead
from kiosk.schemas.calendar import HolidayRead, WorkScheduleRead

logger = logging.getLogger(__name__)


def _to_record(item: dict[str, Any]) -> AttendanceRecord:
    row = AttendanceRead.model_validate(item)
    return AttendanceRecord(
        attendance_id=row.id,
        employee_id=row.employee_id,
        work_date=date.fromisoformat(row.date),
        check_in=row.check_in,
        check_out=row.check_out,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class KioskApiClient:
    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "KioskApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, **params: Any) -> Any:
        response = await self._http.get(path, params=params or None)
        response.raise_for_status()
        return response.json()

    # ── Connectivity ────────────────────────────────────────────────
    async def test_connection(self) -> bool:
        """True when the server answers its health check with a working database."""
        try:
            health = await self._get("/health")
        except httpx.HTTPError as exc:
            logger.warning("Server %s unreachable: %s", self.config.server_host, exc)
            return False
        return bool(health.get("db"))

    # ── Holiday / schedule lookups ──────────────────────────────────
    async def get_holidays(self) -> set[date]:
        items = await self._get("/holidays")
        return {date.fromisoformat(HolidayRead.model_validate(item).date) for item in items}

    async def get_work_schedule(self, employee_id: EmployeeId) -> WorkSchedule | None:
        response = await self._http.get(f"/work-schedule/{employee_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        row = WorkScheduleRead.model_validate(response.json())
        return WorkSchedule(
            employee_id=row.employee_id,
            sunday=row.sunday,
            monday=row.monday,
            tuesday=row.tuesday,
            wednesday=row.wednesday,
            thursday=row.thursday,
            friday=row.friday,
            saturday=row.saturday,
        )

    # ── Attendance store ────────────────────────────────────────────
    async def get_attendance_records(
        self, employee_id: EmployeeId, day: date
    ) -> list[AttendanceRecord]:
        page = await self._get(
            "/attendance", employee_id=employee_id, date=date_key(day), limit=500
        )
        records = [_to_record(item) for item in page["data"]]
        return sorted(records, key=lambda r: r.attendance_id or 0)

    async def create_attendance_record(
        self,
        employee_id: EmployeeId,
        day: date,
        check_in_time: datetime,
        status: AttendanceStatus,
    ) -> AttendanceRecord:
        response = await self._http.post(
            "/attendance/check-in",
            json={
                "employee_id": employee_id,
                "date": date_key(day),
                "check_in": check_in_time.isoformat(),
                "status": AttendanceStatus(status).value,
            },
        )
        response.raise_for_status()
        return _to_record(response.json())

    async def close_attendance_record(
        self, record_id: int, check_out_time: datetime
    ) -> AttendanceRecord:
        response = await self._http.put(
            f"/attendance/check-out/{record_id}",
            json={"check_out": check_out_time.isoformat()},
        )
        response.raise_for_status()
        return _to_record(response.json())

    # ── Kiosk screen data ───────────────────────────────────────────
    async def get_today_attendance(self) -> list[dict[str, Any]]:
        return await self._get("/attendance/today")

    async def get_employee(self, employee_id: EmployeeId) -> dict[str, Any]:
        return await self._get(f"/employees/{employee_id}")

    async def get_templates(self) -> list[dict[str, Any]]:
        """Enrolled ``{employee_id, template}`` pairs for the reader service."""
        return await self._get("/employees/templates")
