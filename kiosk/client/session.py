"""
Kiosk session — feeds fingerprint reader events through the state
machine and runs the scan workflow once an employee is identified.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

from kiosk.client.api_client import KioskApiClient
from kiosk.client.config import ClientConfig
from kiosk.client.state_machine import (
    OUTCOME_EVENTS,
    KioskEvent,
    KioskState,
    KioskStateMachine,
)
from kiosk.core.exceptions import AttendanceError
from kiosk.core.timeutil import now_local
from kiosk.engine.decision import Decision
from kiosk.services.scan import ScanWorkflow, outcome_message

logger = logging.getLogger(__name__)

READY_MESSAGE = "Scanner initialized. Ready to scan."


class KioskSession:
    def __init__(
        self,
        config: ClientConfig,
        workflow: ScanWorkflow,
        *,
        api: KioskApiClient | None = None,
        machine: KioskStateMachine | None = None,
        clock: Callable[[], datetime] | None = None,
        auto_reset: bool = True,
    ) -> None:
        self.config = config
        self.workflow = workflow
        self.api = api
        self.machine = machine or KioskStateMachine()
        self._clock = clock or (lambda: now_local(config.tz))
        self.auto_reset = auto_reset

        self.message = ""
        self.reader_connected = False
        self.fingerprint: Any = None
        self.employee: dict[str, Any] | None = None
        self.decision: Decision | None = None
        self.today_attendance: list[dict[str, Any]] = []
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def connected_to(cls, api: KioskApiClient, **kwargs: Any) -> "KioskSession":
        """Session whose workflow reads and writes through the server API."""
        config = api.config
        workflow = ScanWorkflow(
            config.build_engine(),
            api,
            api,
            api,
            fail_open=config.fail_open,
        )
        return cls(config, workflow, api=api, **kwargs)

    @property
    def state(self) -> KioskState:
        return self.machine.state

    def _move(self, event: KioskEvent, message: str) -> KioskState:
        state = self.machine.fire(event)
        self.message = message
        return state

    # ── Reader connection ───────────────────────────────────────────
    def on_connect(self) -> None:
        self._move(KioskEvent.CONNECT, "Connected to fingerprint server")

    def on_connect_error(self, error: object = None) -> None:
        logger.error("Fingerprint server connection error: %s", error)
        self.reader_connected = False
        self._move(KioskEvent.CONNECT_ERROR, "Could not connect to fingerprint server")

    def on_disconnect(self) -> None:
        self.reader_connected = False
        self._move(KioskEvent.DISCONNECT, "Disconnected from fingerprint server")

    def on_biometric_connected(self) -> None:
        self.reader_connected = True
        self._move(KioskEvent.BIOMETRIC_CONNECTED, READY_MESSAGE)

    def on_biometric_disconnected(self) -> None:
        self.reader_connected = False
        self._move(KioskEvent.BIOMETRIC_DISCONNECTED, "Biometric disconnected")

    def retry(self) -> None:
        self._move(KioskEvent.RETRY, "Retrying connection")

    # ── Capture / verification ──────────────────────────────────────
    def _reader_event(self, event: KioskEvent) -> bool:
        """Reader events outside a scan window are dropped."""
        if self.machine.can(event):
            return True
        logger.debug("Ignoring %s while %s", event.value, self.state.value)
        return False

    def on_capture(self, data: Any) -> None:
        if self._reader_event(KioskEvent.CAPTURE):
            self.fingerprint = data
            self._move(KioskEvent.CAPTURE, "Fingerprint captured successfully")

    def on_fingerprint_capture(self, data: Any) -> None:
        if self._reader_event(KioskEvent.FINGERPRINT_CAPTURE):
            self.fingerprint = data
            self._move(KioskEvent.FINGERPRINT_CAPTURE, "Fingerprint captured successfully")

    async def on_verify_result(self, result: str | dict[str, Any]) -> KioskState:
        """Handle the reader's match result; a match runs the scan workflow."""
        if self.state is not KioskState.VERIFYING:
            logger.warning("Verify result received while %s; ignored", self.state.value)
            return self.state
        employee = _matched_employee(result)
        if employee is None:
            self.employee = None
            self._move(KioskEvent.VERIFY_FAILED, "Employee not found")
            self._schedule_reset()
            return self.state
        return await self.handle_employee_identified(employee)

    async def handle_employee_identified(self, employee: dict[str, Any]) -> KioskState:
        if not self.machine.can(KioskEvent.IDENTIFIED):
            logger.warning("Employee identified while %s; ignored", self.state.value)
            return self.state
        # Claim the scan before the first await.
        self._move(KioskEvent.IDENTIFIED, "Processing attendance...")
        self.employee = employee
        employee_id = employee.get("employee_id", employee.get("id"))
        display_name = employee.get("display_name") or str(employee_id)

        try:
            decision = await self.workflow.process(employee_id, self._clock())
        except AttendanceError as exc:
            logger.error("Scan for employee %s failed: %s", employee_id, exc)
            self.decision = None
            return self._finish(KioskEvent.SCAN_FAILED, f"Error processing attendance: {exc}")

        self.decision = decision
        state = self._finish(OUTCOME_EVENTS[decision.kind], outcome_message(decision, display_name))
        if state is KioskState.SUCCESS:
            await self.refresh_today_attendance()
        return state

    def _finish(self, event: KioskEvent, message: str) -> KioskState:
        if not self.machine.can(event):
            # The reader dropped mid-scan; its error screen stays up.
            logger.warning(
                "Scan finished with %s while %s: %s", event.value, self.state.value, message
            )
            return self.state
        self._move(event, message)
        self._schedule_reset()
        return self.state

    # ── Reset / roster ──────────────────────────────────────────────
    def reset(self) -> None:
        if not self.machine.can(KioskEvent.RESET):
            return
        # A lost reader keeps the error on screen until it reconnects.
        if self.state is KioskState.ERROR and not self.reader_connected:
            return
        self._move(KioskEvent.RESET, READY_MESSAGE)
        self.employee = None
        self.decision = None
        self.fingerprint = None

    async def reset_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.reset()

    def _schedule_reset(self) -> None:
        if not self.auto_reset:
            return
        task = asyncio.get_running_loop().create_task(self.reset_later(self.config.reset_delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def refresh_today_attendance(self) -> None:
        if self.api is None:
            return
        try:
            self.today_attendance = await self.api.get_today_attendance()
        except httpx.HTTPError as exc:
            logger.warning("Could not refresh today's attendance: %s", exc)

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*self._pending, return_exceptions=True)


def _matched_employee(result: Any) -> dict[str, Any] | None:
    """The matched employee from a reader verify payload, or None."""
    if isinstance(result, (str, bytes)):
        try:
            result = json.loads(result)
        except ValueError:
            logger.warning("Unreadable verify payload: %.80r", result)
            return None
    if not isinstance(result, dict) or result.get("result") != "success":
        return None
    employee = result.get("employee")
    return employee if isinstance(employee, dict) and employee else None
