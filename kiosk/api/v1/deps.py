"""
FastAPI dependencies — database session, clock and scan workflow.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.core.config import settings
from kiosk.core.timeutil import now_local, parse_tz_offset
from kiosk.db.session import async_session_factory
from kiosk.services.repositories import (
    SqlAttendanceStore,
    SqlHolidayLookup,
    SqlScheduleLookup,
    engine_from_settings,
    get_or_create_settings,
)
from kiosk.services.scan import EmployeeLocks, ScanWorkflow


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Clock ───────────────────────────────────────────────────────────
async def get_now(db: AsyncSession = Depends(get_db)) -> datetime:
    """Current local time, using the offset from the settings row."""
    row = await get_or_create_settings(db)
    return now_local(parse_tz_offset(row.timezone_offset))


# ── Scan workflow ───────────────────────────────────────────────────
async def get_scan_workflow(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ScanWorkflow:
    row = await get_or_create_settings(db)
    engine = engine_from_settings(row)
    locks = getattr(request.app.state, "scan_locks", None)
    if locks is None:
        locks = request.app.state.scan_locks = EmployeeLocks()
    return ScanWorkflow(
        engine,
        SqlHolidayLookup(db),
        SqlScheduleLookup(db),
        SqlAttendanceStore(db, engine.tz),
        locks=locks,
        fail_open=settings.SCAN_FAIL_OPEN,
    )
