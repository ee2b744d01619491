"""
Attendance Kiosk server — application entry point.

This is the **only** file that assembles the app. All business logic
lives in the `engine/`, `services/`, `api/` and `models/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kiosk.api.v1.api import api_router
from kiosk.core.config import settings
from kiosk.core.exceptions import register_exception_handlers
from kiosk.db.base import Base
from kiosk.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from kiosk.models.attendance import Attendance  # noqa: F401
from kiosk.models.attendance_settings import AttendanceSettings  # noqa: F401
from kiosk.models.calendar import Event, Holiday, WorkSchedule  # noqa: F401
from kiosk.models.employee import Department, Employee  # noqa: F401
from kiosk.services.repositories import get_or_create_settings
from kiosk.services.scan import EmployeeLocks

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed the shift rules on first run
    async with async_session_factory() as session:
        await get_or_create_settings(session)

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Fingerprint attendance kiosk server",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Scans for the same employee are serialized across requests
    application.state.scan_locks = EmployeeLocks()

    application.include_router(api_router, prefix=settings.API_PREFIX)

    return application


app = create_app()
