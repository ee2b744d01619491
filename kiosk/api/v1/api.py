"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from kiosk.api.v1.endpoints import attendance, calendar, employees, reports, settings

api_router = APIRouter()

# Employees, departments
api_router.include_router(employees.router)

# Holidays, work schedules
api_router.include_router(calendar.router)

# Reports, live stats, health, status (before attendance: /attendance/live-stats)
api_router.include_router(reports.router)

# Attendance records, check-in/out, scan
api_router.include_router(attendance.router)

# Shift rules
api_router.include_router(settings.router)
