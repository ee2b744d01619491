"""
Attendance Settings model — singleton table for the shift rules.

Only one row should ever exist. The admin updates it via the settings API,
and the scan workflow reads it to classify check-ins as present or late.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from kiosk.db.base import Base


class AttendanceSettings(Base):
    __tablename__ = "attendance_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    shift_start_hour: int = Column(Integer, nullable=False, default=8)  # type: ignore[assignment]
    shift_end_hour: int = Column(Integer, nullable=False, default=18)  # type: ignore[assignment]
    grace_minutes: int = Column(Integer, nullable=False, default=15)  # type: ignore[assignment]
    timezone_offset: str = Column(String(6), nullable=False, default="+00:00")  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
