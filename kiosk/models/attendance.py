"""
Attendance model — one row per employee, day and work session.

``check_out`` stays NULL while the session is open.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from kiosk.db.base import Base


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (Index("ix_attendance_employee_date", "employee_id", "date"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    check_in: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    check_out: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    status: str = Column(String(10), nullable=False)  # type: ignore[assignment]
    # present | late
    notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="attendances")
