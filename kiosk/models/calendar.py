"""
Holiday, WorkSchedule & Event models — the company calendar.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from kiosk.db.base import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), unique=True, nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class WorkSchedule(Base):
    __tablename__ = "work_schedule"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("employees.id"), unique=True, nullable=False
    )
    monday: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    tuesday: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    wednesday: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    thursday: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    friday: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    saturday: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    sunday: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="work_schedule")


class Event(Base):
    __tablename__ = "events"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    start_date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    end_date: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    location: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    type: str = Column(String(50), nullable=False, default="general")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
