"""
Employee & Department models — who can scan at the kiosk.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from kiosk.db.base import Base


class Department(Base):
    __tablename__ = "departments"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    department_head: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    employees = relationship("Employee", back_populates="department")


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    unique_id: str = Column(String(64), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    department_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("departments.id"), nullable=True
    )
    lastname: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    firstname: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    middlename: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    display_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    age: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    gender: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    # Enrolled fingerprint template, as handed over by the reader service.
    biometric_data: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="1")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    department = relationship("Department", back_populates="employees")
    attendances = relationship(
        "Attendance",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    work_schedule = relationship(
        "WorkSchedule",
        back_populates="employee",
        uselist=False,
        cascade="all, delete-orphan",
    )
