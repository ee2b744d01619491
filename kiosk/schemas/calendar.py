"""Pydantic schemas for holidays, company events and weekly work schedules."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator


# ── Holiday ─────────────────────────────────────────────────────────
class HolidayCreate(BaseModel):
    name: str
    date: dt.date

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Holiday name must not be empty")
        return v


class HolidayRead(BaseModel):
    id: int
    name: str
    date: str
    created_at: dt.datetime | None

    model_config = {"from_attributes": True}


# ── Company event ───────────────────────────────────────────────────
class EventCreate(BaseModel):
    title: str = Field(max_length=200)
    description: str | None = None
    start_date: dt.date
    end_date: dt.date | None = None
    location: str | None = Field(default=None, max_length=200)
    type: str = Field(default="general", max_length=50)

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Event title must not be empty")
        return v

    @model_validator(mode="after")
    def _ordered(self) -> "EventCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class EventRead(BaseModel):
    id: int
    title: str
    description: str | None
    start_date: str
    end_date: str | None
    location: str | None
    type: str
    created_at: dt.datetime | None

    model_config = {"from_attributes": True}


# ── Work schedule ───────────────────────────────────────────────────
class WorkScheduleCreate(BaseModel):
    employee_id: int
    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = False
    sunday: bool = False


class WorkScheduleUpdate(BaseModel):
    monday: bool | None = None
    tuesday: bool | None = None
    wednesday: bool | None = None
    thursday: bool | None = None
    friday: bool | None = None
    saturday: bool | None = None
    sunday: bool | None = None


class WorkScheduleRead(BaseModel):
    id: int
    employee_id: int
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    updated_at: dt.datetime | None

    model_config = {"from_attributes": True}
