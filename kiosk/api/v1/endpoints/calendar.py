"""
Holiday calendar, company events and weekly work-schedule endpoints.

A missing work schedule is reported as 404; the kiosk treats that as
"every day is a working day".
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.v1.deps import get_db, get_now
from kiosk.core.timeutil import date_key
from kiosk.models.calendar import Event, Holiday, WorkSchedule
from kiosk.models.employee import Employee
from kiosk.schemas.attendance import DeleteResponse
from kiosk.schemas.calendar import (
    EventCreate,
    EventRead,
    HolidayCreate,
    HolidayRead,
    WorkScheduleCreate,
    WorkScheduleRead,
    WorkScheduleUpdate,
)

router = APIRouter(tags=["calendar"])
logger = logging.getLogger(__name__)


# ── Holidays ────────────────────────────────────────────────────────
async def _ensure_free_date(db: AsyncSession, day: str, exclude_id: int | None = None) -> None:
    query = select(Holiday).where(Holiday.date == day)
    if exclude_id is not None:
        query = query.where(Holiday.id != exclude_id)
    existing = await db.execute(query)
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail=f"A holiday already exists on {day}")


async def _get_holiday(db: AsyncSession, holiday_id: int) -> Holiday:
    holiday = await db.get(Holiday, holiday_id)
    if holiday is None:
        raise HTTPException(status_code=404, detail="Holiday not found")
    return holiday


@router.get("/holidays", response_model=list[HolidayRead])
async def list_holidays(
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[Holiday]:
    query = select(Holiday).order_by(Holiday.date)
    if search:
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        pattern = f"%{safe_search}%"
        query = query.where(
            or_(
                Holiday.name.ilike(pattern, escape="\\"),
                Holiday.date.ilike(pattern, escape="\\"),
            )
        )
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/holidays", response_model=HolidayRead, status_code=201)
async def create_holiday(
    body: HolidayCreate,
    db: AsyncSession = Depends(get_db),
) -> Holiday:
    day = date_key(body.date)
    await _ensure_free_date(db, day)

    holiday = Holiday(name=body.name, date=day)
    db.add(holiday)
    await db.commit()
    await db.refresh(holiday)
    logger.info("Created holiday %s on %s", holiday.name, holiday.date)
    return holiday


@router.get("/holidays/{holiday_id}", response_model=HolidayRead)
async def get_holiday(
    holiday_id: int,
    db: AsyncSession = Depends(get_db),
) -> Holiday:
    return await _get_holiday(db, holiday_id)


@router.put("/holidays/{holiday_id}", response_model=HolidayRead)
async def update_holiday(
    holiday_id: int,
    body: HolidayCreate,
    db: AsyncSession = Depends(get_db),
) -> Holiday:
    holiday = await _get_holiday(db, holiday_id)
    day = date_key(body.date)
    await _ensure_free_date(db, day, exclude_id=holiday_id)

    holiday.name = body.name
    holiday.date = day
    await db.commit()
    await db.refresh(holiday)
    logger.info("Updated holiday %d", holiday_id)
    return holiday


@router.delete("/holidays/{holiday_id}", response_model=DeleteResponse)
async def delete_holiday(
    holiday_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    holiday = await _get_holiday(db, holiday_id)
    await db.delete(holiday)
    await db.commit()
    logger.info("Deleted holiday %d (%s)", holiday_id, holiday.date)
    return DeleteResponse(success=True, message=f"Holiday '{holiday.name}' deleted")


# ── Company events ──────────────────────────────────────────────────
async def _get_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _event_columns(body: EventCreate) -> dict:
    data = body.model_dump()
    data["start_date"] = date_key(body.start_date)
    data["end_date"] = date_key(body.end_date) if body.end_date else None
    return data


@router.get("/events", response_model=list[EventRead])
async def list_events(
    db: AsyncSession = Depends(get_db),
) -> list[Event]:
    result = await db.execute(select(Event).order_by(Event.start_date, Event.id))
    return list(result.scalars().all())


@router.get("/events/upcoming", response_model=list[EventRead])
async def upcoming_events(
    limit: int = Query(5, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> list[Event]:
    """Events starting today or later, soonest first."""
    result = await db.execute(
        select(Event)
        .where(Event.start_date >= date_key(now.date()))
        .order_by(Event.start_date, Event.id)
        .limit(limit)
    )
    return list(result.scalars().all())


@router.post("/events", response_model=EventRead, status_code=201)
async def create_event(
    body: EventCreate,
    db: AsyncSession = Depends(get_db),
) -> Event:
    event = Event(**_event_columns(body))
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info("Created event %s on %s", event.title, event.start_date)
    return event


@router.get("/events/{event_id}", response_model=EventRead)
async def get_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> Event:
    return await _get_event(db, event_id)


@router.put("/events/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    body: EventCreate,
    db: AsyncSession = Depends(get_db),
) -> Event:
    event = await _get_event(db, event_id)
    for field, value in _event_columns(body).items():
        setattr(event, field, value)
    await db.commit()
    await db.refresh(event)
    logger.info("Updated event %d", event_id)
    return event


@router.delete("/events/{event_id}", response_model=DeleteResponse)
async def delete_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    event = await _get_event(db, event_id)
    await db.delete(event)
    await db.commit()
    logger.info("Deleted event %d", event_id)
    return DeleteResponse(success=True, message=f"Event '{event.title}' deleted")


# ── Work schedules ──────────────────────────────────────────────────
async def _find_schedule(db: AsyncSession, employee_id: int) -> WorkSchedule | None:
    result = await db.execute(select(WorkSchedule).where(WorkSchedule.employee_id == employee_id))
    return result.scalar_one_or_none()


async def _ensure_employee(db: AsyncSession, employee_id: int) -> None:
    if await db.get(Employee, employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")


@router.get("/work-schedule/{employee_id}", response_model=WorkScheduleRead)
async def get_work_schedule(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> WorkSchedule:
    schedule = await _find_schedule(db, employee_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Work schedule not found")
    return schedule


@router.post("/work-schedule", response_model=WorkScheduleRead, status_code=201)
async def create_work_schedule(
    body: WorkScheduleCreate,
    db: AsyncSession = Depends(get_db),
) -> WorkSchedule:
    await _ensure_employee(db, body.employee_id)
    if await _find_schedule(db, body.employee_id) is not None:
        raise HTTPException(
            status_code=400,
            detail="Work schedule already exists for this employee",
        )

    schedule = WorkSchedule(**body.model_dump())
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    logger.info("Created work schedule for employee %d", body.employee_id)
    return schedule


@router.put("/work-schedule/{employee_id}", response_model=WorkScheduleRead)
async def upsert_work_schedule(
    employee_id: int,
    body: WorkScheduleUpdate,
    db: AsyncSession = Depends(get_db),
) -> WorkSchedule:
    """Update the schedule, creating it with Mon-Fri defaults if absent."""
    await _ensure_employee(db, employee_id)
    schedule = await _find_schedule(db, employee_id)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}

    if schedule is None:
        defaults = WorkScheduleCreate(employee_id=employee_id, **changes)
        schedule = WorkSchedule(**defaults.model_dump())
        db.add(schedule)
    else:
        for field, value in changes.items():
            setattr(schedule, field, value)

    await db.commit()
    await db.refresh(schedule)
    logger.info("Saved work schedule for employee %d", employee_id)
    return schedule


@router.delete("/work-schedule/{employee_id}", response_model=DeleteResponse)
async def delete_work_schedule(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    schedule = await _find_schedule(db, employee_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Work schedule not found")
    await db.delete(schedule)
    await db.commit()
    logger.info("Deleted work schedule for employee %d", employee_id)
    return DeleteResponse(success=True, message="Work schedule deleted")
