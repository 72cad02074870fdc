import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import asc, desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.errors import NotFoundError
from lions_club.models import Checkin, Event, Payment, Registration
from lions_club.schemas import EventCreate, EventUpdate
from lions_club.utils.time import utcnow

logger = logging.getLogger(__name__)


async def get_event(session: AsyncSession, event_id: int) -> Optional[Event]:
    return await session.get(Event, event_id)


async def require_event(session: AsyncSession, event_id: int) -> Event:
    event = await get_event(session, event_id)
    if not event:
        raise NotFoundError("活動不存在", code="EVENT_NOT_FOUND")
    return event


async def _warn_on_conflict(session: AsyncSession, start: datetime, exclude_id: int | None = None) -> None:
    query = select(Event).where(Event.date == start, Event.status == "active")
    if exclude_id is not None:
        query = query.where(Event.id != exclude_id)
    other = (await session.execute(query)).scalars().first()
    if other:
        logger.warning("event_time_conflict start=%s existing=%r", start.isoformat(), other.title)


async def create_event(session: AsyncSession, data: EventCreate, created_by: int | None = None) -> Event:
    await _warn_on_conflict(session, data.date)

    new_event = Event(
        title=data.title,
        description=data.description,
        date=data.date,
        location=data.location,
        max_attendees=data.max_attendees,
        status=data.status,
        created_by=created_by,
    )
    session.add(new_event)
    await session.commit()
    await session.refresh(new_event)
    logger.info("event_created id=%s title=%r", new_event.id, new_event.title)
    return new_event


async def search_events(
    session: AsyncSession,
    title: str | None = None,
    status: str | None = None,
    location: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Event], int]:
    conditions = []
    if title:
        conditions.append(Event.title.ilike(f"%{title}%"))  # type: ignore[attr-defined]
    if status:
        conditions.append(Event.status == status)
    if location:
        conditions.append(Event.location.ilike(f"%{location}%"))  # type: ignore[union-attr]
    if date_from:
        conditions.append(Event.date >= date_from)
    if date_to:
        conditions.append(Event.date <= date_to)

    total = (await session.execute(select(func.count()).select_from(Event).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Event).where(*conditions).order_by(desc(Event.date)).offset(offset).limit(limit)  # type: ignore[arg-type]
    )
    return list(result.scalars().all()), total


async def update_event(session: AsyncSession, event_id: int, data: EventUpdate) -> Event:
    event = await require_event(session, event_id)
    updates = data.model_dump(exclude_unset=True)

    if updates.get("date") and updates["date"] != event.date:
        await _warn_on_conflict(session, updates["date"], exclude_id=event.id)

    for key, value in updates.items():
        if key in {"title", "date", "status"} and value is None:
            continue
        setattr(event, key, value)
    event.updated_at = utcnow()
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


async def delete_event(session: AsyncSession, event_id: int) -> str:
    """Cancels events that have history, hard-deletes the rest.

    Returns ``"cancelled"`` or ``"deleted"``.
    """
    event = await require_event(session, event_id)
    registrations = await _count(session, Registration, Registration.event_id == event_id)
    checkins = await _count(session, Checkin, Checkin.event_id == event_id)

    if registrations or checkins:
        event.status = "cancelled"
        event.updated_at = utcnow()
        session.add(event)
        outcome = "cancelled"
    else:
        await session.delete(event)
        outcome = "deleted"
    await session.commit()
    logger.info("event_%s id=%s", outcome, event_id)
    return outcome


async def _count(session: AsyncSession, model, *conditions) -> int:
    return (await session.execute(select(func.count()).select_from(model).where(*conditions))).scalar_one()


async def count_confirmed(session: AsyncSession, event_id: int) -> int:
    return await _count(
        session, Registration, Registration.event_id == event_id, Registration.status == "confirmed"
    )


async def get_event_stats(session: AsyncSession, event_id: int) -> dict:
    event = await require_event(session, event_id)
    registrations = await count_confirmed(session, event_id)
    checkins = await _count(session, Checkin, Checkin.event_id == event_id)
    payments = await _count(session, Payment, Payment.event_id == event_id, Payment.status == "completed")
    attendance = (checkins / registrations) * 100 if registrations else 0

    return {
        "eventId": event.id,
        "eventTitle": event.title,
        "maxAttendees": event.max_attendees,
        "registrations": registrations,
        "checkins": checkins,
        "payments": payments,
        "attendanceRate": round(attendance, 2),
        "availableSlots": event.max_attendees - registrations if event.max_attendees is not None else None,
    }


async def get_overall_stats(session: AsyncSession) -> dict[str, int]:
    now = utcnow()
    active = await _count(session, Event, Event.status == "active")
    upcoming = await _count(session, Event, Event.status == "active", Event.date >= now)
    return {
        "totalEvents": await _count(session, Event),
        "activeEvents": active,
        "cancelledEvents": await _count(session, Event, Event.status == "cancelled"),
        "upcomingEvents": upcoming,
        "pastEvents": active - upcoming,
    }


async def get_upcoming_events(session: AsyncSession, limit: int = 5) -> List[Event]:
    result = await session.execute(
        select(Event)
        .where(Event.status == "active", Event.date >= utcnow())
        .order_by(asc(Event.date))  # type: ignore[arg-type]
        .limit(limit)
    )
    return list(result.scalars().all())


async def check_capacity(session: AsyncSession, event_id: int) -> dict:
    event = await require_event(session, event_id)
    current = await count_confirmed(session, event_id)
    available = event.max_attendees - current if event.max_attendees is not None else None
    return {
        "maxAttendees": event.max_attendees,
        "currentRegistrations": current,
        "availableSlots": available,
        "isFull": bool(event.max_attendees) and current >= event.max_attendees,
    }


def event_summary(event: Event) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "date": event.date.isoformat(),
        "location": event.location,
        "status": event.status,
    }
