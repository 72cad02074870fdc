import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.errors import ConflictError, InvalidRequestError, NotFoundError, PermissionDeniedError
from lions_club.models import Event, Member, Registration
from lions_club.models.registration import REGISTRATION_STATUSES
from lions_club.schemas import RegistrationCreate
from lions_club.services.events import count_confirmed, require_event
from lions_club.services.members import resolve_member
from lions_club.utils.time import utcnow

logger = logging.getLogger(__name__)

# Registrations can no longer be cancelled this close to the event start
CANCEL_CUTOFF = timedelta(hours=24)


async def _ensure_capacity(session: AsyncSession, event: Event) -> None:
    if event.max_attendees and await count_confirmed(session, event.id) >= event.max_attendees:  # type: ignore[arg-type]
        raise ConflictError("活動名額已滿，無法報名", code="EVENT_FULL")


async def register_member_for_event(session: AsyncSession, event_id: int, data: RegistrationCreate) -> Registration:
    event = await require_event(session, event_id)
    if event.status != "active":
        raise InvalidRequestError("活動已取消或不開放報名", code="EVENT_INACTIVE")
    if event.date < utcnow():
        raise InvalidRequestError("活動已結束，無法報名", code="EVENT_ENDED")

    member = await resolve_member(session, data.member_id, data.line_user_id)
    if member.status != "active":
        raise PermissionDeniedError("會員帳號已停用，無法報名", code="ACCOUNT_INACTIVE")

    existing = (
        await session.execute(
            select(Registration).where(Registration.member_id == member.id, Registration.event_id == event_id)
        )
    ).scalars().first()

    if existing:
        if existing.status != "cancelled":
            raise ConflictError(
                "您已經報名過此活動了",
                code="ALREADY_REGISTERED",
                payload={"registration": existing.model_dump(mode="json")},
            )
        # Re-activate a cancelled registration instead of inserting a second row
        if data.status == "confirmed":
            await _ensure_capacity(session, event)
        existing.status = data.status
        existing.num_attendees = data.num_attendees
        existing.notes = data.notes or existing.notes
        existing.updated_at = utcnow()
        session.add(existing)
        await session.commit()
        await session.refresh(existing)
        logger.info("registration_reactivated id=%s", existing.id)
        return existing

    if data.status == "confirmed":
        await _ensure_capacity(session, event)

    registration = Registration(
        member_id=member.id,  # type: ignore[arg-type]
        event_id=event_id,
        status=data.status,
        num_attendees=data.num_attendees,
        notes=data.notes,
    )
    session.add(registration)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("您已經報名過此活動了", code="ALREADY_REGISTERED")
    await session.refresh(registration)
    logger.info("registration_created id=%s member=%s event=%s", registration.id, member.id, event_id)
    return registration


async def get_registration(session: AsyncSession, registration_id: int) -> Optional[Registration]:
    return await session.get(Registration, registration_id)


async def require_registration(session: AsyncSession, registration_id: int) -> Registration:
    registration = await get_registration(session, registration_id)
    if not registration:
        raise NotFoundError("報名記錄不存在", code="REGISTRATION_NOT_FOUND")
    return registration


async def find_registration(session: AsyncSession, member_id: int, event_id: int) -> Optional[Registration]:
    result = await session.execute(
        select(Registration).where(Registration.member_id == member_id, Registration.event_id == event_id)
    )
    return result.scalars().first()


async def is_registered(session: AsyncSession, member_id: int, event_id: int) -> dict:
    registration = await find_registration(session, member_id, event_id)
    if not registration:
        return {"registered": False, "status": None}
    return {"registered": registration.status == "confirmed", "status": registration.status}


async def search_registrations(
    session: AsyncSession,
    event_id: int | None = None,
    member_id: int | None = None,
    status: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[tuple[Registration, Member]], int]:
    conditions = []
    if event_id is not None:
        conditions.append(Registration.event_id == event_id)
    if member_id is not None:
        conditions.append(Registration.member_id == member_id)
    if status:
        conditions.append(Registration.status == status)
    if date_from:
        conditions.append(Registration.created_at >= date_from)
    if date_to:
        conditions.append(Registration.created_at <= date_to)

    total = (await session.execute(select(func.count()).select_from(Registration).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Registration, Member)
        .join(Member, Member.id == Registration.member_id)  # type: ignore[arg-type]
        .where(*conditions)
        .order_by(desc(Registration.created_at))  # type: ignore[arg-type]
        .offset(offset)
        .limit(limit)
    )
    return [(reg, member) for reg, member in result.all()], total


async def cancel_registration(session: AsyncSession, registration_id: int) -> Registration:
    registration = await require_registration(session, registration_id)
    if registration.status == "cancelled":
        raise ConflictError("報名已經取消過了", code="ALREADY_CANCELLED")

    event = await session.get(Event, registration.event_id)
    if event and utcnow() > event.date - CANCEL_CUTOFF:
        raise InvalidRequestError("活動前24小時內無法取消報名", code="CANCEL_WINDOW_CLOSED")

    registration.status = "cancelled"
    registration.updated_at = utcnow()
    session.add(registration)
    await session.commit()
    await session.refresh(registration)
    return registration


async def update_registration_status(session: AsyncSession, registration_id: int, status: str) -> Registration:
    if status not in REGISTRATION_STATUSES:
        raise InvalidRequestError("無效的報名狀態", code="INVALID_STATUS")
    registration = await require_registration(session, registration_id)
    registration.status = status
    registration.updated_at = utcnow()
    session.add(registration)
    await session.commit()
    await session.refresh(registration)
    return registration


def registration_row(registration: Registration, member: Member | None = None) -> dict:
    row = registration.model_dump(mode="json")
    if member is not None:
        row["member"] = {"id": member.id, "name": member.name, "email": member.email, "phone": member.phone}
    return row
