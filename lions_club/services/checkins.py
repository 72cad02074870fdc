"""Check-in rules, implemented once for every entry point.

The HTTP API, the LIFF check-in page and the LINE bot all go through
:func:`perform_checkin`. The checks run in a fixed order:

1. the event exists and is active,
2. the member exists and is active,
3. the check-in window is open,
4. the member holds a confirmed registration (only when
   ``CHECKIN_REQUIRE_REGISTRATION`` is set, otherwise just logged),
5. the member has not checked in yet,
6. the event still has room.

A duplicate always surfaces as :class:`ConflictError` with code
``ALREADY_CHECKED_IN``; the unique constraint on (member, event) turns a
racing second insert into the same error.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.config import settings, Settings
from lions_club.errors import ConflictError, InvalidRequestError, NotFoundError, PermissionDeniedError, ServiceError
from lions_club.models import Checkin, Event, Member
from lions_club.services.events import count_confirmed, event_summary, require_event
from lions_club.services.members import get_member_by_line_id, resolve_member
from lions_club.services.registrations import find_registration
from lions_club.utils.time import format_local, local_day_bounds, today_local, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CheckinResult:
    checkin: Checkin
    member: Member
    event: Event
    registered: bool

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": "簽到成功",
            "checkin": self.checkin.model_dump(mode="json"),
            "member": {"id": self.member.id, "name": self.member.name, "role": self.member.role},
            "event": event_summary(self.event),
            "registered": self.registered,
        }


async def find_checkin(session: AsyncSession, member_id: int, event_id: int) -> Optional[Checkin]:
    result = await session.execute(
        select(Checkin).where(Checkin.member_id == member_id, Checkin.event_id == event_id)
    )
    return result.scalars().first()


async def is_checked_in(session: AsyncSession, member_id: int, event_id: int) -> bool:
    return await find_checkin(session, member_id, event_id) is not None


def _check_window(event: Event, now: datetime, cfg: Settings) -> None:
    if not cfg.CHECKIN_ENFORCE_WINDOW:
        return
    opens = event.date - timedelta(minutes=cfg.CHECKIN_OPENS_MINUTES_BEFORE)
    closes = event.date + timedelta(minutes=cfg.CHECKIN_CLOSES_MINUTES_AFTER)
    if now < opens:
        raise InvalidRequestError(
            f"活動尚未開放簽到，請於活動前{cfg.CHECKIN_OPENS_MINUTES_BEFORE}分鐘再試", code="CHECKIN_NOT_OPEN"
        )
    if now > closes:
        raise InvalidRequestError("簽到時間已過，無法簽到", code="CHECKIN_CLOSED")


async def _validate(
    session: AsyncSession,
    event_id: int,
    member_id: int | None,
    line_user_id: str | None,
    cfg: Settings,
) -> tuple[Event, Member, bool]:
    event = await require_event(session, event_id)
    if event.status != "active":
        raise InvalidRequestError("活動已取消或不可用", code="EVENT_INACTIVE")

    member = await resolve_member(session, member_id, line_user_id)
    if member.status != "active":
        raise PermissionDeniedError("會員帳號已停用", code="ACCOUNT_INACTIVE")

    _check_window(event, utcnow(), cfg)

    registration = await find_registration(session, member.id, event.id)  # type: ignore[arg-type]
    registered = registration is not None and registration.status == "confirmed"
    if not registered:
        if cfg.CHECKIN_REQUIRE_REGISTRATION:
            raise PermissionDeniedError("尚未報名此活動，無法簽到", code="NOT_REGISTERED")
        logger.warning("checkin_without_registration member=%s event=%s", member.id, event.id)

    existing = await find_checkin(session, member.id, event.id)  # type: ignore[arg-type]
    if existing:
        raise ConflictError(
            "已經簽到過了", code="ALREADY_CHECKED_IN", payload={"checkin": existing.model_dump(mode="json")}
        )

    if event.max_attendees:
        taken = (
            await session.execute(select(func.count()).select_from(Checkin).where(Checkin.event_id == event.id))
        ).scalar_one()
        if taken >= event.max_attendees:
            raise ConflictError("活動簽到人數已達上限", code="EVENT_FULL")

    return event, member, registered


async def perform_checkin(
    session: AsyncSession,
    event_id: int,
    member_id: int | None = None,
    line_user_id: str | None = None,
    device_info: str | None = None,
    cfg: Settings = settings,
) -> CheckinResult:
    if member_id is None and not line_user_id:
        raise InvalidRequestError("缺少 memberId 或 lineUserId", code="MISSING_MEMBER")

    event, member, registered = await _validate(session, event_id, member_id, line_user_id, cfg)

    # rollback expires the loaded rows, keep the keys
    member_key, event_key = member.id, event.id
    checkin = Checkin(
        member_id=member_key,  # type: ignore[arg-type]
        event_id=event_key,  # type: ignore[arg-type]
        device_info=device_info or "Unknown",
    )
    session.add(checkin)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        existing = await find_checkin(session, member_key, event_key)  # type: ignore[arg-type]
        raise ConflictError(
            "已經簽到過了",
            code="ALREADY_CHECKED_IN",
            payload={"checkin": existing.model_dump(mode="json") if existing else None},
        )
    await session.refresh(checkin)
    logger.info("checkin_created id=%s member=%s event=%s", checkin.id, member.id, event.id)
    return CheckinResult(checkin=checkin, member=member, event=event, registered=registered)


async def validate_eligibility(
    session: AsyncSession,
    event_id: int,
    member_id: int | None = None,
    line_user_id: str | None = None,
    cfg: Settings = settings,
) -> dict:
    """Same checks as :func:`perform_checkin`, reported instead of raised."""
    try:
        await _validate(session, event_id, member_id, line_user_id, cfg)
    except ServiceError as exc:
        return {
            "eligible": False,
            "reason": exc.message,
            "code": exc.code,
            "alreadyCheckedIn": exc.code == "ALREADY_CHECKED_IN",
        }
    return {"eligible": True, "reason": None, "code": None, "alreadyCheckedIn": False}


async def list_event_checkins(session: AsyncSession, event_id: int) -> list[tuple[Checkin, Member]]:
    await require_event(session, event_id)
    result = await session.execute(
        select(Checkin, Member)
        .join(Member, Member.id == Checkin.member_id)  # type: ignore[arg-type]
        .where(Checkin.event_id == event_id)
        .order_by(desc(Checkin.checkin_time))  # type: ignore[arg-type]
    )
    return [(checkin, member) for checkin, member in result.all()]


async def member_checkin_history(session: AsyncSession, line_user_id: str) -> tuple[Member, list[tuple[Checkin, Event]]]:
    member = await get_member_by_line_id(session, line_user_id)
    if not member:
        raise NotFoundError("會員不存在", code="MEMBER_NOT_FOUND")
    result = await session.execute(
        select(Checkin, Event)
        .join(Event, Event.id == Checkin.event_id)  # type: ignore[arg-type]
        .where(Checkin.member_id == member.id)
        .order_by(desc(Checkin.checkin_time))  # type: ignore[arg-type]
    )
    return member, [(checkin, event) for checkin, event in result.all()]


async def get_checkin_stats(session: AsyncSession, event_id: int | None = None) -> dict:
    if event_id is not None:
        await require_event(session, event_id)
        times = (
            await session.execute(
                select(Checkin.checkin_time).where(Checkin.event_id == event_id).order_by(Checkin.checkin_time)
            )
        ).scalars().all()
        registrations = await count_confirmed(session, event_id)
        hourly: dict[str, int] = {}
        for ts in times:
            hour = format_local(ts, "%H")
            hourly[hour] = hourly.get(hour, 0) + 1
        rate = (len(times) / registrations) * 100 if registrations else 0
        return {
            "eventId": event_id,
            "totalCheckins": len(times),
            "totalRegistrations": registrations,
            "attendanceRate": round(rate, 2),
            "hourlyDistribution": hourly,
        }

    async def count_since(since: datetime | None) -> int:
        query = select(func.count()).select_from(Checkin)
        if since is not None:
            query = query.where(Checkin.checkin_time >= since)
        return (await session.execute(query)).scalar_one()

    today_start, _ = local_day_bounds(today_local())
    return {
        "totalCheckins": await count_since(None),
        "todayCheckins": await count_since(today_start),
        "thisWeekCheckins": await count_since(utcnow() - timedelta(days=7)),
    }


async def cancel_checkin(session: AsyncSession, checkin_id: int) -> None:
    checkin = await session.get(Checkin, checkin_id)
    if not checkin:
        raise NotFoundError("簽到記錄不存在", code="CHECKIN_NOT_FOUND")
    await session.delete(checkin)
    await session.commit()
    logger.info("checkin_cancelled id=%s", checkin_id)
