"""Admin reports.

Every export builds a pandas DataFrame so the same rows can be returned as
JSON or written as CSV. CSV output carries a UTF-8 BOM so Excel opens the
Chinese headers correctly.
"""

from datetime import datetime, timedelta

import pandas as pd
from sqlalchemy import desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.models import Announcement, Checkin, Event, Member, MessageLog, Registration
from lions_club.services.events import event_summary, get_upcoming_events
from lions_club.services.members import get_member_stats
from lions_club.utils.time import utcnow

REPORT_TYPES = ("members", "events", "registrations", "checkins")


def _fmt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


async def _count(session: AsyncSession, model, *conditions) -> int:
    return (await session.execute(select(func.count()).select_from(model).where(*conditions))).scalar_one()


async def get_system_summary(session: AsyncSession) -> dict:
    return {
        "totalMembers": await _count(session, Member),
        "activeMembers": await _count(session, Member, Member.status == "active"),
        "totalEvents": await _count(session, Event),
        "totalRegistrations": await _count(session, Registration),
        "totalCheckins": await _count(session, Checkin),
        "timestamp": utcnow().isoformat(),
        "status": "active",
    }


async def get_dashboard(session: AsyncSession) -> dict:
    recent = await session.execute(
        select(Checkin, Member, Event)
        .join(Member, Member.id == Checkin.member_id)  # type: ignore[arg-type]
        .join(Event, Event.id == Checkin.event_id)  # type: ignore[arg-type]
        .order_by(desc(Checkin.checkin_time))  # type: ignore[arg-type]
        .limit(10)
    )
    return {
        "totalMembers": await _count(session, Member),
        "totalEvents": await _count(session, Event),
        "totalAnnouncements": await _count(session, Announcement),
        "totalRegistrations": await _count(session, Registration),
        "upcomingEvents": [event_summary(ev) for ev in await get_upcoming_events(session)],
        "recentCheckins": [
            {
                "id": checkin.id,
                "memberName": member.name,
                "eventTitle": event.title,
                "checkinTime": checkin.checkin_time.isoformat(),
            }
            for checkin, member, event in recent.all()
        ],
    }


# ---------------- Exports ----------------


async def members_report(session: AsyncSession, status: str | None = None, **_) -> pd.DataFrame:
    query = select(Member).order_by(desc(Member.created_at))  # type: ignore[arg-type]
    if status:
        query = query.where(Member.status == status)
    members = (await session.execute(query)).scalars().all()
    rows = [
        {
            "編號": m.id,
            "姓名": m.name,
            "英文名": m.english_name or "",
            "Email": m.email,
            "職稱": m.job_title or "",
            "手機": m.mobile or "",
            "角色": m.role,
            "狀態": m.status,
            "LINE 綁定": "是" if m.line_user_id else "否",
            "建立時間": _fmt(m.created_at),
        }
        for m in members
    ]
    return pd.DataFrame(rows, columns=["編號", "姓名", "英文名", "Email", "職稱", "手機", "角色", "狀態", "LINE 綁定", "建立時間"])


async def events_report(
    session: AsyncSession,
    status: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    **_,
) -> pd.DataFrame:
    registrations = (
        select(Registration.event_id, func.count().label("n"))
        .where(Registration.status == "confirmed")
        .group_by(Registration.event_id)
        .subquery()
    )
    checkins = select(Checkin.event_id, func.count().label("n")).group_by(Checkin.event_id).subquery()
    query = (
        select(Event, registrations.c.n, checkins.c.n)
        .join(registrations, registrations.c.event_id == Event.id, isouter=True)
        .join(checkins, checkins.c.event_id == Event.id, isouter=True)
        .order_by(desc(Event.date))  # type: ignore[arg-type]
    )
    if status:
        query = query.where(Event.status == status)
    if date_from:
        query = query.where(Event.date >= date_from)
    if date_to:
        query = query.where(Event.date <= date_to)

    rows = [
        {
            "編號": ev.id,
            "活動名稱": ev.title,
            "日期": _fmt(ev.date),
            "地點": ev.location or "",
            "人數上限": ev.max_attendees if ev.max_attendees is not None else "",
            "報名人數": n_reg or 0,
            "簽到人數": n_chk or 0,
            "狀態": ev.status,
        }
        for ev, n_reg, n_chk in (await session.execute(query)).all()
    ]
    return pd.DataFrame(rows, columns=["編號", "活動名稱", "日期", "地點", "人數上限", "報名人數", "簽到人數", "狀態"])


async def registrations_report(
    session: AsyncSession,
    status: str | None = None,
    event_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> pd.DataFrame:
    query = (
        select(Registration, Member, Event)
        .join(Member, Member.id == Registration.member_id)  # type: ignore[arg-type]
        .join(Event, Event.id == Registration.event_id)  # type: ignore[arg-type]
        .order_by(desc(Registration.created_at))  # type: ignore[arg-type]
    )
    if status:
        query = query.where(Registration.status == status)
    if event_id is not None:
        query = query.where(Registration.event_id == event_id)
    if date_from:
        query = query.where(Registration.created_at >= date_from)
    if date_to:
        query = query.where(Registration.created_at <= date_to)

    rows = [
        {
            "報名編號": reg.id,
            "會員": member.name,
            "Email": member.email,
            "活動": event.title,
            "活動日期": _fmt(event.date),
            "人數": reg.num_attendees,
            "狀態": reg.status,
            "報名時間": _fmt(reg.created_at),
        }
        for reg, member, event in (await session.execute(query)).all()
    ]
    return pd.DataFrame(rows, columns=["報名編號", "會員", "Email", "活動", "活動日期", "人數", "狀態", "報名時間"])


async def checkins_report(
    session: AsyncSession,
    event_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    **_,
) -> pd.DataFrame:
    query = (
        select(Checkin, Member, Event)
        .join(Member, Member.id == Checkin.member_id)  # type: ignore[arg-type]
        .join(Event, Event.id == Checkin.event_id)  # type: ignore[arg-type]
        .order_by(desc(Checkin.checkin_time))  # type: ignore[arg-type]
    )
    if event_id is not None:
        query = query.where(Checkin.event_id == event_id)
    if date_from:
        query = query.where(Checkin.checkin_time >= date_from)
    if date_to:
        query = query.where(Checkin.checkin_time <= date_to)

    rows = [
        {
            "簽到編號": checkin.id,
            "會員": member.name,
            "Email": member.email,
            "活動": event.title,
            "簽到時間": _fmt(checkin.checkin_time),
            "裝置": checkin.device_info or "",
        }
        for checkin, member, event in (await session.execute(query)).all()
    ]
    return pd.DataFrame(rows, columns=["簽到編號", "會員", "Email", "活動", "簽到時間", "裝置"])


EXPORTERS = {
    "members": members_report,
    "events": events_report,
    "registrations": registrations_report,
    "checkins": checkins_report,
}


async def build_report(session: AsyncSession, report_type: str, **filters) -> pd.DataFrame:
    return await EXPORTERS[report_type](session, **filters)


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8-sig")


async def comprehensive_report(session: AsyncSession) -> dict:
    week_ago = utcnow() - timedelta(days=7)
    event_status = (
        await session.execute(select(Event.status, func.count()).group_by(Event.status))
    ).all()
    day = func.date(Checkin.checkin_time)
    daily = (
        await session.execute(select(day, func.count()).group_by(day).order_by(desc(day)).limit(30))
    ).all()
    return {
        "summary": await get_system_summary(session),
        "members": await get_member_stats(session),
        "events": {status: count for status, count in event_status},
        "checkinsByDay": [{"date": str(d), "count": n} for d, n in daily],
        "newRegistrationsThisWeek": await _count(session, Registration, Registration.created_at >= week_ago),
        "generatedAt": utcnow().isoformat(),
    }


async def list_message_logs(
    session: AsyncSession, user_id: str | None = None, limit: int = 50, offset: int = 0
) -> tuple[list[MessageLog], int]:
    conditions = []
    if user_id:
        conditions.append(MessageLog.user_id == user_id)
    total = await _count(session, MessageLog, *conditions)
    result = await session.execute(
        select(MessageLog).where(*conditions).order_by(desc(MessageLog.timestamp)).offset(offset).limit(limit)  # type: ignore[arg-type]
    )
    return list(result.scalars().all()), total
