import asyncio
import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional

import aiohttp
import pandas as pd
from sqlalchemy import case, desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.errors import InvalidRequestError, NotFoundError
from lions_club.line import messages
from lions_club.line.client import LineApiError, LineClient
from lions_club.models import Event, Member, PushRecord, PushTemplate
from lions_club.schemas import TemplateSave
from lions_club.services.events import require_event
from lions_club.utils.time import local_day_bounds, today_local

logger = logging.getLogger(__name__)

MESSAGE_TYPES = ("checkin_reminder", "manual_push", "event_notification")
# recorded for re-sends of earlier records
RESEND_TYPE = "manual_resend"


# ---------------- Records ----------------


async def record_push_result(
    session: AsyncSession,
    member_id: int,
    event_id: int,
    message_type: str,
    status: str,
    error: str | None = None,
    commit: bool = True,
) -> PushRecord:
    record = PushRecord(member_id=member_id, event_id=event_id, message_type=message_type, status=status, error=error)
    session.add(record)
    if commit:
        await session.commit()
        await session.refresh(record)
    return record


async def record_bulk_push_results(session: AsyncSession, results: Iterable[dict]) -> int:
    count = 0
    for item in results:
        await record_push_result(session, commit=False, **item)
        count += 1
    await session.commit()
    return count


async def get_event_push_stats(session: AsyncSession, event_id: int) -> dict:
    row = (
        await session.execute(
            select(
                func.count(),
                func.sum(case((PushRecord.status == "success", 1), else_=0)),
                func.sum(case((PushRecord.status == "failed", 1), else_=0)),
            ).where(PushRecord.event_id == event_id)
        )
    ).one()
    total, success, failed = row[0], row[1] or 0, row[2] or 0
    return {
        "eventId": event_id,
        "total": total,
        "success": success,
        "failed": failed,
        "successRate": round(success / total * 100, 2) if total else 0,
    }


async def get_event_push_records(session: AsyncSession, event_id: int) -> list[tuple[PushRecord, Member]]:
    result = await session.execute(
        select(PushRecord, Member)
        .join(Member, Member.id == PushRecord.member_id)  # type: ignore[arg-type]
        .where(PushRecord.event_id == event_id)
        .order_by(desc(PushRecord.pushed_at))  # type: ignore[arg-type]
    )
    return [(record, member) for record, member in result.all()]


async def get_member_push_records(
    session: AsyncSession,
    member_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[tuple[PushRecord, Optional[Event]]]:
    query = (
        select(PushRecord, Event)
        .join(Event, Event.id == PushRecord.event_id, isouter=True)  # type: ignore[arg-type]
        .where(PushRecord.member_id == member_id)
    )
    if start:
        query = query.where(PushRecord.pushed_at >= start)
    if end:
        query = query.where(PushRecord.pushed_at < end)
    result = await session.execute(query.order_by(desc(PushRecord.pushed_at)))  # type: ignore[arg-type]
    return [(record, event) for record, event in result.all()]


async def already_pushed(session: AsyncSession, member_id: int, event_id: int, message_type: str) -> bool:
    result = await session.execute(
        select(PushRecord.id).where(
            PushRecord.member_id == member_id,
            PushRecord.event_id == event_id,
            PushRecord.message_type == message_type,
            PushRecord.status == "success",
        )
    )
    return result.first() is not None


async def get_tomorrow_events(session: AsyncSession) -> List[Event]:
    start, end = local_day_bounds(today_local() + timedelta(days=1))
    result = await session.execute(
        select(Event)
        .where(Event.status == "active", Event.date >= start, Event.date < end)
        .order_by(Event.date)  # type: ignore[arg-type]
    )
    return list(result.scalars().all())


# ---------------- Sending ----------------


async def push_to_members(
    session: AsyncSession,
    client: LineClient,
    event: Event,
    members: Iterable[Member],
    message_type: str = "manual_push",
    message: dict | None = None,
) -> dict:
    """Pushes one message per member and records every outcome.

    Members without a LINE account are recorded as failed without a call.
    """
    message = message or messages.text(messages.reminder_text(event))
    results = []
    success = failed = 0
    for member in members:
        error = None
        if not member.line_user_id:
            error = "會員未綁定 LINE 帳號"
        else:
            try:
                await client.push_message(member.line_user_id, message)
            except (LineApiError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
                error = str(exc) or exc.__class__.__name__
        status = "failed" if error else "success"
        if error:
            failed += 1
        else:
            success += 1
        await record_push_result(session, member.id, event.id, message_type, status, error, commit=False)  # type: ignore[arg-type]
        results.append({"memberId": member.id, "memberName": member.name, "status": status, "error": error})
    await session.commit()
    logger.info("push_done event=%s type=%s success=%s failed=%s", event.id, message_type, success, failed)
    return {
        "successCount": success,
        "failedCount": failed,
        "totalCount": success + failed,
        "results": results,
    }


async def push_event_message(
    session: AsyncSession,
    client: LineClient,
    event_id: int,
    member_ids: list[int],
    message_type: str = "manual_push",
    text: str | None = None,
) -> dict:
    if message_type not in MESSAGE_TYPES:
        raise InvalidRequestError("無效的推播類型", code="INVALID_MESSAGE_TYPE")
    event = await require_event(session, event_id)
    members = list((await session.execute(select(Member).where(Member.id.in_(member_ids)))).scalars().all())  # type: ignore[union-attr]
    if not members:
        raise NotFoundError("找不到指定會員", code="MEMBERS_NOT_FOUND")
    message = messages.text(text) if text else None
    return await push_to_members(session, client, event, members, message_type, message)


async def resend_push_records(session: AsyncSession, client: LineClient, record_ids: list[int]) -> dict:
    """Pushes the event reminder again for earlier records.

    Each attempt is recorded as a new ``manual_resend`` record; an original
    record that succeeds on resend is marked ``success``.
    """
    rows = (
        await session.execute(
            select(PushRecord, Member, Event)
            .join(Member, Member.id == PushRecord.member_id, isouter=True)  # type: ignore[arg-type]
            .join(Event, Event.id == PushRecord.event_id, isouter=True)  # type: ignore[arg-type]
            .where(PushRecord.id.in_(record_ids))  # type: ignore[union-attr]
            .order_by(PushRecord.id)  # type: ignore[arg-type]
        )
    ).all()
    if not rows:
        raise NotFoundError("找不到指定的推播記錄", code="PUSH_RECORDS_NOT_FOUND")

    results = []
    success = failed = 0
    for record, member, event in rows:
        error = None
        if member is None or not member.line_user_id:
            error = "會員未綁定 LINE 帳號或會員資料不存在"
        elif event is None:
            error = "活動資料不存在"
        else:
            try:
                await client.push_message(member.line_user_id, messages.text(messages.reminder_text(event)))
            except (LineApiError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
                error = str(exc) or exc.__class__.__name__

        status = "failed" if error else "success"
        if error:
            failed += 1
        else:
            success += 1
            record.status = "success"
            session.add(record)
        await record_push_result(session, record.member_id, record.event_id, RESEND_TYPE, status, error, commit=False)
        results.append(
            {
                "pushRecordId": record.id,
                "memberId": record.member_id,
                "memberName": member.name if member else "未知成員",
                "eventTitle": event.title if event else "未知活動",
                "status": status,
                "error": error,
            }
        )
    await session.commit()
    logger.info("push_resend records=%s success=%s failed=%s", len(rows), success, failed)
    return {"successCount": success, "failedCount": failed, "totalCount": success + failed, "results": results}


async def send_checkin_reminders(session: AsyncSession, client: LineClient, pause: float = 0) -> dict:
    """Reminds every active member with a LINE account about tomorrow's events.

    Members already reminded successfully for an event are skipped.
    """
    events = await get_tomorrow_events(session)
    if not events:
        return {
            "eventsCount": 0,
            "membersCount": 0,
            "totalSuccessful": 0,
            "totalFailed": 0,
            "successRate": 0,
            "details": [],
        }

    members = list(
        (
            await session.execute(
                select(Member).where(Member.line_user_id.is_not(None), Member.status == "active")  # type: ignore[union-attr]
            )
        ).scalars().all()
    )
    total_success = total_failed = 0
    details = []
    for event in events:
        targets = [
            m for m in members if not await already_pushed(session, m.id, event.id, "checkin_reminder")  # type: ignore[arg-type]
        ]
        if not targets:
            logger.info("reminder_skipped event=%s all members already reminded", event.id)
            continue
        outcome = await push_to_members(
            session, client, event, targets, "checkin_reminder", messages.checkin_notification(event)
        )
        total_success += outcome["successCount"]
        total_failed += outcome["failedCount"]
        details.append(
            {
                "eventId": event.id,
                "eventTitle": event.title,
                "targetCount": len(targets),
                "successCount": outcome["successCount"],
                "failedCount": outcome["failedCount"],
            }
        )
        if pause:
            await asyncio.sleep(pause)

    attempted = total_success + total_failed
    return {
        "eventsCount": len(events),
        "membersCount": len(members),
        "totalSuccessful": total_success,
        "totalFailed": total_failed,
        "successRate": round(total_success / attempted * 100, 2) if attempted else 0,
        "details": details,
    }


# ---------------- Dashboard & export ----------------


def day_start(day: date, next_day: bool = False) -> datetime:
    if next_day:
        day = day + timedelta(days=1)
    return datetime.combine(day, datetime.min.time())


def _filters(start: date | None, end: date | None, message_type: str | None) -> list:
    conditions = []
    if start:
        conditions.append(PushRecord.pushed_at >= day_start(start))
    if end:
        conditions.append(PushRecord.pushed_at < day_start(end, next_day=True))
    if message_type:
        conditions.append(PushRecord.message_type == message_type)
    return conditions


async def get_dashboard_summary(
    session: AsyncSession,
    start: date | None = None,
    end: date | None = None,
    message_type: str | None = None,
) -> dict:
    conditions = _filters(start, end, message_type)
    day = func.date(PushRecord.pushed_at)
    trend_rows = (
        await session.execute(
            select(
                day,
                func.sum(case((PushRecord.status == "success", 1), else_=0)),
                func.sum(case((PushRecord.status == "failed", 1), else_=0)),
            )
            .where(*conditions)
            .group_by(day)
            .order_by(desc(day))
            .limit(30)
        )
    ).all()
    status_rows = (
        await session.execute(
            select(PushRecord.status, func.count()).where(*conditions).group_by(PushRecord.status)
        )
    ).all()
    type_rows = (
        await session.execute(
            select(PushRecord.message_type, func.count()).where(*conditions).group_by(PushRecord.message_type)
        )
    ).all()
    totals = {status: count for status, count in status_rows}
    return {
        "trend": [{"date": str(d), "success": s or 0, "fail": f or 0} for d, s, f in trend_rows],
        "summary": {"success": totals.get("success", 0), "failed": totals.get("failed", 0)},
        "byMessageType": {kind: count for kind, count in type_rows},
        "filters": {
            "startDate": start.isoformat() if start else None,
            "endDate": end.isoformat() if end else None,
            "messageType": message_type,
        },
    }


async def export_push_records_csv(
    session: AsyncSession,
    member_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> str:
    conditions = _filters(start, end, None)
    if member_id is not None:
        conditions.append(PushRecord.member_id == member_id)
    result = await session.execute(
        select(PushRecord, Member, Event)
        .join(Member, Member.id == PushRecord.member_id)  # type: ignore[arg-type]
        .join(Event, Event.id == PushRecord.event_id, isouter=True)  # type: ignore[arg-type]
        .where(*conditions)
        .order_by(desc(PushRecord.pushed_at))  # type: ignore[arg-type]
    )
    rows = [
        {
            "推播時間": record.pushed_at.strftime("%Y-%m-%d %H:%M:%S"),
            "會員": member.name,
            "活動": event.title if event else "-",
            "類型": record.message_type,
            "狀態": record.status,
            "錯誤": record.error or "",
        }
        for record, member, event in result.all()
    ]
    columns = ["推播時間", "會員", "活動", "類型", "狀態", "錯誤"]
    return pd.DataFrame(rows, columns=columns).to_csv(index=False)


# ---------------- Templates ----------------


def _parse_body(raw: Any) -> dict:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidRequestError(f"JSON 格式錯誤：{exc.msg}", code="INVALID_JSON")
    if not isinstance(raw, dict) or raw.get("type") not in {"bubble", "carousel"}:
        raise InvalidRequestError("Flex 內容必須是 bubble 或 carousel", code="INVALID_FLEX")
    return raw


async def save_template(session: AsyncSession, data: TemplateSave) -> PushTemplate:
    template = PushTemplate(name=data.name, description=data.description, body=_parse_body(data.body))
    session.add(template)
    await session.commit()
    await session.refresh(template)
    return template


async def list_templates(session: AsyncSession) -> List[PushTemplate]:
    result = await session.execute(select(PushTemplate).order_by(desc(PushTemplate.created_at)))  # type: ignore[arg-type]
    return list(result.scalars().all())


async def require_template(session: AsyncSession, template_id: int) -> PushTemplate:
    template = await session.get(PushTemplate, template_id)
    if not template:
        raise NotFoundError("推播模板不存在", code="TEMPLATE_NOT_FOUND")
    return template


async def delete_template(session: AsyncSession, template_id: int) -> None:
    template = await require_template(session, template_id)
    await session.delete(template)
    await session.commit()


async def send_test_template(client: LineClient, to: str, raw: Any, alt_text: str = "推播模板測試") -> None:
    contents = _parse_body(raw)
    await client.push_flex(to, alt_text, contents)


def template_row(template: PushTemplate) -> dict:
    row = template.model_dump(mode="json")
    row["json"] = row.pop("body")
    return row
