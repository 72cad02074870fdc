import logging
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lions_club.config import settings, Settings
from lions_club.errors import ServiceError
from lions_club.line import messages
from lions_club.line.client import LineClient
from lions_club.models import Member, MessageLog
from lions_club.services.checkins import perform_checkin
from lions_club.services.events import get_upcoming_events
from lions_club.services.members import get_member_by_line_id

logger = logging.getLogger(__name__)

CHECKIN_COMMAND = re.compile(r"^(?:簽到|checkin)\s*#?(\d+)$", re.IGNORECASE)
EVENTS_COMMAND = re.compile(r"^(?:活動|events)$", re.IGNORECASE)


def _event_time(event: dict) -> datetime | None:
    millis = event.get("timestamp")
    if not millis:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).replace(tzinfo=None)


async def _checkin_reply(session: AsyncSession, member: Member, event_id: int, device: str, cfg: Settings) -> tuple[dict, str]:
    try:
        result = await perform_checkin(
            session, event_id, member_id=member.id, device_info=device, cfg=cfg
        )
    except ServiceError as exc:
        return messages.checkin_failed(exc.message), f"checkin_rejected:{exc.code}"
    return messages.checkin_done(result.event), "checkin_created"


# ---------------- Event handlers ----------------


async def handle_text(session: AsyncSession, client: LineClient, event: dict, cfg: Settings) -> None:
    user_id = event["source"].get("userId")
    said = event["message"].get("text", "").strip()
    reply_token = event.get("replyToken")

    member = await get_member_by_line_id(session, user_id) if user_id else None
    if not member:
        logger.info("line_message_from_guest user=%s", user_id)
        await client.reply_message(reply_token, messages.registration_invite(cfg.liff_url))
        return

    event_id = None
    match = CHECKIN_COMMAND.match(said)
    if match:
        event_id = int(match.group(1))
        reply, action = await _checkin_reply(session, member, event_id, "LINE Bot", cfg)
        intent = "checkin"
    elif EVENTS_COMMAND.match(said):
        reply = messages.upcoming_events(await get_upcoming_events(session))
        intent, action = "events", "listed_upcoming"
    else:
        reply = messages.welcome_back(member.name, said)
        intent, action = "chat", "welcome_reply"

    session.add(
        MessageLog(
            user_id=user_id,
            timestamp=_event_time(event) or datetime.now(timezone.utc).replace(tzinfo=None),
            message_type="text",
            message_content=said,
            intent=intent,
            action_taken=action,
            event_id=event_id,
        )
    )
    await session.commit()
    await client.reply_message(reply_token, reply)


async def handle_follow(session: AsyncSession, client: LineClient, event: dict, cfg: Settings) -> None:
    user_id = event["source"].get("userId")
    if not user_id:
        logger.warning("follow event without user id")
        return
    member = await get_member_by_line_id(session, user_id)
    if member:
        await client.push_message(user_id, messages.welcome_back(member.name))
    else:
        await client.push_message(user_id, messages.follow_invite(cfg.liff_url))


async def handle_postback(session: AsyncSession, client: LineClient, event: dict, cfg: Settings) -> None:
    user_id = event["source"].get("userId")
    data = parse_qs(event.get("postback", {}).get("data", ""))
    if data.get("action", [None])[0] != "checkin":
        logger.info("unhandled postback data=%s", data)
        return

    member = await get_member_by_line_id(session, user_id) if user_id else None
    if not member:
        await client.reply_message(event["replyToken"], messages.registration_invite(cfg.liff_url))
        return
    try:
        event_id = int(data.get("event_id", [""])[0])
    except ValueError:
        await client.reply_message(event["replyToken"], messages.checkin_failed("活動編號無效"))
        return
    reply, _ = await _checkin_reply(session, member, event_id, "LINE Postback", cfg)
    await client.reply_message(event["replyToken"], reply)


async def dispatch(session: AsyncSession, client: LineClient, event: dict, cfg: Settings = settings) -> None:
    kind = event.get("type")
    if kind == "message":
        if event.get("message", {}).get("type") != "text":
            logger.debug("skipping non-text message")
            return
        await handle_text(session, client, event, cfg)
    elif kind == "follow":
        await handle_follow(session, client, event, cfg)
    elif kind == "unfollow":
        logger.info("line_unfollow user=%s", event.get("source", {}).get("userId"))
    elif kind == "postback":
        await handle_postback(session, client, event, cfg)
    else:
        logger.info("unhandled line event type=%s", kind)


async def handle_webhook(
    payload: dict[str, Any],
    session_factory: async_sessionmaker,
    client: LineClient,
    cfg: Settings = settings,
) -> int:
    """Processes every event of one webhook call. Returns how many failed."""
    failed = 0
    for event in payload.get("events", []):
        async with session_factory() as session:
            try:
                await dispatch(session, client, event, cfg)
            except Exception:
                # one bad event must not stop the rest of the batch
                failed += 1
                await session.rollback()
                logger.exception("line_event_failed type=%s", event.get("type"))
    return failed
