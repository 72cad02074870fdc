import logging
from datetime import datetime
from typing import List

from sqlalchemy import desc, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.errors import ConflictError, InvalidRequestError, NotFoundError
from lions_club.models import Announcement, Event, Member
from lions_club.schemas import AnnouncementCreate, AnnouncementUpdate
from lions_club.utils.time import utcnow

logger = logging.getLogger(__name__)


async def require_announcement(session: AsyncSession, announcement_id: int) -> Announcement:
    announcement = await session.get(Announcement, announcement_id)
    if not announcement:
        raise NotFoundError("公告不存在", code="ANNOUNCEMENT_NOT_FOUND")
    return announcement


async def _check_related_event(session: AsyncSession, event_id: int | None) -> None:
    if event_id is not None and not await session.get(Event, event_id):
        raise NotFoundError("相關活動不存在", code="EVENT_NOT_FOUND")


def _check_schedule(status: str | None, scheduled_at: datetime | None) -> None:
    if status != "scheduled":
        return
    if scheduled_at is None:
        raise InvalidRequestError("排程發布需要設定排程時間", code="SCHEDULE_REQUIRED")
    if scheduled_at <= utcnow():
        raise InvalidRequestError("排程時間必須是未來時間", code="SCHEDULE_IN_PAST")


async def create_announcement(
    session: AsyncSession, data: AnnouncementCreate, created_by: int | None = None
) -> Announcement:
    creator_id = data.created_by or created_by
    if creator_id is not None and not await session.get(Member, creator_id):
        raise NotFoundError("創建者不存在", code="MEMBER_NOT_FOUND")
    await _check_related_event(session, data.related_event_id)
    _check_schedule(data.status, data.scheduled_at)

    announcement = Announcement(
        title=data.title,
        content=data.content,
        related_event_id=data.related_event_id,
        created_by=creator_id,
        audience=data.audience,
        category=data.category,
        status=data.status,
        scheduled_at=data.scheduled_at,
        is_visible=data.is_visible,
        published_at=utcnow() if data.status == "published" else None,
    )
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    return announcement


async def search_announcements(
    session: AsyncSession,
    title: str | None = None,
    content: str | None = None,
    audience: str | None = None,
    category: str | None = None,
    status: str | None = None,
    created_by: int | None = None,
    related_event_id: int | None = None,
    is_visible: bool | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Announcement], int]:
    conditions = []
    if title:
        conditions.append(Announcement.title.ilike(f"%{title}%"))  # type: ignore[attr-defined]
    if content:
        conditions.append(Announcement.content.ilike(f"%{content}%"))  # type: ignore[attr-defined]
    if audience:
        conditions.append(Announcement.audience == audience)
    if category:
        conditions.append(Announcement.category == category)
    if status:
        conditions.append(Announcement.status == status)
    if created_by is not None:
        conditions.append(Announcement.created_by == created_by)
    if related_event_id is not None:
        conditions.append(Announcement.related_event_id == related_event_id)
    if is_visible is not None:
        conditions.append(Announcement.is_visible == is_visible)

    total = (await session.execute(select(func.count()).select_from(Announcement).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Announcement)
        .where(*conditions)
        .order_by(desc(Announcement.published_at), desc(Announcement.created_at))  # type: ignore[arg-type]
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


# explicit nulls for these columns are ignored
REQUIRED_ANNOUNCEMENT_FIELDS = {"title", "content", "audience", "category", "status", "is_visible"}


async def update_announcement(session: AsyncSession, announcement_id: int, data: AnnouncementUpdate) -> Announcement:
    announcement = await require_announcement(session, announcement_id)
    updates = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if not (key in REQUIRED_ANNOUNCEMENT_FIELDS and value is None)
    }

    await _check_related_event(session, updates.get("related_event_id"))
    if updates.get("status") == "scheduled":
        _check_schedule("scheduled", updates.get("scheduled_at", announcement.scheduled_at))
    if updates.get("status") == "published" and announcement.status != "published":
        announcement.published_at = utcnow()

    for key, value in updates.items():
        setattr(announcement, key, value)
    announcement.updated_at = utcnow()
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    return announcement


async def delete_announcement(session: AsyncSession, announcement_id: int) -> None:
    announcement = await require_announcement(session, announcement_id)
    await session.delete(announcement)
    await session.commit()


async def publish_announcement(session: AsyncSession, announcement_id: int) -> Announcement:
    announcement = await require_announcement(session, announcement_id)
    if announcement.status == "published":
        raise ConflictError("公告已經發布過了", code="ALREADY_PUBLISHED")
    announcement.status = "published"
    announcement.published_at = utcnow()
    announcement.updated_at = utcnow()
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    return announcement


async def set_visibility(session: AsyncSession, announcement_id: int, visible: bool) -> Announcement:
    announcement = await require_announcement(session, announcement_id)
    announcement.is_visible = visible
    announcement.updated_at = utcnow()
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    return announcement


async def process_scheduled_announcements(session: AsyncSession) -> int:
    """Publishes every scheduled announcement whose time has come. Returns how many."""
    now = utcnow()
    result = await session.execute(
        update(Announcement)
        .where(Announcement.status == "scheduled", Announcement.scheduled_at <= now)  # type: ignore[operator]
        .values(status="published", published_at=now, updated_at=now)
    )
    await session.commit()
    if result.rowcount:
        logger.info("scheduled_announcements_published count=%s", result.rowcount)
    return result.rowcount or 0


async def get_public_announcements(session: AsyncSession, audience: str = "all", limit: int = 10) -> List[Announcement]:
    await process_scheduled_announcements(session)
    result = await session.execute(
        select(Announcement)
        .where(
            Announcement.status == "published",
            Announcement.is_visible == True,  # noqa: E712
            or_(Announcement.audience == "all", Announcement.audience == audience),
        )
        .order_by(desc(Announcement.published_at))  # type: ignore[arg-type]
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_latest_announcements(session: AsyncSession, limit: int = 5) -> List[Announcement]:
    """Newest published and visible announcements regardless of audience."""
    result = await session.execute(
        select(Announcement)
        .where(Announcement.status == "published", Announcement.is_visible == True)  # noqa: E712
        .order_by(desc(Announcement.published_at))  # type: ignore[arg-type]
        .limit(limit)
    )
    return list(result.scalars().all())
