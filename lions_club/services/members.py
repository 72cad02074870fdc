import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.errors import ConflictError, NotFoundError, PermissionDeniedError
from lions_club.models import LiffSession, Member, Registration
from lions_club.roles import ROLE_RANK, Role, parse_role, rank_of
from lions_club.schemas import LiffCheck, MemberCreate, MemberSignup, MemberUpdate
from lions_club.utils.normalize import normalize_email, normalize_mobile
from lions_club.utils.time import utcnow

logger = logging.getLogger(__name__)


async def get_member(session: AsyncSession, member_id: int) -> Optional[Member]:
    return await session.get(Member, member_id)


async def get_member_by_line_id(session: AsyncSession, line_user_id: str) -> Optional[Member]:
    result = await session.execute(select(Member).where(Member.line_user_id == line_user_id))
    return result.scalars().first()


async def get_member_by_email(session: AsyncSession, email: str) -> Optional[Member]:
    result = await session.execute(select(Member).where(Member.email == normalize_email(email)))
    return result.scalars().first()


async def require_member(session: AsyncSession, member_id: int) -> Member:
    member = await get_member(session, member_id)
    if not member:
        raise NotFoundError("會員不存在", code="MEMBER_NOT_FOUND")
    return member


async def resolve_member(
    session: AsyncSession, member_id: int | None = None, line_user_id: str | None = None
) -> Member:
    """Looks a member up by primary key or, failing that, by LINE user id."""
    member = None
    if member_id is not None:
        member = await get_member(session, member_id)
    elif line_user_id:
        member = await get_member_by_line_id(session, line_user_id)
    if not member:
        raise NotFoundError("會員不存在", code="MEMBER_NOT_FOUND")
    return member


async def _ensure_unique(
    session: AsyncSession, email: str | None, line_user_id: str | None, exclude_id: int | None = None
) -> None:
    if email:
        query = select(Member).where(Member.email == email)
        if exclude_id is not None:
            query = query.where(Member.id != exclude_id)
        if (await session.execute(query)).scalars().first():
            raise ConflictError("此 Email 已被註冊", code="EMAIL_TAKEN")
    if line_user_id:
        query = select(Member).where(Member.line_user_id == line_user_id)
        if exclude_id is not None:
            query = query.where(Member.id != exclude_id)
        if (await session.execute(query)).scalars().first():
            raise ConflictError("此 LINE 帳號已被註冊", code="LINE_ACCOUNT_TAKEN")


def _check_role_change(actor: Member | None, new_role: Role, current_role: str | None = None) -> None:
    """Roles above the actor's own rank cannot be handed out, and peers or superiors cannot be re-ranked."""
    if actor is None or parse_role(actor.role) is Role.ADMIN:
        return
    actor_rank = rank_of(actor.role)
    if ROLE_RANK[new_role] > actor_rank or (current_role is not None and rank_of(current_role) >= actor_rank):
        raise PermissionDeniedError("無法指派或變更此角色", code="INSUFFICIENT_PERMISSIONS")


async def create_member(session: AsyncSession, data: MemberCreate, actor: Member | None = None) -> Member:
    _check_role_change(actor, data.role)
    email = normalize_email(data.email)
    await _ensure_unique(session, email, data.line_user_id)

    member = Member(
        name=data.name,
        email=email,
        english_name=data.english_name,
        birthday=data.birthday,
        job_title=data.job_title,
        mobile=normalize_mobile(data.mobile),
        phone=data.phone,
        fax=data.fax,
        address=data.address,
        line_user_id=data.line_user_id or None,
        role=data.role.value,
        status=data.status,
    )
    session.add(member)
    await session.commit()
    await session.refresh(member)
    logger.info("member_created id=%s email=%s", member.id, member.email)
    return member


async def signup_member(session: AsyncSession, data: MemberSignup) -> Member:
    """Self-registration through the LIFF mini-app; the LINE account is checked first."""
    if await get_member_by_line_id(session, data.line_user_id):
        raise ConflictError("此 LINE 帳號已經註冊過了", code="LINE_ACCOUNT_TAKEN")

    member = await create_member(
        session,
        MemberCreate(
            name=data.name,
            email=data.email,
            english_name=data.english_name,
            birthday=data.birthday,
            job_title=data.job_title,
            mobile=data.mobile,
            phone=data.phone,
            fax=data.fax,
            address=data.address,
            line_user_id=data.line_user_id,
            role=Role.MEMBER,
            status="active",
        ),
    )

    liff = (
        await session.execute(select(LiffSession).where(LiffSession.line_uid == data.line_user_id))
    ).scalars().first()
    if liff:
        liff.status = "registered"
        liff.last_seen_at = utcnow()
        session.add(liff)
        await session.commit()
    return member


async def touch_liff_session(session: AsyncSession, data: LiffCheck, is_member: bool) -> LiffSession:
    """Upserts the LIFF session row for a LINE user opening the mini-app."""
    liff = (
        await session.execute(select(LiffSession).where(LiffSession.line_uid == data.line_user_id))
    ).scalars().first()
    if liff is None:
        liff = LiffSession(line_uid=data.line_user_id)
    liff.display_name = data.display_name or liff.display_name
    liff.picture_url = data.picture_url or liff.picture_url
    liff.event_id = data.event_id or liff.event_id
    liff.status = "registered" if is_member else liff.status
    liff.last_seen_at = utcnow()
    session.add(liff)
    await session.commit()
    await session.refresh(liff)
    return liff


async def search_members(
    session: AsyncSession,
    name: str | None = None,
    email: str | None = None,
    status: str | None = None,
    role: str | None = None,
    line_user_id: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Member], int]:
    conditions = []
    if name:
        conditions.append(Member.name.ilike(f"%{name}%"))  # type: ignore[attr-defined]
    if email:
        conditions.append(Member.email.ilike(f"%{email}%"))  # type: ignore[attr-defined]
    if status:
        conditions.append(Member.status == status)
    if role:
        conditions.append(Member.role == role)
    if line_user_id:
        conditions.append(Member.line_user_id == line_user_id)

    total = (await session.execute(select(func.count()).select_from(Member).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Member).where(*conditions).order_by(Member.name).offset(offset).limit(limit)  # type: ignore[arg-type]
    )
    return list(result.scalars().all()), total


# explicit nulls for these columns are ignored
REQUIRED_MEMBER_FIELDS = {"name", "email", "role", "status"}


async def update_member(
    session: AsyncSession, member_id: int, data: MemberUpdate, actor: Member | None = None
) -> Member:
    member = await require_member(session, member_id)
    updates = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if not (key in REQUIRED_MEMBER_FIELDS and value is None)
    }

    if "email" in updates and updates["email"]:
        updates["email"] = normalize_email(updates["email"])
    if "mobile" in updates:
        updates["mobile"] = normalize_mobile(updates["mobile"])
    if "role" in updates:
        new_role = Role(updates["role"])
        if new_role.value != member.role:
            _check_role_change(actor, new_role, member.role)
        updates["role"] = new_role.value

    new_email = updates.get("email")
    new_line = updates.get("line_user_id")
    await _ensure_unique(
        session,
        new_email if new_email and new_email != member.email else None,
        new_line if new_line and new_line != member.line_user_id else None,
        exclude_id=member.id,
    )

    for key, value in updates.items():
        setattr(member, key, value)
    member.updated_at = utcnow()
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return member


async def deactivate_member(session: AsyncSession, member_id: int) -> Member:
    """Soft delete: the member row stays for registration and check-in history."""
    member = await require_member(session, member_id)
    member.status = "inactive"
    member.updated_at = utcnow()
    session.add(member)
    await session.commit()
    logger.info("member_deactivated id=%s", member_id)
    return member


async def bind_line_account(session: AsyncSession, member_id: int, line_user_id: str) -> Member:
    member = await require_member(session, member_id)
    await _ensure_unique(session, None, line_user_id, exclude_id=member.id)
    member.line_user_id = line_user_id
    member.updated_at = utcnow()
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return member


async def get_member_stats(session: AsyncSession) -> dict[str, int]:
    async def count(*conditions) -> int:
        return (await session.execute(select(func.count()).select_from(Member).where(*conditions))).scalar_one()

    return {
        "total": await count(),
        "active": await count(Member.status == "active"),
        "inactive": await count(Member.status == "inactive"),
        "officers": await count(Member.role == Role.OFFICER.value),
        "members": await count(Member.role == Role.MEMBER.value),
        "withLineAccount": await count(Member.line_user_id.is_not(None), Member.status == "active"),  # type: ignore[union-attr]
    }


async def get_member_registrations(session: AsyncSession, member_id: int) -> list[Registration]:
    await require_member(session, member_id)
    result = await session.execute(
        select(Registration)
        .where(Registration.member_id == member_id)
        .order_by(Registration.created_at.desc())  # type: ignore[attr-defined]
    )
    return list(result.scalars().all())


def public_member(member: Member) -> dict:
    return {
        "id": member.id,
        "name": member.name,
        "email": member.email,
        "role": member.role,
        "status": member.status,
    }
