from sqlmodel import select

from lions_club.models import PushRecord, Registration
from lions_club.roles import Role, superior_roles
from lions_club.services.checkins import is_checked_in, perform_checkin
from lions_club.services.members import get_member_by_email
from lions_club.services.push import get_event_push_stats, record_bulk_push_results
from lions_club.services.registrations import is_registered


async def test_member_lookup_by_email_ignores_case(session, people):
    member = await get_member_by_email(session, "  MEMBER@example.com")
    assert member.id == people.member.id
    assert await get_member_by_email(session, "ghost@example.com") is None


async def test_is_checked_in(session, cfg, people, make_event):
    event = await make_event()
    assert not await is_checked_in(session, people.member.id, event.id)
    await perform_checkin(session, event.id, line_user_id="U-member", cfg=cfg)
    assert await is_checked_in(session, people.member.id, event.id)


async def test_is_registered_reports_status(session, people, make_event):
    event = await make_event()
    assert await is_registered(session, people.member.id, event.id) == {"registered": False, "status": None}

    session.add(Registration(member_id=people.member.id, event_id=event.id, status="waitlist"))
    await session.commit()
    assert await is_registered(session, people.member.id, event.id) == {"registered": False, "status": "waitlist"}


async def test_bulk_push_results(session, people, make_event):
    event = await make_event()
    count = await record_bulk_push_results(
        session,
        [
            {"member_id": people.member.id, "event_id": event.id, "message_type": "event_notification", "status": "success"},
            {
                "member_id": people.officer.id,
                "event_id": event.id,
                "message_type": "event_notification",
                "status": "failed",
                "error": "timeout",
            },
        ],
    )
    assert count == 2
    rows = (await session.execute(select(PushRecord))).scalars().all()
    assert {r.status for r in rows} == {"success", "failed"}
    stats = await get_event_push_stats(session, event.id)
    assert stats["failed"] == 1


def test_superior_roles():
    assert superior_roles(Role.PRESIDENT) == [Role.ADMIN]
    assert Role.GUEST not in superior_roles(Role.MEMBER)
