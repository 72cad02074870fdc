from datetime import timedelta

from lions_club.models import Registration
from lions_club.utils.time import utcnow


async def test_register_twice_is_conflict(client, people, make_event):
    event = await make_event(date=utcnow() + timedelta(days=5))
    url = f"/api/events/{event.id}/registrations"
    assert (await client.post(url, json={"memberId": people.member.id})).status == 201

    resp = await client.post(url, json={"lineUserId": "U-member"})
    assert resp.status == 409
    body = await resp.json()
    assert body["code"] == "ALREADY_REGISTERED"
    assert body["registration"]["member_id"] == people.member.id


async def test_register_rules(client, people, make_event):
    full = await make_event(date=utcnow() + timedelta(days=5), max_attendees=1)
    await client.post(f"/api/events/{full.id}/registrations", json={"memberId": people.officer.id})
    resp = await client.post(f"/api/events/{full.id}/registrations", json={"memberId": people.member.id})
    assert resp.status == 409
    assert (await resp.json())["code"] == "EVENT_FULL"

    # waitlist entries do not take a seat
    resp = await client.post(
        f"/api/events/{full.id}/registrations", json={"memberId": people.member.id, "status": "waitlist"}
    )
    assert resp.status == 201

    past = await make_event(date=utcnow() - timedelta(days=1))
    resp = await client.post(f"/api/events/{past.id}/registrations", json={"memberId": people.member.id})
    assert resp.status == 400
    assert (await resp.json())["code"] == "EVENT_ENDED"

    cancelled = await make_event(date=utcnow() + timedelta(days=5), status="cancelled")
    resp = await client.post(f"/api/events/{cancelled.id}/registrations", json={"memberId": people.member.id})
    assert resp.status == 400
    assert (await resp.json())["code"] == "EVENT_INACTIVE"


async def test_cancel_and_reactivate(client, session, people, make_event, auth):
    event = await make_event(date=utcnow() + timedelta(days=3))
    resp = await client.post(f"/api/events/{event.id}/registrations", json={"memberId": people.member.id})
    registration_id = (await resp.json())["registration"]["id"]

    resp = await client.post(f"/api/registrations/{registration_id}/cancel", headers=auth.member)
    assert resp.status == 200
    assert (await resp.json())["registration"]["status"] == "cancelled"

    resp = await client.post(f"/api/registrations/{registration_id}/cancel", headers=auth.member)
    assert resp.status == 409
    assert (await resp.json())["code"] == "ALREADY_CANCELLED"

    resp = await client.post(f"/api/events/{event.id}/registrations", json={"memberId": people.member.id})
    assert resp.status == 201
    body = await resp.json()
    assert body["registration"]["id"] == registration_id
    assert body["registration"]["status"] == "confirmed"


async def test_cancel_window_and_ownership(client, session, people, make_event, auth):
    soon = await make_event(date=utcnow() + timedelta(hours=12))
    registration = Registration(member_id=people.member.id, event_id=soon.id)
    session.add(registration)
    await session.commit()
    await session.refresh(registration)

    resp = await client.post(f"/api/registrations/{registration.id}/cancel", headers=auth.member)
    assert resp.status == 400
    assert (await resp.json())["code"] == "CANCEL_WINDOW_CLOSED"

    later = await make_event(date=utcnow() + timedelta(days=4))
    other = Registration(member_id=people.officer.id, event_id=later.id)
    session.add(other)
    await session.commit()
    await session.refresh(other)

    resp = await client.post(f"/api/registrations/{other.id}/cancel", headers=auth.member)
    assert resp.status == 403
    resp = await client.post(f"/api/registrations/{other.id}/cancel", headers=auth.admin)
    assert resp.status == 200


async def test_list_and_update_status(client, session, people, make_event, auth):
    event = await make_event(date=utcnow() + timedelta(days=5))
    registration = Registration(member_id=people.member.id, event_id=event.id, status="pending")
    session.add(registration)
    await session.commit()
    await session.refresh(registration)

    resp = await client.get("/api/registrations", params={"status": "pending"}, headers=auth.member)
    body = await resp.json()
    assert body["pagination"]["total"] == 1
    assert body["registrations"][0]["member"]["name"] == "王小明"

    resp = await client.patch(f"/api/registrations/{registration.id}", json={"status": "bogus"}, headers=auth.officer)
    assert resp.status == 400
    assert (await resp.json())["code"] == "INVALID_STATUS"

    resp = await client.patch(f"/api/registrations/{registration.id}", json={"status": "confirmed"}, headers=auth.officer)
    assert (await resp.json())["registration"]["status"] == "confirmed"

    resp = await client.get(f"/api/members/{people.member.id}/registrations", headers=auth.member)
    assert [r["id"] for r in (await resp.json())["registrations"]] == [registration.id]

    resp = await client.get("/api/registrations/777", headers=auth.member)
    assert resp.status == 404
