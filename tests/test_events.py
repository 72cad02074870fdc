from datetime import timedelta

from sqlmodel import select

from lions_club.models import Event, Registration
from lions_club.utils.time import utcnow


async def test_create_event_records_creator(client, people, auth):
    payload = {"title": "年度授證典禮", "date": "2031-03-01T18:30:00+08:00", "location": "圓山飯店", "maxAttendees": 120}
    resp = await client.post("/api/events", json=payload, headers=auth.officer)
    assert resp.status == 201
    event = (await resp.json())["event"]
    assert event["created_by"] == people.officer.id
    assert event["max_attendees"] == 120
    # stored as naive UTC
    assert event["date"].startswith("2031-03-01T10:30:00")


async def test_create_event_alias_and_permissions(client, people, auth):
    payload = {"title": "淨灘活動", "date": "2031-04-01T09:00:00"}
    resp = await client.post("/api/events/create", json=payload, headers=auth.member)
    assert resp.status == 403

    resp = await client.post("/api/events/create", json=payload, headers=auth.admin)
    assert resp.status == 201

    resp = await client.post("/api/events", json={"date": "2031-04-01T09:00:00"}, headers=auth.admin)
    assert resp.status == 400


async def test_list_get_update(client, people, make_event, auth):
    first = await make_event(title="理監事會議")
    await make_event(title="捐血活動", location="新北市")

    resp = await client.get("/api/events", params={"location": "新北"})
    body = await resp.json()
    assert body["pagination"]["total"] == 1
    assert body["events"][0]["title"] == "捐血活動"

    resp = await client.get(f"/api/events/{first.id}")
    body = await resp.json()
    assert body["event"]["title"] == "理監事會議"
    assert body["checkinUrl"] == f"https://club.example.com/checkin/{first.id}"

    resp = await client.put(f"/api/events/{first.id}", json={"location": "會館三樓"}, headers=auth.officer)
    assert (await resp.json())["event"]["location"] == "會館三樓"

    resp = await client.get("/api/events/4040")
    assert resp.status == 404
    assert (await resp.json())["code"] == "EVENT_NOT_FOUND"


async def test_delete_is_soft_when_history_exists(client, session, people, make_event, auth):
    empty = await make_event(title="暫定活動")
    used = await make_event(title="已有報名")
    session.add(Registration(member_id=people.member.id, event_id=used.id))
    await session.commit()

    resp = await client.delete(f"/api/events/{empty.id}", headers=auth.officer)
    assert (await resp.json())["result"] == "deleted"
    assert await session.get(Event, empty.id, populate_existing=True) is None

    resp = await client.delete(f"/api/events/{used.id}", headers=auth.officer)
    assert (await resp.json())["result"] == "cancelled"
    await session.refresh(used)
    assert used.status == "cancelled"


async def test_upcoming_and_overall_stats(client, make_event):
    await make_event(title="過去活動", date=utcnow() - timedelta(days=3))
    soon = await make_event(title="下週活動", date=utcnow() + timedelta(days=7))
    await make_event(title="取消活動", date=utcnow() + timedelta(days=2), status="cancelled")

    resp = await client.get("/api/events/upcoming")
    events = (await resp.json())["events"]
    assert [e["id"] for e in events] == [soon.id]

    resp = await client.get("/api/events/stats")
    stats = (await resp.json())["stats"]
    assert stats["totalEvents"] == 3
    assert stats["upcomingEvents"] == 1
    assert stats["pastEvents"] == 1
    assert stats["cancelledEvents"] == 1


async def test_capacity_and_event_stats(client, session, people, make_event):
    event = await make_event(max_attendees=2, date=utcnow() + timedelta(days=5))
    session.add(Registration(member_id=people.member.id, event_id=event.id))
    session.add(Registration(member_id=people.officer.id, event_id=event.id, status="cancelled"))
    await session.commit()

    resp = await client.get(f"/api/events/{event.id}/capacity")
    capacity = (await resp.json())["capacity"]
    assert capacity == {"maxAttendees": 2, "currentRegistrations": 1, "availableSlots": 1, "isFull": False}

    resp = await client.get(f"/api/events/{event.id}/stats")
    stats = (await resp.json())["stats"]
    assert stats["registrations"] == 1
    assert stats["checkins"] == 0
    assert stats["attendanceRate"] == 0


async def test_qrcode_png(client, make_event):
    event = await make_event()
    resp = await client.get(f"/api/events/{event.id}/qrcode.png")
    assert resp.status == 200
    assert resp.content_type == "image/png"
    assert (await resp.read()).startswith(b"\x89PNG")


async def test_event_registrations_listing(client, session, people, make_event):
    event = await make_event(date=utcnow() + timedelta(days=5))
    resp = await client.post(f"/api/events/{event.id}/registrations", json={"lineUserId": "U-member", "numAttendees": 2})
    assert resp.status == 201

    resp = await client.get(f"/api/events/{event.id}/registrations")
    body = await resp.json()
    assert body["pagination"]["total"] == 1
    row = body["registrations"][0]
    assert row["num_attendees"] == 2
    assert row["member"]["email"] == "member@example.com"

    stored = (await session.execute(select(Registration).where(Registration.event_id == event.id))).scalars().one()
    assert stored.member_id == people.member.id


async def test_qrcode_data_url(client, make_event):
    event = await make_event()
    resp = await client.get(f"/api/events/{event.id}/qrcode")
    body = await resp.json()
    assert body["checkinUrl"] == f"https://club.example.com/checkin/{event.id}"
    assert body["qrCode"].startswith("data:image/png;base64,")
