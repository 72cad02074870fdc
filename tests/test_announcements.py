from datetime import timedelta

from lions_club.models import Announcement
from lions_club.services.announcements import process_scheduled_announcements
from lions_club.utils.time import utcnow


async def test_draft_then_publish(client, people, auth):
    payload = {"title": "理事會通知", "content": "本月理事會改至週五舉行"}
    resp = await client.post("/api/announcements", json=payload, headers=auth.member)
    assert resp.status == 403

    resp = await client.post("/api/announcements", json=payload, headers=auth.officer)
    assert resp.status == 201
    announcement = (await resp.json())["announcement"]
    assert announcement["status"] == "draft"
    assert announcement["created_by"] == people.officer.id
    assert announcement["published_at"] is None

    url = f"/api/announcements/{announcement['id']}/publish"
    resp = await client.post(url, headers=auth.officer)
    published = (await resp.json())["announcement"]
    assert published["status"] == "published"
    assert published["published_at"]

    resp = await client.post(url, headers=auth.officer)
    assert resp.status == 409
    assert (await resp.json())["code"] == "ALREADY_PUBLISHED"


async def test_schedule_validation(client, people, auth):
    base = {"title": "授證典禮", "content": "歡迎攜眷參加", "status": "scheduled"}
    resp = await client.post("/api/announcements", json=base, headers=auth.officer)
    assert resp.status == 400
    assert (await resp.json())["code"] == "SCHEDULE_REQUIRED"

    past = (utcnow() - timedelta(hours=1)).isoformat() + "Z"
    resp = await client.post("/api/announcements", json={**base, "scheduled_at": past}, headers=auth.officer)
    assert resp.status == 400
    assert (await resp.json())["code"] == "SCHEDULE_IN_PAST"

    future = (utcnow() + timedelta(days=1)).isoformat() + "Z"
    resp = await client.post("/api/announcements", json={**base, "scheduled_at": future}, headers=auth.officer)
    assert resp.status == 201

    resp = await client.post(
        "/api/announcements", json={"title": "x", "content": "y", "related_event_id": 404}, headers=auth.officer
    )
    assert resp.status == 404
    assert (await resp.json())["code"] == "EVENT_NOT_FOUND"


async def test_due_scheduled_announcements_become_public(client, session, people):
    due = Announcement(title="到期公告", content="已到發布時間", status="scheduled", scheduled_at=utcnow() - timedelta(minutes=1))
    later = Announcement(title="未來公告", content="尚未發布", status="scheduled", scheduled_at=utcnow() + timedelta(days=2))
    session.add_all([due, later])
    await session.commit()

    resp = await client.get("/api/announcements/public")
    titles = [a["title"] for a in (await resp.json())["announcements"]]
    assert titles == ["到期公告"]

    # nothing left to publish on a second pass
    assert await process_scheduled_announcements(session) == 0
    refreshed = await session.get(Announcement, later.id, populate_existing=True)
    assert refreshed.status == "scheduled"


async def test_public_listing_respects_audience_and_visibility(client, session, people, auth):
    now = utcnow()
    session.add_all(
        [
            Announcement(title="全體公告", content="a", status="published", published_at=now),
            Announcement(title="幹部公告", content="b", status="published", audience="officers", published_at=now),
            Announcement(title="草稿", content="c"),
        ]
    )
    await session.commit()

    resp = await client.get("/api/announcements/public")
    assert [a["title"] for a in (await resp.json())["announcements"]] == ["全體公告"]

    resp = await client.get("/api/announcements/public", params={"audience": "officers"})
    assert {a["title"] for a in (await resp.json())["announcements"]} == {"全體公告", "幹部公告"}

    resp = await client.get("/api/announcements/latest", headers=auth.member)
    assert {a["title"] for a in (await resp.json())["announcements"]} == {"全體公告", "幹部公告"}

    resp = await client.get("/api/announcements", params={"title": "全體"}, headers=auth.officer)
    announcement_id = (await resp.json())["announcements"][0]["id"]
    resp = await client.post(f"/api/announcements/{announcement_id}/hide", headers=auth.officer)
    assert (await resp.json())["announcement"]["is_visible"] is False

    resp = await client.get("/api/announcements/public")
    assert (await resp.json())["announcements"] == []

    await client.post(f"/api/announcements/{announcement_id}/show", headers=auth.officer)
    resp = await client.get("/api/announcements/public")
    assert len((await resp.json())["announcements"]) == 1


async def test_update_and_delete(client, session, people, auth):
    announcement = Announcement(title="舊標題", content="內容")
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    url = f"/api/announcements/{announcement.id}"

    resp = await client.put(url, json={"title": "新標題", "status": "published"}, headers=auth.officer)
    body = (await resp.json())["announcement"]
    assert body["title"] == "新標題"
    assert body["published_at"]

    resp = await client.get(url, headers=auth.member)
    assert (await resp.json())["announcement"]["title"] == "新標題"

    assert (await client.delete(url, headers=auth.officer)).status == 200
    resp = await client.get(url, headers=auth.member)
    assert resp.status == 404
    assert (await resp.json())["code"] == "ANNOUNCEMENT_NOT_FOUND"


async def test_null_fields_are_ignored_on_update(client, session, people, auth):
    announcement = Announcement(title="原標題", content="原內容")
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)

    resp = await client.put(
        f"/api/announcements/{announcement.id}",
        json={"title": None, "content": None, "audience": None, "is_visible": None, "status": None},
        headers=auth.officer,
    )
    assert resp.status == 200
    body = (await resp.json())["announcement"]
    assert body["title"] == "原標題"
    assert body["content"] == "原內容"
    assert body["audience"] == "all"
    assert body["status"] == "draft"
    assert body["is_visible"] is True
