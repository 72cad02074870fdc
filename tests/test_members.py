from sqlmodel import select

from lions_club.models import LiffSession, Member

SIGNUP = {
    "lineUserId": "U-newcomer",
    "name": "陳大文",
    "email": "David.Chen@Example.com",
    "birthday": "1980-05-01",
    "job_title": "建築師",
    "mobile": "0912-345-678",
    "address": "台北市大安區",
}


async def test_create_member_requires_officer(client, people, auth):
    payload = {"name": "李四", "email": "li@example.com"}
    resp = await client.post("/api/members", json=payload)
    assert resp.status == 401

    resp = await client.post("/api/members", json=payload, headers=auth.member)
    assert resp.status == 403

    resp = await client.post("/api/members", json=payload, headers=auth.officer)
    assert resp.status == 201
    member = (await resp.json())["member"]
    assert member["role"] == "member"
    assert member["status"] == "active"


async def test_create_member_validation_and_uniqueness(client, people, auth):
    resp = await client.post("/api/members", json={"name": "李四", "email": "not-an-email"}, headers=auth.officer)
    assert resp.status == 400
    body = await resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]

    resp = await client.post("/api/members", json={"name": "重複", "email": "MEMBER@example.com"}, headers=auth.officer)
    assert resp.status == 409
    assert (await resp.json())["code"] == "EMAIL_TAKEN"

    resp = await client.post(
        "/api/members", json={"name": "重複", "email": "x@example.com", "lineUserId": "U-member"}, headers=auth.officer
    )
    assert resp.status == 409
    assert (await resp.json())["code"] == "LINE_ACCOUNT_TAKEN"


async def test_list_and_search_members(client, people, auth):
    resp = await client.get("/api/members", params={"name": "小明"}, headers=auth.member)
    body = await resp.json()
    assert body["pagination"]["total"] == 1
    assert body["members"][0]["email"] == "member@example.com"

    resp = await client.get("/api/members", params={"role": "officer", "limit": 1}, headers=auth.member)
    body = await resp.json()
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 1, "totalPages": 1}


async def test_update_and_deactivate(client, session, people, auth):
    member_id = people.member.id
    resp = await client.put(f"/api/members/{member_id}", json={"job_title": "律師", "mobile": "0987654321"}, headers=auth.officer)
    assert resp.status == 200
    member = (await resp.json())["member"]
    assert member["job_title"] == "律師"
    assert member["mobile"] == "+886987654321"

    resp = await client.delete(f"/api/members/{member_id}", headers=auth.officer)
    assert resp.status == 200
    await session.refresh(people.member)
    assert people.member.status == "inactive"

    # the row is kept for history
    resp = await client.get(f"/api/members/{member_id}", headers=auth.officer)
    assert (await resp.json())["member"]["status"] == "inactive"


async def test_member_not_found(client, people, auth):
    resp = await client.get("/api/members/9999", headers=auth.member)
    assert resp.status == 404
    assert (await resp.json())["code"] == "MEMBER_NOT_FOUND"


async def test_bind_line(client, session, people, auth):
    session.add(Member(name="未綁定", email="unbound@example.com"))
    await session.commit()
    unbound = (await session.execute(select(Member).where(Member.email == "unbound@example.com"))).scalars().one()

    resp = await client.post(f"/api/members/{unbound.id}/bind-line", json={"lineUserId": "U-member"}, headers=auth.officer)
    assert resp.status == 409

    resp = await client.post(f"/api/members/{unbound.id}/bind-line", json={"lineUserId": "U-fresh"}, headers=auth.officer)
    assert resp.status == 200
    assert (await resp.json())["member"]["line_user_id"] == "U-fresh"


async def test_member_stats(client, people, auth):
    resp = await client.get("/api/members/stats", headers=auth.member)
    stats = (await resp.json())["stats"]
    assert stats["total"] == 3
    assert stats["officers"] == 1
    assert stats["members"] == 1
    assert stats["withLineAccount"] == 3


async def test_liff_signup_flow(client, session, people):
    resp = await client.post("/api/liff/check-member", json={"lineUserId": "U-newcomer", "displayName": "David"})
    body = await resp.json()
    assert body["isMember"] is False

    resp = await client.post("/api/liff/register", json=SIGNUP)
    assert resp.status == 201
    member = (await resp.json())["member"]
    assert member["email"] == "david.chen@example.com"

    liff = (await session.execute(select(LiffSession).where(LiffSession.line_uid == "U-newcomer"))).scalars().one()
    await session.refresh(liff)
    assert liff.status == "registered"
    assert liff.display_name == "David"

    resp = await client.get("/api/registration/status/U-newcomer")
    body = await resp.json()
    assert body["registered"] is True
    assert body["member"]["name"] == "陳大文"

    resp = await client.post("/api/registration/register", json={**SIGNUP, "email": "other@example.com"})
    assert resp.status == 409
    assert (await resp.json())["code"] == "LINE_ACCOUNT_TAKEN"


async def test_signup_requires_every_contact_field(client):
    payload = {k: v for k, v in SIGNUP.items() if k != "address"}
    resp = await client.post("/api/liff/register", json=payload)
    assert resp.status == 400
    assert (await resp.json())["code"] == "VALIDATION_ERROR"


async def test_registration_status_for_stranger(client):
    resp = await client.get("/api/registration/status/U-stranger")
    assert await resp.json() == {"success": True, "registered": False, "member": None}


async def test_officer_cannot_hand_out_higher_roles(client, session, people, auth):
    resp = await client.put(f"/api/members/{people.officer.id}", json={"role": "admin"}, headers=auth.officer)
    assert resp.status == 403
    assert (await resp.json())["code"] == "INSUFFICIENT_PERMISSIONS"

    resp = await client.put(f"/api/members/{people.admin.id}", json={"role": "member"}, headers=auth.officer)
    assert resp.status == 403

    resp = await client.put(f"/api/members/{people.member.id}", json={"role": "president"}, headers=auth.officer)
    assert resp.status == 403

    resp = await client.post(
        "/api/members", json={"name": "李四", "email": "li@example.com", "role": "president"}, headers=auth.officer
    )
    assert resp.status == 403
    assert (await resp.json())["code"] == "INSUFFICIENT_PERMISSIONS"

    await session.refresh(people.officer)
    await session.refresh(people.admin)
    assert people.officer.role == "officer"
    assert people.admin.role == "admin"


async def test_role_changes_within_rank(client, people, auth):
    # same role is not a change
    resp = await client.put(f"/api/members/{people.officer.id}", json={"role": "officer"}, headers=auth.officer)
    assert resp.status == 200

    resp = await client.put(f"/api/members/{people.member.id}", json={"role": "officer"}, headers=auth.officer)
    assert resp.status == 200
    assert (await resp.json())["member"]["role"] == "officer"

    resp = await client.put(f"/api/members/{people.officer.id}", json={"role": "president"}, headers=auth.admin)
    assert resp.status == 200
    assert (await resp.json())["member"]["role"] == "president"


async def test_null_fields_are_ignored_on_update(client, people, auth):
    resp = await client.put(
        f"/api/members/{people.member.id}",
        json={"name": None, "email": None, "role": None, "status": None, "job_title": "會計師"},
        headers=auth.officer,
    )
    assert resp.status == 200
    member = (await resp.json())["member"]
    assert member["name"] == "王小明"
    assert member["email"] == "member@example.com"
    assert member["role"] == "member"
    assert member["status"] == "active"
    assert member["job_title"] == "會計師"
