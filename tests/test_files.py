import aiohttp

from lions_club.models import Payment

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def upload_form(content=PNG, usage="event_cover", content_type="image/png", filename="cover.PNG"):
    form = aiohttp.FormData()
    form.add_field("usage", usage)
    form.add_field("related_id", "7")
    form.add_field("file", content, filename=filename, content_type=content_type)
    return form


async def test_upload_list_and_serve(client, people, auth):
    resp = await client.post("/api/files", data=upload_form(), headers=auth.member)
    assert resp.status == 201
    record = (await resp.json())["file"]
    assert record["original_name"] == "cover.PNG"
    assert record["stored_name"].endswith(".png")
    assert record["uploaded_by"] == people.member.id
    assert record["related_id"] == 7

    resp = await client.get(record["url"])
    assert resp.status == 200
    assert await resp.read() == PNG

    resp = await client.get("/api/files", params={"usage": "event_cover"}, headers=auth.member)
    assert (await resp.json())["pagination"]["total"] == 1


async def test_upload_rejections(client, people, auth):
    resp = await client.post("/api/files", data=upload_form(usage="wallpaper"), headers=auth.member)
    assert (await resp.json())["code"] == "INVALID_USAGE"

    resp = await client.post("/api/files", data=upload_form(content=b""), headers=auth.member)
    assert (await resp.json())["code"] == "EMPTY_FILE"

    resp = await client.post(
        "/api/files", data=upload_form(content_type="application/x-msdownload", filename="x.exe"), headers=auth.member
    )
    assert (await resp.json())["code"] == "UNSUPPORTED_TYPE"

    resp = await client.post("/api/files", json={"usage": "event_cover"}, headers=auth.member)
    assert (await resp.json())["code"] == "INVALID_CONTENT_TYPE"

    resp = await client.post("/api/files", data=upload_form())
    assert resp.status == 401


async def test_delete_hides_record_and_bytes(client, session, people, auth):
    resp = await client.post("/api/files", data=upload_form(), headers=auth.member)
    record = (await resp.json())["file"]
    file_id = record["id"]

    resp = await client.delete(f"/api/files/{file_id}", headers=auth.member)
    assert resp.status == 403
    resp = await client.delete(f"/api/files/{file_id}", headers=auth.officer)
    assert resp.status == 200

    resp = await client.get(f"/api/files/{file_id}", headers=auth.member)
    assert resp.status == 404
    assert (await resp.json())["code"] == "FILE_NOT_FOUND"

    resp = await client.get(record["url"])
    assert resp.status == 404


async def test_payments(client, session, people, make_event, auth):
    event = await make_event()
    payload = {"memberId": people.member.id, "eventId": event.id, "amount": 1500, "method": "transfer"}
    resp = await client.post("/api/payments", json=payload, headers=auth.member)
    assert resp.status == 201
    payment = (await resp.json())["payment"]
    assert payment["status"] == "pending"

    resp = await client.post("/api/payments", json={**payload, "memberId": 999}, headers=auth.member)
    assert (await resp.json())["code"] == "MEMBER_NOT_FOUND"

    resp = await client.patch(f"/api/payments/{payment['id']}", json={"status": "completed"}, headers=auth.member)
    assert resp.status == 403
    resp = await client.patch(f"/api/payments/{payment['id']}", json={"status": "completed"}, headers=auth.officer)
    assert (await resp.json())["payment"]["status"] == "completed"

    resp = await client.get("/api/payments", params={"status": "completed"}, headers=auth.member)
    assert (await resp.json())["pagination"]["total"] == 1

    resp = await client.patch("/api/payments/404", json={"status": "failed"}, headers=auth.officer)
    assert (await resp.json())["code"] == "PAYMENT_NOT_FOUND"

    stored = await session.get(Payment, payment["id"], populate_existing=True)
    assert stored.amount == 1500
