import io
from datetime import timedelta

import pandas as pd

from lions_club.models import Checkin, MessageLog, Registration
from lions_club.utils.time import utcnow


async def seed(session, people, make_event):
    event = await make_event(title="春季聯誼", date=utcnow() + timedelta(days=2))
    session.add(Registration(member_id=people.member.id, event_id=event.id))
    session.add(Checkin(member_id=people.member.id, event_id=event.id, device_info="iPad"))
    await session.commit()
    return event


async def test_reports_require_president(client, people, auth):
    resp = await client.get("/api/admin/summary", headers=auth.officer)
    assert resp.status == 403

    resp = await client.get("/api/admin/summary", headers=auth.admin)
    summary = (await resp.json())["summary"]
    assert summary["totalMembers"] == 3
    assert summary["activeMembers"] == 3


async def test_dashboard(client, session, people, make_event, auth):
    event = await seed(session, people, make_event)
    resp = await client.get("/api/admin/dashboard", headers=auth.admin)
    dashboard = (await resp.json())["dashboard"]
    assert dashboard["totalRegistrations"] == 1
    assert [e["id"] for e in dashboard["upcomingEvents"]] == [event.id]
    assert dashboard["recentCheckins"][0]["memberName"] == "王小明"


async def test_csv_export_has_bom_and_chinese_headers(client, session, people, make_event, auth):
    await seed(session, people, make_event)
    resp = await client.get("/api/admin/reports/checkins", headers=auth.admin)
    assert resp.status == 200
    assert resp.content_type == "text/csv"
    assert 'filename="checkins_report.csv"' in resp.headers["Content-Disposition"]
    raw = await resp.read()
    assert raw.startswith(b"\xef\xbb\xbf")

    df = pd.read_csv(io.BytesIO(raw), encoding="utf-8-sig")
    assert list(df.columns) == ["簽到編號", "會員", "Email", "活動", "簽到時間", "裝置"]
    assert df.loc[0, "裝置"] == "iPad"


async def test_json_format_and_filters(client, session, people, make_event, auth):
    event = await seed(session, people, make_event)
    resp = await client.get("/api/admin/reports/events", params={"format": "json"}, headers=auth.admin)
    body = await resp.json()
    assert body["total"] == 1
    assert body["rows"][0]["報名人數"] == 1
    assert body["rows"][0]["簽到人數"] == 1

    resp = await client.get(
        "/api/admin/reports/registrations",
        params={"format": "json", "event_id": event.id + 1},
        headers=auth.admin,
    )
    assert (await resp.json())["total"] == 0

    resp = await client.get("/api/admin/reports/members", params={"format": "json", "status": "active"}, headers=auth.admin)
    assert (await resp.json())["total"] == 3


async def test_unknown_report_type(client, people, auth):
    resp = await client.get("/api/admin/reports/payroll", headers=auth.admin)
    assert resp.status == 400
    assert (await resp.json())["code"] == "INVALID_REPORT_TYPE"


async def test_comprehensive_report(client, session, people, make_event, auth):
    await seed(session, people, make_event)
    resp = await client.get("/api/admin/reports/comprehensive", headers=auth.admin)
    report = (await resp.json())["report"]
    assert report["events"] == {"active": 1}
    assert report["newRegistrationsThisWeek"] == 1
    assert report["checkinsByDay"][0]["count"] == 1


async def test_message_logs(client, session, people, auth):
    session.add_all(
        [
            MessageLog(user_id="U-member", timestamp=utcnow(), message_type="text", message_content="活動"),
            MessageLog(user_id="U-other", timestamp=utcnow(), message_type="text", message_content="hi"),
        ]
    )
    await session.commit()
    resp = await client.get("/api/admin/message-logs", params={"user_id": "U-member"}, headers=auth.admin)
    body = await resp.json()
    assert body["pagination"]["total"] == 1
    assert body["logs"][0]["message_content"] == "活動"
