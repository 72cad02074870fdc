import hmac
import logging

from aiohttp import web

from lions_club.errors import AuthenticationError, InvalidRequestError
from lions_club.line.client import LineApiError
from lions_club.roles import Role
from lions_club.schemas import PushRequest, PushResend, TemplateSave, TemplateTest
from lions_club.services import push as push_service
from lions_club.services.events import event_summary
from lions_club.services.members import resolve_member
from lions_club.utils.normalize import parse_int
from lions_club.web.helpers import fail, match_int, ok, parse_body, query_date, require_role, session_of
from lions_club.web.keys import LINE_CLIENT, SETTINGS

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()


# ---------------- Sending ----------------


@routes.post("/api/push/checkin-reminder")
async def checkin_reminder(request: web.Request) -> web.Response:
    """Entry point for an external cron; authenticated by ``X-Cron-Token``."""
    expected = request.app[SETTINGS].CRON_TOKEN
    token = request.headers.get("X-Cron-Token", "")
    if not expected or not hmac.compare_digest(token, expected):
        raise AuthenticationError("未授權的排程請求", code="UNAUTHORIZED_CRON")
    summary = await push_service.send_checkin_reminders(session_of(request), request.app[LINE_CLIENT])
    message = "明日無活動" if not summary["eventsCount"] else "排程推播完成"
    return ok(message=message, summary=summary)


@routes.post("/api/push/send")
@routes.post("/api/push/retry")
async def push_send(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    data = await parse_body(request, PushRequest)
    outcome = await push_service.push_event_message(
        session_of(request),
        request.app[LINE_CLIENT],
        data.event_id,
        data.member_ids,
        message_type=data.message_type,
        text=data.message,
    )
    return ok(message=f"推播完成！成功：{outcome['successCount']}，失敗：{outcome['failedCount']}", **outcome)


@routes.post("/api/push/resend")
async def push_resend(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    data = await parse_body(request, PushResend)
    outcome = await push_service.resend_push_records(session_of(request), request.app[LINE_CLIENT], data.push_record_ids)
    return ok(message=f"重新推播完成！成功：{outcome['successCount']}，失敗：{outcome['failedCount']}", **outcome)


# ---------------- Records ----------------


@routes.get("/api/admin/push-records")
async def push_records(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    session = session_of(request)
    event_id = parse_int(request.query.get("event_id") or request.query.get("eventId"))
    member_id = parse_int(request.query.get("member_id") or request.query.get("memberId"))
    if event_id is not None:
        rows = await push_service.get_event_push_records(session, event_id)
        return ok(
            records=[
                {**record.model_dump(mode="json"), "member": {"id": member.id, "name": member.name}}
                for record, member in rows
            ]
        )
    if member_id is not None:
        start = query_date(request, "startDate")
        end = query_date(request, "endDate")
        rows = await push_service.get_member_push_records(
            session,
            member_id,
            start=push_service.day_start(start) if start else None,
            end=push_service.day_start(end, next_day=True) if end else None,
        )
        return ok(
            records=[
                {**record.model_dump(mode="json"), "event": event_summary(event) if event else None}
                for record, event in rows
            ]
        )
    raise InvalidRequestError("請提供 eventId 或 memberId", code="MISSING_PARAMS")


@routes.get(r"/api/admin/push-records/stats/{event_id:\d+}")
async def push_record_stats(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    return ok(stats=await push_service.get_event_push_stats(session_of(request), match_int(request, "event_id")))


@routes.get("/api/admin/push-records/export")
async def export_push_records(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    csv_text = await push_service.export_push_records_csv(
        session_of(request),
        member_id=parse_int(request.query.get("memberId") or request.query.get("member_id")),
        start=query_date(request, "startDate"),
        end=query_date(request, "endDate"),
    )
    return web.Response(
        body=csv_text.encode("utf-8-sig"),
        content_type="text/csv",
        charset="utf-8",
        headers={"Content-Disposition": 'attachment; filename="push_records.csv"'},
    )


@routes.get("/api/admin/push-dashboard-summary")
async def push_dashboard(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    summary = await push_service.get_dashboard_summary(
        session_of(request),
        start=query_date(request, "startDate"),
        end=query_date(request, "endDate"),
        message_type=request.query.get("messageType"),
    )
    return ok(data=summary)


# ---------------- Templates ----------------


@routes.post("/api/push-template/save")
async def save_template(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    data = await parse_body(request, TemplateSave)
    template = await push_service.save_template(session_of(request), data)
    return ok(status=201, template=push_service.template_row(template), message="模板已儲存")


@routes.get("/api/push-template/list")
async def list_templates(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    templates = await push_service.list_templates(session_of(request))
    return ok(templates=[push_service.template_row(t) for t in templates])


@routes.get(r"/api/push-template/{template_id:\d+}")
async def get_template(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    template = await push_service.require_template(session_of(request), match_int(request, "template_id"))
    return ok(template=push_service.template_row(template))


@routes.delete(r"/api/push-template/{template_id:\d+}")
async def delete_template(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    await push_service.delete_template(session_of(request), match_int(request, "template_id"))
    return ok(message="模板已刪除")


@routes.post("/api/push-template/test")
async def test_push_template(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.PRESIDENT)
    data = await parse_body(request, TemplateTest)

    if data.test_type == "self":
        target = actor.line_user_id
    elif data.test_type == "member_search":
        member_id = parse_int(data.user_id)
        member = await resolve_member(
            session_of(request), member_id, None if member_id is not None else data.user_id
        )
        target = member.line_user_id
    else:
        target = data.user_id
    if not target:
        raise InvalidRequestError("找不到可推播的 LINE 使用者", code="MISSING_TARGET")

    try:
        await push_service.send_test_template(request.app[LINE_CLIENT], target, data.message_json)
    except LineApiError as exc:
        logger.warning("Template test push to %s failed: %s", target, exc)
        return fail("LINE 推播失敗", 502, "LINE_API_ERROR", details=exc.body)
    return ok(message="測試推播已送出", target=target)
