from aiohttp import web

from lions_club.errors import InvalidRequestError
from lions_club.roles import Role
from lions_club.schemas import CheckinCreate
from lions_club.services import checkins as checkin_service
from lions_club.services.events import event_summary
from lions_club.utils.normalize import parse_int
from lions_club.web.helpers import dumps, match_int, ok, parse_body, require_role, session_of
from lions_club.web.keys import SETTINGS

routes = web.RouteTableDef()


async def _checkin(request: web.Request, data: CheckinCreate) -> web.Response:
    if data.event_id is None:
        raise InvalidRequestError("缺少 eventId", code="MISSING_EVENT")
    device = data.device_info or request.headers.get("User-Agent")
    result = await checkin_service.perform_checkin(
        session_of(request),
        data.event_id,
        member_id=data.member_id,
        line_user_id=data.line_user_id,
        device_info=device,
        cfg=request.app[SETTINGS],
    )
    return web.json_response(result.to_dict(), status=201, dumps=dumps)


@routes.post("/api/checkin")
async def checkin(request: web.Request) -> web.Response:
    return await _checkin(request, await parse_body(request, CheckinCreate))


@routes.post(r"/api/checkin/{event_id:\d+}")
async def checkin_for_event(request: web.Request) -> web.Response:
    data = await parse_body(request, CheckinCreate)
    data.event_id = match_int(request, "event_id")
    return await _checkin(request, data)


@routes.get(r"/api/checkin/event/{event_id:\d+}")
async def event_checkins(request: web.Request) -> web.Response:
    rows = await checkin_service.list_event_checkins(session_of(request), match_int(request, "event_id"))
    return ok(
        checkins=[
            {
                **checkin.model_dump(mode="json"),
                "member": {"id": member.id, "name": member.name, "role": member.role, "phone": member.phone},
            }
            for checkin, member in rows
        ],
        total=len(rows),
    )


@routes.get("/api/checkin/member/{line_user_id}")
async def member_checkins(request: web.Request) -> web.Response:
    member, rows = await checkin_service.member_checkin_history(session_of(request), request.match_info["line_user_id"])
    return ok(
        member={"id": member.id, "name": member.name},
        checkins=[{**checkin.model_dump(mode="json"), "event": event_summary(event)} for checkin, event in rows],
    )


@routes.get("/api/checkin/stats")
async def checkin_stats(request: web.Request) -> web.Response:
    event_id = parse_int(request.query.get("event_id") or request.query.get("eventId"))
    return ok(stats=await checkin_service.get_checkin_stats(session_of(request), event_id))


@routes.get("/api/checkin/eligibility")
async def checkin_eligibility(request: web.Request) -> web.Response:
    q = request.query
    event_id = parse_int(q.get("event_id") or q.get("eventId"))
    member_id = parse_int(q.get("member_id") or q.get("memberId"))
    line_user_id = q.get("line_user_id") or q.get("lineUserId")
    if event_id is None or (member_id is None and not line_user_id):
        raise InvalidRequestError("缺少 eventId 與 memberId 或 lineUserId", code="MISSING_PARAMS")
    result = await checkin_service.validate_eligibility(
        session_of(request), event_id, member_id, line_user_id, cfg=request.app[SETTINGS]
    )
    return ok(**result)


@routes.delete(r"/api/checkin/{checkin_id:\d+}")
async def cancel_checkin(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    await checkin_service.cancel_checkin(session_of(request), match_int(request, "checkin_id"))
    return ok(message="簽到記錄已取消")
