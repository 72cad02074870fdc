from aiohttp import web

from lions_club.roles import Role
from lions_club.schemas import EventCreate, EventUpdate, RegistrationCreate
from lions_club.services import events as event_service
from lions_club.services import registrations as registration_service
from lions_club.utils.normalize import parse_int
from lions_club.utils.qr import checkin_url, generate_qr_data_url, generate_qr_png
from lions_club.web.helpers import (
    match_int,
    ok,
    page_info,
    pagination,
    parse_body,
    query_datetime,
    require_role,
    session_of,
)
from lions_club.web.keys import SETTINGS

routes = web.RouteTableDef()


def _dump(event) -> dict:
    return event.model_dump(mode="json")


@routes.get("/api/events")
async def list_events(request: web.Request) -> web.Response:
    page, limit, offset = pagination(request)
    q = request.query
    events, total = await event_service.search_events(
        session_of(request),
        title=q.get("title"),
        status=q.get("status"),
        location=q.get("location"),
        date_from=query_datetime(request, "date_from"),
        date_to=query_datetime(request, "date_to"),
        limit=limit,
        offset=offset,
    )
    return ok(events=[_dump(e) for e in events], pagination=page_info(page, limit, total))


@routes.post("/api/events")
@routes.post("/api/events/create")
async def create_event(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.OFFICER)
    data = await parse_body(request, EventCreate)
    event = await event_service.create_event(session_of(request), data, created_by=actor.id)
    return ok(status=201, event=_dump(event), message="活動建立成功")


@routes.get("/api/events/upcoming")
async def upcoming_events(request: web.Request) -> web.Response:
    limit = parse_int(request.query.get("limit"), 5) or 5
    events = await event_service.get_upcoming_events(session_of(request), limit=limit)
    return ok(events=[_dump(e) for e in events])


@routes.get("/api/events/stats")
async def overall_stats(request: web.Request) -> web.Response:
    return ok(stats=await event_service.get_overall_stats(session_of(request)))


@routes.get(r"/api/events/{event_id:\d+}")
async def get_event(request: web.Request) -> web.Response:
    event = await event_service.require_event(session_of(request), match_int(request, "event_id"))
    return ok(event=_dump(event), checkinUrl=checkin_url(event.id, request.app[SETTINGS].BASE_URL))  # type: ignore[arg-type]


@routes.put(r"/api/events/{event_id:\d+}")
async def update_event(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    data = await parse_body(request, EventUpdate)
    event = await event_service.update_event(session_of(request), match_int(request, "event_id"), data)
    return ok(event=_dump(event), message="活動已更新")


@routes.delete(r"/api/events/{event_id:\d+}")
async def delete_event(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    outcome = await event_service.delete_event(session_of(request), match_int(request, "event_id"))
    message = "活動已取消（已有報名或簽到記錄）" if outcome == "cancelled" else "活動已刪除"
    return ok(result=outcome, message=message)


@routes.get(r"/api/events/{event_id:\d+}/stats")
async def event_stats(request: web.Request) -> web.Response:
    return ok(stats=await event_service.get_event_stats(session_of(request), match_int(request, "event_id")))


@routes.get(r"/api/events/{event_id:\d+}/capacity")
async def event_capacity(request: web.Request) -> web.Response:
    return ok(capacity=await event_service.check_capacity(session_of(request), match_int(request, "event_id")))


@routes.get(r"/api/events/{event_id:\d+}/qrcode.png")
async def event_qrcode(request: web.Request) -> web.Response:
    event = await event_service.require_event(session_of(request), match_int(request, "event_id"))
    png = generate_qr_png(checkin_url(event.id, request.app[SETTINGS].BASE_URL))  # type: ignore[arg-type]
    return web.Response(body=png, content_type="image/png")


@routes.get(r"/api/events/{event_id:\d+}/qrcode")
async def event_qrcode_data(request: web.Request) -> web.Response:
    event = await event_service.require_event(session_of(request), match_int(request, "event_id"))
    url = checkin_url(event.id, request.app[SETTINGS].BASE_URL)  # type: ignore[arg-type]
    return ok(checkinUrl=url, qrCode=generate_qr_data_url(url))


@routes.get(r"/api/events/{event_id:\d+}/registrations")
async def event_registrations(request: web.Request) -> web.Response:
    session = session_of(request)
    event_id = match_int(request, "event_id")
    await event_service.require_event(session, event_id)
    page, limit, offset = pagination(request)
    rows, total = await registration_service.search_registrations(
        session, event_id=event_id, status=request.query.get("status"), limit=limit, offset=offset
    )
    return ok(
        registrations=[registration_service.registration_row(reg, member) for reg, member in rows],
        pagination=page_info(page, limit, total),
    )


@routes.post(r"/api/events/{event_id:\d+}/registrations")
async def register_for_event(request: web.Request) -> web.Response:
    data = await parse_body(request, RegistrationCreate)
    registration = await registration_service.register_member_for_event(
        session_of(request), match_int(request, "event_id"), data
    )
    return ok(status=201, registration=registration.model_dump(mode="json"), message="報名成功")
