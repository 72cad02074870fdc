from aiohttp import web

from lions_club.roles import Role
from lions_club.schemas import RegistrationStatusUpdate
from lions_club.services import registrations as registration_service
from lions_club.utils.normalize import parse_int
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

routes = web.RouteTableDef()


@routes.get("/api/registrations")
async def list_registrations(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    page, limit, offset = pagination(request)
    q = request.query
    rows, total = await registration_service.search_registrations(
        session_of(request),
        event_id=parse_int(q.get("event_id")),
        member_id=parse_int(q.get("member_id")),
        status=q.get("status"),
        date_from=query_datetime(request, "date_from"),
        date_to=query_datetime(request, "date_to"),
        limit=limit,
        offset=offset,
    )
    return ok(
        registrations=[registration_service.registration_row(reg, member) for reg, member in rows],
        pagination=page_info(page, limit, total),
    )


@routes.get(r"/api/registrations/{registration_id:\d+}")
async def get_registration(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    registration = await registration_service.require_registration(
        session_of(request), match_int(request, "registration_id")
    )
    return ok(registration=registration.model_dump(mode="json"))


@routes.patch(r"/api/registrations/{registration_id:\d+}")
async def update_registration(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    data = await parse_body(request, RegistrationStatusUpdate)
    registration = await registration_service.update_registration_status(
        session_of(request), match_int(request, "registration_id"), data.status
    )
    return ok(registration=registration.model_dump(mode="json"), message="報名狀態已更新")


@routes.post(r"/api/registrations/{registration_id:\d+}/cancel")
async def cancel_registration(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.MEMBER)
    session = session_of(request)
    registration = await registration_service.require_registration(session, match_int(request, "registration_id"))
    # members may cancel their own registration; anyone else needs officer rank
    if registration.member_id != actor.id:
        await require_role(request, Role.OFFICER)
    registration = await registration_service.cancel_registration(session, registration.id)  # type: ignore[arg-type]
    return ok(registration=registration.model_dump(mode="json"), message="報名已取消")
