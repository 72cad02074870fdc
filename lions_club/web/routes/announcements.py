from aiohttp import web

from lions_club.roles import Role
from lions_club.schemas import AnnouncementCreate, AnnouncementUpdate
from lions_club.services import announcements as announcement_service
from lions_club.utils.normalize import parse_int
from lions_club.web.helpers import match_int, ok, page_info, pagination, parse_body, query_bool, require_role, session_of

routes = web.RouteTableDef()


def _dump(announcement) -> dict:
    return announcement.model_dump(mode="json")


@routes.get("/api/announcements")
async def list_announcements(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    page, limit, offset = pagination(request)
    q = request.query
    items, total = await announcement_service.search_announcements(
        session_of(request),
        title=q.get("title"),
        content=q.get("content"),
        audience=q.get("audience"),
        category=q.get("category"),
        status=q.get("status"),
        created_by=parse_int(q.get("created_by")),
        related_event_id=parse_int(q.get("related_event_id")),
        is_visible=query_bool(request, "is_visible"),
        limit=limit,
        offset=offset,
    )
    return ok(announcements=[_dump(a) for a in items], pagination=page_info(page, limit, total))


@routes.post("/api/announcements")
async def create_announcement(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.OFFICER)
    data = await parse_body(request, AnnouncementCreate)
    announcement = await announcement_service.create_announcement(session_of(request), data, created_by=actor.id)
    return ok(status=201, announcement=_dump(announcement), message="公告建立成功")


@routes.get("/api/announcements/public")
async def public_announcements(request: web.Request) -> web.Response:
    audience = request.query.get("audience", "all")
    limit = parse_int(request.query.get("limit"), 10) or 10
    items = await announcement_service.get_public_announcements(session_of(request), audience=audience, limit=limit)
    return ok(announcements=[_dump(a) for a in items])


@routes.get("/api/announcements/latest")
async def latest_announcements(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    limit = parse_int(request.query.get("limit"), 5) or 5
    items = await announcement_service.get_latest_announcements(session_of(request), limit=min(limit, 50))
    return ok(announcements=[_dump(a) for a in items])


@routes.get(r"/api/announcements/{announcement_id:\d+}")
async def get_announcement(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    announcement = await announcement_service.require_announcement(
        session_of(request), match_int(request, "announcement_id")
    )
    return ok(announcement=_dump(announcement))


@routes.put(r"/api/announcements/{announcement_id:\d+}")
async def update_announcement(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    data = await parse_body(request, AnnouncementUpdate)
    announcement = await announcement_service.update_announcement(
        session_of(request), match_int(request, "announcement_id"), data
    )
    return ok(announcement=_dump(announcement), message="公告已更新")


@routes.delete(r"/api/announcements/{announcement_id:\d+}")
async def delete_announcement(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    await announcement_service.delete_announcement(session_of(request), match_int(request, "announcement_id"))
    return ok(message="公告已刪除")


@routes.post(r"/api/announcements/{announcement_id:\d+}/publish")
async def publish_announcement(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    announcement = await announcement_service.publish_announcement(
        session_of(request), match_int(request, "announcement_id")
    )
    return ok(announcement=_dump(announcement), message="公告已發布")


@routes.post(r"/api/announcements/{announcement_id:\d+}/hide")
async def hide_announcement(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    announcement = await announcement_service.set_visibility(
        session_of(request), match_int(request, "announcement_id"), False
    )
    return ok(announcement=_dump(announcement), message="公告已隱藏")


@routes.post(r"/api/announcements/{announcement_id:\d+}/show")
async def show_announcement(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    announcement = await announcement_service.set_visibility(
        session_of(request), match_int(request, "announcement_id"), True
    )
    return ok(announcement=_dump(announcement), message="公告已顯示")
