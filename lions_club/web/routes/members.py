from aiohttp import web

from lions_club.roles import Role
from lions_club.schemas import BindLine, LiffCheck, MemberCreate, MemberSignup, MemberUpdate
from lions_club.services import members as member_service
from lions_club.web.helpers import match_int, ok, page_info, pagination, parse_body, require_role, session_of

routes = web.RouteTableDef()


def _dump(member) -> dict:
    return member.model_dump(mode="json")


# ---------------- Member management ----------------


@routes.get("/api/members")
async def list_members(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    page, limit, offset = pagination(request)
    q = request.query
    members, total = await member_service.search_members(
        session_of(request),
        name=q.get("name"),
        email=q.get("email"),
        status=q.get("status"),
        role=q.get("role"),
        line_user_id=q.get("line_user_id"),
        limit=limit,
        offset=offset,
    )
    return ok(members=[_dump(m) for m in members], pagination=page_info(page, limit, total))


@routes.post("/api/members")
async def create_member(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.OFFICER)
    data = await parse_body(request, MemberCreate)
    member = await member_service.create_member(session_of(request), data, actor=actor)
    return ok(status=201, member=_dump(member), message="會員建立成功")


@routes.get("/api/members/stats")
async def member_stats(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    return ok(stats=await member_service.get_member_stats(session_of(request)))


@routes.get(r"/api/members/{member_id:\d+}")
async def get_member(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    member = await member_service.require_member(session_of(request), match_int(request, "member_id"))
    return ok(member=_dump(member))


@routes.put(r"/api/members/{member_id:\d+}")
async def update_member(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.OFFICER)
    data = await parse_body(request, MemberUpdate)
    member = await member_service.update_member(
        session_of(request), match_int(request, "member_id"), data, actor=actor
    )
    return ok(member=_dump(member), message="會員資料已更新")


@routes.delete(r"/api/members/{member_id:\d+}")
async def deactivate_member(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    member = await member_service.deactivate_member(session_of(request), match_int(request, "member_id"))
    return ok(member=_dump(member), message="會員已停用")


@routes.post(r"/api/members/{member_id:\d+}/bind-line")
async def bind_line(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    data = await parse_body(request, BindLine)
    member = await member_service.bind_line_account(
        session_of(request), match_int(request, "member_id"), data.line_user_id
    )
    return ok(member=_dump(member), message="LINE 帳號綁定成功")


@routes.get(r"/api/members/{member_id:\d+}/registrations")
async def member_registrations(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    registrations = await member_service.get_member_registrations(
        session_of(request), match_int(request, "member_id")
    )
    return ok(registrations=[r.model_dump(mode="json") for r in registrations])


# ---------------- Self-registration (LIFF) ----------------


@routes.post("/api/registration/register")
@routes.post("/api/liff/register")
async def signup(request: web.Request) -> web.Response:
    data = await parse_body(request, MemberSignup)
    member = await member_service.signup_member(session_of(request), data)
    return ok(status=201, member=member_service.public_member(member), message="會員註冊成功")


@routes.get("/api/registration/status/{line_uid}")
async def registration_status(request: web.Request) -> web.Response:
    member = await member_service.get_member_by_line_id(session_of(request), request.match_info["line_uid"])
    if not member:
        return ok(registered=False, member=None)
    return ok(registered=True, member=member_service.public_member(member))


@routes.post("/api/liff/check-member")
async def check_member(request: web.Request) -> web.Response:
    data = await parse_body(request, LiffCheck)
    session = session_of(request)
    member = await member_service.get_member_by_line_id(session, data.line_user_id)
    await member_service.touch_liff_session(session, data, is_member=member is not None)
    return ok(
        isMember=member is not None,
        member=member_service.public_member(member) if member else None,
    )
