from aiohttp import web

from lions_club.roles import Role
from lions_club.schemas import PaymentCreate, PaymentStatusUpdate
from lions_club.services import payments as payment_service
from lions_club.utils.normalize import parse_int
from lions_club.web.helpers import match_int, ok, page_info, pagination, parse_body, require_role, session_of

routes = web.RouteTableDef()


@routes.get("/api/payments")
async def list_payments(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    page, limit, offset = pagination(request)
    q = request.query
    payments, total = await payment_service.search_payments(
        session_of(request),
        member_id=parse_int(q.get("member_id")),
        event_id=parse_int(q.get("event_id")),
        status=q.get("status"),
        limit=limit,
        offset=offset,
    )
    return ok(payments=[p.model_dump(mode="json") for p in payments], pagination=page_info(page, limit, total))


@routes.post("/api/payments")
async def create_payment(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    data = await parse_body(request, PaymentCreate)
    payment = await payment_service.create_payment(session_of(request), data)
    return ok(status=201, payment=payment.model_dump(mode="json"))


@routes.patch(r"/api/payments/{payment_id:\d+}")
async def update_payment(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    data = await parse_body(request, PaymentStatusUpdate)
    payment = await payment_service.update_payment_status(session_of(request), match_int(request, "payment_id"), data.status)
    return ok(payment=payment.model_dump(mode="json"), message="付款狀態已更新")
