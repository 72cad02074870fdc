from aiohttp import web

from lions_club.errors import InvalidRequestError
from lions_club.roles import Role
from lions_club.services import reports
from lions_club.utils.normalize import parse_int
from lions_club.web.helpers import ok, page_info, pagination, query_datetime, require_role, session_of

routes = web.RouteTableDef()


@routes.get("/api/admin/summary")
async def summary(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    return ok(summary=await reports.get_system_summary(session_of(request)))


@routes.get("/api/admin/dashboard")
async def dashboard(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    return ok(dashboard=await reports.get_dashboard(session_of(request)))


@routes.get("/api/admin/reports/comprehensive")
async def comprehensive(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    return ok(report=await reports.comprehensive_report(session_of(request)))


@routes.get("/api/admin/reports/{report_type}")
async def export_report(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    report_type = request.match_info["report_type"]
    if report_type not in reports.REPORT_TYPES:
        raise InvalidRequestError("不支援的報表類型", code="INVALID_REPORT_TYPE")

    df = await reports.build_report(
        session_of(request),
        report_type,
        status=request.query.get("status"),
        event_id=parse_int(request.query.get("event_id")),
        date_from=query_datetime(request, "date_from"),
        date_to=query_datetime(request, "date_to"),
    )
    if request.query.get("format") == "json":
        return ok(report=report_type, rows=df.to_dict(orient="records"), total=len(df))
    return web.Response(
        body=reports.to_csv_bytes(df),
        content_type="text/csv",
        charset="utf-8",
        headers={"Content-Disposition": f'attachment; filename="{report_type}_report.csv"'},
    )


@routes.get("/api/admin/message-logs")
async def message_logs(request: web.Request) -> web.Response:
    await require_role(request, Role.PRESIDENT)
    page, limit, offset = pagination(request)
    logs, total = await reports.list_message_logs(
        session_of(request), user_id=request.query.get("user_id"), limit=limit, offset=offset
    )
    return ok(logs=[log.model_dump(mode="json") for log in logs], pagination=page_info(page, limit, total))
