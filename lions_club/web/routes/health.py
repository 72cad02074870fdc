import logging
import time

from aiohttp import web
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from lions_club import __version__
from lions_club.web.helpers import dumps, ok, session_of
from lions_club.web.keys import LINE_CLIENT, SCHEDULER, SETTINGS

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()

STARTED_AT = time.monotonic()


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    started = time.perf_counter()
    body = {"timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()), "version": __version__}
    try:
        await session_of(request).execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc)
        body.update(status="unhealthy", database="disconnected", error=str(exc))
        return web.json_response(body, status=503, dumps=dumps)
    body.update(
        status="healthy",
        database="connected",
        uptime=round(time.monotonic() - STARTED_AT, 1),
        responseTime=f"{(time.perf_counter() - started) * 1000:.0f}ms",
    )
    return web.json_response(body, dumps=dumps)


@routes.get("/healthz")
async def healthz(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


@routes.get("/api/system/status")
async def system_status(request: web.Request) -> web.Response:
    cfg = request.app[SETTINGS]
    return ok(
        status={
            "version": __version__,
            "lineConfigured": bool(cfg.LINE_CHANNEL_SECRET and cfg.LINE_CHANNEL_ACCESS_TOKEN),
            "liffConfigured": bool(cfg.LIFF_ID),
            "schedulerRunning": SCHEDULER in request.app and request.app[SCHEDULER].running,
            "lineClient": LINE_CLIENT in request.app,
            "frontendBuilt": (cfg.FRONTEND_DIR / "index.html").is_file(),
            "checkinWindow": {
                "enforced": cfg.CHECKIN_ENFORCE_WINDOW,
                "opensMinutesBefore": cfg.CHECKIN_OPENS_MINUTES_BEFORE,
                "closesMinutesAfter": cfg.CHECKIN_CLOSES_MINUTES_AFTER,
            },
            "requireRegistration": cfg.CHECKIN_REQUIRE_REGISTRATION,
        }
    )
