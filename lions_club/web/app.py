import logging

from aiohttp import web
from sqlalchemy.ext.asyncio import async_sessionmaker

from lions_club.config import settings, Settings
from lions_club.db import SessionLocal
from lions_club.line.client import LineClient
from lions_club.services.scheduler import schedule_jobs
from lions_club.web.keys import LINE_CLIENT, SCHEDULER, SESSION_FACTORY, SETTINGS
from lions_club.web.middlewares import cors_middleware, db_session_middleware, error_middleware
from lions_club.web.routes import API_ROUTES, FRONTEND_ROUTES

logger = logging.getLogger(__name__)


async def _start_line_client(app: web.Application) -> None:
    await app[LINE_CLIENT].start()


async def _close_line_client(app: web.Application) -> None:
    await app[LINE_CLIENT].close()


async def _start_scheduler(app: web.Application) -> None:
    app[SCHEDULER].start()
    logger.info("Scheduler started (%s)", app[SETTINGS].TIMEZONE)


async def _stop_scheduler(app: web.Application) -> None:
    if app[SCHEDULER].running:
        app[SCHEDULER].shutdown(wait=False)


def create_app(
    cfg: Settings = settings,
    session_factory: async_sessionmaker | None = None,
    line_client: LineClient | None = None,
    start_scheduler: bool = False,
) -> web.Application:
    app = web.Application(
        middlewares=[cors_middleware, error_middleware, db_session_middleware],
        client_max_size=cfg.MAX_UPLOAD_SIZE + 1024 * 1024,
    )
    app[SETTINGS] = cfg
    app[SESSION_FACTORY] = session_factory or SessionLocal
    app[LINE_CLIENT] = line_client or LineClient(cfg)

    for table in API_ROUTES:
        app.add_routes(table)

    cfg.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    app.router.add_static("/uploads/", str(cfg.UPLOAD_DIR), show_index=False)
    app.add_routes(FRONTEND_ROUTES)

    app.on_startup.append(_start_line_client)
    app.on_cleanup.append(_close_line_client)
    if start_scheduler:
        # jobs are registered now, the scheduler starts once the loop runs
        app[SCHEDULER] = schedule_jobs(app[LINE_CLIENT], app[SESSION_FACTORY], cfg, start=False)
        app.on_startup.append(_start_scheduler)
        app.on_cleanup.append(_stop_scheduler)
    return app
