import logging
import sys

from aiohttp import web

from lions_club.config import settings
from lions_club.db import init_db
from lions_club.web.app import create_app


def setup_logging() -> None:
    # Console and ./logs/server.log next to the package (LOG_DIR)
    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = settings.LOG_DIR / "server.log"

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
        force=True,
    )

    logging.getLogger("aiohttp.access").setLevel(logging.INFO)
    logging.getLogger("apscheduler").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def build() -> web.Application:
    await init_db()
    return create_app(settings, start_scheduler=settings.ENABLE_SCHEDULER)


def main() -> None:
    setup_logging()
    logging.info("Server starting on %s:%s", settings.HOST, settings.PORT)
    if not settings.LINE_CHANNEL_SECRET or not settings.LINE_CHANNEL_ACCESS_TOKEN:
        logging.warning("LINE credentials are not configured; webhook calls will be rejected")

    web.run_app(build(), host=settings.HOST, port=settings.PORT, print=None)


if __name__ == "__main__":
    main()
