import logging
import shutil
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import async_sessionmaker

from lions_club.config import settings, Settings
from lions_club.db import SessionLocal
from lions_club.line.client import LineClient
from lions_club.services.announcements import process_scheduled_announcements
from lions_club.services.push import send_checkin_reminders

logger = logging.getLogger(__name__)


async def send_tomorrow_reminders(client: LineClient, session_factory: async_sessionmaker = SessionLocal) -> dict:
    """Evening job: check-in reminders for every event happening tomorrow."""
    async with session_factory() as session:
        outcome = await send_checkin_reminders(session, client, pause=2)
    logger.info(
        "reminders_sent events=%s success=%s failed=%s",
        outcome["eventsCount"],
        outcome["totalSuccessful"],
        outcome["totalFailed"],
    )
    return outcome


async def publish_due_announcements(session_factory: async_sessionmaker = SessionLocal) -> int:
    async with session_factory() as session:
        return await process_scheduled_announcements(session)


async def daily_backup(cfg: Settings = settings) -> None:
    if not cfg.database_url.startswith("sqlite"):
        logger.debug("Skipping file backup for %s", cfg.database_url.split("://")[0])
        return
    db_path = cfg.DB_PATH
    if not db_path.exists():
        logger.warning("Database file %s missing, nothing to back up", db_path)
        return
    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)
    backup_path = backup_dir / f"{db_path.name}_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}"
    shutil.copy(db_path, backup_path)
    logger.info("Database backed up to %s", backup_path)


def schedule_jobs(
    client: LineClient,
    session_factory: async_sessionmaker = SessionLocal,
    cfg: Settings = settings,
    start: bool = True,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=cfg.TIMEZONE)
    # Reminder the evening before each event
    scheduler.add_job(send_tomorrow_reminders, "cron", hour=18, minute=0, args=[client, session_factory])
    scheduler.add_job(publish_due_announcements, "interval", minutes=5, args=[session_factory])
    scheduler.add_job(daily_backup, "cron", hour=3, minute=0, args=[cfg])
    if start:
        scheduler.start()
    return scheduler
