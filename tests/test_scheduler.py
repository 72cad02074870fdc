from datetime import timedelta

from lions_club.diagnostics import check_database, check_frontend, check_upload_dir, run_checks
from lions_club.models import Announcement
from lions_club.services.scheduler import daily_backup, publish_due_announcements, schedule_jobs
from lions_club.utils.time import utcnow


def test_schedule_jobs_registers_three_jobs(cfg, session_factory, line_client):
    scheduler = schedule_jobs(line_client, session_factory, cfg, start=False)
    jobs = scheduler.get_jobs()
    assert sorted(job.func.__name__ for job in jobs) == [
        "daily_backup",
        "publish_due_announcements",
        "send_tomorrow_reminders",
    ]
    assert not scheduler.running


async def test_publish_due_announcements(session, session_factory):
    session.add(Announcement(title="定時公告", content="x", status="scheduled", scheduled_at=utcnow() - timedelta(seconds=5)))
    await session.commit()
    assert await publish_due_announcements(session_factory) == 1
    assert await publish_due_announcements(session_factory) == 0


async def test_daily_backup_copies_database(cfg, engine):
    await daily_backup(cfg)
    backups = list((cfg.DB_PATH.parent / "backups").iterdir())
    assert len(backups) == 1
    assert backups[0].name.startswith("test.db_")


async def test_daily_backup_skips_missing_file(cfg, tmp_path):
    missing = cfg.model_copy(update={"DB_PATH": tmp_path / "nope.db"})
    await daily_backup(missing)
    assert not (tmp_path / "backups").exists()


async def test_diagnostics(cfg, engine):
    assert (await check_database(cfg)).ok
    assert not check_frontend(cfg).ok
    assert check_upload_dir(cfg).ok

    results = await run_checks(cfg)
    failed = [r.name for r in results if not r.ok]
    assert failed == ["Frontend bundle"]
    assert results[0].line() == "[OK  ] LINE_CHANNEL_SECRET"
