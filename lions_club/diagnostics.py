"""Deployment self-check.

Run ``python -m lions_club.diagnostics`` on the server after changing the
``.env`` file. Every check prints one line; the exit code is 1 when any
check fails.
"""

import asyncio
import logging
import os
import sys
import tempfile
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from lions_club.config import settings, Settings
from lions_club.db import make_engine, ping

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str = ""

    def line(self) -> str:
        mark = "OK  " if self.ok else "FAIL"
        return f"[{mark}] {self.name}" + (f": {self.detail}" if self.detail else "")


def check_configuration(cfg: Settings) -> list[CheckResult]:
    return [
        CheckResult("LINE_CHANNEL_SECRET", bool(cfg.LINE_CHANNEL_SECRET), "" if cfg.LINE_CHANNEL_SECRET else "not set"),
        CheckResult(
            "LINE_CHANNEL_ACCESS_TOKEN",
            bool(cfg.LINE_CHANNEL_ACCESS_TOKEN),
            "" if cfg.LINE_CHANNEL_ACCESS_TOKEN else "not set",
        ),
        CheckResult("LIFF_ID", bool(cfg.LIFF_ID), cfg.LIFF_ID or "not set"),
        CheckResult("Database URL", bool(cfg.database_url), cfg.database_url.split("://")[0]),
    ]


async def check_database(cfg: Settings) -> CheckResult:
    engine = make_engine(cfg)
    try:
        await ping(engine)
    except (SQLAlchemyError, OSError) as exc:
        return CheckResult("Database connection", False, str(exc))
    finally:
        await engine.dispose()
    return CheckResult("Database connection", True)


def check_frontend(cfg: Settings) -> CheckResult:
    index = cfg.FRONTEND_DIR / "index.html"
    if index.is_file():
        return CheckResult("Frontend bundle", True, str(index))
    return CheckResult("Frontend bundle", False, f"{index} missing, build the client first")


def check_upload_dir(cfg: Settings) -> CheckResult:
    try:
        cfg.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=cfg.UPLOAD_DIR):
            pass
    except OSError as exc:
        return CheckResult("Upload directory", False, f"{cfg.UPLOAD_DIR}: {exc}")
    if not os.access(cfg.UPLOAD_DIR, os.W_OK):
        return CheckResult("Upload directory", False, f"{cfg.UPLOAD_DIR} is not writable")
    return CheckResult("Upload directory", True, str(cfg.UPLOAD_DIR))


async def run_checks(cfg: Settings = settings) -> list[CheckResult]:
    results = check_configuration(cfg)
    results.append(await check_database(cfg))
    results.append(check_frontend(cfg))
    results.append(check_upload_dir(cfg))
    return results


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    results = asyncio.run(run_checks())
    for result in results:
        print(result.line())
    failed = [r for r in results if not r.ok]
    print(f"\n{len(results) - len(failed)}/{len(results)} checks passed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
