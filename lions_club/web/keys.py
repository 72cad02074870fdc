from apscheduler.schedulers.asyncio import AsyncIOScheduler
from aiohttp import web
from sqlalchemy.ext.asyncio import async_sessionmaker

from lions_club.config import Settings
from lions_club.line.client import LineClient

SETTINGS = web.AppKey("settings", Settings)
SESSION_FACTORY = web.AppKey("session_factory", async_sessionmaker)
LINE_CLIENT = web.AppKey("line_client", LineClient)
SCHEDULER = web.AppKey("scheduler", AsyncIOScheduler)
