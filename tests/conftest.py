from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from lions_club.config import Settings
from lions_club.db import init_db, make_session_factory
from lions_club.line.client import LineApiError
from lions_club.models import Event, Member
from lions_club.utils.time import utcnow
from lions_club.web.app import create_app


class FakeLineClient:
    """Records outgoing messages instead of calling the Messaging API."""

    def __init__(self):
        self.replies: list[tuple[str, list[dict]]] = []
        self.pushes: list[tuple[str, list[dict]]] = []
        self.blocked: set[str] = set()

    async def start(self):
        pass

    async def close(self):
        pass

    async def reply_message(self, reply_token, messages):
        self.replies.append((reply_token, messages if isinstance(messages, list) else [messages]))

    async def push_message(self, to, messages):
        if to in self.blocked:
            raise LineApiError(400, "The user hasn't added the bot as a friend")
        self.pushes.append((to, messages if isinstance(messages, list) else [messages]))

    async def push_text(self, to, text):
        await self.push_message(to, {"type": "text", "text": text})

    async def push_flex(self, to, alt_text, contents):
        await self.push_message(to, {"type": "flex", "altText": alt_text, "contents": contents})


@pytest.fixture
def cfg(tmp_path):
    return Settings(
        _env_file=None,
        DB_PATH=tmp_path / "test.db",
        UPLOAD_DIR=tmp_path / "uploads",
        FRONTEND_DIR=tmp_path / "dist",
        LOG_DIR=tmp_path / "logs",
        BASE_URL="https://club.example.com",
        LINE_CHANNEL_SECRET="test-channel-secret",
        LINE_CHANNEL_ACCESS_TOKEN="test-access-token",
        LIFF_ID="1234567890-abcdefgh",
        CRON_TOKEN="cron-token",
    )


@pytest.fixture
async def engine(cfg):
    engine = create_async_engine(cfg.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def line_client():
    return FakeLineClient()


@pytest.fixture
async def client(aiohttp_client, cfg, session_factory, line_client):
    app = create_app(cfg, session_factory=session_factory, line_client=line_client)
    return await aiohttp_client(app)


@pytest.fixture
async def people(session):
    admin = Member(name="林會長", email="admin@example.com", line_user_id="U-admin", role="admin")
    officer = Member(name="張幹部", email="officer@example.com", line_user_id="U-officer", role="officer")
    member = Member(name="王小明", email="member@example.com", line_user_id="U-member", role="member")
    session.add_all([admin, officer, member])
    await session.commit()
    for person in (admin, officer, member):
        await session.refresh(person)
    return SimpleNamespace(admin=admin, officer=officer, member=member)


@pytest.fixture
def make_event(session):
    async def _make(**overrides) -> Event:
        fields = {
            "title": "七月例會",
            "date": utcnow() + timedelta(minutes=10),
            "location": "台北市中山區",
        }
        fields.update(overrides)
        event = Event(**fields)
        session.add(event)
        await session.commit()
        await session.refresh(event)
        return event

    return _make


ADMIN = {"X-Line-Uid": "U-admin"}
OFFICER = {"X-Line-Uid": "U-officer"}
MEMBER = {"X-Line-Uid": "U-member"}


@pytest.fixture
def auth():
    return SimpleNamespace(admin=ADMIN, officer=OFFICER, member=MEMBER)
