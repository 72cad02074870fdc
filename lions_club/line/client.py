"""Minimal LINE Messaging API client built on aiohttp.

Only the calls the chapter uses are wrapped: reply, push and the
signature check for incoming webhooks.
"""

import asyncio
import base64
import hashlib
import hmac
import logging
from typing import Any

import aiohttp

from lions_club.config import settings, Settings

logger = logging.getLogger(__name__)


class LineApiError(RuntimeError):
    def __init__(self, status: int, body: str):
        super().__init__(f"LINE API responded {status}: {body}")
        self.status = status
        self.body = body


def validate_signature(body: bytes, signature: str | None, channel_secret: str) -> bool:
    if not signature or not channel_secret:
        return False
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("utf-8")
    return hmac.compare_digest(expected, signature)


class LineClient:
    """Owns one ``aiohttp.ClientSession``; call :meth:`start` before use and :meth:`close` on shutdown."""

    def __init__(self, cfg: Settings = settings):
        self.access_token = cfg.LINE_CHANNEL_ACCESS_TOKEN
        self.api_base = cfg.LINE_API_BASE.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=aiohttp.ClientTimeout(total=10),
            )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _post(self, path: str, payload: dict[str, Any]) -> None:
        await self.start()
        assert self._session is not None
        try:
            async with self._session.post(f"{self.api_base}{path}", json=payload) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning("line_api_error path=%s status=%s body=%s", path, resp.status, body)
                    raise LineApiError(resp.status, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            # status 0 marks a transport failure
            logger.warning("line_api_unreachable path=%s error=%r", path, exc)
            raise LineApiError(0, repr(exc)) from exc

    async def reply_message(self, reply_token: str, messages: list[dict] | dict) -> None:
        if isinstance(messages, dict):
            messages = [messages]
        await self._post("/v2/bot/message/reply", {"replyToken": reply_token, "messages": messages})

    async def push_message(self, to: str, messages: list[dict] | dict) -> None:
        if isinstance(messages, dict):
            messages = [messages]
        await self._post("/v2/bot/message/push", {"to": to, "messages": messages})

    async def push_text(self, to: str, text: str) -> None:
        await self.push_message(to, {"type": "text", "text": text})

    async def push_flex(self, to: str, alt_text: str, contents: dict) -> None:
        await self.push_message(to, {"type": "flex", "altText": alt_text, "contents": contents})
