"""Request/response helpers shared by the route modules."""

import json
from datetime import date, datetime
from functools import partial
from typing import Any, Type, TypeVar

from aiohttp import web
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from lions_club.errors import AuthenticationError, InvalidRequestError, PermissionDeniedError
from lions_club.models import Member
from lions_club.roles import Role, has_minimum_role
from lions_club.services.members import get_member_by_line_id
from lions_club.utils.normalize import parse_int

P = TypeVar("P", bound=BaseModel)

dumps = partial(json.dumps, ensure_ascii=False, default=str)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def ok(status: int = 200, **body: Any) -> web.Response:
    return web.json_response({"success": True, **body}, status=status, dumps=dumps)


def fail(message: str, status: int, code: str, **extra: Any) -> web.Response:
    return web.json_response({"success": False, "error": message, "code": code, **extra}, status=status, dumps=dumps)


def session_of(request: web.Request) -> AsyncSession:
    return request["session"]


async def parse_body(request: web.Request, schema: Type[P]) -> P:
    """Decode the JSON body into ``schema``; pydantic errors surface as 400 in the error middleware."""
    try:
        raw = await request.json()
    except json.JSONDecodeError:
        raise InvalidRequestError("請求內容不是有效的 JSON", code="INVALID_JSON")
    if not isinstance(raw, dict):
        raise InvalidRequestError("請求內容必須是 JSON 物件", code="INVALID_JSON")
    return schema.model_validate(raw)


def match_int(request: web.Request, name: str) -> int:
    return int(request.match_info[name])


def pagination(request: web.Request) -> tuple[int, int, int]:
    """Returns ``(page, limit, offset)`` from ``?page=&limit=``."""
    page = max(parse_int(request.query.get("page"), 1) or 1, 1)
    limit = min(max(parse_int(request.query.get("limit"), DEFAULT_PAGE_SIZE) or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    return page, limit, (page - 1) * limit


def page_info(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "totalPages": (total + limit - 1) // limit}


def query_date(request: web.Request, name: str) -> date | None:
    raw = request.query.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        raise InvalidRequestError(f"{name} 日期格式錯誤", code="INVALID_DATE")


def query_datetime(request: web.Request, name: str) -> datetime | None:
    day = query_date(request, name)
    return datetime.combine(day, datetime.min.time()) if day else None


def query_bool(request: web.Request, name: str) -> bool | None:
    raw = request.query.get(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes"}


# ---------------- Auth ----------------


async def require_role(request: web.Request, minimum: Role = Role.MEMBER) -> Member:
    """Resolve the acting member from ``X-Line-Uid`` and check their rank."""
    line_uid = request.headers.get("X-Line-Uid", "").strip()
    if not line_uid:
        raise AuthenticationError("未提供身分驗證資訊", code="UNAUTHORIZED")
    member = await get_member_by_line_id(session_of(request), line_uid)
    if not member or member.status != "active":
        raise PermissionDeniedError("帳號不存在或已停用", code="ACCOUNT_INACTIVE")
    if not has_minimum_role(member.role, minimum):
        raise PermissionDeniedError("權限不足", code="INSUFFICIENT_PERMISSIONS")
    request["member"] = member
    return member
