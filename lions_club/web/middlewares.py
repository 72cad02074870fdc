import logging

from aiohttp import web
from pydantic import ValidationError

from lions_club.errors import ServiceError
from lions_club.web.helpers import fail
from lions_club.web.keys import SESSION_FACTORY

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Origin, X-Requested-With, Content-Type, Accept, Authorization, X-Line-Uid",
}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except ServiceError as exc:
        if exc.status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc.message)
        return fail(exc.message, exc.status, exc.code, **exc.payload)
    except ValidationError as exc:
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        return fail("請求參數錯誤", 400, "VALIDATION_ERROR", details=details)
    except web.HTTPException as exc:
        # API clients always get the JSON error shape
        if request.path.startswith("/api/") and exc.status >= 400:
            code = "NOT_FOUND" if exc.status == 404 else "HTTP_ERROR"
            return fail(exc.reason, exc.status, code)
        raise
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("伺服器內部錯誤", 500, "INTERNAL_ERROR")


@web.middleware
async def db_session_middleware(request: web.Request, handler):
    """One AsyncSession per request, closed when the handler returns."""
    async with request.app[SESSION_FACTORY]() as session:
        request["session"] = session
        return await handler(request)
