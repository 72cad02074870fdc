import json
import logging

from aiohttp import web

from lions_club.line.client import validate_signature
from lions_club.line.handlers import handle_webhook
from lions_club.web.helpers import fail
from lions_club.web.keys import LINE_CLIENT, SESSION_FACTORY, SETTINGS

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()


@routes.post("/webhook")
async def line_webhook(request: web.Request) -> web.Response:
    cfg = request.app[SETTINGS]
    body = await request.read()
    if not validate_signature(body, request.headers.get("X-Line-Signature"), cfg.LINE_CHANNEL_SECRET):
        logger.warning("Rejected webhook call with invalid signature")
        return fail("簽章驗證失敗", 401, "INVALID_SIGNATURE")

    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        logger.warning("Webhook body is not JSON")
        return web.json_response({"success": True})
    if not isinstance(payload, dict):
        logger.warning("Webhook body is not a JSON object")
        return web.json_response({"success": True})

    failed = await handle_webhook(payload, request.app[SESSION_FACTORY], request.app[LINE_CLIENT], cfg)
    if failed:
        logger.warning("webhook_batch events=%s failed=%s", len(payload.get("events", [])), failed)
    # LINE retries on anything but 200
    return web.json_response({"success": True})
