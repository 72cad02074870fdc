from pathlib import Path

from aiohttp import web

from lions_club.web.keys import SETTINGS

routes = web.RouteTableDef()


@routes.get("/{tail:.*}")
async def spa(request: web.Request) -> web.StreamResponse:
    """Serve the built frontend; unknown client-side routes fall back to ``index.html``."""
    tail = request.match_info["tail"]
    if tail.startswith(("api/", "uploads/")) or tail == "webhook":
        raise web.HTTPNotFound()

    root: Path = request.app[SETTINGS].FRONTEND_DIR.resolve()
    if tail:
        candidate = (root / tail).resolve()
        if candidate.is_file() and candidate.is_relative_to(root):
            return web.FileResponse(candidate)
    index = root / "index.html"
    if not index.is_file():
        raise web.HTTPNotFound(text="Frontend bundle not built")
    return web.FileResponse(index)
