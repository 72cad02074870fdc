from aiohttp import web

from lions_club.errors import InvalidRequestError
from lions_club.roles import Role
from lions_club.services import files as file_service
from lions_club.utils.normalize import parse_int
from lions_club.web.helpers import match_int, ok, page_info, pagination, require_role, session_of
from lions_club.web.keys import SETTINGS

routes = web.RouteTableDef()


@routes.post("/api/files")
async def upload_file(request: web.Request) -> web.Response:
    actor = await require_role(request, Role.MEMBER)
    cfg = request.app[SETTINGS]
    if not request.content_type.startswith("multipart/"):
        raise InvalidRequestError("請使用 multipart/form-data 上傳", code="INVALID_CONTENT_TYPE")

    fields: dict[str, str] = {}
    filename = mime_type = None
    content = b""
    reader = await request.multipart()
    async for part in reader:
        if part.name == "file":
            filename = part.filename or "upload"
            mime_type = part.headers.get("Content-Type")
            content = await part.read(decode=False)
            if len(content) > cfg.MAX_UPLOAD_SIZE:
                raise InvalidRequestError("檔案大小超過限制", code="FILE_TOO_LARGE")
        elif part.name:
            fields[part.name] = await part.text()
    if filename is None:
        raise InvalidRequestError("缺少上傳檔案", code="MISSING_FILE")

    record = await file_service.save_upload(
        session_of(request),
        filename,
        bytes(content),
        usage=fields.get("usage", ""),
        mime_type=mime_type,
        uploaded_by=actor.id,
        related_id=parse_int(fields.get("related_id")),
        cfg=cfg,
    )
    return ok(status=201, file=record.model_dump(mode="json"), message="檔案上傳成功")


@routes.get("/api/files")
async def list_files(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    page, limit, offset = pagination(request)
    q = request.query
    records, total = await file_service.search_files(
        session_of(request),
        usage=q.get("usage"),
        related_id=parse_int(q.get("related_id")),
        uploaded_by=parse_int(q.get("uploaded_by")),
        limit=limit,
        offset=offset,
    )
    return ok(files=[r.model_dump(mode="json") for r in records], pagination=page_info(page, limit, total))


@routes.get(r"/api/files/{file_id:\d+}")
async def get_file(request: web.Request) -> web.Response:
    await require_role(request, Role.MEMBER)
    record = await file_service.require_file(session_of(request), match_int(request, "file_id"))
    return ok(file=record.model_dump(mode="json"))


@routes.delete(r"/api/files/{file_id:\d+}")
async def delete_file(request: web.Request) -> web.Response:
    await require_role(request, Role.OFFICER)
    await file_service.delete_file(session_of(request), match_int(request, "file_id"), cfg=request.app[SETTINGS])
    return ok(message="檔案已刪除")
