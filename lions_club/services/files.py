import logging
import uuid
from pathlib import Path
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.config import settings, Settings
from lions_club.errors import InvalidRequestError, NotFoundError
from lions_club.models import File, Member
from lions_club.models.file import FILE_USAGES
from lions_club.utils.time import utcnow

logger = logging.getLogger(__name__)

ALLOWED_MIME_PREFIXES = ("image/", "application/pdf")


async def save_upload(
    session: AsyncSession,
    filename: str,
    content: bytes,
    usage: str,
    mime_type: str | None = None,
    uploaded_by: int | None = None,
    related_id: int | None = None,
    cfg: Settings = settings,
) -> File:
    """Writes the bytes under ``UPLOAD_DIR`` with a random name and records them."""
    if usage not in FILE_USAGES:
        raise InvalidRequestError("無效的檔案用途", code="INVALID_USAGE")
    if not content:
        raise InvalidRequestError("檔案內容為空", code="EMPTY_FILE")
    if len(content) > cfg.MAX_UPLOAD_SIZE:
        raise InvalidRequestError("檔案大小超過限制", code="FILE_TOO_LARGE")
    if mime_type and not mime_type.startswith(ALLOWED_MIME_PREFIXES):
        raise InvalidRequestError("不支援的檔案類型", code="UNSUPPORTED_TYPE")
    if uploaded_by is not None and not await session.get(Member, uploaded_by):
        raise NotFoundError("上傳者不存在", code="MEMBER_NOT_FOUND")

    suffix = Path(filename).suffix.lower()
    stored_name = f"{uuid.uuid4().hex}{suffix}"
    upload_dir = Path(cfg.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    (upload_dir / stored_name).write_bytes(content)

    record = File(
        original_name=Path(filename).name,
        stored_name=stored_name,
        mime_type=mime_type,
        size=len(content),
        url=f"/uploads/{stored_name}",
        usage=usage,
        uploaded_by=uploaded_by,
        related_id=related_id,
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    logger.info("file_uploaded id=%s usage=%s size=%s", record.id, usage, record.size)
    return record


async def get_file(session: AsyncSession, file_id: int) -> Optional[File]:
    record = await session.get(File, file_id)
    if record is None or record.status != "active":
        return None
    return record


async def require_file(session: AsyncSession, file_id: int) -> File:
    record = await get_file(session, file_id)
    if not record:
        raise NotFoundError("檔案不存在", code="FILE_NOT_FOUND")
    return record


async def search_files(
    session: AsyncSession,
    usage: str | None = None,
    related_id: int | None = None,
    uploaded_by: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[File], int]:
    conditions = [File.status == "active"]
    if usage:
        conditions.append(File.usage == usage)
    if related_id is not None:
        conditions.append(File.related_id == related_id)
    if uploaded_by is not None:
        conditions.append(File.uploaded_by == uploaded_by)

    total = (await session.execute(select(func.count()).select_from(File).where(*conditions))).scalar_one()
    result = await session.execute(
        select(File).where(*conditions).order_by(desc(File.created_at)).offset(offset).limit(limit)  # type: ignore[arg-type]
    )
    return list(result.scalars().all()), total


async def delete_file(session: AsyncSession, file_id: int, cfg: Settings = settings) -> File:
    """Marks the record deleted and removes the stored bytes so /uploads stops serving them."""
    record = await require_file(session, file_id)
    (Path(cfg.UPLOAD_DIR) / record.stored_name).unlink(missing_ok=True)
    record.status = "deleted"
    record.updated_at = utcnow()
    session.add(record)
    await session.commit()
    await session.refresh(record)
    logger.info("file_deleted id=%s", file_id)
    return record
