from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow

FILE_USAGES = ("event_cover", "registration_attachment", "announcement_image", "profile_avatar")


class File(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    original_name: str
    stored_name: str
    mime_type: Optional[str] = None
    size: Optional[int] = None  # bytes
    url: str
    usage: str = Field(index=True)
    uploaded_by: Optional[int] = Field(default=None, foreign_key="member.id")
    related_id: Optional[int] = None  # event / announcement id, depending on usage
    status: str = Field(default="active")  # active | deleted
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
