from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow


class LiffSession(SQLModel, table=True):
    __tablename__ = "liff_session"

    id: Optional[int] = Field(default=None, primary_key=True)
    line_uid: str = Field(index=True, unique=True)
    display_name: Optional[str] = None
    picture_url: Optional[str] = None
    event_id: Optional[int] = None
    status: str = Field(default="pending")  # pending | registered
    last_seen_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
