from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow

AUDIENCES = ("all", "officers", "members")
CATEGORIES = ("event", "system", "personnel")
ANNOUNCEMENT_STATUSES = ("draft", "scheduled", "published")


class Announcement(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    content: str
    related_event_id: Optional[int] = Field(default=None, foreign_key="event.id")
    created_by: Optional[int] = Field(default=None, foreign_key="member.id")
    audience: str = Field(default="all")
    category: str = Field(default="event")
    status: str = Field(default="draft", index=True)
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    is_visible: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
