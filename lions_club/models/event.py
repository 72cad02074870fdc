from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow


class Event(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    date: datetime = Field(index=True)  # start of the event, naive UTC
    location: Optional[str] = None
    max_attendees: Optional[int] = None  # None = unlimited
    status: str = Field(default="active")  # active | cancelled | completed
    created_by: Optional[int] = Field(default=None, foreign_key="member.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
