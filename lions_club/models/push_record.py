from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow


class PushRecord(SQLModel, table=True):
    __tablename__ = "push_record"

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(foreign_key="member.id", index=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    message_type: str  # checkin_reminder | manual_push | event_notification
    status: str  # success | failed
    error: Optional[str] = None
    pushed_at: datetime = Field(default_factory=utcnow, index=True)
