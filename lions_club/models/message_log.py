from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow


class MessageLog(SQLModel, table=True):
    __tablename__ = "message_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)  # LINE user id, matches Member.line_user_id
    timestamp: datetime = Field(default_factory=utcnow)
    message_type: Optional[str] = None
    message_content: Optional[str] = None
    intent: Optional[str] = None
    action_taken: Optional[str] = None
    event_id: Optional[int] = Field(default=None, foreign_key="event.id")
