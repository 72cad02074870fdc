from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from lions_club.utils.time import utcnow


class Checkin(SQLModel, table=True):
    # At most one check-in per member and event
    __table_args__ = (
        UniqueConstraint("member_id", "event_id", name="unique_member_event_checkin"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(foreign_key="member.id", index=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    checkin_time: datetime = Field(default_factory=utcnow)
    device_info: Optional[str] = None
