from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from lions_club.utils.time import utcnow

REGISTRATION_STATUSES = ("confirmed", "pending", "cancelled", "waitlist")


class Registration(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("member_id", "event_id", name="unique_member_event_registration"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(foreign_key="member.id", index=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    status: str = Field(default="confirmed")  # confirmed | pending | cancelled | waitlist
    num_attendees: int = 1
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
