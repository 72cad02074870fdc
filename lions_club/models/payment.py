from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow

PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(foreign_key="member.id", index=True)
    event_id: Optional[int] = Field(default=None, foreign_key="event.id", index=True)
    amount: int = 0  # whole NTD
    method: Optional[str] = None  # cash | transfer | line_pay ...
    status: str = Field(default="pending")
    receipt_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
