from datetime import datetime, date
from typing import Optional

from sqlmodel import Field, SQLModel

from lions_club.utils.time import utcnow


class Member(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    english_name: Optional[str] = None
    birthday: Optional[date] = None
    job_title: Optional[str] = None
    mobile: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    address: Optional[str] = None
    # LINE user id; null until the member binds a LINE account
    line_user_id: Optional[str] = Field(default=None, index=True, unique=True)
    role: str = Field(default="member")  # see lions_club.roles.Role
    status: str = Field(default="active")  # active | inactive
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
