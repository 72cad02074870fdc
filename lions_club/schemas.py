"""Request payloads accepted by the HTTP API.

Table models skip validation, so every JSON body is parsed through one of
these first. Field names follow the database columns; the camelCase
spellings used by the LIFF frontend are accepted as aliases.
"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from lions_club.roles import Role
from lions_club.utils.time import to_naive_utc


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class _HasDates(_Payload):
    @field_validator("*", mode="after")
    @classmethod
    def _naive_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value


# ---------------- Members ----------------


class MemberCreate(_Payload):
    name: str = Field(min_length=1)
    email: EmailStr
    english_name: Optional[str] = None
    birthday: Optional[date] = None
    job_title: Optional[str] = None
    mobile: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    address: Optional[str] = None
    line_user_id: Optional[str] = Field(default=None, validation_alias=_alias("line_user_id", "lineUserId", "line_uid"))
    role: Role = Role.MEMBER
    status: Literal["active", "inactive"] = "active"


class MemberUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    english_name: Optional[str] = None
    birthday: Optional[date] = None
    job_title: Optional[str] = None
    mobile: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    address: Optional[str] = None
    line_user_id: Optional[str] = Field(default=None, validation_alias=_alias("line_user_id", "lineUserId", "line_uid"))
    role: Optional[Role] = None
    status: Optional[Literal["active", "inactive"]] = None


class MemberSignup(_Payload):
    """Self-registration from the LIFF mini-app; every contact field is mandatory."""

    line_user_id: str = Field(min_length=1, validation_alias=_alias("line_user_id", "lineUserId", "line_uid"))
    name: str = Field(min_length=1)
    email: EmailStr
    birthday: date
    job_title: str = Field(min_length=1)
    mobile: str = Field(min_length=1)
    address: str = Field(min_length=1)
    english_name: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None


class LiffCheck(_Payload):
    line_user_id: str = Field(min_length=1, validation_alias=_alias("line_user_id", "lineUserId", "line_uid"))
    display_name: Optional[str] = Field(default=None, validation_alias=_alias("display_name", "displayName"))
    picture_url: Optional[str] = Field(default=None, validation_alias=_alias("picture_url", "pictureUrl"))
    event_id: Optional[int] = Field(default=None, validation_alias=_alias("event_id", "eventId"))


class BindLine(_Payload):
    line_user_id: str = Field(min_length=1, validation_alias=_alias("line_user_id", "lineUserId", "line_uid"))


# ---------------- Events ----------------


class EventCreate(_HasDates):
    title: str = Field(min_length=1)
    date: datetime
    description: Optional[str] = None
    location: Optional[str] = None
    max_attendees: Optional[int] = Field(default=None, ge=1, validation_alias=_alias("max_attendees", "maxAttendees"))
    status: Literal["active", "cancelled", "completed"] = "active"


class EventUpdate(_HasDates):
    title: Optional[str] = Field(default=None, min_length=1)
    date: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    max_attendees: Optional[int] = Field(default=None, ge=1, validation_alias=_alias("max_attendees", "maxAttendees"))
    status: Optional[Literal["active", "cancelled", "completed"]] = None


# ---------------- Registrations & check-ins ----------------


class MemberRef(_Payload):
    """Identifies a member either by primary key or by LINE user id."""

    member_id: Optional[int] = Field(default=None, validation_alias=_alias("member_id", "memberId"))
    line_user_id: Optional[str] = Field(default=None, validation_alias=_alias("line_user_id", "lineUserId", "line_uid"))


class RegistrationCreate(MemberRef):
    status: Literal["confirmed", "pending", "waitlist"] = "confirmed"
    num_attendees: int = Field(default=1, ge=1, validation_alias=_alias("num_attendees", "numAttendees"))
    notes: Optional[str] = None


class RegistrationStatusUpdate(_Payload):
    status: str


class CheckinCreate(MemberRef):
    event_id: Optional[int] = Field(default=None, validation_alias=_alias("event_id", "eventId"))
    device_info: Optional[str] = Field(default=None, validation_alias=_alias("device_info", "deviceInfo"))


# ---------------- Announcements ----------------


class AnnouncementCreate(_HasDates):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    related_event_id: Optional[int] = None
    created_by: Optional[int] = None
    audience: Literal["all", "officers", "members"] = "all"
    category: Literal["event", "system", "personnel"] = "event"
    status: Literal["draft", "scheduled", "published"] = "draft"
    scheduled_at: Optional[datetime] = None
    is_visible: bool = True


class AnnouncementUpdate(_HasDates):
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)
    related_event_id: Optional[int] = None
    audience: Optional[Literal["all", "officers", "members"]] = None
    category: Optional[Literal["event", "system", "personnel"]] = None
    status: Optional[Literal["draft", "scheduled", "published"]] = None
    scheduled_at: Optional[datetime] = None
    is_visible: Optional[bool] = None


# ---------------- Payments ----------------


class PaymentCreate(_Payload):
    member_id: int = Field(validation_alias=_alias("member_id", "memberId"))
    event_id: Optional[int] = Field(default=None, validation_alias=_alias("event_id", "eventId"))
    amount: int = Field(ge=0)
    method: Optional[str] = None
    status: Literal["pending", "completed", "failed", "refunded"] = "pending"
    receipt_url: Optional[str] = None


class PaymentStatusUpdate(_Payload):
    status: Literal["pending", "completed", "failed", "refunded"]


# ---------------- Push ----------------


class PushRequest(_Payload):
    event_id: int = Field(validation_alias=_alias("event_id", "eventId"))
    member_ids: list[int] = Field(min_length=1, validation_alias=_alias("member_ids", "memberIds"))
    message_type: str = Field(default="manual_push", validation_alias=_alias("message_type", "messageType"))
    message: Optional[str] = None


class PushResend(_Payload):
    push_record_ids: list[int] = Field(min_length=1, validation_alias=_alias("push_record_ids", "pushRecordIds"))


class TemplateSave(_Payload):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    # dict or a JSON string, see services.push.save_template
    body: Any = Field(validation_alias=_alias("json", "body"))


class TemplateTest(_Payload):
    message_json: Any = Field(validation_alias=_alias("messageJson", "message_json"))
    user_id: Optional[str] = Field(default=None, validation_alias=_alias("userId", "user_id"))
    test_type: Literal["user_id", "self", "member_search"] = Field(
        default="user_id", validation_alias=_alias("testType", "test_type")
    )
