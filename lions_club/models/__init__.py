from .member import Member
from .event import Event
from .registration import Registration
from .checkin import Checkin
from .payment import Payment
from .announcement import Announcement
from .message_log import MessageLog
from .push_record import PushRecord
from .push_template import PushTemplate
from .file import File
from .liff_session import LiffSession

__all__ = [
    "Member",
    "Event",
    "Registration",
    "Checkin",
    "Payment",
    "Announcement",
    "MessageLog",
    "PushRecord",
    "PushTemplate",
    "File",
    "LiffSession",
]
