"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-07-01 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STR = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    op.create_table(
        "member",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", STR(), nullable=False),
        sa.Column("email", STR(), nullable=False),
        sa.Column("english_name", STR(), nullable=True),
        sa.Column("birthday", sa.Date(), nullable=True),
        sa.Column("job_title", STR(), nullable=True),
        sa.Column("mobile", STR(), nullable=True),
        sa.Column("phone", STR(), nullable=True),
        sa.Column("fax", STR(), nullable=True),
        sa.Column("address", STR(), nullable=True),
        sa.Column("line_user_id", STR(), nullable=True),
        sa.Column("role", STR(), nullable=False),
        sa.Column("status", STR(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_member_email", "member", ["email"], unique=True)
    op.create_index("ix_member_line_user_id", "member", ["line_user_id"], unique=True)

    op.create_table(
        "event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", STR(), nullable=False),
        sa.Column("description", STR(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("location", STR(), nullable=True),
        sa.Column("max_attendees", sa.Integer(), nullable=True),
        sa.Column("status", STR(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_event_date", "event", ["date"], unique=False)

    op.create_table(
        "registration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("status", STR(), nullable=False),
        sa.Column("num_attendees", sa.Integer(), nullable=False),
        sa.Column("notes", STR(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("member_id", "event_id", name="unique_member_event_registration"),
    )
    op.create_index("ix_registration_member_id", "registration", ["member_id"], unique=False)
    op.create_index("ix_registration_event_id", "registration", ["event_id"], unique=False)

    op.create_table(
        "checkin",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("checkin_time", sa.DateTime(), nullable=False),
        sa.Column("device_info", STR(), nullable=True),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("member_id", "event_id", name="unique_member_event_checkin"),
    )
    op.create_index("ix_checkin_member_id", "checkin", ["member_id"], unique=False)
    op.create_index("ix_checkin_event_id", "checkin", ["event_id"], unique=False)

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("method", STR(), nullable=True),
        sa.Column("status", STR(), nullable=False),
        sa.Column("receipt_url", STR(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_member_id", "payment", ["member_id"], unique=False)
    op.create_index("ix_payment_event_id", "payment", ["event_id"], unique=False)

    op.create_table(
        "announcement",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", STR(), nullable=False),
        sa.Column("content", STR(), nullable=False),
        sa.Column("related_event_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("audience", STR(), nullable=False),
        sa.Column("category", STR(), nullable=False),
        sa.Column("status", STR(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("is_visible", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["member.id"]),
        sa.ForeignKeyConstraint(["related_event_id"], ["event.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_announcement_status", "announcement", ["status"], unique=False)

    op.create_table(
        "message_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", STR(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("message_type", STR(), nullable=True),
        sa.Column("message_content", STR(), nullable=True),
        sa.Column("intent", STR(), nullable=True),
        sa.Column("action_taken", STR(), nullable=True),
        sa.Column("event_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_message_log_user_id", "message_log", ["user_id"], unique=False)

    op.create_table(
        "push_record",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("message_type", STR(), nullable=False),
        sa.Column("status", STR(), nullable=False),
        sa.Column("error", STR(), nullable=True),
        sa.Column("pushed_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_push_record_member_id", "push_record", ["member_id"], unique=False)
    op.create_index("ix_push_record_event_id", "push_record", ["event_id"], unique=False)
    op.create_index("ix_push_record_pushed_at", "push_record", ["pushed_at"], unique=False)

    op.create_table(
        "push_template",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", STR(), nullable=False),
        sa.Column("description", STR(), nullable=True),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "file",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("original_name", STR(), nullable=False),
        sa.Column("stored_name", STR(), nullable=False),
        sa.Column("mime_type", STR(), nullable=True),
        sa.Column("size", sa.Integer(), nullable=True),
        sa.Column("url", STR(), nullable=False),
        sa.Column("usage", STR(), nullable=False),
        sa.Column("uploaded_by", sa.Integer(), nullable=True),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("status", STR(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["uploaded_by"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_file_usage", "file", ["usage"], unique=False)

    op.create_table(
        "liff_session",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("line_uid", STR(), nullable=False),
        sa.Column("display_name", STR(), nullable=True),
        sa.Column("picture_url", STR(), nullable=True),
        sa.Column("event_id", sa.Integer(), nullable=True),
        sa.Column("status", STR(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_liff_session_line_uid", "liff_session", ["line_uid"], unique=True)


def downgrade() -> None:
    for table in (
        "liff_session",
        "file",
        "push_template",
        "push_record",
        "message_log",
        "announcement",
        "payment",
        "checkin",
        "registration",
        "event",
        "member",
    ):
        op.drop_table(table)
