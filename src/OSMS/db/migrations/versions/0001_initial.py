"""Create core school, user and chat tables

Revision ID: 0001_initial
Revises:
Create Date: 2025-09-01
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "schools",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255)),
        sa.Column("city", sa.String(128)),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(128), nullable=False),
        sa.Column("last_name", sa.String(128), nullable=False),
        sa.Column("middle_name", sa.String(128)),
        sa.Column("phone", sa.String(32)),
        sa.Column("school_id", sa.Integer, sa.ForeignKey("schools.id", ondelete="SET NULL")),
        sa.Column("active_role", sa.String(32)),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_school_id", "users", ["school_id"])

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("school_id", sa.Integer, sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("grade_level", sa.Integer, nullable=False),
        sa.Column("academic_year", sa.String(16), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("grade_level BETWEEN 1 AND 12", name="ck_classes_grade_level_range"),
    )
    op.create_index("ix_classes_school_id", "classes", ["school_id"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("school_id", sa.Integer, sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text),
        *_timestamps(),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("school_id", sa.Integer, sa.ForeignKey("schools.id", ondelete="CASCADE")),
        sa.Column("class_id", sa.Integer, sa.ForeignKey("classes.id", ondelete="CASCADE")),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "role", "school_id", "class_id", name="uq_user_roles_assignment"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    op.create_table(
        "chats",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("creator_id", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("school_id", sa.Integer, sa.ForeignKey("schools.id", ondelete="SET NULL")),
        sa.Column("private_key", sa.String(64)),
        sa.Column("has_avatar", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint("private_key", name="uq_chats_private_key"),
    )
    op.create_index("ix_chats_creator_id", "chats", ["creator_id"])
    op.create_index("ix_chats_school_id", "chats", ["school_id"])
    op.create_index("ix_chats_last_activity_at", "chats", ["last_activity_at"])

    op.create_table(
        "chat_participants",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("chat_id", sa.Integer, sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("last_read_message_id", sa.Integer),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("chat_id", "user_id", name="uq_chat_participants_chat_user"),
    )
    op.create_index("ix_chat_participants_chat_id", "chat_participants", ["chat_id"])
    op.create_index("ix_chat_participants_user_id", "chat_participants", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("chat_id", sa.Integer, sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text),
        sa.Column("has_attachment", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("attachment_type", sa.String(32)),
        sa.Column("attachment_url", sa.String(512)),
        sa.Column("reply_to_message_id", sa.Integer, sa.ForeignKey("messages.id", ondelete="SET NULL")),
        *_timestamps(),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_reply_to_message_id", "messages", ["reply_to_message_id"])

    op.create_table(
        "chat_avatars",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("chat_id", sa.Integer, sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer, nullable=False),
        sa.Column("image_data", sa.LargeBinary, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("chat_id", name="uq_chat_avatars_chat_id"),
    )

    op.create_table(
        "class_academic_periods",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("class_id", sa.Integer, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("period_type", sa.String(16), nullable=False, server_default="quarters"),
        *_timestamps(),
        sa.UniqueConstraint("class_id", name="uq_class_academic_periods_class_id"),
    )

    op.create_table(
        "academic_period_boundaries",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("class_id", sa.Integer, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("period_key", sa.String(32), nullable=False),
        sa.Column("period_name", sa.String(64), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("academic_year", sa.String(16)),
        *_timestamps(),
        sa.UniqueConstraint("class_id", "period_key", name="uq_academic_period_boundaries_class_key"),
        sa.CheckConstraint("end_date >= start_date", name="ck_academic_period_boundaries_period_dates_ordered"),
    )
    op.create_index("ix_academic_period_boundaries_class_id", "academic_period_boundaries", ["class_id"])

    op.create_table(
        "system_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("details", sa.Text),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_system_logs_user_id", "system_logs", ["user_id"])
    op.create_index("ix_system_logs_action", "system_logs", ["action"])


def downgrade() -> None:
    for table in (
        "system_logs",
        "academic_period_boundaries",
        "class_academic_periods",
        "chat_avatars",
        "messages",
        "chat_participants",
        "chats",
        "user_roles",
        "subjects",
        "classes",
        "users",
        "schools",
    ):
        op.drop_table(table)
