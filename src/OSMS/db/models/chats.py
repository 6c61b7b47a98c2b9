from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from OSMS.db.base import Base, IdMixin, TimestampMixin, utcnow


class ChatType(str, enum.Enum):
    PRIVATE = "private"
    GROUP = "group"


chat_type_enum = sa.Enum(
    ChatType,
    name="chat_type",
    native_enum=False,
    length=16,
    values_callable=lambda e: [m.value for m in e],
)


def private_pair_key(a: int, b: int) -> str:
    """Canonical key of an unordered user pair: ``"<min>:<max>"``."""
    lo, hi = sorted((int(a), int(b)))
    return f"{lo}:{hi}"


class Chat(IdMixin, TimestampMixin, Base):
    __tablename__ = "chats"

    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    type: Mapped[ChatType] = mapped_column(chat_type_enum, nullable=False)
    # NULL once the creator is deleted and nobody took the chat over
    creator_id: Mapped[Optional[int]] = mapped_column(
        sa.ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    school_id: Mapped[Optional[int]] = mapped_column(
        sa.ForeignKey("schools.id", ondelete="SET NULL"), index=True
    )
    # Unique per unordered pair for private chats, NULL for groups.
    private_key: Mapped[Optional[str]] = mapped_column(sa.String(64), unique=True)
    has_avatar: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )
    last_activity_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=sa.func.now(),
        index=True,
    )

    participants: Mapped[list["ChatParticipant"]] = relationship(
        "ChatParticipant",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="ChatParticipant.id",
    )

    @property
    def participant_ids(self) -> list[int]:
        return [p.user_id for p in self.participants]

    def participant(self, user_id: int) -> Optional["ChatParticipant"]:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def __repr__(self) -> str:
        return f"Chat(id={self.id!r}, type={self.type!r}, name={self.name!r})"


class ChatParticipant(IdMixin, Base):
    __tablename__ = "chat_participants"
    __table_args__ = (
        sa.UniqueConstraint("chat_id", "user_id", name="uq_chat_participants_chat_user"),
    )

    chat_id: Mapped[int] = mapped_column(
        sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_admin: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )
    # Plain integer cursor: messages with a greater id are unread.
    last_read_message_id: Mapped[Optional[int]] = mapped_column(sa.Integer)
    joined_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, server_default=sa.func.now()
    )

    chat: Mapped["Chat"] = relationship("Chat", back_populates="participants")
    user: Mapped["User"] = relationship("User", lazy="selectin")
