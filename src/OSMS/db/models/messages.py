from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from OSMS.db.base import Base, IdMixin, TimestampMixin


class Message(IdMixin, TimestampMixin, Base):
    __tablename__ = "messages"

    chat_id: Mapped[int] = mapped_column(
        sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[int] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[Optional[str]] = mapped_column(sa.Text)
    has_attachment: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )
    attachment_type: Mapped[Optional[str]] = mapped_column(sa.String(32))
    attachment_url: Mapped[Optional[str]] = mapped_column(sa.String(512))
    # Dangling replies survive deletion of the original with the link cleared.
    reply_to_message_id: Mapped[Optional[int]] = mapped_column(
        sa.ForeignKey("messages.id", ondelete="SET NULL"), index=True
    )

    sender: Mapped["User"] = relationship("User", lazy="selectin")
    reply_to: Mapped[Optional["Message"]] = relationship(
        "Message", remote_side="Message.id", lazy="selectin", join_depth=1
    )

    def __repr__(self) -> str:
        return f"Message(id={self.id!r}, chat_id={self.chat_id!r}, sender_id={self.sender_id!r})"
