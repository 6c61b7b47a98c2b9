from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from OSMS.db.base import Base, IdMixin, TimestampMixin


class ChatAvatar(IdMixin, TimestampMixin, Base):
    __tablename__ = "chat_avatars"

    chat_id: Mapped[int] = mapped_column(
        sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    file_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    image_data: Mapped[bytes] = mapped_column(sa.LargeBinary, nullable=False, deferred=True)
