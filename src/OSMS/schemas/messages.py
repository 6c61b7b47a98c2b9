from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from OSMS.db.models import Message

from .base import APIModel


class MessageCreate(APIModel):
    content: Optional[str] = Field(None, max_length=10_000)
    has_attachment: bool = False
    attachment_type: Optional[str] = None
    attachment_url: Optional[str] = Field(None, max_length=512)
    reply_to_message_id: Optional[int] = None


class SenderOut(APIModel):
    id: int
    first_name: str
    last_name: str


class ReplyPreview(APIModel):
    id: int
    sender_id: int
    content: Optional[str] = None
    has_attachment: bool = False
    attachment_type: Optional[str] = None


class MessageOut(APIModel):
    id: int
    chat_id: int
    sender_id: int
    content: Optional[str] = None
    has_attachment: bool
    attachment_type: Optional[str] = None
    attachment_url: Optional[str] = None
    reply_to_message_id: Optional[int] = None
    reply_to: Optional[ReplyPreview] = None
    sender: Optional[SenderOut] = None
    created_at: datetime

    @classmethod
    def from_message(cls, m: Message) -> "MessageOut":
        reply = None
        if m.reply_to_message_id is not None and m.reply_to is not None:
            reply = ReplyPreview.model_validate(m.reply_to)
        return cls(
            id=m.id,
            chat_id=m.chat_id,
            sender_id=m.sender_id,
            content=m.content,
            has_attachment=m.has_attachment,
            attachment_type=m.attachment_type,
            attachment_url=m.attachment_url,
            reply_to_message_id=m.reply_to_message_id,
            reply_to=reply,
            sender=SenderOut.model_validate(m.sender) if m.sender is not None else None,
            created_at=m.created_at,
        )
