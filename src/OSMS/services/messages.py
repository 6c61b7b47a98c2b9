# src/OSMS/services/messages.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.db.base import utcnow
from OSMS.db.models import Chat, Message, User
from OSMS.errors import BadRequestError, ForbiddenError, NotFoundError
from OSMS.services import roles as role_service
from OSMS.services.chats import touch

log = get_logger("services.messages")

ATTACHMENT_TYPES = ("image", "video", "audio", "document")


def validate_message(
    content: Optional[str],
    has_attachment: bool = False,
    attachment_type: Optional[str] = None,
    attachment_url: Optional[str] = None,
) -> Optional[str]:
    """
    A message needs non-blank content or a complete attachment.

    Returns the content normalized to None when blank.
    """
    text = content if content and content.strip() else None
    if has_attachment:
        if not attachment_url or not attachment_type:
            raise BadRequestError("Attachment requires both a type and a URL")
        if attachment_type not in ATTACHMENT_TYPES:
            raise BadRequestError(f"Unknown attachment type: {attachment_type}")
    elif text is None:
        raise BadRequestError("Message must have content or an attachment")
    return text


async def create_message(
    session: AsyncSession,
    chat: Chat,
    sender_id: int,
    *,
    content: Optional[str] = None,
    has_attachment: bool = False,
    attachment_type: Optional[str] = None,
    attachment_url: Optional[str] = None,
    reply_to_message_id: Optional[int] = None,
) -> Message:
    if chat.participant(sender_id) is None:
        raise ForbiddenError("You are not a participant of this chat")

    text = validate_message(content, has_attachment, attachment_type, attachment_url)

    if reply_to_message_id is not None:
        original = await session.get(Message, reply_to_message_id)
        if original is None or original.chat_id != chat.id:
            raise BadRequestError("Reply target must be a message in the same chat")

    now = utcnow()
    message = Message(
        chat_id=chat.id,
        sender_id=sender_id,
        content=text,
        has_attachment=has_attachment,
        attachment_type=attachment_type if has_attachment else None,
        attachment_url=attachment_url if has_attachment else None,
        reply_to_message_id=reply_to_message_id,
        created_at=now,
        updated_at=now,
    )
    session.add(message)
    touch(chat, now)

    # the sender has obviously read everything up to their own message
    await session.flush()
    me = chat.participant(sender_id)
    if (me.last_read_message_id or 0) < message.id:
        me.last_read_message_id = message.id
    await session.flush()
    log.debug("message %s posted in chat %s by %s", message.id, chat.id, sender_id)
    return message


async def list_messages(
    session: AsyncSession,
    chat_id: int,
    *,
    before_id: Optional[int] = None,
    limit: int = 100,
) -> list[Message]:
    """Messages oldest first; ``before_id`` pages backwards through history."""
    stmt = sa.select(Message).where(Message.chat_id == chat_id)
    if before_id is not None:
        stmt = stmt.where(Message.id < before_id)
    stmt = stmt.order_by(Message.id.desc()).limit(limit)
    rows = list((await session.execute(stmt)).scalars().all())
    rows.reverse()
    return rows


async def delete_message(session: AsyncSession, chat: Chat, message_id: int, actor: User) -> None:
    """
    Delete a message; replies to it stay and lose their link.

    Allowed for the sender and for moderators.
    """
    message = await session.get(Message, message_id)
    if message is None or message.chat_id != chat.id:
        raise NotFoundError("Message not found")
    if message.sender_id != actor.id and not role_service.user_has_any_role(
        actor, role_service.MODERATOR_ROLES
    ):
        raise ForbiddenError("You can only delete your own messages")

    await session.execute(
        sa.update(Message)
        .where(Message.reply_to_message_id == message_id)
        .values(reply_to_message_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await session.delete(message)
    await session.flush()
    log.info("message %s deleted from chat %s by user %s", message_id, chat.id, actor.id)
