from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from OSMS.app_logger import get_logger
from OSMS.db.models import Chat, ChatAvatar, ChatType
from OSMS.errors import ForbiddenError, NotFoundError

log = get_logger("services.chat_avatars")


def _check_can_edit(chat: Chat, user_id: int) -> None:
    me = chat.participant(user_id)
    if me is None:
        raise ForbiddenError("You are not a participant of this chat")
    if chat.type == ChatType.GROUP and not me.is_admin:
        raise ForbiddenError("Only chat administrators can change the group avatar")


async def get_avatar(session: AsyncSession, chat_id: int) -> Optional[ChatAvatar]:
    stmt = (
        sa.select(ChatAvatar)
        .where(ChatAvatar.chat_id == chat_id)
        .options(undefer(ChatAvatar.image_data))
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def set_avatar(
    session: AsyncSession,
    chat: Chat,
    user_id: int,
    *,
    data: bytes,
    file_name: str,
    mime_type: str,
) -> ChatAvatar:
    """Create or replace the chat's avatar image (caller validates type and size)."""
    _check_can_edit(chat, user_id)
    avatar = await get_avatar(session, chat.id)
    if avatar is None:
        avatar = ChatAvatar(chat_id=chat.id, file_name=file_name, mime_type=mime_type,
                            file_size=len(data), image_data=data)
        session.add(avatar)
    else:
        avatar.file_name = file_name
        avatar.mime_type = mime_type
        avatar.file_size = len(data)
        avatar.image_data = data
    chat.has_avatar = True
    await session.flush()
    log.info("avatar set for chat %s by user %s (%d bytes)", chat.id, user_id, len(data))
    return avatar


async def delete_avatar(session: AsyncSession, chat: Chat, user_id: int) -> None:
    _check_can_edit(chat, user_id)
    if not chat.has_avatar:
        raise NotFoundError("Chat has no avatar")
    await session.execute(sa.delete(ChatAvatar).where(ChatAvatar.chat_id == chat.id))
    chat.has_avatar = False
    await session.flush()
    log.info("avatar removed from chat %s by user %s", chat.id, user_id)
