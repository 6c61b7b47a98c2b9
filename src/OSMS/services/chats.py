# src/OSMS/services/chats.py
"""
Chat identity resolver and chat lifecycle.

At most one private chat exists per unordered pair of users. The database
enforces this through the unique ``chats.private_key`` column; ``create_chat``
turns a violation of that constraint into ``PrivateChatExistsError`` carrying
the id of the chat that won.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.db.base import utcnow
from OSMS.db.models import (
    Chat,
    ChatAvatar,
    ChatParticipant,
    ChatType,
    Message,
    User,
    private_pair_key,
)
from OSMS.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PrivateChatExistsError,
    SelfChatError,
)
from OSMS.services.temp_avatars import TempAvatarStore, get_temp_avatar_store

log = get_logger("services.chats")


# ------------------------------------------------------------------
# Resolver
# ------------------------------------------------------------------
async def find_private_chat_between_users(
    session: AsyncSession, user_a: int, user_b: int
) -> Optional[Chat]:
    """
    The private chat whose participants are exactly {user_a, user_b}.

    Symmetric in its arguments; group chats are never returned.
    """
    if user_a == user_b:
        return None

    # Fast path: canonical pair key.
    chat = (
        await session.execute(
            sa.select(Chat).where(
                Chat.type == ChatType.PRIVATE,
                Chat.private_key == private_pair_key(user_a, user_b),
            )
        )
    ).scalar_one_or_none()
    if chat is not None and set(chat.participant_ids) == {user_a, user_b}:
        return chat

    # Rows written without a key (e.g. imported data): match on the participant set.
    pair = sa.select(ChatParticipant.chat_id).where(
        ChatParticipant.user_id.in_((user_a, user_b))
    ).group_by(ChatParticipant.chat_id).having(
        sa.func.count(sa.distinct(ChatParticipant.user_id)) == 2
    )
    exact = sa.select(ChatParticipant.chat_id).group_by(ChatParticipant.chat_id).having(
        sa.func.count(ChatParticipant.id) == 2
    )
    stmt = (
        sa.select(Chat)
        .where(Chat.type == ChatType.PRIVATE, Chat.id.in_(pair), Chat.id.in_(exact))
        .order_by(Chat.id)
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def _ensure_users_exist(session: AsyncSession, user_ids: Iterable[int]) -> None:
    ids = set(user_ids)
    if not ids:
        return
    found = set(
        (await session.execute(sa.select(User.id).where(User.id.in_(ids)))).scalars().all()
    )
    missing = sorted(ids - found)
    if missing:
        raise NotFoundError("User not found", context={"userIds": missing})


async def create_chat(
    session: AsyncSession,
    *,
    name: str,
    chat_type: ChatType,
    participant_ids: Iterable[int],
    creator_id: int,
    school_id: Optional[int],
    temp_avatar_id: Optional[str] = None,
    avatar_store: TempAvatarStore | None = None,
) -> Chat:
    """
    Create a chat with the creator as admin and everyone else as a member.

    Private chats need exactly one other participant; asking for one with
    yourself raises ``SelfChatError`` and a duplicate pair raises
    ``PrivateChatExistsError``. Group chats never conflict.
    """
    others: list[int] = []
    for uid in participant_ids:
        uid = int(uid)
        if uid != creator_id and uid not in others:
            others.append(uid)

    if chat_type == ChatType.PRIVATE:
        if not others:
            raise SelfChatError()
        if len(others) > 1:
            raise BadRequestError("A private chat must have exactly two participants")

    await _ensure_users_exist(session, [creator_id, *others])

    chat = Chat(
        name=name,
        type=chat_type,
        creator_id=creator_id,
        school_id=school_id,
        private_key=private_pair_key(creator_id, others[0]) if chat_type == ChatType.PRIVATE else None,
        last_activity_at=utcnow(),
    )
    chat.participants.append(ChatParticipant(user_id=creator_id, is_admin=True))
    for uid in others:
        chat.participants.append(ChatParticipant(user_id=uid, is_admin=False))

    try:
        async with session.begin_nested():
            session.add(chat)
    except IntegrityError as e:
        if chat_type != ChatType.PRIVATE:
            raise
        existing = await find_private_chat_between_users(session, creator_id, others[0])
        if existing is not None:
            existing_id = existing.id
        else:
            # the keyed row no longer has exactly this pair; it still owns the key
            existing_id = (
                await session.execute(
                    sa.select(Chat.id).where(Chat.private_key == private_pair_key(creator_id, others[0]))
                )
            ).scalar_one_or_none()
            if existing_id is None:
                raise
        log.info(
            "private chat between %s and %s already exists (chat %s)",
            creator_id, others[0], existing_id,
        )
        raise PrivateChatExistsError(existing_id) from e

    if temp_avatar_id:
        store = avatar_store or get_temp_avatar_store()
        item = await store.promote(temp_avatar_id, creator_id)
        if item is None:
            log.warning("temp avatar %s unavailable for chat %s", temp_avatar_id, chat.id)
        else:
            session.add(
                ChatAvatar(
                    chat_id=chat.id,
                    file_name=item.file_name,
                    mime_type=item.mime_type,
                    file_size=item.file_size,
                    image_data=item.data,
                )
            )
            chat.has_avatar = True
            await session.flush()

    log.info("chat %s created (%s) by user %s with %s", chat.id, chat_type.value, creator_id, others)
    return chat


# ------------------------------------------------------------------
# Lookup / access
# ------------------------------------------------------------------
async def get_chat_or_404(session: AsyncSession, chat_id: int) -> Chat:
    chat = await session.get(Chat, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


async def load_chat(session: AsyncSession, chat_id: int) -> Chat:
    """Re-read a chat with participants and their users freshly loaded."""
    stmt = sa.select(Chat).where(Chat.id == chat_id).execution_options(populate_existing=True)
    chat = (await session.execute(stmt)).scalar_one_or_none()
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


async def get_chat_for_participant(session: AsyncSession, chat_id: int, user_id: int) -> Chat:
    chat = await get_chat_or_404(session, chat_id)
    if chat.participant(user_id) is None:
        raise ForbiddenError("You are not a participant of this chat")
    return chat


async def unread_counts(session: AsyncSession, user_id: int) -> dict[int, int]:
    """Messages not sent by ``user_id`` past their read cursor, per chat."""
    cursor = sa.func.coalesce(ChatParticipant.last_read_message_id, 0)
    stmt = (
        sa.select(Message.chat_id, sa.func.count(Message.id))
        .join(
            ChatParticipant,
            sa.and_(ChatParticipant.chat_id == Message.chat_id, ChatParticipant.user_id == user_id),
        )
        .where(Message.sender_id != user_id, Message.id > cursor)
        .group_by(Message.chat_id)
    )
    return {chat_id: count for chat_id, count in (await session.execute(stmt)).all()}


async def list_user_chats(session: AsyncSession, user_id: int) -> list[tuple[Chat, int]]:
    """The user's chats, most recently active first, each with its unread count."""
    stmt = (
        sa.select(Chat)
        .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
        .where(ChatParticipant.user_id == user_id)
        .order_by(Chat.last_activity_at.desc(), Chat.id.desc())
    )
    chats = (await session.execute(stmt)).scalars().all()
    counts = await unread_counts(session, user_id)
    return [(c, counts.get(c.id, 0)) for c in chats]


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------
async def update_chat(session: AsyncSession, chat: Chat, user_id: int, *, name: Optional[str]) -> Chat:
    me = chat.participant(user_id)
    if me is None:
        raise ForbiddenError("You are not a participant of this chat")
    if chat.type == ChatType.GROUP and chat.creator_id != user_id:
        raise ForbiddenError("Only chat creator can update group chat information")
    if name is not None:
        chat.name = name
    await session.flush()
    return chat


async def delete_chat(session: AsyncSession, chat: Chat, user_id: int) -> None:
    if chat.type == ChatType.GROUP:
        if chat.creator_id != user_id:
            raise ForbiddenError("Only chat creator can delete the group chat")
    elif chat.participant(user_id) is None:
        raise ForbiddenError("You are not a participant of this chat")

    chat_id = chat.id
    await _purge_chat(session, chat)
    log.info("chat %s deleted by user %s", chat_id, user_id)


async def _purge_chat(session: AsyncSession, chat: Chat) -> None:
    chat_id = chat.id
    await session.execute(sa.update(Message).where(Message.chat_id == chat_id).values(reply_to_message_id=None))
    await session.execute(sa.delete(Message).where(Message.chat_id == chat_id))
    await session.execute(sa.delete(ChatAvatar).where(ChatAvatar.chat_id == chat_id))
    await session.delete(chat)
    await session.flush()


async def leave_chat(session: AsyncSession, chat: Chat, user_id: int) -> bool:
    """Leave a group chat; returns True when the chat was removed because nobody is left."""
    if chat.type != ChatType.GROUP:
        raise BadRequestError("Cannot leave a private chat")
    me = chat.participant(user_id)
    if me is None:
        raise ForbiddenError("You are not a participant of this chat")

    remaining = [p for p in chat.participants if p.user_id != user_id]
    if not remaining:
        chat_id = chat.id
        await _purge_chat(session, chat)
        log.info("user %s left chat %s as its last member; chat removed", user_id, chat_id)
        return True

    if chat.creator_id in (user_id, None):
        if not any(p.is_admin for p in remaining):
            remaining[0].is_admin = True
        heir = next(p for p in remaining if p.is_admin)
        chat.creator_id = heir.user_id

    chat.participants.remove(me)
    await session.flush()
    log.info("user %s left chat %s", user_id, chat.id)
    return False


async def release_user_chats(session: AsyncSession, user_id: int) -> list[int]:
    """
    Detach a user who is about to be deleted from every chat they belong to.

    Group chats are left the way ``leave_chat`` does it, so creatorship and
    admin rights pass to a remaining member. Private chats keep their history
    for the other side but lose the pair key. Returns the ids of chats removed
    because nobody was left.
    """
    stmt = (
        sa.select(Chat)
        .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
        .where(ChatParticipant.user_id == user_id)
        .order_by(Chat.id)
    )
    removed: list[int] = []
    for chat in (await session.execute(stmt)).scalars().all():
        if chat.type == ChatType.GROUP:
            chat_id = chat.id
            if await leave_chat(session, chat, user_id):
                removed.append(chat_id)
            continue
        chat.participants.remove(chat.participant(user_id))
        chat.private_key = None
        if chat.creator_id == user_id:
            chat.creator_id = None
    await session.flush()
    return removed


async def add_participants(
    session: AsyncSession, chat: Chat, user_id: int, new_ids: Iterable[int]
) -> list[ChatParticipant]:
    if chat.type == ChatType.PRIVATE:
        raise BadRequestError("Cannot add participants to a private chat")
    me = chat.participant(user_id)
    if me is None:
        raise ForbiddenError("You are not a participant of this chat")
    if not me.is_admin:
        raise ForbiddenError("Only chat administrators can add participants")

    current = set(chat.participant_ids)
    to_add = [int(uid) for uid in dict.fromkeys(new_ids) if int(uid) not in current]
    await _ensure_users_exist(session, to_add)
    added = []
    for uid in to_add:
        p = ChatParticipant(user_id=uid, is_admin=False)
        chat.participants.append(p)
        added.append(p)
    await session.flush()
    return added


async def remove_participant(session: AsyncSession, chat: Chat, user_id: int, target_id: int) -> None:
    if chat.type == ChatType.PRIVATE:
        raise BadRequestError("Cannot remove participants from a private chat")
    me = chat.participant(user_id)
    if me is None or not me.is_admin:
        raise ForbiddenError("Only chat administrators can remove participants")
    if target_id == chat.creator_id:
        raise ForbiddenError("The chat creator cannot be removed")
    target = chat.participant(target_id)
    if target is None:
        raise NotFoundError("Participant not found")
    chat.participants.remove(target)
    await session.flush()


async def mark_read(session: AsyncSession, chat: Chat, user_id: int, message_id: int) -> tuple[int, int]:
    """Move the read cursor forward; returns (unread in this chat, unread overall)."""
    me = chat.participant(user_id)
    if me is None:
        raise ForbiddenError("You are not a participant of this chat")
    msg = await session.get(Message, message_id)
    if msg is None or msg.chat_id != chat.id:
        raise NotFoundError("Message not found")
    if (me.last_read_message_id or 0) < message_id:
        me.last_read_message_id = message_id
    await session.flush()
    counts = await unread_counts(session, user_id)
    return counts.get(chat.id, 0), sum(counts.values())


def touch(chat: Chat, when: datetime | None = None) -> None:
    chat.last_activity_at = when or utcnow()
