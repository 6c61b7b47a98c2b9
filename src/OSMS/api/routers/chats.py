# src/OSMS/api/routers/chats.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import client_ip, get_current_user
from OSMS.db.models import ChatType, User
from OSMS.db.session import get_db
from OSMS.errors import BadRequestError, NotFoundError
from OSMS.schemas.base import StatusOut
from OSMS.schemas.chats import (
    ChatCreate,
    ChatOut,
    ChatUpdate,
    ParticipantOut,
    ParticipantsAdd,
    ReadStatusIn,
    ReadStatusOut,
)
from OSMS.services import chats as chat_service
from OSMS.services.file_storage import delete_chat_files
from OSMS.services.system_logs import log_action
from OSMS.services.temp_avatars import TempAvatarStore, get_temp_avatar_store

router = APIRouter(prefix="/api/chats", tags=["chats"])


# -------------------------
# Routes
# -------------------------
@router.get("", response_model=list[ChatOut])
async def list_chats(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """The caller's chats, most recently active first, with unread counts."""
    rows = await chat_service.list_user_chats(session, user.id)
    return [ChatOut.from_chat(chat, unread) for chat, unread in rows]


@router.post("", response_model=ChatOut, status_code=status.HTTP_201_CREATED)
async def create_chat(
    payload: ChatCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    avatar_store: TempAvatarStore = Depends(get_temp_avatar_store),
):
    """
    Create a private or group chat.

    - private chat with yourself -> 400
    - private chat that already exists for the pair -> 409 with ``existingChatId``
    """
    school_id = payload.school_id or user.school_id
    if not school_id:
        raise BadRequestError("School ID is required")

    chat = await chat_service.create_chat(
        session,
        name=payload.name,
        chat_type=payload.type,
        participant_ids=payload.participant_ids,
        creator_id=user.id,
        school_id=school_id,
        temp_avatar_id=payload.temp_avatar_id,
        avatar_store=avatar_store,
    )
    await session.commit()
    chat = await chat_service.load_chat(session, chat.id)
    return ChatOut.from_chat(chat)


@router.get("/private/{other_user_id}", response_model=ChatOut)
async def find_private_chat(
    other_user_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """The existing private chat between the caller and ``other_user_id``."""
    chat = await chat_service.find_private_chat_between_users(session, user.id, other_user_id)
    if chat is None:
        raise NotFoundError("Private chat not found")
    counts = await chat_service.unread_counts(session, user.id)
    return ChatOut.from_chat(chat, counts.get(chat.id, 0))


@router.get("/{chat_id}", response_model=ChatOut)
async def get_chat(
    chat_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_for_participant(session, chat_id, user.id)
    counts = await chat_service.unread_counts(session, user.id)
    return ChatOut.from_chat(chat, counts.get(chat.id, 0))


@router.patch("/{chat_id}", response_model=ChatOut)
async def update_chat(
    chat_id: int,
    payload: ChatUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    await chat_service.update_chat(session, chat, user.id, name=payload.name)
    await session.commit()
    return ChatOut.from_chat(await chat_service.load_chat(session, chat_id))


@router.delete("/{chat_id}", response_model=StatusOut)
async def delete_chat(
    chat_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    kind = chat.type
    await chat_service.delete_chat(session, chat, user.id)
    if kind == ChatType.GROUP:
        await log_action(session, user.id, "chat_deleted", f"Deleted group chat {chat_id}", client_ip(request))
    await session.commit()
    delete_chat_files(chat_id)
    return StatusOut(message="Chat deleted successfully")


@router.post("/{chat_id}/leave", response_model=StatusOut)
async def leave_chat(
    chat_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    removed = await chat_service.leave_chat(session, chat, user.id)
    await session.commit()
    if removed:
        delete_chat_files(chat_id)
    return StatusOut(message="Left the chat successfully")


@router.get("/{chat_id}/participants", response_model=list[ParticipantOut])
async def list_participants(
    chat_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_for_participant(session, chat_id, user.id)
    return [ParticipantOut.from_participant(p) for p in chat.participants]


@router.post("/{chat_id}/participants", response_model=ChatOut)
async def add_participants(
    chat_id: int,
    payload: ParticipantsAdd,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    await chat_service.add_participants(session, chat, user.id, payload.user_ids)
    await session.commit()
    return ChatOut.from_chat(await chat_service.load_chat(session, chat_id))


@router.delete("/{chat_id}/participants/{user_id}", response_model=ChatOut)
async def remove_participant(
    chat_id: int,
    user_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    await chat_service.remove_participant(session, chat, user.id, user_id)
    await session.commit()
    return ChatOut.from_chat(await chat_service.load_chat(session, chat_id))


@router.put("/{chat_id}/read-status", response_model=ReadStatusOut)
async def mark_read(
    chat_id: int,
    payload: ReadStatusIn,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    unread, total = await chat_service.mark_read(session, chat, user.id, payload.message_id)
    await session.commit()
    return ReadStatusOut(unread_count=unread, total_unread=total)
