# src/OSMS/api/routers/chat_messages.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import get_current_user
from OSMS.db.models import User
from OSMS.db.session import get_db
from OSMS.schemas.base import StatusOut
from OSMS.schemas.messages import MessageCreate, MessageOut
from OSMS.services import chats as chat_service
from OSMS.services import messages as message_service

router = APIRouter(prefix="/api/chats", tags=["messages"])


@router.get("/{chat_id}/messages", response_model=list[MessageOut])
async def list_messages(
    chat_id: int,
    before_id: Optional[int] = Query(None, alias="beforeId"),
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    await chat_service.get_chat_for_participant(session, chat_id, user.id)
    rows = await message_service.list_messages(session, chat_id, before_id=before_id, limit=limit)
    return [MessageOut.from_message(m) for m in rows]


@router.post("/{chat_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(
    chat_id: int,
    payload: MessageCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Post a message. Needs content or an attachment; replies must stay within the chat."""
    chat = await chat_service.get_chat_for_participant(session, chat_id, user.id)
    message = await message_service.create_message(
        session,
        chat,
        user.id,
        content=payload.content,
        has_attachment=payload.has_attachment,
        attachment_type=payload.attachment_type,
        attachment_url=payload.attachment_url,
        reply_to_message_id=payload.reply_to_message_id,
    )
    await session.commit()
    await session.refresh(message, attribute_names=["sender", "reply_to"])
    return MessageOut.from_message(message)


@router.delete("/{chat_id}/messages/{message_id}", response_model=StatusOut)
async def delete_message(
    chat_id: int,
    message_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_for_participant(session, chat_id, user.id)
    await message_service.delete_message(session, chat, message_id, user)
    await session.commit()
    return StatusOut(message="Message deleted")
