# src/OSMS/api/routers/chat_avatars.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import get_current_user
from OSMS.core.config import settings
from OSMS.db.models import User
from OSMS.db.session import get_db
from OSMS.errors import BadRequestError, NotFoundError
from OSMS.schemas.base import StatusOut
from OSMS.schemas.chats import AvatarOut
from OSMS.services import chat_avatars as avatar_service
from OSMS.services import chats as chat_service
from OSMS.services import file_storage

router = APIRouter(prefix="/api/chats", tags=["chats"])


@router.post("/{chat_id}/avatar", response_model=AvatarOut)
async def upload_chat_avatar(
    chat_id: int,
    file: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Set or replace the chat's avatar (images only, up to 5 MB)."""
    chat = await chat_service.get_chat_for_participant(session, chat_id, user.id)
    if file is None or not file.filename:
        raise BadRequestError("No file uploaded")
    mimetype = file_storage.check_mime(file.content_type, file_storage.IMAGE_MIME_TYPES)
    data = await file_storage.read_upload(file, settings.MAX_AVATAR_BYTES)

    avatar = await avatar_service.set_avatar(
        session, chat, user.id, data=data, file_name=file.filename, mime_type=mimetype
    )
    await session.commit()
    return AvatarOut(
        chat_id=chat_id,
        file_name=avatar.file_name,
        mime_type=avatar.mime_type,
        file_size=avatar.file_size,
        avatar_url=f"/api/chats/{chat_id}/avatar",
    )


@router.get("/{chat_id}/avatar")
async def get_chat_avatar(
    chat_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    await chat_service.get_chat_for_participant(session, chat_id, user.id)
    avatar = await avatar_service.get_avatar(session, chat_id)
    if avatar is None:
        raise NotFoundError("Chat has no avatar")
    return Response(
        content=avatar.image_data,
        media_type=avatar.mime_type,
        headers={"Cache-Control": "private, max-age=300"},
    )


@router.delete("/{chat_id}/avatar", response_model=StatusOut)
async def delete_chat_avatar(
    chat_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    chat = await chat_service.get_chat_or_404(session, chat_id)
    await avatar_service.delete_avatar(session, chat, user.id)
    await session.commit()
    return StatusOut(message="Chat avatar removed")
