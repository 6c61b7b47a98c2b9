# src/OSMS/api/routers/chat_files.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.auth.deps import get_current_user
from OSMS.core.config import settings
from OSMS.db.models import User
from OSMS.db.session import get_db
from OSMS.errors import BadRequestError
from OSMS.schemas.chats import TempAvatarOut, UploadOut
from OSMS.services import chats as chat_service
from OSMS.services import file_storage
from OSMS.services.temp_avatars import TempAvatarStore, get_temp_avatar_store

log = get_logger("api.chat_files")

router = APIRouter(tags=["files"])


@router.post(
    "/api/chats/{chat_id}/upload",
    response_model=UploadOut,
    status_code=status.HTTP_201_CREATED,
)
async def upload_chat_file(
    chat_id: int,
    file: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """
    Store an attachment for a chat, encrypted at rest.

    - no file -> 400
    - MIME type outside the allow-list -> 415
    - larger than the attachment limit (10 MB) -> 413
    """
    await chat_service.get_chat_for_participant(session, chat_id, user.id)
    if file is None or not file.filename:
        raise BadRequestError("No file uploaded")

    mimetype = file_storage.check_mime(file.content_type)
    if file.size is not None:
        file_storage.check_size(file.size, settings.MAX_ATTACHMENT_BYTES)
    data = await file_storage.read_upload(file, settings.MAX_ATTACHMENT_BYTES)

    stored = file_storage.store_attachment(chat_id, data, file.filename, mimetype)
    return {"success": True, "file": stored.as_response()}


@router.get("/api/chats/{chat_id}/files/{filename}")
async def download_chat_file(
    chat_id: int,
    filename: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    await chat_service.get_chat_for_participant(session, chat_id, user.id)
    data, mimetype = file_storage.load_attachment(chat_id, filename)
    return Response(
        content=data,
        media_type=mimetype,
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.post(
    "/api/upload/chat-avatar",
    response_model=TempAvatarOut,
    status_code=status.HTTP_201_CREATED,
)
async def upload_temp_chat_avatar(
    file: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    store: TempAvatarStore = Depends(get_temp_avatar_store),
):
    """Keep an avatar image for a few minutes so a chat created next can claim it."""
    if file is None or not file.filename:
        raise BadRequestError("No file uploaded")
    mimetype = file_storage.check_mime(file.content_type, file_storage.IMAGE_MIME_TYPES)
    data = await file_storage.read_upload(file, settings.MAX_AVATAR_BYTES)

    item = await store.save(user.id, data, file.filename, mimetype)
    return TempAvatarOut(
        temp_avatar_id=item.id,
        file_url=item.data_url(),
        file_name=item.file_name,
        mime_type=item.mime_type,
        file_size=item.file_size,
        expires_at=item.expires_at,
    )
