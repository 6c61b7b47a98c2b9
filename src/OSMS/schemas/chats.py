from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from OSMS.db.models import Chat, ChatParticipant, ChatType

from .base import APIModel


class ChatCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ChatType
    participant_ids: list[int] = Field(..., min_length=1)
    school_id: Optional[int] = None
    temp_avatar_id: Optional[str] = None


class ChatUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class ParticipantsAdd(APIModel):
    user_ids: list[int] = Field(..., min_length=1)


class ParticipantOut(APIModel):
    id: int
    username: Optional[str] = None
    first_name: str
    last_name: str
    is_admin: bool
    last_read_message_id: Optional[int] = None
    joined_at: datetime

    @classmethod
    def from_participant(cls, p: ChatParticipant) -> "ParticipantOut":
        return cls(
            id=p.user_id,
            username=p.user.username,
            first_name=p.user.first_name,
            last_name=p.user.last_name,
            is_admin=p.is_admin,
            last_read_message_id=p.last_read_message_id,
            joined_at=p.joined_at,
        )


class ChatOut(APIModel):
    id: int
    name: str
    type: ChatType
    creator_id: Optional[int] = None
    school_id: Optional[int] = None
    has_avatar: bool = False
    avatar_url: Optional[str] = None
    last_activity_at: datetime
    created_at: datetime
    participants: list[ParticipantOut] = []
    unread_count: int = 0

    @classmethod
    def from_chat(cls, chat: Chat, unread_count: int = 0) -> "ChatOut":
        return cls(
            id=chat.id,
            name=chat.name,
            type=chat.type,
            creator_id=chat.creator_id,
            school_id=chat.school_id,
            has_avatar=chat.has_avatar,
            avatar_url=f"/api/chats/{chat.id}/avatar" if chat.has_avatar else None,
            last_activity_at=chat.last_activity_at,
            created_at=chat.created_at,
            participants=[ParticipantOut.from_participant(p) for p in chat.participants],
            unread_count=unread_count,
        )


class ReadStatusIn(APIModel):
    message_id: int


class ReadStatusOut(APIModel):
    success: bool = True
    unread_count: int
    total_unread: int


class UploadedFile(APIModel):
    filename: str
    originalname: str
    mimetype: str
    size: int
    url: str
    type: str
    is_encrypted: bool = True


class UploadOut(APIModel):
    success: bool = True
    file: UploadedFile


class TempAvatarOut(APIModel):
    success: bool = True
    temp_avatar_id: str
    file_url: str
    file_name: str
    mime_type: str
    file_size: int
    expires_at: datetime


class AvatarOut(APIModel):
    success: bool = True
    chat_id: int
    file_name: str
    mime_type: str
    file_size: int
    avatar_url: str
