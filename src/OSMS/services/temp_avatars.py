# src/OSMS/services/temp_avatars.py
"""
Short-lived store for chat avatars uploaded before the chat exists.

Each entry is one redis key ``${prefix}${id}`` holding a JSON blob (metadata
plus the base64 image) that expires after ``TEMP_AVATAR_TTL_SECONDS``.
Promoting an entry hands its bytes over and deletes the key with GETDEL, so an
avatar can be claimed once, from any worker.
"""
from __future__ import annotations

import base64
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from OSMS.app_logger import get_logger
from OSMS.core.config import settings

log = get_logger("services.temp_avatars")

TEMP_AVATAR_PREFIX = "temp-avatar:"


@dataclass
class TempAvatar:
    id: str
    user_id: int
    file_name: str
    mime_type: str
    file_size: int
    data: bytes
    expires_at: datetime

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    def to_json(self) -> str:
        return json.dumps(
            {
                "user_id": self.user_id,
                "file_name": self.file_name,
                "mime_type": self.mime_type,
                "file_size": self.file_size,
                "data": base64.b64encode(self.data).decode("ascii"),
                "expires_at": self.expires_at.isoformat(),
            }
        )

    @classmethod
    def from_json(cls, avatar_id: str, raw: str) -> "TempAvatar":
        blob = json.loads(raw)
        return cls(
            id=avatar_id,
            user_id=int(blob["user_id"]),
            file_name=blob["file_name"],
            mime_type=blob["mime_type"],
            file_size=int(blob["file_size"]),
            data=base64.b64decode(blob["data"]),
            expires_at=datetime.fromisoformat(blob["expires_at"]),
        )


class TempAvatarStore:
    def __init__(
        self,
        client: redis.Redis | None = None,
        *,
        url: str | None = None,
        prefix: str = TEMP_AVATAR_PREFIX,
        ttl: int | None = None,
    ) -> None:
        self._r = client if client is not None else redis.from_url(url or settings.REDIS_URL, decode_responses=True)
        self._p = prefix
        self._ttl = ttl

    @property
    def ttl(self) -> int:
        return self._ttl or settings.TEMP_AVATAR_TTL_SECONDS

    def _k(self, avatar_id: str) -> str:
        return f"{self._p}{avatar_id}"

    async def ping(self) -> bool:
        try:
            return bool(await self._r.ping())
        except RedisError as e:
            log.warning("redis ping failed: %s", e)
            return False

    async def save(self, user_id: int, data: bytes, file_name: str, mime_type: str) -> TempAvatar:
        item = TempAvatar(
            id=secrets.token_urlsafe(16),
            user_id=user_id,
            file_name=file_name,
            mime_type=mime_type,
            file_size=len(data),
            data=data,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=self.ttl),
        )
        await self._r.set(self._k(item.id), item.to_json(), ex=self.ttl)
        log.info("temp avatar %s saved for user %s (%d bytes)", item.id, user_id, len(data))
        return item

    async def get(self, avatar_id: str) -> Optional[TempAvatar]:
        raw = await self._r.get(self._k(avatar_id))
        if raw is None:
            return None
        return TempAvatar.from_json(avatar_id, raw)

    async def seconds_left(self, avatar_id: str) -> int:
        return await self._r.ttl(self._k(avatar_id))  # -2 missing

    async def promote(self, avatar_id: str, user_id: int) -> Optional[TempAvatar]:
        """Take ownership of a temp avatar; None when unknown, expired, claimed or not the uploader's."""
        item = await self.get(avatar_id)
        if item is None or item.user_id != user_id:
            return None
        raw = await self._r.getdel(self._k(avatar_id))
        if raw is None:
            return None
        return TempAvatar.from_json(avatar_id, raw)

    async def remove(self, avatar_id: str) -> bool:
        return bool(await self._r.delete(self._k(avatar_id)))

    async def aclose(self) -> None:
        await self._r.aclose()


temp_avatar_store = TempAvatarStore()


def get_temp_avatar_store() -> TempAvatarStore:
    return temp_avatar_store
