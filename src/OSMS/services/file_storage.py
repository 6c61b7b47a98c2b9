# src/OSMS/services/file_storage.py
"""
Attachment policy and encrypted-at-rest file store for chat uploads.

Files land under ``<UPLOAD_DIR>/encrypted/<chat_id>/`` encrypted with Fernet.
The key comes from ``FILE_ENCRYPTION_KEY`` or, when unset, a key file created
once in ``UPLOAD_DIR``.
"""
from __future__ import annotations

import json
import mimetypes
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from fastapi import UploadFile

from OSMS.app_logger import get_logger
from OSMS.core.config import settings
from OSMS.errors import FileTooLargeError, NotFoundError, UnsupportedTypeError

log = get_logger("services.file_storage")

ALLOWED_MIME_TYPES: tuple[str, ...] = (
    # images
    "image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml",
    # documents
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain", "text/csv",
    # video
    "video/mp4", "video/webm", "video/ogg",
    # audio
    "audio/mpeg", "audio/ogg", "audio/wav",
)

IMAGE_MIME_TYPES: tuple[str, ...] = tuple(m for m in ALLOWED_MIME_TYPES if m.startswith("image/"))

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024

_CHUNK_SIZE = 64 * 1024
_KEY_FILE = ".file_encryption_key"


@dataclass
class StoredFile:
    filename: str
    original_name: str
    mimetype: str
    size: int
    url: str
    type: str
    is_encrypted: bool = True

    def as_response(self) -> dict:
        return {
            "filename": self.filename,
            "originalname": self.original_name,
            "mimetype": self.mimetype,
            "size": self.size,
            "url": self.url,
            "type": self.type,
            "isEncrypted": self.is_encrypted,
        }


# ------------------------------------------------------------------
# Policy
# ------------------------------------------------------------------
def normalize_mime(mimetype: Optional[str]) -> Optional[str]:
    if not mimetype:
        return None
    return mimetype.split(";", 1)[0].strip().lower() or None


def check_mime(mimetype: Optional[str], allowed: tuple[str, ...] = ALLOWED_MIME_TYPES) -> str:
    """Return the normalized MIME type or raise UnsupportedTypeError."""
    mime = normalize_mime(mimetype)
    if mime not in allowed:
        raise UnsupportedTypeError(mime or mimetype, list(allowed))
    return mime


def check_size(size: int, limit: int = MAX_ATTACHMENT_BYTES) -> None:
    # inclusive limit: exactly `limit` bytes is fine
    if size > limit:
        raise FileTooLargeError(size, limit)


def attachment_type_for(mimetype: str) -> str:
    if mimetype.startswith("image/"):
        return "image"
    if mimetype.startswith("video/"):
        return "video"
    if mimetype.startswith("audio/"):
        return "audio"
    return "document"


async def read_upload(upload: UploadFile, limit: int) -> bytes:
    """
    Read an upload in chunks, stopping as soon as it grows past ``limit``.
    """
    buf = bytearray()
    while True:
        chunk = await upload.read(_CHUNK_SIZE)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > limit:
            raise FileTooLargeError(len(buf), limit)
    return bytes(buf)


# ------------------------------------------------------------------
# Encryption key
# ------------------------------------------------------------------
def upload_root() -> Path:
    root = Path(settings.UPLOAD_DIR)
    root.mkdir(parents=True, exist_ok=True)
    return root


def _load_fernet() -> Fernet:
    if settings.FILE_ENCRYPTION_KEY:
        return Fernet(settings.FILE_ENCRYPTION_KEY.encode("utf-8"))

    key_path = upload_root() / _KEY_FILE
    if not key_path.exists():
        key_path.write_bytes(Fernet.generate_key())
        os.chmod(key_path, 0o600)
        log.warning("FILE_ENCRYPTION_KEY not set; generated key file at %s", key_path)
    return Fernet(key_path.read_bytes().strip())


# ------------------------------------------------------------------
# Store / load
# ------------------------------------------------------------------
def generate_filename(original_name: str) -> str:
    ext = Path(original_name or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


def file_url(chat_id: int, filename: str) -> str:
    return f"/api/chats/{chat_id}/files/{filename}"


def _chat_dir(chat_id: int) -> Path:
    d = upload_root() / "encrypted" / str(int(chat_id))
    d.mkdir(parents=True, exist_ok=True)
    return d


def _safe_path(chat_id: int, filename: str) -> Path:
    # reject anything that is not a bare file name
    if not filename or filename != os.path.basename(filename) or filename.startswith("."):
        raise NotFoundError("File not found")
    return _chat_dir(chat_id) / filename


def _meta_path(path: Path) -> Path:
    # dot-prefixed, so never reachable through _safe_path
    return path.with_name(f".{path.name}.json")


def store_attachment(chat_id: int, data: bytes, original_name: str, mimetype: str) -> StoredFile:
    filename = generate_filename(original_name)
    path = _chat_dir(chat_id) / filename
    path.write_bytes(_load_fernet().encrypt(data))
    _meta_path(path).write_text(json.dumps({"mimetype": mimetype, "originalname": original_name}))
    log.info("stored attachment chat_id=%s file=%s size=%d type=%s", chat_id, filename, len(data), mimetype)
    return StoredFile(
        filename=filename,
        original_name=original_name,
        mimetype=mimetype,
        size=len(data),
        url=file_url(chat_id, filename),
        type=attachment_type_for(mimetype),
    )


def load_attachment(chat_id: int, filename: str) -> tuple[bytes, str]:
    """Return (plaintext bytes, mime type) of a stored attachment."""
    path = _safe_path(chat_id, filename)
    if not path.is_file():
        raise NotFoundError("File not found")
    try:
        data = _load_fernet().decrypt(path.read_bytes())
    except InvalidToken as e:
        log.error("cannot decrypt %s: %s", path, e)
        raise NotFoundError("File not found", cause=e)
    meta = _meta_path(path)
    if meta.is_file():
        mimetype = json.loads(meta.read_text())["mimetype"]
    else:
        # written before MIME types were recorded
        mimetype = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return data, mimetype


def delete_chat_files(chat_id: int) -> None:
    d = upload_root() / "encrypted" / str(int(chat_id))
    if not d.is_dir():
        return
    for p in d.iterdir():
        if p.is_file():
            p.unlink()
    d.rmdir()
