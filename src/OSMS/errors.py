"""
OSMS exception hierarchy.

Domain services raise these; ``OSMS.main.create_app`` registers a handler that
turns them into JSON responses of the form ``{"message": ..., **extras}``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class OSMSError(Exception):
    """
    Base exception class for all OSMS domain errors.

    Attributes
    ----------
    message : str
        Human-readable error message
    error_code : str
        Machine-readable error code for categorization
    status_code : int
        HTTP status the API layer answers with
    context : Dict[str, Any]
        Extra fields merged into the response body
    timestamp : datetime
        When the error occurred
    """

    status_code: int = 400
    default_code: str = "osms_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Structured error data for logging."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "status_code": self.status_code,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
            "exception_type": self.__class__.__name__,
        }

    def to_response(self) -> Dict[str, Any]:
        """Body returned to API clients."""
        return {"message": self.message, **self.context}


class BadRequestError(OSMSError):
    status_code = 400
    default_code = "bad_request"


class SelfChatError(BadRequestError):
    """A private chat whose only participant would be its creator."""

    default_code = "self_chat"

    def __init__(self, message: str = "Cannot create a private chat with yourself") -> None:
        super().__init__(message)


class NotFoundError(OSMSError):
    status_code = 404
    default_code = "not_found"


class ForbiddenError(OSMSError):
    status_code = 403
    default_code = "forbidden"


class ConflictError(OSMSError):
    status_code = 409
    default_code = "conflict"


class PrivateChatExistsError(ConflictError):
    """Raised when a private chat for the same pair of users already exists."""

    default_code = "private_chat_exists"

    def __init__(self, existing_chat_id: int) -> None:
        super().__init__(
            "Private chat between these users already exists",
            context={"existingChatId": existing_chat_id},
        )
        self.existing_chat_id = existing_chat_id


class UnsupportedTypeError(OSMSError):
    status_code = 415
    default_code = "unsupported_type"

    def __init__(self, mimetype: str | None, allowed: list[str]) -> None:
        super().__init__(
            f"File type {mimetype or 'unknown'} is not allowed",
            context={"mimetype": mimetype, "allowed": allowed},
        )
        self.mimetype = mimetype


class FileTooLargeError(OSMSError):
    status_code = 413
    default_code = "file_too_large"

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"File exceeds the maximum size of {limit // (1024 * 1024)} MB",
            context={"size": size, "limit": limit},
        )
        self.size = size
        self.limit = limit


__all__ = [
    "OSMSError",
    "BadRequestError",
    "SelfChatError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "PrivateChatExistsError",
    "UnsupportedTypeError",
    "FileTooLargeError",
]
