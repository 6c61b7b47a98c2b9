# Import every model so Base.metadata is complete (alembic env, test fixtures).
from OSMS.db.base import Base
from .schools import School
from .users import RoleEnum, ROLE_VALUES, User, UserRole
from .classes import SchoolClass
from .subjects import Subject
from .chats import Chat, ChatParticipant, ChatType, private_pair_key
from .messages import Message
from .chat_avatars import ChatAvatar
from .academic_periods import AcademicPeriodBoundary, ClassAcademicPeriod, PeriodType
from .system_logs import SystemLog

__all__ = [
    "Base",
    "School",
    "RoleEnum",
    "ROLE_VALUES",
    "User",
    "UserRole",
    "SchoolClass",
    "Subject",
    "Chat",
    "ChatParticipant",
    "ChatType",
    "private_pair_key",
    "Message",
    "ChatAvatar",
    "AcademicPeriodBoundary",
    "ClassAcademicPeriod",
    "PeriodType",
    "SystemLog",
]
