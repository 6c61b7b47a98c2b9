# Index of per-resource schemas
from __future__ import annotations
__all__ = []
from .base import APIModel, StatusOut
__all__ += ['APIModel', 'StatusOut']
from .schools import SchoolCreate, SchoolUpdate, SchoolOut
__all__ += ['SchoolCreate', 'SchoolUpdate', 'SchoolOut']
from .classes import ClassCreate, ClassUpdate, ClassOut
__all__ += ['ClassCreate', 'ClassUpdate', 'ClassOut']
from .subjects import SubjectCreate, SubjectUpdate, SubjectOut
__all__ += ['SubjectCreate', 'SubjectUpdate', 'SubjectOut']
from .users import (
    UserCreate, UserUpdate, UserOut, UserRoleCreate, UserRoleUpdate, UserRoleOut,
    MyRoleOut, SwitchRoleIn, ActiveRoleIn, ChatUserOut,
)
__all__ += ['UserCreate', 'UserUpdate', 'UserOut', 'UserRoleCreate', 'UserRoleUpdate', 'UserRoleOut',
            'MyRoleOut', 'SwitchRoleIn', 'ActiveRoleIn', 'ChatUserOut']
from .chats import (
    ChatCreate, ChatUpdate, ChatOut, ParticipantOut, ParticipantsAdd, ReadStatusIn, ReadStatusOut,
    UploadOut, UploadedFile, TempAvatarOut, AvatarOut,
)
__all__ += ['ChatCreate', 'ChatUpdate', 'ChatOut', 'ParticipantOut', 'ParticipantsAdd', 'ReadStatusIn',
            'ReadStatusOut', 'UploadOut', 'UploadedFile', 'TempAvatarOut', 'AvatarOut']
from .messages import MessageCreate, MessageOut
__all__ += ['MessageCreate', 'MessageOut']
from .academic_periods import (
    AcademicPeriodsOut, AcademicPeriodsUpdate, BoundaryIn, BoundaryOut, CurrentPeriodOut, ResolvedPeriodOut,
)
__all__ += ['AcademicPeriodsOut', 'AcademicPeriodsUpdate', 'BoundaryIn', 'BoundaryOut',
            'CurrentPeriodOut', 'ResolvedPeriodOut']
from .system_logs import SystemLogOut
__all__ += ['SystemLogOut']
