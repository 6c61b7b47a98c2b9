from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from OSMS.db.models import RoleEnum

from .base import APIModel


class UserRoleOut(APIModel):
    id: int
    user_id: int
    role: RoleEnum
    school_id: Optional[int] = None
    class_id: Optional[int] = None


class MyRoleOut(UserRoleOut):
    is_active: bool = False


class UserRoleCreate(APIModel):
    user_id: int
    role: RoleEnum
    school_id: Optional[int] = None
    class_id: Optional[int] = None


class UserRoleUpdate(APIModel):
    role: RoleEnum
    school_id: Optional[int] = None
    class_id: Optional[int] = None


class SwitchRoleIn(APIModel):
    role: RoleEnum


class ActiveRoleIn(APIModel):
    active_role: RoleEnum


class UserBase(APIModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    school_id: Optional[int] = None


class UserCreate(UserBase):
    roles: list[RoleEnum] = Field(..., min_length=1)


class UserUpdate(APIModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=128)
    last_name: Optional[str] = Field(None, min_length=1, max_length=128)
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    school_id: Optional[int] = None


class UserOut(UserBase):
    id: int
    active_role: Optional[RoleEnum] = None
    roles: list[UserRoleOut] = []
    created_at: datetime
    updated_at: datetime


class ChatUserOut(APIModel):
    id: int
    username: str
    first_name: str
    last_name: str
    roles: list[RoleEnum] = []
