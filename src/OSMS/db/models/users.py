from __future__ import annotations

import enum
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from OSMS.db.base import Base, IdMixin, TimestampMixin


class RoleEnum(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    SCHOOL_ADMIN = "school_admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"
    PRINCIPAL = "principal"
    VICE_PRINCIPAL = "vice_principal"
    CLASS_TEACHER = "class_teacher"


ROLE_VALUES = [r.value for r in RoleEnum]

role_type = sa.Enum(
    RoleEnum,
    name="role_enum",
    native_enum=False,
    length=32,
    values_callable=lambda e: [m.value for m in e],
)


class User(IdMixin, TimestampMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(sa.String(64), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(sa.String(128))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(32))
    school_id: Mapped[Optional[int]] = mapped_column(
        sa.ForeignKey("schools.id", ondelete="SET NULL"), index=True
    )
    # Always one of the roles in `roles` when set.
    active_role: Mapped[Optional[RoleEnum]] = mapped_column(role_type)

    roles: Mapped[list["UserRole"]] = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="UserRole.id",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r})"


class UserRole(IdMixin, TimestampMixin, Base):
    __tablename__ = "user_roles"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "role", "school_id", "class_id", name="uq_user_roles_assignment"),
    )

    user_id: Mapped[int] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[RoleEnum] = mapped_column(role_type, nullable=False)
    school_id: Mapped[Optional[int]] = mapped_column(sa.ForeignKey("schools.id", ondelete="CASCADE"))
    class_id: Mapped[Optional[int]] = mapped_column(sa.ForeignKey("classes.id", ondelete="CASCADE"))

    user: Mapped["User"] = relationship("User", back_populates="roles")

    def __repr__(self) -> str:
        return f"UserRole(user_id={self.user_id!r}, role={self.role!r}, school_id={self.school_id!r})"
