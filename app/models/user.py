"""ORM models for user accounts (auth and RBAC) and their live refresh-token sessions."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin


class Role(str, enum.Enum):
    """The three fixed roles. Nothing else is ever persisted."""

    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    PROJECT_MEMBER = "project_member"


class User(TimestampMixin, Base):
    """
    User account (the principal) for JWT authentication and role-based access control.

    is_active is a soft-delete flag: inactive users are treated as non-existent by auth.
    default_password_hash holds an admin-issued invitation password; while it is set,
    login yields a first-login result instead of tokens.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(
        Enum(
            Role,
            name="user_role",
            native_enum=False,
            length=32,
            values_callable=lambda roles: [r.value for r in roles],
            validate_strings=True,
        ),
        nullable=False,
        default=Role.PROJECT_MEMBER,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    default_password_hash = Column(String(255), nullable=True)
    default_password_expires_at = Column(DateTime(timezone=True), nullable=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        order_by="RefreshToken.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RefreshToken(Base):
    """One live session: bcrypt hash of an issued, not yet rotated refresh token."""

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ip = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")
