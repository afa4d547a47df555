from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy.sql import func
from sqlmodel import Column, DateTime, Field, SQLModel

from blightstone.auth.models import AccountDB


class ProfileStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class ProfileBase(SQLModel):
    name: str | None = Field(default=None, max_length=255)
    email: str = Field(max_length=255, unique=True, index=True)
    # Open string: "Administrator", "Team Member", or any custom role
    role: str = Field(default="Team Member", max_length=100, nullable=False)
    status: ProfileStatus = Field(default=ProfileStatus.active, nullable=False)


class ProfileDB(ProfileBase, table=True):
    __tablename__ = "users"

    id: UUID = Field(foreign_key="accounts.id", primary_key=True)
    invited_by: UUID | None = Field(
        default=None, foreign_key="users.id", nullable=True, ondelete="SET NULL"
    )
    created_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
    updated_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
    )


class UserRead(SQLModel):
    """Account merged with its profile."""

    id: UUID
    email: str
    name: str | None
    role: str
    status: ProfileStatus
    invited_by: UUID | None = None
    email_confirmed: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_records(cls, account: AccountDB | None, profile: ProfileDB) -> "UserRead":
        return cls(
            id=profile.id,
            email=account.email if account else profile.email,
            name=profile.name,
            role=profile.role,
            status=profile.status,
            invited_by=profile.invited_by,
            email_confirmed=bool(account and account.email_confirmed_at),
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class SessionUser(SQLModel):
    """Denormalized identity snapshot kept in the session and returned to clients."""

    id: UUID
    email: str
    name: str | None
    role: str

    @classmethod
    def from_user(cls, user: UserRead) -> "SessionUser":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role)
