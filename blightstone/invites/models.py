from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy.sql import func
from sqlmodel import Column, DateTime, Field, SQLModel


class InvitationStatus(str, Enum):
    pending = "pending"
    completed = "completed"


class InvitationDB(SQLModel, table=True):
    __tablename__ = "invitations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(max_length=255, index=True)
    role: str = Field(default="Team Member", nullable=False)
    token: str = Field(max_length=64, unique=True, index=True)
    status: InvitationStatus = Field(default=InvitationStatus.pending, nullable=False)
    # Cleared if the inviter is deleted
    invited_by: UUID | None = Field(
        default=None, foreign_key="users.id", nullable=True, ondelete="SET NULL"
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    completed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    created_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
