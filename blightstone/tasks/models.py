from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy.sql import func
from pydantic import field_validator
from sqlmodel import Column, DateTime, Field, SQLModel


class TaskBase(SQLModel):
    title: str = Field(max_length=255)
    description: str | None = Field(default=None)
    project_id: UUID | None = Field(
        default=None, foreign_key="projects.id", nullable=True, ondelete="CASCADE"
    )
    assigned_to: UUID | None = Field(
        default=None, foreign_key="users.id", nullable=True, ondelete="SET NULL"
    )
    priority: str = Field(default="Medium", max_length=50)
    status: str = Field(default="Pending", max_length=50)
    due_date: date | None = Field(default=None)


class TaskDB(TaskBase, table=True):
    __tablename__ = "tasks"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_by: UUID | None = Field(
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


class TaskCreate(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    project_id: UUID | None = None
    assigned_to: UUID | None = None
    priority: str | None = None
    due_date: date | None = None


class TaskUpdate(SQLModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    project_id: UUID | None = None
    assigned_to: UUID | None = None
    priority: str | None = None
    status: str | None = None
    due_date: date | None = None

    @field_validator("title", "priority", "status")
    @classmethod
    def reject_null(cls, v):
        """Omit a field to leave it unchanged; these columns cannot be cleared."""
        if v is None:
            raise ValueError("may not be null")
        return v


class TaskRead(TaskBase):
    id: UUID
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime
