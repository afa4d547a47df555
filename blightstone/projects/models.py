from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.sql import func
from pydantic import field_validator
from sqlmodel import Column, DateTime, Field, SQLModel, UniqueConstraint


class ProjectBase(SQLModel):
    name: str = Field(max_length=255)
    description: str | None = Field(default=None)
    type: str | None = Field(default=None, max_length=100)
    priority: str | None = Field(default=None, max_length=50)
    status: str | None = Field(default="Active", max_length=50)


class ProjectDB(ProjectBase, table=True):
    __tablename__ = "projects"

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


class ProjectMemberDB(SQLModel, table=True):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", nullable=False, ondelete="CASCADE")
    user_id: UUID = Field(foreign_key="users.id", nullable=False, ondelete="CASCADE")
    role: str = Field(default="member", max_length=50)


class ProjectCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    type: str | None = None
    priority: str | None = None
    status: str | None = "Active"
    team_members: list[UUID] = []


class ProjectUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    type: str | None = None
    priority: str | None = None
    status: str | None = None
    # None leaves membership untouched; a list replaces it
    team_members: list[UUID] | None = None

    @field_validator("name")
    @classmethod
    def reject_null_name(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class ProjectMemberRead(SQLModel):
    user_id: UUID
    role: str
    name: str | None = None
    email: str | None = None


class ProjectRead(ProjectBase):
    id: UUID
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime
    project_members: list[ProjectMemberRead] = []


# Records kept per project: creative tracker entries, customer avatars and
# competitor analyses. Each row belongs to one project and is removed with it.


class CreativeBase(SQLModel):
    name: str = Field(max_length=255)
    type: str | None = Field(default=None, max_length=100)
    platform: str | None = Field(default=None, max_length=100)
    status: str = Field(default="Draft", max_length=50)
    notes: str | None = Field(default=None)
    asset_url: str | None = Field(default=None, max_length=2048)


class CreativeDB(CreativeBase, table=True):
    __tablename__ = "creative_tracker"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(
        foreign_key="projects.id", nullable=False, ondelete="CASCADE", index=True
    )
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


class CreativeCreate(CreativeBase):
    name: str = Field(min_length=1, max_length=255)


class CreativeRead(CreativeBase):
    id: UUID
    project_id: UUID
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime


class CustomerAvatarBase(SQLModel):
    name: str = Field(max_length=255)
    description: str | None = Field(default=None)
    demographics: str | None = Field(default=None)
    pain_points: str | None = Field(default=None)
    goals: str | None = Field(default=None)


class CustomerAvatarDB(CustomerAvatarBase, table=True):
    __tablename__ = "customer_avatars"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(
        foreign_key="projects.id", nullable=False, ondelete="CASCADE", index=True
    )
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


class CustomerAvatarCreate(CustomerAvatarBase):
    name: str = Field(min_length=1, max_length=255)


class CustomerAvatarRead(CustomerAvatarBase):
    id: UUID
    project_id: UUID
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime


class CompetitorBase(SQLModel):
    name: str = Field(max_length=255)
    website: str | None = Field(default=None, max_length=2048)
    strengths: str | None = Field(default=None)
    weaknesses: str | None = Field(default=None)
    notes: str | None = Field(default=None)


class CompetitorDB(CompetitorBase, table=True):
    __tablename__ = "competitor_analysis"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(
        foreign_key="projects.id", nullable=False, ondelete="CASCADE", index=True
    )
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


class CompetitorCreate(CompetitorBase):
    name: str = Field(min_length=1, max_length=255)


class CompetitorRead(CompetitorBase):
    id: UUID
    project_id: UUID
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime
