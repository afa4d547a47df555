from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from blightstone.projects.models import (
    ProjectCreate,
    ProjectDB,
    ProjectMemberDB,
    ProjectMemberRead,
    ProjectRead,
)
from blightstone.users.models import ProfileDB
from blightstone.utils.store_calls import store_call


class ProjectRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, label: str) -> None:
        try:
            async with store_call(label):
                await self.db.commit()
        except Exception:
            async with store_call("project rollback"):
                await self.db.rollback()
            raise

    async def get(self, project_id: UUID) -> ProjectDB | None:
        async with store_call("project lookup"):
            result = await self.db.execute(select(ProjectDB).where(ProjectDB.id == project_id))
            return result.scalar_one_or_none()

    async def list_all(self) -> list[ProjectDB]:
        async with store_call("project listing"):
            result = await self.db.execute(
                select(ProjectDB).order_by(ProjectDB.created_at.desc())
            )
            return list(result.scalars().all())

    async def get_members(self, project_id: UUID) -> list[ProjectMemberRead]:
        async with store_call("project member lookup"):
            result = await self.db.execute(
                select(ProjectMemberDB, ProfileDB.name, ProfileDB.email)
                .join(ProfileDB, ProfileDB.id == ProjectMemberDB.user_id)
                .where(ProjectMemberDB.project_id == project_id)
            )
            rows = result.all()
        return [
            ProjectMemberRead(user_id=member.user_id, role=member.role, name=name, email=email)
            for member, name, email in rows
        ]

    async def to_read(self, project: ProjectDB) -> ProjectRead:
        members = await self.get_members(project.id)
        return ProjectRead(**project.model_dump(), project_members=members)

    async def create(self, data: ProjectCreate, created_by: UUID) -> ProjectDB:
        project = ProjectDB.model_validate(
            data.model_dump(exclude={"team_members"}), update={"created_by": created_by}
        )
        async with store_call("project creation"):
            self.db.add(project)
            await self.db.flush()
            for user_id in dict.fromkeys(data.team_members):
                self.db.add(ProjectMemberDB(project_id=project.id, user_id=user_id))
        await self._commit("project creation")
        async with store_call("project refresh"):
            await self.db.refresh(project)
        return project

    async def update(
        self, project: ProjectDB, data: dict, team_members: list[UUID] | None = None
    ) -> ProjectDB:
        for key, value in data.items():
            setattr(project, key, value)
        async with store_call("project update"):
            self.db.add(project)
            if team_members is not None:
                await self.db.execute(
                    delete(ProjectMemberDB).where(ProjectMemberDB.project_id == project.id)
                )
                for user_id in dict.fromkeys(team_members):
                    self.db.add(ProjectMemberDB(project_id=project.id, user_id=user_id))
        await self._commit("project update")
        async with store_call("project refresh"):
            await self.db.refresh(project)
        return project

    async def delete(self, project: ProjectDB) -> None:
        async with store_call("project deletion"):
            await self.db.execute(
                delete(ProjectMemberDB).where(ProjectMemberDB.project_id == project.id)
            )
            await self.db.delete(project)
        await self._commit("project deletion")


class ProjectRecordRepository:
    """Rows of one per-project table (creatives, avatars or competitors)."""

    def __init__(self, db: AsyncSession, model: type[SQLModel], label: str):
        self.db = db
        self.model = model
        self.label = label

    async def list_for_project(self, project_id: UUID) -> list[SQLModel]:
        async with store_call(f"{self.label} listing"):
            result = await self.db.execute(
                select(self.model)
                .where(self.model.project_id == project_id)
                .order_by(self.model.created_at.desc())
            )
            return list(result.scalars().all())

    async def create(self, project_id: UUID, data: SQLModel, created_by: UUID) -> SQLModel:
        record = self.model.model_validate(
            data.model_dump(), update={"project_id": project_id, "created_by": created_by}
        )
        try:
            async with store_call(f"{self.label} creation"):
                self.db.add(record)
                await self.db.commit()
                await self.db.refresh(record)
        except Exception:
            async with store_call(f"{self.label} rollback"):
                await self.db.rollback()
            raise
        return record
