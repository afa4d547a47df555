from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blightstone.auth.dependencies import get_current_user
from blightstone.database import get_db
from blightstone.exceptions import RecordNotFoundError
from blightstone.projects.models import (
    CompetitorCreate,
    CompetitorDB,
    CompetitorRead,
    CreativeCreate,
    CreativeDB,
    CreativeRead,
    CustomerAvatarCreate,
    CustomerAvatarDB,
    CustomerAvatarRead,
    ProjectCreate,
    ProjectDB,
    ProjectUpdate,
)
from blightstone.projects.repository import ProjectRecordRepository, ProjectRepository
from blightstone.users.models import UserRead

router = APIRouter(prefix="/api/projects", tags=["projects"])


async def _get_project_or_404(repository: ProjectRepository, project_id: UUID) -> ProjectDB:
    project = await repository.get(project_id)
    if not project:
        raise RecordNotFoundError("Project not found")
    return project


@router.get("/")
async def list_projects(
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """List projects, newest first, with their members."""
    repository = ProjectRepository(db)
    projects = await repository.list_all()
    return {
        "success": True,
        "projects": [await repository.to_read(project) for project in projects],
    }


@router.get("/{project_id}")
async def get_project(
    project_id: UUID,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = ProjectRepository(db)
    project = await _get_project_or_404(repository, project_id)
    return {"success": True, "project": await repository.to_read(project)}


@router.post("/")
async def create_project(
    data: ProjectCreate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Create a project owned by the current user."""
    repository = ProjectRepository(db)
    project = await repository.create(data, created_by=current_user.id)
    return {"success": True, "project": await repository.to_read(project)}


@router.put("/{project_id}")
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = ProjectRepository(db)
    project = await _get_project_or_404(repository, project_id)
    update_data = data.model_dump(exclude_unset=True, exclude={"team_members"})
    project = await repository.update(project, update_data, team_members=data.team_members)
    return {"success": True, "project": await repository.to_read(project)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = ProjectRepository(db)
    project = await _get_project_or_404(repository, project_id)
    await repository.delete(project)
    return {"success": True}


async def _records_for(
    db: AsyncSession, project_id: UUID, model: type, label: str
) -> ProjectRecordRepository:
    await _get_project_or_404(ProjectRepository(db), project_id)
    return ProjectRecordRepository(db, model, label)


@router.get("/{project_id}/creatives")
async def list_creatives(
    project_id: UUID,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = await _records_for(db, project_id, CreativeDB, "creative")
    creatives = await repository.list_for_project(project_id)
    return {"success": True, "creatives": [CreativeRead.model_validate(c) for c in creatives]}


@router.post("/{project_id}/creatives")
async def create_creative(
    project_id: UUID,
    data: CreativeCreate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = await _records_for(db, project_id, CreativeDB, "creative")
    creative = await repository.create(project_id, data, created_by=current_user.id)
    return {"success": True, "creative": CreativeRead.model_validate(creative)}


@router.get("/{project_id}/avatars")
async def list_avatars(
    project_id: UUID,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = await _records_for(db, project_id, CustomerAvatarDB, "avatar")
    avatars = await repository.list_for_project(project_id)
    return {"success": True, "avatars": [CustomerAvatarRead.model_validate(a) for a in avatars]}


@router.post("/{project_id}/avatars")
async def create_avatar(
    project_id: UUID,
    data: CustomerAvatarCreate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = await _records_for(db, project_id, CustomerAvatarDB, "avatar")
    avatar = await repository.create(project_id, data, created_by=current_user.id)
    return {"success": True, "avatar": CustomerAvatarRead.model_validate(avatar)}


@router.get("/{project_id}/competitors")
async def list_competitors(
    project_id: UUID,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = await _records_for(db, project_id, CompetitorDB, "competitor")
    competitors = await repository.list_for_project(project_id)
    return {
        "success": True,
        "competitors": [CompetitorRead.model_validate(c) for c in competitors],
    }


@router.post("/{project_id}/competitors")
async def create_competitor(
    project_id: UUID,
    data: CompetitorCreate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repository = await _records_for(db, project_id, CompetitorDB, "competitor")
    competitor = await repository.create(project_id, data, created_by=current_user.id)
    return {"success": True, "competitor": CompetitorRead.model_validate(competitor)}
